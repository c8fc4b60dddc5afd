"""
S3 prefix balancer package.

Redistributes a flat S3 prefix into evenly sized sibling prefixes.
"""

from . import aggregator, common, executor, ledger, lister, models, planner, runner, store
from .common import AggregationError, BalancerConfigError, BalancerError, ListError, PlanError
from .models import (
    DistributionPlan,
    ObjectRecord,
    PlanEntry,
    PrefixStats,
    RunStats,
    TransferOutcome,
    TransferPhase,
)
from .runner import BalanceResult, BalanceSettings, PrefixBalancer, RunStatus

__all__ = [
    "AggregationError",
    "BalanceResult",
    "BalanceSettings",
    "BalancerConfigError",
    "BalancerError",
    "DistributionPlan",
    "ListError",
    "ObjectRecord",
    "PlanEntry",
    "PlanError",
    "PrefixBalancer",
    "PrefixStats",
    "RunStats",
    "RunStatus",
    "TransferOutcome",
    "TransferPhase",
    "aggregator",
    "common",
    "executor",
    "ledger",
    "lister",
    "models",
    "planner",
    "runner",
    "store",
]
