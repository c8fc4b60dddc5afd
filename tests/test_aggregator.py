"""Unit tests for prefix_balancer/aggregator.py"""

import threading
from unittest import mock

import pytest

from prefix_balancer.aggregator import OutcomeChannel, ProgressAggregator, start_aggregation
from prefix_balancer.ledger import ResultLedger, read_ledger
from prefix_balancer.models import PlanEntry, TransferOutcome, TransferPhase
from tests.assertions import assert_equal


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        """Move time forward."""
        self.now += seconds


def _outcome(index, phase=TransferPhase.COPIED, error=None):
    entry = PlanEntry(f"data/f{index}", f"root/prefix000/f{index}")
    return TransferOutcome(entry, phase, error)


def test_counts_each_outcome_once():
    """Succeeded and failed always add up to processed"""
    aggregator = ProgressAggregator(total=6, reporting_batch_size=10)
    outcomes = [
        _outcome(0),
        _outcome(1, TransferPhase.DELETED),
        _outcome(2, TransferPhase.COPY_FAILED, "AccessDenied"),
        _outcome(3, TransferPhase.DELETE_FAILED, "AccessDenied"),
        _outcome(4),
        _outcome(5, TransferPhase.COPY_FAILED, "NoSuchKey"),
    ]

    stats = aggregator.observe(outcomes)

    assert_equal(stats.succeeded, 3)
    assert_equal(stats.failed, 3)
    assert_equal(stats.processed, 6)
    assert_equal(stats.residual_duplicates, 1)
    assert_equal(stats.phase_counts[TransferPhase.COPY_FAILED], 2)
    assert_equal(stats.not_attempted, 0)


def test_emits_status_every_batch_and_at_completion():
    """Lines appear at each batch boundary and when the total is reached"""
    aggregator = ProgressAggregator(total=12, reporting_batch_size=5)

    aggregator.observe(_outcome(i) for i in range(12))

    assert_equal(len(aggregator.status_lines), 3)
    assert "(5/12)" in aggregator.status_lines[0]
    assert "(10/12)" in aggregator.status_lines[1]
    assert "100% (12/12)" in aggregator.status_lines[2]


def test_final_line_when_stream_ends_early():
    """A cancelled stream still gets a closing status line"""
    aggregator = ProgressAggregator(total=10, reporting_batch_size=4)

    stats = aggregator.observe(_outcome(i) for i in range(6))

    assert_equal(stats.not_attempted, 4)
    assert_equal(len(aggregator.status_lines), 2)
    assert "60% (6/10)" in aggregator.status_lines[-1]


def test_no_duplicate_line_on_exact_batch():
    """Ending exactly on a reported count does not repeat the line"""
    aggregator = ProgressAggregator(total=10, reporting_batch_size=5)
    aggregator.observe(_outcome(i) for i in range(10))
    assert_equal(len(aggregator.status_lines), 2)


def test_status_line_format_with_rate():
    """Rate is processed per elapsed second"""
    clock = FakeClock()
    aggregator = ProgressAggregator(total=8, reporting_batch_size=100, clock=clock)
    for index in range(4):
        clock.advance(0.5)
        aggregator.record(_outcome(index, TransferPhase.COPIED if index else TransferPhase.COPY_FAILED))

    assert_equal(
        aggregator.status_line(),
        "Progress: 50% (4/8) - Rate: 2.00 objects/sec - Success: 3 - Failed: 1",
    )


def test_rate_is_na_before_one_second():
    """Rate is not reported until a full second has elapsed"""
    clock = FakeClock()
    aggregator = ProgressAggregator(total=3, clock=clock)
    clock.advance(0.2)
    aggregator.record(_outcome(0))
    assert "Rate: N/A objects/sec" in aggregator.status_line()


def test_percentage_truncates():
    """Percentages are whole numbers rounded down"""
    aggregator = ProgressAggregator(total=3)
    aggregator.record(_outcome(0))
    assert aggregator.status_line().startswith("Progress: 33% (1/3)")


def test_status_lines_are_logged(caplog):
    """Each status line goes to the log"""
    caplog.set_level("INFO")
    ProgressAggregator(total=2, reporting_batch_size=1).observe([_outcome(0), _outcome(1)])
    assert "Progress: 50% (1/2)" in caplog.text
    assert "Progress: 100% (2/2)" in caplog.text


def test_invalid_batch_size_rejected():
    """Reporting batch size must be positive"""
    with pytest.raises(ValueError):
        ProgressAggregator(total=1, reporting_batch_size=0)


def test_outcomes_are_written_to_ledger(tmp_path):
    """The aggregator is the only ledger writer"""
    with ResultLedger(tmp_path / "run") as ledger:
        aggregator = ProgressAggregator(total=2, ledger=ledger)
        aggregator.observe([_outcome(0), _outcome(1, TransferPhase.COPY_FAILED, "AccessDenied")])

    assert_equal(len(read_ledger(tmp_path / "run_success.csv")), 1)
    failed = read_ledger(tmp_path / "run_failed.csv")
    assert_equal(failed[0]["error"], "AccessDenied")


class TestOutcomeChannel:
    """Tests for the producer/consumer channel"""

    def test_iteration_ends_at_close(self):
        """Everything put before close is delivered in order"""
        channel = OutcomeChannel()
        for index in range(3):
            channel.put(_outcome(index))
        channel.close()
        assert_equal([o.entry.source_key for o in channel], ["data/f0", "data/f1", "data/f2"])

    def test_put_after_close_rejected(self):
        """A closed channel accepts nothing"""
        channel = OutcomeChannel()
        channel.close()
        with pytest.raises(RuntimeError):
            channel.put(_outcome(0))

    def test_close_is_idempotent(self):
        """Closing twice ends iteration once"""
        channel = OutcomeChannel()
        channel.close()
        channel.close()
        assert not list(channel)


def test_start_aggregation_joins_after_close():
    """The background task drains the channel from several producers"""
    channel = OutcomeChannel()
    aggregator = ProgressAggregator(total=40, reporting_batch_size=10)
    task = start_aggregation(aggregator, channel)

    def _produce(start):
        for index in range(start, start + 10):
            channel.put(_outcome(index))

    producers = [threading.Thread(target=_produce, args=(n * 10,)) for n in range(4)]
    for producer in producers:
        producer.start()
    for producer in producers:
        producer.join()
    channel.close()

    stats = task.join(timeout=5)

    assert_equal(stats.succeeded, 40)
    assert_equal(stats.processed, stats.total)
    assert_equal(len(aggregator.status_lines), 4)


def test_failed_task_reports_and_calls_back():
    """A consumer that dies is visible before join and fires its callback"""
    channel = OutcomeChannel()
    ledger = mock.Mock()
    ledger.record.side_effect = OSError(28, "No space left on device")
    aggregator = ProgressAggregator(total=3, ledger=ledger)
    stopped = threading.Event()

    task = start_aggregation(aggregator, channel)
    task.on_failure(stopped.set)
    channel.put(_outcome(0))

    assert stopped.wait(timeout=5)
    assert task.failed
    assert_equal(aggregator.stats.processed, 0)
    channel.close()
    with pytest.raises(OSError):
        task.join(timeout=5)


def test_successful_task_does_not_call_back():
    """The failure callback stays silent on a clean run"""
    channel = OutcomeChannel()
    callback = mock.Mock()
    task = start_aggregation(ProgressAggregator(total=1), channel)
    task.on_failure(callback)
    channel.put(_outcome(0))
    channel.close()

    task.join(timeout=5)

    assert not task.failed
    callback.assert_not_called()
