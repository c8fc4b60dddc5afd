"""
S3 client creation for the prefix balancer.

Credentials come from a .env file when one provides them; otherwise boto3's
default credential chain (environment, shared config, instance role) applies.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import boto3
from botocore.config import Config
from dotenv import load_dotenv


def _resolve_env_path(env_path: Optional[str] = None) -> str:
    """
    Determine which .env file should be used for AWS credentials.

    Priority order:
      1. Explicit parameter
      2. AWS_ENV_FILE environment variable
      3. ~/.env
    """
    if env_path:
        return env_path
    aws_env_file = os.environ.get("AWS_ENV_FILE")
    if aws_env_file:
        return aws_env_file
    return str(Path.home() / ".env")


def load_credentials_from_env(env_path: Optional[str] = None) -> tuple[str, str]:
    """
    Load AWS credentials from .env file and return them as a tuple.

    Args:
        env_path: Optional override path (defaults to ~/.env)

    Returns:
        tuple: (aws_access_key_id, aws_secret_access_key)

    Raises:
        ValueError: If credentials are not found in .env file
    """
    resolved_path = _resolve_env_path(env_path)
    load_dotenv(resolved_path)

    aws_access_key_id = os.getenv("AWS_ACCESS_KEY_ID")
    aws_secret_access_key = os.getenv("AWS_SECRET_ACCESS_KEY")
    if aws_access_key_id and aws_secret_access_key:
        logging.info("AWS credentials loaded from %s", resolved_path)
        return aws_access_key_id, aws_secret_access_key

    raise ValueError(f"AWS credentials not found in {resolved_path}")


def create_s3_client(
    max_pool_connections: int,
    region: Optional[str] = None,
    env_path: Optional[str] = None,
):
    """
    Create an S3 client whose connection pool matches the worker count.

    Args:
        max_pool_connections: Connection pool size (one per transfer worker)
        region: Optional AWS region name
        env_path: Optional .env path holding credentials

    Returns:
        boto3 S3 client
    """
    client_kwargs = {
        "config": Config(max_pool_connections=max_pool_connections),
    }
    try:
        aws_access_key_id, aws_secret_access_key = load_credentials_from_env(env_path)
    except ValueError:
        logging.info("No .env credentials found; using the default AWS credential chain")
    else:
        client_kwargs["aws_access_key_id"] = aws_access_key_id
        client_kwargs["aws_secret_access_key"] = aws_secret_access_key
        aws_session_token = os.getenv("AWS_SESSION_TOKEN")
        if aws_session_token:
            client_kwargs["aws_session_token"] = aws_session_token

    if region is not None:
        client_kwargs["region_name"] = region

    return boto3.client("s3", **client_kwargs)


__all__ = ["create_s3_client", "load_credentials_from_env"]
