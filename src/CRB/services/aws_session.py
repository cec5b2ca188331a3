"""
boto3 session and client construction shared by the AWS adapters.

Inside Lambda the execution role is used as-is. Locally, credentials come
from Settings (named profile first, then explicit keys) and otherwise from
boto3's default chain. Every client is built with explicit connect/read
timeouts and botocore's own retries switched off, so RetryPolicy is the only
place that decides whether a call is repeated.
"""

from __future__ import annotations

import os

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError

from CRB.core.exceptions import ConfigError
from CRB.core.logging_config import get_logger
from CRB.core.settings import Settings

logger = get_logger(__name__)


def is_lambda() -> bool:
    return 'AWS_EXECUTION_ENV' in os.environ or 'AWS_LAMBDA_FUNCTION_NAME' in os.environ


def get_aws_session(settings: Settings) -> boto3.Session:
    """
    Get boto3 session with proper credentials.

    Raises:
        ConfigError: If the session cannot be created (e.g. unknown profile)
    """
    try:
        if is_lambda():
            logger.info("Running in Lambda - using execution role")
            return boto3.Session(region_name=settings.aws_default_region)

        logger.info("Running locally - using settings credentials")
        return boto3.Session(**settings.get_session_kwargs())

    except BotoCoreError as e:
        raise ConfigError(
            "Failed to create AWS session",
            details={"error": str(e), "region": settings.aws_default_region}
        )


def client_config(settings: Settings) -> Config:
    """botocore Config with request timeouts and no built-in retries."""
    return Config(
        region_name=settings.aws_default_region,
        connect_timeout=settings.request_timeout_seconds,
        read_timeout=settings.request_timeout_seconds,
        retries={"total_max_attempts": 1, "mode": "standard"},
    )


def create_client(service_name: str, settings: Settings, session: boto3.Session = None):
    """Create a low-level boto3 client for the given service."""
    session = session or get_aws_session(settings)
    return session.client(service_name, config=client_config(settings))


def create_resource(service_name: str, settings: Settings, session: boto3.Session = None):
    """Create a boto3 resource for the given service."""
    session = session or get_aws_session(settings)
    return session.resource(service_name, config=client_config(settings))
