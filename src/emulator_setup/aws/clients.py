"""boto3 client factory pointed at the emulator endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from types import ModuleType
from typing import Any

import structlog

from emulator_setup.config.models import SetupConfig

logger = structlog.get_logger()


class ClientUnavailableError(RuntimeError):
    """Raised when the AWS SDK is not installed."""


@dataclass
class AwsClients:
    sns: Any
    sqs: Any


def require_boto3() -> ModuleType:
    """Import boto3, failing fast before any network call if it is missing."""
    try:
        import boto3
    except ImportError as exc:
        msg = "boto3 is not installed. Please install it (e.g. 'pip install boto3')."
        raise ClientUnavailableError(msg) from exc
    return boto3


def build_clients(config: SetupConfig) -> AwsClients:
    """Create SNS and SQS clients bound to the configured emulator."""
    boto3 = require_boto3()
    session = boto3.session.Session(
        aws_access_key_id=config.access_key_id,
        aws_secret_access_key=config.secret_access_key.get_secret_value(),
        region_name=config.region,
    )
    logger.debug(
        "aws.clients_created",
        endpoint_url=config.endpoint_url,
        region=config.region,
    )
    return AwsClients(
        sns=session.client("sns", endpoint_url=config.endpoint_url),
        sqs=session.client("sqs", endpoint_url=config.endpoint_url),
    )
