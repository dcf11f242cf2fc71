"""LocalStack fixtures for integration tests."""

from __future__ import annotations

import os
import uuid

import httpx
import pytest

from emulator_setup.aws.clients import AwsClients, build_clients
from emulator_setup.config.models import SetupConfig

ENDPOINT = os.environ.get("LOCALSTACK_ENDPOINT", "http://localhost:4566")


def _emulator_up(endpoint: str) -> bool:
    try:
        resp = httpx.get(f"{endpoint}/_localstack/health", timeout=2)
    except httpx.HTTPError:
        return False
    return resp.status_code < 300


@pytest.fixture(scope="session")
def localstack() -> str:
    """Skip the test unless LocalStack answers its health endpoint."""
    if not _emulator_up(ENDPOINT):
        pytest.skip(f"LocalStack not reachable at {ENDPOINT}")
    return ENDPOINT


@pytest.fixture
def config(localstack: str) -> SetupConfig:
    """Unique names per test so runs never see each other's resources."""
    suffix = uuid.uuid4().hex[:8]
    return SetupConfig(
        endpoint_url=localstack,
        topic_name=f"it-topic-{suffix}",
        queue_name=f"it-queue-{suffix}",
    )


@pytest.fixture
def clients(config: SetupConfig):
    from emulator_setup.provisioning.provisioner import Provisioner

    aws: AwsClients = build_clients(config)
    yield aws
    Provisioner(config, aws).teardown()
