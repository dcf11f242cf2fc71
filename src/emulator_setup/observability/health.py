"""Health probes for the emulator and its SNS/SQS APIs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

import httpx
import structlog
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_delay,
    wait_exponential,
)

from emulator_setup.aws.clients import AwsClients

logger = structlog.get_logger()

HEALTH_PATH = "/_localstack/health"
WATCHED_SERVICES = ("sns", "sqs")


class Status(StrEnum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class ComponentHealth:
    name: str
    status: Status = Status.UNKNOWN
    detail: str = ""


@dataclass
class SetupHealth:
    components: list[ComponentHealth] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return all(c.status == Status.HEALTHY for c in self.components)

    @property
    def summary(self) -> dict[str, str]:
        return {c.name: c.status.value for c in self.components}


class EmulatorNotReadyError(RuntimeError):
    """Raised when the emulator does not answer its health endpoint in time."""


def check_emulator(endpoint_url: str) -> ComponentHealth:
    """Probe the emulator's health endpoint."""
    try:
        resp = httpx.get(f"{endpoint_url}{HEALTH_PATH}", timeout=5)
        resp.raise_for_status()
        services = resp.json().get("services", {})
        states = [f"{s}={services[s]}" for s in WATCHED_SERVICES if s in services]
        return ComponentHealth(
            name="emulator",
            status=Status.HEALTHY,
            detail=", ".join(states) or "up",
        )
    except Exception as exc:
        return ComponentHealth(name="emulator", status=Status.UNHEALTHY, detail=str(exc))


def check_sns(clients: AwsClients) -> ComponentHealth:
    """Probe the SNS API."""
    try:
        topics = clients.sns.list_topics().get("Topics", [])
        return ComponentHealth(
            name="sns", status=Status.HEALTHY, detail=f"{len(topics)} topic(s)"
        )
    except Exception as exc:
        return ComponentHealth(name="sns", status=Status.UNHEALTHY, detail=str(exc))


def check_sqs(clients: AwsClients) -> ComponentHealth:
    """Probe the SQS API."""
    try:
        urls = clients.sqs.list_queues().get("QueueUrls", [])
        return ComponentHealth(
            name="sqs", status=Status.HEALTHY, detail=f"{len(urls)} queue(s)"
        )
    except Exception as exc:
        return ComponentHealth(name="sqs", status=Status.UNHEALTHY, detail=str(exc))


def check_setup_health(endpoint_url: str, clients: AwsClients) -> SetupHealth:
    """Run all health checks and return aggregated result."""
    return SetupHealth(
        components=[
            check_emulator(endpoint_url),
            check_sns(clients),
            check_sqs(clients),
        ]
    )


def wait_for_emulator(endpoint_url: str, timeout_seconds: float) -> None:
    """Block until the emulator health endpoint answers, or give up."""

    @retry(
        retry=retry_if_exception_type(httpx.HTTPError),
        stop=stop_after_delay(timeout_seconds),
        wait=wait_exponential(multiplier=0.5, max=5),
    )
    def _probe() -> None:
        resp = httpx.get(f"{endpoint_url}{HEALTH_PATH}", timeout=5)
        resp.raise_for_status()

    try:
        _probe()
    except RetryError as exc:
        logger.error(
            "emulator.not_ready", endpoint_url=endpoint_url, timeout=timeout_seconds
        )
        msg = f"Emulator at {endpoint_url} not ready after {timeout_seconds}s"
        raise EmulatorNotReadyError(msg) from exc
    logger.info("emulator.ready", endpoint_url=endpoint_url)
