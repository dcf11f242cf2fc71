"""Result types returned by the provisioner."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class ResourceKind(StrEnum):
    TOPIC = "topic"
    QUEUE = "queue"


class LookupStatus(StrEnum):
    """Outcome of asking the emulator whether a resource exists.

    Only ``NOT_FOUND`` means it is safe to create; ``QUERY_ERROR`` means the
    current state is unknown.
    """

    FOUND = "found"
    NOT_FOUND = "not_found"
    QUERY_ERROR = "query_error"


@dataclass(frozen=True)
class Lookup:
    kind: ResourceKind
    name: str
    status: LookupStatus
    identifier: str | None = None
    detail: str = ""

    @property
    def found(self) -> bool:
        return self.status == LookupStatus.FOUND


class StepStatus(StrEnum):
    CREATED = "created"
    EXISTS = "exists"
    LINKED = "linked"
    DELETED = "deleted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class StepResult:
    step: str
    status: StepStatus
    detail: str = ""
    identifier: str | None = None


@dataclass
class SetupReport:
    steps: list[StepResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def failed(self) -> list[StepResult]:
        return [s for s in self.steps if s.status == StepStatus.FAILED]

    @property
    def summary(self) -> dict[str, str]:
        return {s.step: s.status.value for s in self.steps}
