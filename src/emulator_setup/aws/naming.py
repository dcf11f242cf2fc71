"""Matching SNS topic ARNs and SQS queue URLs against resource names."""

from __future__ import annotations

from collections.abc import Iterable


def resource_name(identifier: str) -> str:
    """Return the trailing resource name of an ARN or a queue URL.

    ``arn:aws:sns:us-east-1:000000000000:orders`` -> ``orders``
    ``http://localhost:4566/000000000000/orders`` -> ``orders``
    """
    tail = identifier.rstrip("/")
    if tail.startswith("arn:"):
        return tail.rsplit(":", 1)[-1]
    return tail.rsplit("/", 1)[-1]


def matches(identifier: str, name: str) -> bool:
    """Containment check used by the existence lookups."""
    return name in identifier


def best_match(identifiers: Iterable[str], name: str) -> str | None:
    """Pick the identifier for *name*: exact name first, then first containing."""
    candidates = [i for i in identifiers if matches(i, name)]
    for identifier in candidates:
        if resource_name(identifier) == name:
            return identifier
    return candidates[0] if candidates else None
