"""Provisioner — creates an SNS topic and SQS queue and subscribes one to the other."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from emulator_setup.aws.clients import AwsClients
from emulator_setup.aws.naming import best_match, resource_name
from emulator_setup.aws.policy import build_queue_policy
from emulator_setup.config.models import SetupConfig
from emulator_setup.provisioning.results import (
    Lookup,
    LookupStatus,
    ResourceKind,
    SetupReport,
    StepResult,
    StepStatus,
)

logger = structlog.get_logger()

AWS_ERRORS = (ClientError, BotoCoreError)

_QUEUE_MISSING_CODES = frozenset(
    {"AWS.SimpleQueueService.NonExistentQueue", "QueueDoesNotExist"}
)

# operation name, response key holding the identifiers
_LISTINGS: dict[ResourceKind, tuple[str, str]] = {
    ResourceKind.TOPIC: ("list_topics", "Topics"),
    ResourceKind.QUEUE: ("list_queues", "QueueUrls"),
}


def _error_code(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code", ""))
    return ""


class Provisioner:
    """Idempotently provisions a topic, a queue, and the link between them.

    Every step re-queries the emulator instead of trusting earlier steps, so
    the flow can be re-run safely. Remote failures are logged and recorded in
    the returned report; they never abort the remaining steps.
    """

    def __init__(self, config: SetupConfig, clients: AwsClients) -> None:
        self._config = config
        self._sns = clients.sns
        self._sqs = clients.sqs

    def _client_for(self, kind: ResourceKind) -> Any:
        return self._sns if kind == ResourceKind.TOPIC else self._sqs

    def _iter_identifiers(self, kind: ResourceKind) -> Iterator[str]:
        operation, key = _LISTINGS[kind]
        paginator = self._client_for(kind).get_paginator(operation)
        for page in paginator.paginate():
            for item in page.get(key, []):
                yield item["TopicArn"] if kind == ResourceKind.TOPIC else item

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def resource_exists(self, kind: ResourceKind, name: str) -> Lookup:
        """Check the emulator's listing for a resource whose identifier contains *name*."""
        try:
            identifiers = list(self._iter_identifiers(kind))
        except AWS_ERRORS as exc:
            logger.error("lookup.query_failed", kind=kind.value, name=name, error=str(exc))
            return Lookup(kind, name, LookupStatus.QUERY_ERROR, detail=str(exc))

        identifier = best_match(identifiers, name)
        if identifier is None:
            return Lookup(kind, name, LookupStatus.NOT_FOUND)
        return Lookup(kind, name, LookupStatus.FOUND, identifier=identifier)

    def _queue_url(self) -> Lookup:
        name = self._config.queue_name
        try:
            resp = self._sqs.get_queue_url(QueueName=name)
        except AWS_ERRORS as exc:
            if _error_code(exc) in _QUEUE_MISSING_CODES:
                return Lookup(ResourceKind.QUEUE, name, LookupStatus.NOT_FOUND)
            return Lookup(
                ResourceKind.QUEUE, name, LookupStatus.QUERY_ERROR, detail=str(exc)
            )
        url = resp.get("QueueUrl")
        if not url:
            return Lookup(ResourceKind.QUEUE, name, LookupStatus.NOT_FOUND)
        return Lookup(ResourceKind.QUEUE, name, LookupStatus.FOUND, identifier=url)

    # ------------------------------------------------------------------
    # Create steps
    # ------------------------------------------------------------------

    def _ensure(self, kind: ResourceKind, name: str, step: str) -> StepResult:
        service = "sns" if kind == ResourceKind.TOPIC else "sqs"
        lookup = self.resource_exists(kind, name)

        if lookup.status == LookupStatus.FOUND:
            logger.info(f"{service}.{kind.value}_exists", name=name)
            return StepResult(
                step,
                StepStatus.EXISTS,
                f"{kind.value} '{name}' already exists",
                identifier=lookup.identifier,
            )
        if lookup.status == LookupStatus.QUERY_ERROR:
            logger.error(f"{service}.{kind.value}_check_failed", name=name)
            return StepResult(
                step,
                StepStatus.FAILED,
                f"could not list {kind.value}s, not creating '{name}': {lookup.detail}",
            )

        logger.info(f"{service}.{kind.value}_creating", name=name)
        try:
            if kind == ResourceKind.TOPIC:
                identifier = self._sns.create_topic(Name=name)["TopicArn"]
            else:
                identifier = self._sqs.create_queue(QueueName=name)["QueueUrl"]
        except AWS_ERRORS as exc:
            logger.error(
                f"{service}.{kind.value}_create_failed", name=name, error=str(exc)
            )
            return StepResult(
                step, StepStatus.FAILED, f"error creating {kind.value} '{name}': {exc}"
            )

        logger.info(f"{service}.{kind.value}_created", name=name, identifier=identifier)
        return StepResult(
            step,
            StepStatus.CREATED,
            f"{kind.value} '{name}' created",
            identifier=identifier,
        )

    def ensure_topic(self) -> StepResult:
        """Create the SNS topic unless one already exists."""
        return self._ensure(ResourceKind.TOPIC, self._config.topic_name, "topic")

    def ensure_queue(self) -> StepResult:
        """Create the SQS queue unless one already exists."""
        return self._ensure(ResourceKind.QUEUE, self._config.queue_name, "queue")

    # ------------------------------------------------------------------
    # Link step
    # ------------------------------------------------------------------

    def _find_subscription(self, topic_arn: str, queue_arn: str) -> str | None:
        paginator = self._sns.get_paginator("list_subscriptions_by_topic")
        for page in paginator.paginate(TopicArn=topic_arn):
            for sub in page.get("Subscriptions", []):
                if sub.get("Protocol") == "sqs" and sub.get("Endpoint") == queue_arn:
                    return sub.get("SubscriptionArn")
        return None

    def link_topic_to_queue(self) -> StepResult:
        """Allow the topic to send to the queue and subscribe the queue to it."""
        topic_name = self._config.topic_name
        queue_name = self._config.queue_name

        topic = self.resource_exists(ResourceKind.TOPIC, topic_name)
        queue = self._queue_url()

        if not (topic.found and queue.found):
            problems: list[str] = []
            if not topic.found:
                problems.append(_describe_missing("SNS topic ARN", topic))
            if not queue.found:
                problems.append(_describe_missing("SQS queue URL", queue))
            detail = "; ".join(problems)
            logger.error(
                "link.lookup_failed",
                topic=topic_name,
                queue=queue_name,
                topic_lookup=topic.status.value,
                queue_lookup=queue.status.value,
            )
            return StepResult("subscription", StepStatus.FAILED, detail)

        topic_arn = topic.identifier
        queue_url = queue.identifier
        assert topic_arn is not None
        assert queue_url is not None

        logger.info("link.subscribing", topic=topic_name, queue=queue_name)

        try:
            resp = self._sqs.get_queue_attributes(
                QueueUrl=queue_url, AttributeNames=["QueueArn"]
            )
            queue_arn = resp["Attributes"]["QueueArn"]
        except (*AWS_ERRORS, KeyError) as exc:
            logger.error("link.queue_arn_failed", queue_url=queue_url, error=str(exc))
            return StepResult(
                "subscription",
                StepStatus.FAILED,
                f"could not read QueueArn of '{queue_name}': {exc}",
            )

        policy = build_queue_policy(queue_arn, topic_arn, sid=self._config.policy_sid)
        try:
            self._sqs.set_queue_attributes(
                QueueUrl=queue_url, Attributes={"Policy": policy.to_json()}
            )
            logger.info("link.policy_set", queue_arn=queue_arn, topic_arn=topic_arn)
        except AWS_ERRORS as exc:
            logger.error("link.policy_failed", queue_url=queue_url, error=str(exc))

        try:
            existing = self._find_subscription(topic_arn, queue_arn)
        except AWS_ERRORS as exc:
            logger.warning("link.subscription_list_failed", error=str(exc))
            existing = None
        if existing is not None:
            logger.info("link.already_subscribed", subscription_arn=existing)
            return StepResult(
                "subscription",
                StepStatus.EXISTS,
                f"queue '{queue_name}' already subscribed to topic '{topic_name}'",
                identifier=existing,
            )

        kwargs: dict[str, Any] = {
            "TopicArn": topic_arn,
            "Protocol": "sqs",
            "Endpoint": queue_arn,
            "ReturnSubscriptionArn": True,
        }
        if self._config.raw_message_delivery:
            kwargs["Attributes"] = {"RawMessageDelivery": "true"}
        try:
            subscription_arn = self._sns.subscribe(**kwargs).get("SubscriptionArn")
        except AWS_ERRORS as exc:
            logger.error(
                "link.subscribe_failed",
                topic_arn=topic_arn,
                queue_arn=queue_arn,
                error=str(exc),
            )
            return StepResult(
                "subscription",
                StepStatus.FAILED,
                f"error subscribing queue '{queue_name}' to topic '{topic_name}': {exc}",
            )

        logger.info("link.subscribed", subscription_arn=subscription_arn)
        return StepResult(
            "subscription",
            StepStatus.LINKED,
            f"queue '{queue_name}' subscribed to topic '{topic_name}'",
            identifier=subscription_arn,
        )

    def run(self) -> SetupReport:
        """Topic, then queue, then the link. No rollback on partial failure."""
        report = SetupReport()
        report.steps.append(self.ensure_topic())
        report.steps.append(self.ensure_queue())
        report.steps.append(self.link_topic_to_queue())
        return report

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _unsubscribe(self, topic: Lookup) -> StepResult:
        if topic.status == LookupStatus.QUERY_ERROR:
            return StepResult("subscription", StepStatus.FAILED, topic.detail)
        if not topic.found:
            return StepResult("subscription", StepStatus.SKIPPED, "topic not found")
        assert topic.identifier is not None

        removed: list[str] = []
        try:
            paginator = self._sns.get_paginator("list_subscriptions_by_topic")
            arns = [
                sub["SubscriptionArn"]
                for page in paginator.paginate(TopicArn=topic.identifier)
                for sub in page.get("Subscriptions", [])
                if sub.get("Protocol") == "sqs"
                and resource_name(sub.get("Endpoint", "")) == self._config.queue_name
            ]
            for arn in arns:
                self._sns.unsubscribe(SubscriptionArn=arn)
                removed.append(arn)
                logger.info("teardown.unsubscribed", subscription_arn=arn)
        except AWS_ERRORS as exc:
            logger.warning("teardown.unsubscribe_failed", error=str(exc))
            return StepResult("subscription", StepStatus.FAILED, str(exc))

        if not removed:
            return StepResult("subscription", StepStatus.SKIPPED, "no subscription")
        return StepResult(
            "subscription", StepStatus.DELETED, f"{len(removed)} subscription(s) removed"
        )

    def _delete(self, lookup: Lookup) -> StepResult:
        step = lookup.kind.value
        if lookup.status == LookupStatus.QUERY_ERROR:
            return StepResult(step, StepStatus.FAILED, lookup.detail)
        if not lookup.found:
            return StepResult(step, StepStatus.SKIPPED, f"{step} '{lookup.name}' not found")
        try:
            if lookup.kind == ResourceKind.TOPIC:
                self._sns.delete_topic(TopicArn=lookup.identifier)
            else:
                self._sqs.delete_queue(QueueUrl=lookup.identifier)
        except AWS_ERRORS as exc:
            logger.warning(
                f"teardown.{step}_delete_failed", name=lookup.name, error=str(exc)
            )
            return StepResult(step, StepStatus.FAILED, str(exc))
        logger.info(f"teardown.{step}_deleted", name=lookup.name)
        return StepResult(
            step,
            StepStatus.DELETED,
            f"{step} '{lookup.name}' deleted",
            identifier=lookup.identifier,
        )

    def teardown(self) -> SetupReport:
        """Remove the subscription, the queue and the topic, in that order."""
        topic = self.resource_exists(ResourceKind.TOPIC, self._config.topic_name)
        queue = self._queue_url()

        report = SetupReport()
        report.steps.append(self._unsubscribe(topic))
        report.steps.append(self._delete(queue))
        report.steps.append(self._delete(topic))
        return report


def _describe_missing(what: str, lookup: Lookup) -> str:
    if lookup.status == LookupStatus.QUERY_ERROR:
        return f"{what} lookup failed: {lookup.detail}"
    return f"{what} not found"
