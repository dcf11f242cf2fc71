"""In-memory SNS/SQS stand-ins shaped like the boto3 client surface we call."""

from __future__ import annotations

from typing import Any

import pytest
from botocore.exceptions import ClientError

from emulator_setup.aws.clients import AwsClients
from emulator_setup.config.models import SetupConfig

ACCOUNT = "000000000000"
REGION = "us-east-1"
ENDPOINT = "http://localhost:4566"


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class _Paginator:
    def __init__(self, pages_fn: Any) -> None:
        self._pages_fn = pages_fn

    def paginate(self, **kwargs: Any) -> list[dict[str, Any]]:
        return self._pages_fn(**kwargs)


class FakeSns:
    def __init__(self) -> None:
        self.topics: list[str] = []
        self.subscriptions: list[dict[str, str]] = []
        self.calls: list[str] = []

    def get_paginator(self, operation: str) -> _Paginator:
        if operation == "list_topics":
            return _Paginator(
                lambda: [{"Topics": [{"TopicArn": arn} for arn in self.topics]}]
            )
        if operation == "list_subscriptions_by_topic":
            return _Paginator(
                lambda TopicArn: [  # noqa: N803
                    {
                        "Subscriptions": [
                            s for s in self.subscriptions if s["TopicArn"] == TopicArn
                        ]
                    }
                ]
            )
        raise NotImplementedError(operation)

    def create_topic(self, Name: str) -> dict[str, str]:  # noqa: N803
        self.calls.append("create_topic")
        arn = f"arn:aws:sns:{REGION}:{ACCOUNT}:{Name}"
        if arn not in self.topics:
            self.topics.append(arn)
        return {"TopicArn": arn}

    def delete_topic(self, TopicArn: str) -> None:  # noqa: N803
        self.calls.append("delete_topic")
        self.topics.remove(TopicArn)

    def subscribe(self, **kwargs: Any) -> dict[str, str]:
        self.calls.append("subscribe")
        arn = f"{kwargs['TopicArn']}:sub-{len(self.subscriptions)}"
        self.subscriptions.append(
            {
                "SubscriptionArn": arn,
                "TopicArn": kwargs["TopicArn"],
                "Protocol": kwargs["Protocol"],
                "Endpoint": kwargs["Endpoint"],
            }
        )
        return {"SubscriptionArn": arn}

    def unsubscribe(self, SubscriptionArn: str) -> None:  # noqa: N803
        self.calls.append("unsubscribe")
        self.subscriptions = [
            s for s in self.subscriptions if s["SubscriptionArn"] != SubscriptionArn
        ]


class FakeSqs:
    def __init__(self) -> None:
        self.queues: dict[str, dict[str, str]] = {}
        self.calls: list[str] = []

    @staticmethod
    def _url(name: str) -> str:
        return f"{ENDPOINT}/{ACCOUNT}/{name}"

    def get_paginator(self, operation: str) -> _Paginator:
        if operation == "list_queues":
            return _Paginator(lambda: [{"QueueUrls": list(self.queues)}])
        raise NotImplementedError(operation)

    def create_queue(self, QueueName: str) -> dict[str, str]:  # noqa: N803
        self.calls.append("create_queue")
        url = self._url(QueueName)
        self.queues.setdefault(
            url, {"QueueArn": f"arn:aws:sqs:{REGION}:{ACCOUNT}:{QueueName}"}
        )
        return {"QueueUrl": url}

    def get_queue_url(self, QueueName: str) -> dict[str, str]:  # noqa: N803
        self.calls.append("get_queue_url")
        url = self._url(QueueName)
        if url not in self.queues:
            raise client_error("AWS.SimpleQueueService.NonExistentQueue", "GetQueueUrl")
        return {"QueueUrl": url}

    def get_queue_attributes(
        self,
        QueueUrl: str,  # noqa: N803
        AttributeNames: list[str],  # noqa: N803
    ) -> dict[str, Any]:
        self.calls.append("get_queue_attributes")
        attrs = self.queues[QueueUrl]
        return {"Attributes": {k: attrs[k] for k in AttributeNames if k in attrs}}

    def set_queue_attributes(
        self,
        QueueUrl: str,  # noqa: N803
        Attributes: dict[str, str],  # noqa: N803
    ) -> None:
        self.calls.append("set_queue_attributes")
        self.queues[QueueUrl].update(Attributes)

    def delete_queue(self, QueueUrl: str) -> None:  # noqa: N803
        self.calls.append("delete_queue")
        del self.queues[QueueUrl]


@pytest.fixture
def config() -> SetupConfig:
    return SetupConfig(topic_name="orders", queue_name="orders-worker")


@pytest.fixture
def fake_sns() -> FakeSns:
    return FakeSns()


@pytest.fixture
def fake_sqs() -> FakeSqs:
    return FakeSqs()


@pytest.fixture
def fake_clients(fake_sns: FakeSns, fake_sqs: FakeSqs) -> AwsClients:
    return AwsClients(sns=fake_sns, sqs=fake_sqs)
