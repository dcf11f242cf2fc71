"""Unit tests for Provisioner teardown."""

from __future__ import annotations

from unittest.mock import MagicMock

from botocore.exceptions import ClientError, EndpointConnectionError

from emulator_setup.aws.clients import AwsClients
from emulator_setup.provisioning.provisioner import Provisioner
from emulator_setup.provisioning.results import StepStatus


class TestTeardown:
    def test_removes_everything_setup_created(
        self, config, fake_clients, fake_sns, fake_sqs
    ):
        provisioner = Provisioner(config, fake_clients)
        provisioner.run()

        report = provisioner.teardown()

        assert report.summary == {
            "subscription": "deleted",
            "queue": "deleted",
            "topic": "deleted",
        }
        assert fake_sns.topics == []
        assert fake_sns.subscriptions == []
        assert fake_sqs.queues == {}

    def test_nothing_to_remove_is_skipped(self, config, fake_clients):
        report = Provisioner(config, fake_clients).teardown()
        assert report.ok
        assert {s.status for s in report.steps} == {StepStatus.SKIPPED}

    def test_leaves_other_subscriptions(self, config, fake_clients, fake_sns):
        provisioner = Provisioner(config, fake_clients)
        provisioner.run()
        topic_arn = fake_sns.topics[0]
        fake_sns.subscribe(
            TopicArn=topic_arn,
            Protocol="sqs",
            Endpoint="arn:aws:sqs:us-east-1:000000000000:audit",
        )

        provisioner.teardown()

        assert [s["Endpoint"] for s in fake_sns.subscriptions] == [
            "arn:aws:sqs:us-east-1:000000000000:audit"
        ]

    def test_delete_failure_does_not_stop_remaining_steps(self, config):
        sns = MagicMock()
        sns.get_paginator.return_value.paginate.return_value = [
            {
                "Topics": [{"TopicArn": "arn:aws:sns:us-east-1:000000000000:orders"}],
                "Subscriptions": [],
            }
        ]
        sqs = MagicMock()
        sqs.get_queue_url.return_value = {"QueueUrl": "http://q/orders-worker"}
        sqs.delete_queue.side_effect = ClientError(
            {"Error": {"Code": "InternalError", "Message": "boom"}}, "DeleteQueue"
        )

        report = Provisioner(config, AwsClients(sns=sns, sqs=sqs)).teardown()

        assert report.summary["queue"] == "failed"
        assert report.summary["topic"] == "deleted"
        sns.delete_topic.assert_called_once_with(
            TopicArn="arn:aws:sns:us-east-1:000000000000:orders"
        )

    def test_unreachable_emulator_fails_every_step(self, config):
        error = EndpointConnectionError(endpoint_url="http://localhost:4566/")
        sns = MagicMock()
        sqs = MagicMock()
        sns.get_paginator.return_value.paginate.side_effect = error
        sqs.get_queue_url.side_effect = error

        report = Provisioner(config, AwsClients(sns=sns, sqs=sqs)).teardown()

        assert report.summary == {
            "subscription": "failed",
            "queue": "failed",
            "topic": "failed",
        }
        assert "localhost:4566" in report.steps[0].detail
        sns.unsubscribe.assert_not_called()
        sqs.delete_queue.assert_not_called()
        sns.delete_topic.assert_not_called()
