"""SQS access policy document allowing an SNS topic to deliver to a queue."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

POLICY_VERSION = "2012-10-17"
SNS_SERVICE_PRINCIPAL = "sns.amazonaws.com"
SEND_MESSAGE_ACTION = "sqs:SendMessage"


class _PolicyModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Principal(_PolicyModel):
    service: str = Field(default=SNS_SERVICE_PRINCIPAL, alias="Service")


class SourceArnCondition(_PolicyModel):
    source_arn: str = Field(alias="aws:SourceArn")


class Condition(_PolicyModel):
    arn_equals: SourceArnCondition = Field(alias="ArnEquals")


class PolicyStatement(_PolicyModel):
    sid: str = Field(alias="Sid")
    effect: str = Field(default="Allow", alias="Effect")
    principal: Principal = Field(default_factory=Principal, alias="Principal")
    action: str = Field(default=SEND_MESSAGE_ACTION, alias="Action")
    resource: str = Field(alias="Resource")
    condition: Condition = Field(alias="Condition")


class QueuePolicy(_PolicyModel):
    version: str = Field(default=POLICY_VERSION, alias="Version")
    statement: list[PolicyStatement] = Field(alias="Statement")

    def to_json(self) -> str:
        """Serialize with the IAM field names SQS expects."""
        return self.model_dump_json(by_alias=True)


def build_queue_policy(
    queue_arn: str, topic_arn: str, sid: str = "AllowSNStoSQS"
) -> QueuePolicy:
    """Grant SNS ``sqs:SendMessage`` on *queue_arn*, only from *topic_arn*."""
    statement = PolicyStatement(
        sid=sid,
        resource=queue_arn,
        condition=Condition(arn_equals=SourceArnCondition(source_arn=topic_arn)),
    )
    return QueuePolicy(statement=[statement])
