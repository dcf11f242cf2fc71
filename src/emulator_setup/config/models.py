"""Pydantic configuration models for emulator setup."""

from __future__ import annotations

import re

from pydantic import BaseModel, Field, SecretStr, field_validator

# SNS topic and SQS queue names share the same character rules.
_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,80}$")


class SetupConfig(BaseModel):
    """Where the emulator lives and which topic/queue pair to wire up."""

    region: str = "us-east-1"
    endpoint_url: str = "http://localhost:4566"
    topic_name: str = "my-localstack-topic"
    queue_name: str = "my-localstack-queue"
    # LocalStack accepts any credentials; boto3 still refuses to sign without them.
    access_key_id: str = "test"
    secret_access_key: SecretStr = SecretStr("test")
    policy_sid: str = Field(default="AllowSNStoSQS", min_length=1)
    raw_message_delivery: bool = False

    @field_validator("topic_name", "queue_name")
    @classmethod
    def validate_resource_name(cls, v: str) -> str:
        """Reject names SNS/SQS would refuse; FIFO (``.fifo``) resources are unsupported."""
        if v.endswith(".fifo"):
            msg = f"Resource name '{v}': FIFO topics and queues are not supported"
            raise ValueError(msg)
        if not _NAME_PATTERN.match(v):
            msg = (
                f"Resource name '{v}' must be 1-80 characters of letters, "
                f"digits, hyphens or underscores"
            )
            raise ValueError(msg)
        return v

    @field_validator("endpoint_url")
    @classmethod
    def validate_endpoint_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            msg = f"endpoint_url '{v}' must start with http:// or https://"
            raise ValueError(msg)
        return v.rstrip("/")
