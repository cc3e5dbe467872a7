from __future__ import annotations

from functools import lru_cache
from typing import Any

import boto3
from botocore.config import Config

from ...settings import settings


@lru_cache(maxsize=1)
def botocore_config() -> Config:
    # botocore retries connection-level failures; ddb_call handles throttling on top.
    return Config(
        retries={"max_attempts": 10, "mode": "adaptive"},
        connect_timeout=2,
        read_timeout=10,
    )


def _session_kwargs() -> dict[str, Any]:
    kwargs: dict[str, Any] = {"region_name": settings.aws_region, "config": botocore_config()}
    if settings.ddb_endpoint_url:
        # DynamoDB Local / LocalStack during development.
        kwargs["endpoint_url"] = settings.ddb_endpoint_url
    return kwargs


@lru_cache(maxsize=1)
def dynamodb_resource():
    return boto3.resource("dynamodb", **_session_kwargs())


@lru_cache(maxsize=1)
def dynamodb_client():
    return boto3.client("dynamodb", **_session_kwargs())


def table_resource(table_name: str):
    return dynamodb_resource().Table(table_name)
