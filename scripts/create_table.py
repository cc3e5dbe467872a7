#!/usr/bin/env python3
"""
Create the single DynamoDB table the tracker API expects.

Intended for DynamoDB Local / fresh environments; production tables are
provisioned by infrastructure code with the same key schema.

Usage:
    DDB_TABLE_NAME=opptrack DDB_ENDPOINT_URL=http://localhost:8000 \
        python scripts/create_table.py [--dry-run]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from botocore.exceptions import ClientError  # noqa: E402

from opptrack.db.dynamodb.client import dynamodb_client  # noqa: E402
from opptrack.observability.logging import configure_logging, get_logger  # noqa: E402
from opptrack.settings import settings  # noqa: E402

log = get_logger("create_table")


def _gsi(name: str) -> dict[str, Any]:
    prefix = name.lower()
    return {
        "IndexName": name,
        "KeySchema": [
            {"AttributeName": f"{prefix}pk", "KeyType": "HASH"},
            {"AttributeName": f"{prefix}sk", "KeyType": "RANGE"},
        ],
        "Projection": {"ProjectionType": "ALL"},
    }


def table_definition(table_name: str) -> dict[str, Any]:
    # GSI1: owner listing by deadline. GSI2: status scan for reminders.
    key_attrs = ["pk", "sk", "gsi1pk", "gsi1sk", "gsi2pk", "gsi2sk"]
    return {
        "TableName": table_name,
        "BillingMode": "PAY_PER_REQUEST",
        "AttributeDefinitions": [{"AttributeName": a, "AttributeType": "S"} for a in key_attrs],
        "KeySchema": [
            {"AttributeName": "pk", "KeyType": "HASH"},
            {"AttributeName": "sk", "KeyType": "RANGE"},
        ],
        "GlobalSecondaryIndexes": [_gsi("GSI1"), _gsi("GSI2")],
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the opportunity tracker DynamoDB table")
    parser.add_argument("--dry-run", action="store_true", help="Print the table definition and exit")
    args = parser.parse_args()

    configure_logging(level="INFO")
    if not settings.ddb_table_name:
        log.error("create_table_missing_name", hint="set DDB_TABLE_NAME")
        return 2

    definition = table_definition(settings.ddb_table_name)
    if args.dry_run:
        print(json.dumps(definition, indent=2))
        return 0

    client = dynamodb_client()
    try:
        client.create_table(**definition)
    except ClientError as e:
        if (e.response.get("Error") or {}).get("Code") == "ResourceInUseException":
            log.info("create_table_exists", table=settings.ddb_table_name)
            return 0
        raise
    client.get_waiter("table_exists").wait(TableName=settings.ddb_table_name)
    log.info("create_table_done", table=settings.ddb_table_name, endpoint=settings.ddb_endpoint_url)
    return 0


if __name__ == "__main__":
    sys.exit(main())
