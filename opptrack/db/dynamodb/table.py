from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from boto3.dynamodb.types import TypeSerializer

from .client import dynamodb_client, table_resource
from .errors import DdbInternal
from .retry import RetryPolicy, ddb_call

_serializer = TypeSerializer()

# Transactions contend on the email lookup row during sign-up bursts.
_TRANSACTION_RETRY = RetryPolicy(max_attempts=8, base_delay_s=0.08, max_delay_s=2.0)


def _present(**kwargs: Any) -> dict[str, Any]:
    """boto3 rejects explicit None for optional parameters; drop them."""
    return {k: v for k, v in kwargs.items() if v is not None}


@dataclass(slots=True)
class Page:
    items: list[dict[str, Any]]
    last_evaluated_key: dict[str, Any] | None


class DynamoTable:
    """Thin retrying wrapper over one DynamoDB table (resource API plus client for transactions)."""

    def __init__(self, *, table_name: str):
        self.table_name = str(table_name)
        self._table = table_resource(self.table_name)
        self._client = dynamodb_client()

    def _call(self, operation: str, fn, *, key: dict[str, Any] | None = None, retry_policy: RetryPolicy | None = None):
        return ddb_call(operation, fn, table_name=self.table_name, key=key, retry_policy=retry_policy)

    def get_item(self, *, key: dict[str, Any]) -> dict[str, Any] | None:
        resp = self._call("GetItem", lambda: self._table.get_item(Key=key), key=key)
        return resp.get("Item")

    def put_item(self, *, item: dict[str, Any], condition_expression: str | None = None) -> dict[str, Any]:
        params = _present(Item=item, ConditionExpression=condition_expression)
        return self._call("PutItem", lambda: self._table.put_item(**params))

    def delete_item(self, *, key: dict[str, Any]) -> dict[str, Any]:
        return self._call("DeleteItem", lambda: self._table.delete_item(Key=key), key=key)

    def update_item(
        self,
        *,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_names: dict[str, str] | None,
        expression_attribute_values: dict[str, Any],
        condition_expression: str | None = None,
        return_values: str = "ALL_NEW",
    ) -> dict[str, Any] | None:
        params = _present(
            Key=key,
            UpdateExpression=update_expression,
            ExpressionAttributeNames=expression_attribute_names or None,
            ExpressionAttributeValues=expression_attribute_values,
            ConditionExpression=condition_expression,
            ReturnValues=return_values,
        )
        resp = self._call("UpdateItem", lambda: self._table.update_item(**params), key=key)
        return resp.get("Attributes")

    def query_page(
        self,
        *,
        key_condition_expression: Any,
        index_name: str | None = None,
        limit: int = 200,
        scan_index_forward: bool = True,
        filter_expression: Any | None = None,
        exclusive_start_key: dict[str, Any] | None = None,
    ) -> Page:
        params = _present(
            KeyConditionExpression=key_condition_expression,
            IndexName=index_name,
            ScanIndexForward=bool(scan_index_forward),
            Limit=max(1, min(500, int(limit or 200))),
            FilterExpression=filter_expression,
            ExclusiveStartKey=exclusive_start_key or None,
        )
        resp = self._call("Query", lambda: self._table.query(**params))
        return Page(items=list(resp.get("Items") or []), last_evaluated_key=resp.get("LastEvaluatedKey"))

    def query_all(
        self,
        *,
        key_condition_expression: Any,
        index_name: str | None = None,
        scan_index_forward: bool = True,
        filter_expression: Any | None = None,
        max_pages: int = 50,
    ) -> list[dict[str, Any]]:
        """Every matching item, following LastEvaluatedKey for at most `max_pages` pages."""
        items: list[dict[str, Any]] = []
        cursor: dict[str, Any] | None = None
        for _ in range(max(1, int(max_pages))):
            page = self.query_page(
                key_condition_expression=key_condition_expression,
                index_name=index_name,
                scan_index_forward=scan_index_forward,
                filter_expression=filter_expression,
                exclusive_start_key=cursor,
            )
            items.extend(page.items)
            cursor = page.last_evaluated_key
            if not cursor:
                break
        return items

    def transact_write(self, *, puts: Iterable[dict[str, Any]] = ()) -> dict[str, Any]:
        """All-or-nothing puts; entries come from `tx_put`."""
        entries = [{"Put": p} for p in puts]
        if not entries:
            return {}
        return self._call(
            "TransactWriteItems",
            lambda: self._client.transact_write_items(TransactItems=entries),
            retry_policy=_TRANSACTION_RETRY,
        )

    def tx_put(self, *, item: dict[str, Any], condition_expression: str | None = None) -> dict[str, Any]:
        # The low-level client wants AttributeValue shapes ({"S": ...}).
        serialized = {k: _serializer.serialize(v) for k, v in item.items()}
        return _present(TableName=self.table_name, Item=serialized, ConditionExpression=condition_expression)


def get_main_table() -> DynamoTable:
    from ...settings import settings

    if not settings.ddb_table_name:
        raise DdbInternal(message="DDB_TABLE_NAME is not set", operation="Config")
    return DynamoTable(table_name=settings.ddb_table_name)
