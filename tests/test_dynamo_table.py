from __future__ import annotations

import pytest

import opptrack.db.dynamodb.table as table_mod
from opptrack.db.dynamodb.errors import DdbInternal


class FakeResourceTable:
    def __init__(self, pages: list[dict]):
        self.pages = list(pages)
        self.queries: list[dict] = []
        self.puts: list[dict] = []

    def query(self, **kwargs):
        self.queries.append(kwargs)
        return self.pages.pop(0)

    def put_item(self, **kwargs):
        self.puts.append(kwargs)
        return {}


class FakeClient:
    def __init__(self):
        self.transactions: list[list] = []

    def transact_write_items(self, *, TransactItems):
        self.transactions.append(TransactItems)
        return {}


@pytest.fixture
def fakes(monkeypatch):
    resource = FakeResourceTable(
        [
            {"Items": [{"n": 1}, {"n": 2}], "LastEvaluatedKey": {"pk": "p", "sk": "2"}},
            {"Items": [{"n": 3}]},
        ]
    )
    client = FakeClient()
    monkeypatch.setattr(table_mod, "table_resource", lambda name: resource)
    monkeypatch.setattr(table_mod, "dynamodb_client", lambda: client)
    return resource, client


def test_query_all_follows_pagination(fakes):
    resource, _ = fakes
    t = table_mod.DynamoTable(table_name="tbl")

    items = t.query_all(key_condition_expression="kce", index_name="GSI1")

    assert [i["n"] for i in items] == [1, 2, 3]
    assert "ExclusiveStartKey" not in resource.queries[0]
    assert resource.queries[1]["ExclusiveStartKey"] == {"pk": "p", "sk": "2"}
    assert "FilterExpression" not in resource.queries[0]
    assert resource.queries[0]["IndexName"] == "GSI1"


def test_put_omits_unset_condition(fakes):
    resource, _ = fakes
    t = table_mod.DynamoTable(table_name="tbl")
    t.put_item(item={"pk": "a", "sk": "b"})
    assert resource.puts == [{"Item": {"pk": "a", "sk": "b"}}]


def test_transactions_use_low_level_shapes(fakes):
    _, client = fakes
    t = table_mod.DynamoTable(table_name="tbl")
    put = t.tx_put(item={"pk": "EMAIL#a", "n": 3}, condition_expression="attribute_not_exists(pk)")

    assert put["Item"] == {"pk": {"S": "EMAIL#a"}, "n": {"N": "3"}}
    t.transact_write(puts=[put])
    assert client.transactions == [[{"Put": put}]]
    assert t.transact_write(puts=[]) == {}
    assert len(client.transactions) == 1


def test_main_table_requires_name(monkeypatch):
    from opptrack.settings import settings

    monkeypatch.setattr(settings, "ddb_table_name", None)
    with pytest.raises(DdbInternal):
        table_mod.get_main_table()
