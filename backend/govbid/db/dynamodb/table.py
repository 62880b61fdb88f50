from __future__ import annotations

from typing import Any

from .client import table_resource
from .errors import DdbInternal
from .retry import ddb_call


class DynamoTable:
    def __init__(self, *, table_name: str, table: Any | None = None):
        self.table_name = str(table_name)
        # `table` lets tests hand in a fake boto3 Table.
        self._table = table if table is not None else table_resource(self.table_name)

    def get_item(self, *, key: dict[str, Any]) -> dict[str, Any] | None:
        def _op():
            resp = self._table.get_item(Key=key, ConsistentRead=True)
            return resp.get("Item")

        return ddb_call("GetItem", _op, table_name=self.table_name, key=key)

    def put_item(
        self,
        *,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        def _op():
            kwargs: dict[str, Any] = {"Item": item}
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression
            return self._table.put_item(**kwargs)

        key = {k: item.get(k) for k in ("pk", "sk") if k in item}
        return ddb_call("PutItem", _op, table_name=self.table_name, key=key or None)


def get_main_table() -> DynamoTable:
    from ...settings import settings

    if not settings.ddb_table_name:
        raise DdbInternal(message="DDB_TABLE_NAME is not set", operation="Config")
    return DynamoTable(table_name=settings.ddb_table_name)
