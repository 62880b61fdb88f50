"""
Durable blob storage.

The summary cache and the bid ledger only ever see opaque bytes keyed by a
string; what sits underneath (DynamoDB, process memory) is chosen at wiring
time.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from ..db.dynamodb.errors import DdbConflict
from ..db.dynamodb.table import DynamoTable


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class BlobStore(ABC):
    """Base blob store interface."""

    @abstractmethod
    def read(self, key: str) -> bytes | None:
        """Return the stored bytes, or None when the key is absent."""

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        """Unconditionally store `data` under `key`."""

    @abstractmethod
    def write_if_absent(self, key: str, data: bytes) -> bool:
        """Store `data` only if `key` is absent. True iff this call wrote."""


class InMemoryBlobStore(BlobStore):
    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def read(self, key: str) -> bytes | None:
        with self._lock:
            return self._data.get(key)

    def write(self, key: str, data: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(data)

    def write_if_absent(self, key: str, data: bytes) -> bool:
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = bytes(data)
            return True


def blob_key(key: str) -> dict[str, str]:
    k = str(key or "").strip()
    if not k:
        raise ValueError("key is required")
    return {"pk": f"BLOB#{k}", "sk": "BLOB"}


def _as_bytes(raw: Any) -> bytes | None:
    if raw is None:
        return None
    # boto3 resource deserializes B attributes into boto3.dynamodb.types.Binary.
    value = getattr(raw, "value", raw)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    return None


class DynamoBlobStore(BlobStore):
    def __init__(self, table: DynamoTable):
        self._table = table

    def _item(self, key: str, data: bytes) -> dict[str, Any]:
        return {
            **blob_key(key),
            "entityType": "Blob",
            "blobKey": key,
            "body": bytes(data),
            "updatedAt": _now_iso(),
        }

    def read(self, key: str) -> bytes | None:
        it = self._table.get_item(key=blob_key(key))
        if not it:
            return None
        return _as_bytes(it.get("body"))

    def write(self, key: str, data: bytes) -> None:
        self._table.put_item(item=self._item(key, data))

    def write_if_absent(self, key: str, data: bytes) -> bool:
        try:
            self._table.put_item(
                item=self._item(key, data),
                condition_expression="attribute_not_exists(pk)",
            )
        except DdbConflict:
            return False
        return True
