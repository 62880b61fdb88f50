from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class DdbError(Exception):
    """Base error for blob-store operations backed by DynamoDB.

    `status_code`/`title` drive the problem-details response in `main`.
    """

    message: str
    operation: str | None = None
    table_name: str | None = None
    key: dict[str, Any] | None = None
    aws_request_id: str | None = None
    retryable: bool = False
    cause: Exception | None = None

    status_code = 500
    title = "Storage Error"

    def __str__(self) -> str:
        return self.message

    def to_extensions(self) -> dict[str, Any]:
        ext = {
            "operation": self.operation,
            "table": self.table_name,
            "key": self.key,
            "awsRequestId": self.aws_request_id,
            "retryable": bool(self.retryable),
        }
        return {k: v for k, v in ext.items() if v is not None}


@dataclass(slots=True)
class DdbConflict(DdbError):
    # Conditional write lost; callers of write_if_absent translate this to False.
    status_code = 409
    title = "Conflict"


@dataclass(slots=True)
class DdbValidation(DdbError):
    status_code = 400
    title = "Bad Request"


@dataclass(slots=True)
class DdbThrottled(DdbError):
    status_code = 503
    title = "Service Unavailable"


@dataclass(slots=True)
class DdbUnavailable(DdbError):
    status_code = 503
    title = "Service Unavailable"


@dataclass(slots=True)
class DdbInternal(DdbError):
    pass
