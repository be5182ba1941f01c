"""Envelope returned by every buyer-facing operation."""

from typing import Any

from pydantic import BaseModel


class OperationResult(BaseModel):
    success: bool
    message: str
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, message: str, data: Any = None) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, error: str, data: Any = None) -> "OperationResult":
        return cls(success=False, message=message, error=error, data=data)
