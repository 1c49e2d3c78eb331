"""Discriminated result returned by every public service operation."""
from __future__ import annotations

from typing import Any, TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from rps_room.core.exceptions import AppException


class Outcome(BaseModel):
    """Success, or one of the rejection kinds identified by ``code``."""

    ok: bool
    code: str = "OK"
    message: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
    data: Any = None
    http_status: int = Field(default=200, exclude=True)

    @classmethod
    def success(cls, data: Any = None, message: str = "") -> "Outcome":
        return cls(ok=True, data=data, message=message)

    @classmethod
    def failure(cls, exc: "AppException") -> "Outcome":
        return cls(
            ok=False,
            code=exc.code,
            message=exc.message,
            details=exc.details,
            http_status=exc.http_status,
        )

    @classmethod
    def internal_error(cls, message: str = "An unexpected error occurred.") -> "Outcome":
        return cls(ok=False, code="INTERNAL_ERROR", message=message, http_status=500)

    def to_error_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "details": self.details}

    @property
    def failed(self) -> bool:
        return not self.ok
