"""Shared API response envelope."""

from typing import Any

from pydantic import BaseModel


class ApiResponse(BaseModel):
    """Envelope returned by every endpoint: `{success, data?, error?, message?}`."""

    success: bool
    data: Any = None
    error: str | None = None
    message: str | None = None
    details: Any = None
