"""Shared models used across the power query service."""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    """Room lookup request together with whatever authentication material the caller has."""

    room_name: str = ""
    username: str = ""
    password: str = ""
    cookies: str = Field(
        default="",
        description="Serialized session cookies to reuse instead of logging in.",
    )

    def has_login(self) -> bool:
        return bool(self.username and self.password)


class QueryResult(BaseModel):
    """Balance (CNY) and remaining power (kWh) of a room."""

    balance: str
    power: str
    cookies: Optional[str] = Field(
        default=None,
        description="Session cookies after the query, when the service is set to return them.",
    )


class AuthState(str, enum.Enum):
    """Authentication state of the loaded portal page."""

    NEEDS_LOGIN = "needs_login"
    AUTHENTICATED = "authenticated"


class CacheWriteOutcome(BaseModel):
    """Result of a best-effort credential cache write."""

    stored: bool
    error: Optional[str] = None
