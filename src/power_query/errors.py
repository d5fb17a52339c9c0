"""Error types raised by the query service."""

from __future__ import annotations

from typing import Optional


class QueryError(RuntimeError):
    """Base class for every failure reported to query callers."""


class InvalidArgument(QueryError):
    """Raised when the caller supplied unusable input."""


class MissingRoomName(InvalidArgument):
    def __init__(self) -> None:
        super().__init__("missing room name")


class MissingAuthentication(InvalidArgument):
    def __init__(self) -> None:
        super().__init__("missing authentication fields")


class InvalidCredentials(InvalidArgument):
    """Raised when a credential blob cannot be decoded into cookies."""


class NavigationFailed(QueryError):
    """Raised when the portal did not end up on the expected page."""

    def __init__(self, title: str) -> None:
        super().__init__(f"failed to log in or navigate to the correct page: {title}")
        self.title = title


class RemoteQueryFailed(QueryError):
    """Raised when the room query endpoint answers with a non-success code."""

    def __init__(self, code: Optional[str] = None) -> None:
        message = "failed to query room info"
        if code is not None:
            message = f"{message} (code {code})"
        super().__init__(message)
        self.code = code


class DriverError(QueryError):
    """Raised when a browser automation call fails."""


class StoreError(QueryError):
    """Raised when the credential store cannot be read or written."""


class CredentialNotFound(KeyError):
    """Raised when no unexpired credential exists for a key."""
