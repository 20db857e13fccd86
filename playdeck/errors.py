"""Error types shared by the worker, the remote adapter and the CLI."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

MAX_ERROR_MESSAGE_LENGTH = 512


class ErrorCode(str, Enum):
    """Categories of failures surfaced to the user."""

    REMOTE_ERROR = "REMOTE_ERROR"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    RATE_LIMITED = "RATE_LIMITED"
    NOT_FOUND = "NOT_FOUND"
    CHANNEL_CLOSED = "CHANNEL_CLOSED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    COMMAND_FAILED = "COMMAND_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PlaydeckError(Exception):
    """Base exception carrying a code and optional structured metadata."""

    __slots__ = ("message", "code", "meta")

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        meta: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.meta = dict(meta) if meta else None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.meta:
            payload["meta"] = dict(self.meta)
        return payload


class RemoteCallError(PlaydeckError):
    """Raised when a call against the streaming service fails."""

    __slots__ = ("status",)

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: ErrorCode | None = None,
        meta: Mapping[str, Any] | None = None,
    ) -> None:
        resolved = code or _code_for_status(status)
        super().__init__(message, code=resolved, meta=meta)
        self.status = status


class ChannelClosedError(PlaydeckError):
    """Raised when a command is sent after the worker stopped consuming."""

    __slots__ = ()

    def __init__(self, message: str = "command channel is closed") -> None:
        super().__init__(message, code=ErrorCode.CHANNEL_CLOSED)


class CommandFailedError(PlaydeckError):
    """Raised by batch mode when a command left an error behind."""

    __slots__ = ()

    def __init__(self, message: str) -> None:
        super().__init__(message, code=ErrorCode.COMMAND_FAILED)


class InvalidInputError(ValueError):
    """Raised when invalid data is supplied to user actions or the CLI."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


def _code_for_status(status: int | None) -> ErrorCode:
    if status == 401:
        return ErrorCode.AUTH_REQUIRED
    if status == 404:
        return ErrorCode.NOT_FOUND
    if status == 429:
        return ErrorCode.RATE_LIMITED
    return ErrorCode.REMOTE_ERROR


def truncate_error(message: str, limit: int = MAX_ERROR_MESSAGE_LENGTH) -> str:
    text = message.strip()
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def describe_error(error: BaseException | str) -> str:
    """Return the user-facing message for ``error``."""

    if isinstance(error, str):
        return truncate_error(error)
    if isinstance(error, PlaydeckError):
        return truncate_error(error.message)
    text = str(error) or type(error).__name__
    return truncate_error(text)


__all__ = [
    "ChannelClosedError",
    "CommandFailedError",
    "ErrorCode",
    "InvalidInputError",
    "MAX_ERROR_MESSAGE_LENGTH",
    "PlaydeckError",
    "RemoteCallError",
    "describe_error",
    "truncate_error",
]
