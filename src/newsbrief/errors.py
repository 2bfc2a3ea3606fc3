"""Error taxonomy shared by fetchers, the refresh cache and the server."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict


class ErrorCode(StrEnum):
    FETCH_FAILED = "FETCH_FAILED"
    COMMAND_FAILED = "COMMAND_FAILED"
    COMMAND_TIMEOUT = "COMMAND_TIMEOUT"
    EMPTY_CONTENT = "EMPTY_CONTENT"
    SOURCE_HTTP_ERROR = "SOURCE_HTTP_ERROR"
    SOURCE_TIMEOUT = "SOURCE_TIMEOUT"
    SOURCE_UNREACHABLE = "SOURCE_UNREACHABLE"
    SOURCE_PARSE_ERROR = "SOURCE_PARSE_ERROR"
    ALL_SOURCES_FAILED = "ALL_SOURCES_FAILED"


class NewsBriefError(Exception):
    """Base error carrying a machine-readable code.

    ``recoverable`` tells the caller whether trying again later may succeed.
    """

    def __init__(self, code: ErrorCode, message: str, recoverable: bool = True) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "recoverable": self.recoverable,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class FetchError(NewsBriefError):
    """The fetcher could not produce any usable content."""


class SourceFailure(BaseModel):
    """One source that failed inside an otherwise usable fetch."""

    model_config = ConfigDict(frozen=True)

    source: str
    code: ErrorCode
    message: str
