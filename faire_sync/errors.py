"""
Error and result types for the Faire sync engine.

Only phase-level failures (FaireTransportError, SyncDeadlineExceeded) are raised
across a phase boundary. Record-level failures travel as values inside a
``Result`` and are collected into the phase error list.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class FaireSyncError(Exception):
    """Base class for sync engine exceptions."""


class FaireTransportError(FaireSyncError):
    """
    A page fetch could not be completed.

    Attributes:
        status_code: HTTP status, or None for network failures/timeouts
        body: raw response body or the underlying error message
    """

    def __init__(self, status_code: int | None, body: str):
        self.status_code = status_code
        self.body = body
        if status_code is None:
            message = f"Faire API request failed: {body}"
        else:
            message = f"Faire API error ({status_code}): {body}"
        super().__init__(message)

    @property
    def is_transient(self) -> bool:
        """Network failures, throttling and server errors are worth retrying."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500


class SyncDeadlineExceeded(FaireSyncError):
    """The run deadline passed; the current phase stops between records."""


@dataclass(frozen=True)
class RecordError:
    entity_type: str
    natural_key: dict[str, Any]
    message: str

    def __str__(self) -> str:
        key = ", ".join(f"{k}={v}" for k, v in self.natural_key.items())
        return f"{self.entity_type} [{key}]: {self.message}"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: RecordError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
