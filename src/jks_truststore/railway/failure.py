"""
Failure description — structured error information for the failure track.

The trust-store pipeline has a small, closed set of failure kinds. Each one
is an ErrorCode member; a FailureDescription pairs the code with a message,
the optional underlying exception, and the moment the failure was recorded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """
    Closed set of failure kinds produced while building a trust store.

    Organized by the stage that raises them:
    - Input:    EMPTY_INPUT, DECODE_ERROR
    - Encoding: SERIALIZATION_ERROR, INTEGRITY_ERROR
    - Storage:  PERSIST_ERROR, NOT_FOUND
    - Startup:  CONFIGURATION_ERROR
    """

    EMPTY_INPUT = "EMPTY_INPUT"
    """No certificates were supplied."""

    DECODE_ERROR = "DECODE_ERROR"
    """Malformed PEM content, unrecognized block type, or malformed JKS bytes."""

    SERIALIZATION_ERROR = "SERIALIZATION_ERROR"
    """The trust store could not be written in the JKS binary format."""

    INTEGRITY_ERROR = "INTEGRITY_ERROR"
    """The JKS integrity seal does not match (wrong password or tampering)."""

    PERSIST_ERROR = "PERSIST_ERROR"
    """Computed fields could not be handed back to the caller's storage."""

    NOT_FOUND = "NOT_FOUND"
    """No persisted trust-store state exists."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Invalid runtime settings."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, optional exception, and timestamp.

    >>> desc = FailureDescription(ErrorCode.EMPTY_INPUT, "no certificates supplied")
    >>> desc.code
    <ErrorCode.EMPTY_INPUT: 'EMPTY_INPUT'>
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __str__(self) -> str:
        if self.exception is None:
            return f"{self.code.value}: {self.message}"
        return f"{self.code.value}: {self.message} ({self.exception})"
