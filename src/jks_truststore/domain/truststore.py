"""
Trust store assembly, timestamp policy, and artifact identity.

Pure functions only. The creation timestamp is an explicit input and
output of every build; nothing here keeps state between calls.
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import TypeAlias

from jks_truststore.domain.models import (
    DEFAULT_CERTIFICATE_TYPE,
    ParsedCertificate,
    TrustedEntry,
    TrustStore,
)
from jks_truststore.railway import ErrorCode
from jks_truststore.railway.result import Result

Clock: TypeAlias = Callable[[], datetime]

# RFC3339 date-time: full date, "T", full time with optional fraction, then Z or ±hh:mm.
_RFC3339 = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_timestamp(moment: datetime) -> str:
    """Render a UTC instant the way RFC3339 writers do: whole seconds, `Z` suffix."""
    return moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(value: str | None) -> datetime | None:
    """
    Parse an RFC3339 timestamp, or return None when absent or unparsable.

    Fractional seconds and numeric offsets are kept as given; the instant
    they denote is what ends up in the encoded store.
    """
    if not value or not _RFC3339.match(value):
        return None
    normalized = value.upper()
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"
    # datetime carries microseconds at most
    normalized = re.sub(r"\.(\d{6})\d+", r".\1", normalized)
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def resolve_timestamp(value: str | None, clock: Clock = utc_now) -> tuple[datetime, str]:
    """
    Reuse a previously issued timestamp, or issue a fresh one.

    Returns (instant, rfc3339_text). A parsable `value` is echoed back
    unchanged so the caller's stored string stays stable. Otherwise the
    clock is read, truncated to the second, and converted to UTC.
    """
    parsed = parse_timestamp(value)
    if parsed is not None and value is not None:
        return parsed, value
    now = clock().astimezone(UTC).replace(microsecond=0)
    return now, format_timestamp(now)


def assemble_trust_store(
    certificates: Sequence[ParsedCertificate],
    created_at: datetime,
    password: str = "",
    certificate_type: str = DEFAULT_CERTIFICATE_TYPE,
) -> Result[TrustStore]:
    """
    Build a TrustStore with one trusted entry per certificate.

    Each alias is the decimal string of the certificate's global position,
    and all entries share `created_at`.
    """
    if not certificates:
        return Result.failure(ErrorCode.EMPTY_INPUT, "Cannot build a trust store without certificates")

    entries = tuple(
        TrustedEntry(
            alias=str(certificate.position),
            created_at=created_at,
            certificate=certificate,
            certificate_type=certificate_type,
        )
        for certificate in sorted(certificates, key=lambda c: c.position)
    )
    return Result.success(TrustStore(entries=entries, password=password))


def identify(artifact_base64: str) -> str:
    """Lowercase hex SHA-1 over the UTF-8 bytes of the artifact's base64 text."""
    return hashlib.sha1(artifact_base64.encode("utf-8")).hexdigest()  # noqa: S324
