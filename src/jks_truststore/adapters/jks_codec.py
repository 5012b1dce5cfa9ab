"""
JKS codec adapter — TrustStore ⇄ Java KeyStore binary format.

Adapter layer — implements the TrustStoreEncoder port, plus the matching
decoder used by `inspect` and by round-trip checks.

Binary layout (all integers big-endian), as read by java.security.KeyStore("JKS"):

    u32   magic            0xFEEDFEED
    u32   version          2
    u32   entry count
    per entry, in alias order:
      u32   tag            2 = trusted certificate
      utf   alias          Java modified UTF-8 (u16 length + bytes)
      i64   creation time  milliseconds since the Unix epoch
      utf   cert type      "X.509" (absent in version 1)
      u32   cert length
      bytes cert           DER
    [20 bytes]  SHA-1( utf16be(password) ‖ "Mighty Aphrodite" ‖ everything above )

The trailing seal is written only when a password is set; a store encoded
with an empty password is unsealed.
"""

from __future__ import annotations

import hashlib
import hmac
import io
import struct
from datetime import UTC, datetime, timedelta

import structlog

from jks_truststore.domain.models import (
    DEFAULT_CERTIFICATE_TYPE,
    ParsedCertificate,
    TrustedEntry,
    TrustStore,
)
from jks_truststore.railway import ErrorCode
from jks_truststore.railway.result import Result

log = structlog.get_logger()

MAGIC = 0xFEEDFEED
VERSION_1 = 1
VERSION_2 = 2
TAG_PRIVATE_KEY = 1
TAG_TRUSTED_CERTIFICATE = 2
SEAL_LENGTH = hashlib.sha1().digest_size  # noqa: S324
_WHITENER = b"Mighty Aphrodite"
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MAX_UTF_LENGTH = 0xFFFF


class IntegrityError(ValueError):
    """The trailing seal does not match the password and content."""


# ─────────────────────── Primitive Encoding ───────────────────────


def encode_java_utf(value: str) -> bytes:
    """
    Encode `value` as DataOutputStream.writeUTF does.

    Modified UTF-8 over UTF-16 code units: NUL takes two bytes and
    supplementary characters are written as two 3-byte surrogates.
    """
    units = value.encode("utf-16-be", "surrogatepass")
    body = bytearray()
    for (unit,) in struct.iter_unpack(">H", units):
        if 0x0001 <= unit <= 0x007F:
            body.append(unit)
        elif unit <= 0x07FF:
            body += bytes((0xC0 | (unit >> 6), 0x80 | (unit & 0x3F)))
        else:
            body += bytes((0xE0 | (unit >> 12), 0x80 | ((unit >> 6) & 0x3F), 0x80 | (unit & 0x3F)))
    if len(body) > _MAX_UTF_LENGTH:
        raise ValueError(f"encoded string too long: {len(body)} bytes (max {_MAX_UTF_LENGTH})")
    return struct.pack(">H", len(body)) + bytes(body)


def decode_java_utf(body: bytes) -> str:
    """Inverse of encode_java_utf, for the bytes after the u16 length."""
    units: list[int] = []
    i = 0
    while i < len(body):
        lead = body[i]
        if lead < 0x80:
            units.append(lead)
            i += 1
        elif lead & 0xE0 == 0xC0 and i + 1 < len(body):
            units.append(((lead & 0x1F) << 6) | (body[i + 1] & 0x3F))
            i += 2
        elif lead & 0xF0 == 0xE0 and i + 2 < len(body):
            units.append(((lead & 0x0F) << 12) | ((body[i + 1] & 0x3F) << 6) | (body[i + 2] & 0x3F))
            i += 3
        else:
            raise ValueError(f"malformed modified UTF-8 at byte {i}")
    return struct.pack(f">{len(units)}H", *units).decode("utf-16-be", "surrogatepass")


def to_epoch_millis(moment: datetime) -> int:
    """Milliseconds since the Unix epoch, truncated toward negative infinity."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(millis: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=millis)


def password_bytes(password: str) -> bytes:
    """Java keystores key the seal with the password's UTF-16BE code units."""
    return password.encode("utf-16-be", "surrogatepass")


def compute_seal(password: str, content: bytes) -> bytes:
    digest = hashlib.sha1()  # noqa: S324
    digest.update(password_bytes(password))
    digest.update(_WHITENER)
    digest.update(content)
    return digest.digest()


# ─────────────────────── Encoder ───────────────────────


class JksTrustStoreEncoder:
    """
    Serialize a TrustStore into JKS bytes.

    Implements the TrustStoreEncoder port.
    All exceptions are caught at this adapter boundary via Result.from_computation().
    """

    def encode(self, store: TrustStore) -> Result[bytes]:
        """
        Write the header, every entry in alias order, then the seal if a password is set.

        Returns Result.failure(SERIALIZATION_ERROR, ...) on any write failure.
        """
        return Result.from_computation(
            lambda: self._do_encode(store),
            ErrorCode.SERIALIZATION_ERROR,
            "Failed to write JKS trust store",
        )

    def _do_encode(self, store: TrustStore) -> bytes:
        with io.BytesIO() as buffer:
            buffer.write(struct.pack(">III", MAGIC, VERSION_2, len(store.entries)))
            for entry in store.entries:
                self._write_entry(buffer, entry)

            content = buffer.getvalue()

        sealed = store.is_sealed
        if sealed:
            content += compute_seal(store.password, content)

        log.info("encoder.complete", entries=len(store.entries), size=len(content), sealed=sealed)
        return content

    @staticmethod
    def _write_entry(buffer: io.BytesIO, entry: TrustedEntry) -> None:
        der = entry.certificate.der
        buffer.write(struct.pack(">I", TAG_TRUSTED_CERTIFICATE))
        buffer.write(encode_java_utf(entry.alias))
        buffer.write(struct.pack(">q", to_epoch_millis(entry.created_at)))
        buffer.write(encode_java_utf(entry.certificate_type))
        buffer.write(struct.pack(">I", len(der)))
        buffer.write(der)


# ─────────────────────── Decoder ───────────────────────


class _Reader:
    """Bounds-checked cursor over the JKS bytes."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self.offset = 0

    def take(self, size: int) -> bytes:
        end = self.offset + size
        if size < 0 or end > len(self._data):
            raise ValueError(f"truncated JKS data: need {size} bytes at offset {self.offset}")
        chunk = self._data[self.offset:end]
        self.offset = end
        return chunk

    def u32(self) -> int:
        return struct.unpack(">I", self.take(4))[0]

    def i64(self) -> int:
        return struct.unpack(">q", self.take(8))[0]

    def utf(self) -> str:
        (length,) = struct.unpack(">H", self.take(2))
        return decode_java_utf(self.take(length))

    @property
    def remaining(self) -> int:
        return len(self._data) - self.offset


class JksTrustStoreDecoder:
    """
    Parse JKS bytes back into a TrustStore.

    Only trusted-certificate entries are supported; a private-key entry is
    reported as DECODE_ERROR. With a non-empty password the seal is
    verified and a mismatch is reported as INTEGRITY_ERROR. With an empty
    password the seal, if present, is not checked.
    """

    def decode(self, data: bytes, password: str = "") -> Result[TrustStore]:
        try:
            store = self._do_decode(data, password)
        except IntegrityError as e:
            return Result.failure(ErrorCode.INTEGRITY_ERROR, str(e), e)
        except (ValueError, struct.error) as e:
            return Result.failure(ErrorCode.DECODE_ERROR, f"Failed to read JKS trust store: {e}", e)
        return Result.success(store)

    def _do_decode(self, data: bytes, password: str) -> TrustStore:
        reader = _Reader(data)
        magic = reader.u32()
        if magic != MAGIC:
            raise ValueError(f"not a JKS keystore: magic 0x{magic:08X}")
        version = reader.u32()
        if version not in (VERSION_1, VERSION_2):
            raise ValueError(f"unsupported JKS version {version}")

        count = reader.u32()
        entries = tuple(self._read_entry(reader, version, index) for index in range(count))

        if password:
            content_end = reader.offset
            seal = reader.take(SEAL_LENGTH)
            if reader.remaining:
                raise ValueError(f"{reader.remaining} unexpected trailing bytes after seal")
            expected = compute_seal(password, data[:content_end])
            if not hmac.compare_digest(seal, expected):
                raise IntegrityError("Keystore was tampered with, or password was incorrect")

        log.info("decoder.jks_complete", entries=len(entries), version=version, verified=bool(password))
        return TrustStore(entries=entries, password=password)

    @staticmethod
    def _read_entry(reader: _Reader, version: int, index: int) -> TrustedEntry:
        tag = reader.u32()
        if tag == TAG_PRIVATE_KEY:
            raise ValueError(f"entry #{index} is a private key entry; only trusted certificates are supported")
        if tag != TAG_TRUSTED_CERTIFICATE:
            raise ValueError(f"entry #{index} has unknown tag {tag}")

        alias = reader.utf()
        created_at = from_epoch_millis(reader.i64())
        certificate_type = reader.utf() if version == VERSION_2 else DEFAULT_CERTIFICATE_TYPE
        der = reader.take(reader.u32())
        return TrustedEntry(
            alias=alias,
            created_at=created_at,
            certificate=ParsedCertificate(position=index, der=der),
            certificate_type=certificate_type,
        )
