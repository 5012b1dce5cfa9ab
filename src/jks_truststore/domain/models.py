"""
Domain models — immutable value objects flowing through the trust-store pipeline.

    CertificateChainInput → ParsedCertificate* → TrustStore → EncodedArtifact

All models are frozen dataclasses; every build allocates fresh instances,
so two builds with identical inputs yield structurally identical values.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_CERTIFICATE_TYPE = "X.509"


@dataclass(frozen=True, slots=True)
class CertificateChainInput:
    """
    Ordered PEM strings supplied by the caller.

    Each string may hold several concatenated PEM blocks. Use `of()` to
    convert untyped input (e.g. a JSON list) into a checked instance.
    """

    chains: tuple[str, ...]

    @staticmethod
    def of(values: Iterable[object]) -> CertificateChainInput:
        """
        Validate untyped input into a CertificateChainInput.

        Raises TypeError when an element is not a string. Emptiness is
        not checked here; the pipeline reports it as EMPTY_INPUT.
        """
        chains = tuple(values)
        for index, chain in enumerate(chains):
            if not isinstance(chain, str):
                raise TypeError(
                    f"certificate chain #{index} must be a string, got {type(chain).__name__}"
                )
        return CertificateChainInput(chains=chains)  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self.chains)


@dataclass(frozen=True, slots=True)
class ParsedCertificate:
    """
    Raw DER certificate bytes from one PEM block.

    `position` is the zero-based index across all blocks of all input
    strings, flattened in input order.
    """

    position: int
    der: bytes = field(repr=False)


@dataclass(frozen=True, slots=True)
class TrustedEntry:
    """One trusted-certificate entry of a JKS trust store."""

    alias: str
    created_at: datetime
    certificate: ParsedCertificate
    certificate_type: str = DEFAULT_CERTIFICATE_TYPE


@dataclass(frozen=True, slots=True)
class TrustStore:
    """
    Ordered trusted entries plus the password used to seal the encoding.

    Entries are kept in alias order ("0", "1", ...). An empty password
    means the encoded store carries no integrity seal.
    """

    entries: tuple[TrustedEntry, ...]
    password: str = field(default="", repr=False)

    @property
    def aliases(self) -> list[str]:
        return [entry.alias for entry in self.entries]

    @property
    def is_sealed(self) -> bool:
        return bool(self.password)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True, slots=True)
class EncodedArtifact:
    """
    The binary JKS trust store with its base64 text and external identifier.

    `id` is lowercase-hex SHA-1 over the UTF-8 bytes of `base64`.
    """

    data: bytes = field(repr=False)
    base64: str = field(repr=False)
    id: str


@dataclass(frozen=True, slots=True)
class BuildRequest:
    """
    Inputs of one build.

    `timestamp` is the RFC3339 string returned by a previous build; supply
    it back to reproduce byte-identical output.
    """

    certificates: CertificateChainInput
    password: str = field(default="", repr=False)
    timestamp: str | None = None


@dataclass(frozen=True, slots=True)
class TrustStoreState:
    """
    The triple a caller persists after a successful build.

    id:        40-char lowercase hex SHA-1 of `jks`
    timestamp: RFC3339 creation time, the determinism anchor
    jks:       base64 text of the binary trust store
    """

    id: str
    timestamp: str
    jks: str = field(repr=False)

    @staticmethod
    def from_artifact(artifact: EncodedArtifact, timestamp: str) -> TrustStoreState:
        return TrustStoreState(id=artifact.id, timestamp=timestamp, jks=artifact.base64)
