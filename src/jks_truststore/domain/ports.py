"""
Ports — Protocol-based interfaces for the pipeline's adapters.

The pipeline depends on these contracts only:

  CertificateDecoder  → PEM text to DER certificates
  TrustStoreEncoder   → TrustStore to JKS bytes
  StateRepository     → the caller's storage for the id/timestamp/jks triple

Adapters satisfy a port by implementing its methods; no inheritance.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from jks_truststore.domain.models import (
    CertificateChainInput,
    ParsedCertificate,
    TrustStore,
    TrustStoreState,
)
from jks_truststore.railway.result import Result


@runtime_checkable
class CertificateDecoder(Protocol):
    """
    Port: decode every PEM block of every input string into DER bytes.

    Order is preserved within and across strings; positions are global.
    Returns Result.failure(DECODE_ERROR) on malformed content.
    """

    def decode(self, chains: CertificateChainInput) -> Result[tuple[ParsedCertificate, ...]]: ...


@runtime_checkable
class TrustStoreEncoder(Protocol):
    """
    Port: serialize a TrustStore into the JKS binary format.

    Returns Result.failure(SERIALIZATION_ERROR) on any write failure.
    """

    def encode(self, store: TrustStore) -> Result[bytes]: ...


@runtime_checkable
class StateRepository(Protocol):
    """
    Port: persist the computed id/timestamp/jks triple for later rebuilds.

    `save` either commits the whole state or nothing (PERSIST_ERROR).
    `load` returns NOT_FOUND when nothing has been stored.
    """

    def load(self) -> Result[TrustStoreState]: ...

    def save(self, state: TrustStoreState) -> Result[TrustStoreState]: ...

    def clear(self) -> Result[bool]: ...
