"""
Pipeline — the core ROP pipeline turning PEM chains into a JKS artifact.

Domain layer — PURE BUSINESS LOGIC. Decoding and encoding are injected via
ports (Protocol interfaces); the clock is injected so rebuilds are testable.

  require certificates (EMPTY_INPUT)
    → decoder.decode(chains)                     (DECODE_ERROR)
      → assemble_trust_store(certs, created_at)
        → encoder.encode(store)                  (SERIALIZATION_ERROR)
          → base64 → identify → EncodedArtifact

The timestamp is resolved once, up front, and returned with the artifact;
on failure nothing is returned but the failure itself.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass

import structlog

from jks_truststore.domain.models import (
    DEFAULT_CERTIFICATE_TYPE,
    BuildRequest,
    CertificateChainInput,
    EncodedArtifact,
    TrustStoreState,
)
from jks_truststore.domain.ports import CertificateDecoder, TrustStoreEncoder
from jks_truststore.domain.truststore import (
    Clock,
    assemble_trust_store,
    identify,
    resolve_timestamp,
    utc_now,
)
from jks_truststore.railway import ErrorCode
from jks_truststore.railway.result import Result

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class BuildOutcome:
    """A successful build: the artifact plus the timestamp to persist."""

    artifact: EncodedArtifact
    timestamp: str

    def to_state(self) -> TrustStoreState:
        return TrustStoreState.from_artifact(self.artifact, self.timestamp)


def _require_certificates(chains: CertificateChainInput) -> Result[CertificateChainInput]:
    return Result.success(chains).ensure(
        lambda c: len(c) > 0,
        ErrorCode.EMPTY_INPUT,
        "No certificates supplied; at least one PEM certificate chain is required",
    )


def _to_artifact(data: bytes) -> EncodedArtifact:
    text = base64.standard_b64encode(data).decode("ascii")
    return EncodedArtifact(data=data, base64=text, id=identify(text))


def run_pipeline(
    request: BuildRequest,
    decoder: CertificateDecoder,
    encoder: TrustStoreEncoder,
    clock: Clock = utc_now,
    certificate_type: str = DEFAULT_CERTIFICATE_TYPE,
) -> Result[BuildOutcome]:
    """
    Build a JKS trust store from the request's PEM chains.

    Chains all stages via flat_map — failures short-circuit automatically.
    The empty-input check runs before any decoding is attempted.

    Returns Result[BuildOutcome] on success, or the first stage's failure.
    """
    created_at, timestamp = resolve_timestamp(request.timestamp, clock)
    reused = timestamp == request.timestamp

    return (
        _require_certificates(request.certificates)
        .flat_map(decoder.decode)
        .flat_map(
            lambda certs: assemble_trust_store(
                certs,
                created_at=created_at,
                password=request.password,
                certificate_type=certificate_type,
            )
        )
        .flat_map(encoder.encode)
        .map(_to_artifact)
        .map(lambda artifact: BuildOutcome(artifact=artifact, timestamp=timestamp))
        .peek(
            lambda outcome: log.info(
                "pipeline.build_complete",
                id=outcome.artifact.id,
                timestamp=outcome.timestamp,
                timestamp_reused=reused,
                size=len(outcome.artifact.data),
            )
        )
        .peek_failure(
            lambda err: log.warning("pipeline.build_failed", code=err.code.value, error=err.message)
        )
    )
