"""
Trust store resource — the artifact lifecycle as seen by provisioning tooling.

    Uninitialized ──create──→ Created(id, jks, timestamp)
    Created ──read──→ Created      rebuild with the persisted timestamp
    Created ──delete──→ Deleted    clear the stored state, no computation

Every transition that builds hands the id/timestamp/jks triple to the
StateRepository only after the whole build succeeded.
"""

from __future__ import annotations

from dataclasses import replace

import structlog

from jks_truststore.domain.models import (
    DEFAULT_CERTIFICATE_TYPE,
    BuildRequest,
    TrustStoreState,
)
from jks_truststore.domain.ports import (
    CertificateDecoder,
    StateRepository,
    TrustStoreEncoder,
)
from jks_truststore.domain.truststore import Clock, utc_now
from jks_truststore.pipeline import BuildOutcome, run_pipeline
from jks_truststore.railway.result import Result

log = structlog.get_logger()


class TrustStoreResource:
    """Create, read, and delete a persisted JKS trust store."""

    def __init__(
        self,
        decoder: CertificateDecoder,
        encoder: TrustStoreEncoder,
        repository: StateRepository,
        clock: Clock = utc_now,
        certificate_type: str = DEFAULT_CERTIFICATE_TYPE,
    ) -> None:
        self._decoder = decoder
        self._encoder = encoder
        self._repository = repository
        self._clock = clock
        self._certificate_type = certificate_type

    def _build(self, request: BuildRequest) -> Result[BuildOutcome]:
        return run_pipeline(
            request,
            decoder=self._decoder,
            encoder=self._encoder,
            clock=self._clock,
            certificate_type=self._certificate_type,
        )

    def create(self, request: BuildRequest) -> Result[TrustStoreState]:
        """
        Build the trust store and persist its state.

        A timestamp on the request is honoured; without one a fresh timestamp
        is issued and becomes the anchor for every later read.
        """
        return (
            self._build(request)
            .map(BuildOutcome.to_state)
            .flat_map(self._repository.save)
            .peek(lambda state: log.info("resource.created", id=state.id, timestamp=state.timestamp))
        )

    def read(self, request: BuildRequest) -> Result[TrustStoreState]:
        """
        Rebuild from the persisted timestamp and refresh the stored state.

        With unchanged certificates and password the result is identical to
        what create() returned. A differing id means the inputs changed.
        """
        return self._repository.load().flat_map(lambda stored: self._refresh(request, stored))

    def _refresh(self, request: BuildRequest, stored: TrustStoreState) -> Result[TrustStoreState]:
        def _report_drift(state: TrustStoreState) -> None:
            if state.id != stored.id:
                log.warning("resource.drift_detected", stored_id=stored.id, rebuilt_id=state.id)

        return (
            self._build(replace(request, timestamp=stored.timestamp))
            .map(BuildOutcome.to_state)
            .peek(_report_drift)
            .flat_map(self._repository.save)
            .peek(lambda state: log.info("resource.read", id=state.id, timestamp=state.timestamp))
        )

    def delete(self) -> Result[bool]:
        """Clear the stored identifier. Returns True when state existed."""
        return self._repository.clear().peek(
            lambda existed: log.info("resource.deleted", existed=existed)
        )
