"""
PEM decoder adapter — PEM text → DER certificate bytes.

Adapter layer — implements the CertificateDecoder port using:
  - asn1crypto: PEM armor splitting (`pem.unarmor(..., multiple=True)`)
  - cryptography (PyCA): X.509 DER validation of every block

Pipeline:
  input strings (in order)
    → asn1crypto: unarmor each string into (label, headers, der) blocks
    → reject labels other than CERTIFICATE
    → cryptography: x509.load_der_x509_certificate() to prove the body is a certificate
    → ParsedCertificate(position, der), positions flattened across all strings
"""

from __future__ import annotations

import structlog
from asn1crypto import pem
from cryptography import x509

from jks_truststore.domain.models import CertificateChainInput, ParsedCertificate
from jks_truststore.railway import ErrorCode
from jks_truststore.railway.result import Result

log = structlog.get_logger()

_CERTIFICATE_LABEL = "CERTIFICATE"


def _unarmor_chain(chain: str, chain_index: int) -> list[bytes]:
    """
    Split one input string into the DER bodies of its PEM blocks, left to right.

    Text outside the BEGIN/END markers is skipped, so CA bundles with
    non-ASCII comment lines decode as long as the blocks themselves are sound.

    Raises ValueError when the string holds no block, a block is not a
    certificate, or a body does not parse as X.509.
    """
    data = chain.encode("utf-8")

    if not pem.detect(data):
        raise ValueError(f"certificate chain #{chain_index} contains no PEM block")

    bodies: list[bytes] = []
    for block_index, (label, _headers, der_bytes) in enumerate(pem.unarmor(data, multiple=True)):
        if label != _CERTIFICATE_LABEL:
            raise ValueError(
                f"certificate chain #{chain_index} block #{block_index} has unsupported type {label!r}"
            )
        _ensure_x509(der_bytes, chain_index, block_index)
        bodies.append(der_bytes)

    if not bodies:
        raise ValueError(f"certificate chain #{chain_index} contains no PEM block")
    return bodies


def _ensure_x509(der_bytes: bytes, chain_index: int, block_index: int) -> None:
    """Fail fast on a block whose body is not a DER X.509 certificate."""
    try:
        cert = x509.load_der_x509_certificate(der_bytes)
    except ValueError as e:
        raise ValueError(
            f"certificate chain #{chain_index} block #{block_index} is not a valid X.509 certificate"
        ) from e
    log.debug(
        "decoder.block",
        chain=chain_index,
        block=block_index,
        subject=cert.subject.rfc4514_string(),
    )


class PemCertificateDecoder:
    """
    Decode ordered PEM strings into ParsedCertificate values.

    Implements the CertificateDecoder port.
    All exceptions are caught at this adapter boundary via Result.from_computation().
    """

    def decode(self, chains: CertificateChainInput) -> Result[tuple[ParsedCertificate, ...]]:
        """
        Decode every PEM block of every input string.

        Returns Result[tuple[ParsedCertificate, ...]] ordered by global position.
        Returns Result.failure(DECODE_ERROR, ...) on any malformed input.
        """
        return Result.from_computation(
            lambda: self._do_decode(chains),
            ErrorCode.DECODE_ERROR,
            "Failed to decode PEM certificates",
        )

    def _do_decode(self, chains: CertificateChainInput) -> tuple[ParsedCertificate, ...]:
        certificates: list[ParsedCertificate] = []
        for chain_index, chain in enumerate(chains.chains):
            for der_bytes in _unarmor_chain(chain, chain_index):
                certificates.append(ParsedCertificate(position=len(certificates), der=der_bytes))

        log.info("decoder.complete", chains=len(chains), certificates=len(certificates))
        return tuple(certificates)
