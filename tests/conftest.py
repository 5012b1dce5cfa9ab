"""
Shared test fixtures and helpers for the jks-truststore test suite.

Certificates are generated on the fly (self-signed, EC P-256, fixed validity
window) so tests need no fixture files and run offline.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from jks_truststore.adapters.jks_codec import JksTrustStoreDecoder, JksTrustStoreEncoder
from jks_truststore.adapters.pem_decoder import PemCertificateDecoder

FIXED_NOW = datetime(2024, 5, 1, 10, 30, 15, 987654, tzinfo=UTC)
FIXED_TIMESTAMP = "2024-05-01T10:30:15Z"


def make_certificate(common_name: str) -> x509.Certificate:
    """Build a self-signed certificate with the given CN."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(datetime(2024, 1, 1, tzinfo=UTC))
        .not_valid_after(datetime(2034, 1, 1, tzinfo=UTC))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )


def make_pem(common_name: str) -> str:
    """Return a single PEM CERTIFICATE block for a fresh self-signed certificate."""
    return make_certificate(common_name).public_bytes(serialization.Encoding.PEM).decode("ascii")


def der_of(pem_text: str) -> bytes:
    """DER bytes of the first certificate in `pem_text`."""
    return x509.load_pem_x509_certificate(pem_text.encode("ascii")).public_bytes(serialization.Encoding.DER)


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo global structlog configuration so loggers never outlive a test's captured stderr."""
    yield
    structlog.reset_defaults()


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture(scope="session")
def pem_a() -> str:
    return make_pem("Test Root A")


@pytest.fixture(scope="session")
def pem_b() -> str:
    return make_pem("Test Root B")


@pytest.fixture(scope="session")
def pem_c() -> str:
    return make_pem("Test Root C")


@pytest.fixture()
def decoder() -> PemCertificateDecoder:
    return PemCertificateDecoder()


@pytest.fixture()
def encoder() -> JksTrustStoreEncoder:
    return JksTrustStoreEncoder()


@pytest.fixture()
def jks_decoder() -> JksTrustStoreDecoder:
    return JksTrustStoreDecoder()
