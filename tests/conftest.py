"""Test configuration and fixtures."""

import logging
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from drawing_signature.config import get_settings
from drawing_signature.core.document import (
    DESCRIPTION,
    PART_NUMBER,
    REVISION_NUMBER,
    TITLE,
    DrawingDocument,
)
from drawing_signature.core.identity import Identity
from drawing_signature.core.key_provider import SuffixMacKeyProvider
from drawing_signature.core.signature_engine import Signer
from drawing_signature.core.signature_store import InMemoryPropertyBag, PropertySignatureStore
from drawing_signature.core.verification_engine import Verifier

# Digest of the bracket_document fixture
BRACKET_DIGEST = "69ad8f256dc815c127986d4764b5566eaea6eb69f839dca1cc069c069609e247"

SIGNED_AT = datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_settings_and_logging(monkeypatch):
    """Isolate tests from the caller's environment and from each other's logging setup."""
    for name in ("ENVIRONMENT", "MAC_KEY_SUFFIX", "LOCK_AFTER_SIGNING", "LOG_LEVEL", "LOG_JSON"):
        monkeypatch.delenv(f"DRAWING_SIGNATURE_{name}", raising=False)
    get_settings.cache_clear()

    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    get_settings.cache_clear()


@pytest.fixture
def mac_keys():
    """MAC key provider with a test suffix."""
    return SuffixMacKeyProvider("test-suffix")


@pytest.fixture
def signer(mac_keys):
    """Signer using the test MAC keys."""
    return Signer(mac_key_provider=mac_keys)


@pytest.fixture
def verifier(mac_keys):
    """Verifier using the test MAC keys and no trusted RSA keys."""
    return Verifier(mac_key_provider=mac_keys)


@pytest.fixture
def bracket_document() -> DrawingDocument:
    """One sheet, one title-block field, the four digest properties."""
    document = DrawingDocument(
        document_id="PN-001",
        properties={
            TITLE: "Bracket Drawing",
            PART_NUMBER: "PN-001",
            REVISION_NUMBER: "A",
            DESCRIPTION: "v1",
        },
    )
    document.add_sheet("Sheet:1", [("PartName", "Bracket")])
    return document


@pytest.fixture
def store() -> PropertySignatureStore:
    """Empty property-bag signature store."""
    return PropertySignatureStore(InMemoryPropertyBag())


@pytest.fixture
def alice() -> Identity:
    """Signer without a certificate (HMAC path)."""
    return Identity(username="alice", full_name="Alice Smith")


@pytest.fixture
def alice_with_certificate() -> Identity:
    """Signer with a certificate (RSA path)."""
    return Identity(username="alice", full_name="Alice Smith", has_certificate=True)


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    """RSA-2048 signing key, generated once per session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key() -> rsa.RSAPrivateKey:
    """A second, unrelated RSA key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ec_key() -> ec.EllipticCurvePrivateKey:
    """Non-RSA key for rejection tests."""
    return ec.generate_private_key(ec.SECP256R1())


def self_signed_certificate(private_key) -> x509.Certificate:
    """Build a self-signed certificate for a private key."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Alice Smith")])
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .sign(private_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def rsa_certificate(rsa_key) -> x509.Certificate:
    """Self-signed certificate for rsa_key."""
    return self_signed_certificate(rsa_key)


@pytest.fixture(scope="session")
def rsa_key_pem(rsa_key) -> bytes:
    """Unencrypted PKCS#8 PEM of rsa_key."""
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
