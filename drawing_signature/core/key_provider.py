"""Key material for signing and verification.

- MacKeyProvider: derives the HMAC key for the fallback path
- PrivateKeyHandle: scoped private-key material for the certificate path
- PublicKeyResolver: maps a recorded key reference back to an RSA public key

Key references are lowercase hex SHA-256 fingerprints: of the certificate
when one is supplied, otherwise of the DER SubjectPublicKeyInfo.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Protocol

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

from drawing_signature.config import get_settings
from drawing_signature.core.errors import SigningError
from drawing_signature.core.secure_memory import SecureBytes


class MacKeyProvider(ABC):
    """Supplies the shared-secret key for the HMAC fallback path."""

    @abstractmethod
    def key_for(self, username: str) -> bytes:
        """Return the MAC key for a signer.

        Args:
            username: Signer username as stored in the record

        Returns:
            Key bytes (never empty)
        """
        pass


class SuffixMacKeyProvider(MacKeyProvider):
    """HMAC key = UTF-8(username + suffix).

    Authentication without key management: anyone who knows the suffix can
    produce a valid MAC for any username. This path exists so drawings can
    be signed without a certificate; it offers no non-repudiation.
    """

    def __init__(self, suffix: str):
        if not suffix:
            raise ValueError("MAC key suffix must not be empty")
        self._suffix = suffix

    @classmethod
    def from_settings(cls) -> "SuffixMacKeyProvider":
        return cls(get_settings().mac_key_suffix)

    def key_for(self, username: str) -> bytes:
        return (username + self._suffix).encode("utf-8")


def certificate_reference(certificate: x509.Certificate) -> str:
    """SHA-256 thumbprint of a certificate."""
    return certificate.fingerprint(hashes.SHA256()).hex()


def public_key_reference(public_key: rsa.RSAPublicKey) -> str:
    """SHA-256 fingerprint of a public key's DER SubjectPublicKeyInfo."""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    digest = hashes.Hash(hashes.SHA256())
    digest.update(der)
    return digest.finalize().hex()


def load_certificate(cert_data: bytes | str) -> x509.Certificate:
    """Load a certificate from PEM or DER format."""
    if isinstance(cert_data, str):
        cert_data = cert_data.encode()
    if b"-----BEGIN" in cert_data:
        return x509.load_pem_x509_certificate(cert_data)
    return x509.load_der_x509_certificate(cert_data)


class PrivateKeyHandle:
    """Private-key bytes held only for the duration of one signing call.

    The signer clears the handle in a finally block right after use; a
    cleared handle cannot be loaded again.

    Example:
        handle = PrivateKeyHandle.from_files("alice.key", certificate_path="alice.crt")
        record = signer.sign_record(record, identity, handle)
        assert handle.cleared
    """

    def __init__(
        self,
        key_data: bytes | bytearray,
        password: bytes | None = None,
        certificate: x509.Certificate | None = None,
    ):
        self._key = SecureBytes(key_data)
        self._password = SecureBytes(password) if password else None
        self.certificate = certificate

    @classmethod
    def from_files(
        cls,
        key_path: str | Path,
        password: bytes | None = None,
        certificate_path: str | Path | None = None,
    ) -> "PrivateKeyHandle":
        certificate = None
        if certificate_path is not None:
            certificate = load_certificate(Path(certificate_path).read_bytes())
        return cls(Path(key_path).read_bytes(), password, certificate)

    @property
    def cleared(self) -> bool:
        return self._key.cleared

    def load(self) -> PrivateKeyTypes:
        """Parse the key (PEM or DER).

        Raises:
            SigningError: If the handle was cleared or the key is unreadable
        """
        if self.cleared:
            raise SigningError("Private key handle has already been used")

        password = bytes(self._password) if self._password else None
        data = bytes(self._key)
        try:
            if data.lstrip().startswith(b"-----BEGIN"):
                return serialization.load_pem_private_key(data, password=password)
            return serialization.load_der_private_key(data, password=password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise SigningError(f"Private key is unreadable: {e}") from e

    def clear(self) -> None:
        self._key.clear()
        if self._password is not None:
            self._password.clear()

    def __enter__(self) -> "PrivateKeyHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.clear()


class PublicKeyResolver(Protocol):
    """Looks up the RSA public key for a recorded key reference."""

    def resolve(self, key_ref: str) -> rsa.RSAPublicKey | None:
        ...


class StaticPublicKeyResolver:
    """Resolver over a fixed set of trusted public keys and certificates.

    Certificates are indexed under both their thumbprint and their public
    key fingerprint. No chain or revocation checks are made.
    """

    def __init__(self, trusted: Iterable[rsa.RSAPublicKey | x509.Certificate] = ()):
        self._keys: dict[str, rsa.RSAPublicKey] = {}
        for item in trusted:
            self.add(item)

    def add(self, item: rsa.RSAPublicKey | x509.Certificate) -> list[str]:
        """Trust a key or certificate; returns the references it is indexed under."""
        refs = []
        if isinstance(item, x509.Certificate):
            public_key = item.public_key()
            if not isinstance(public_key, rsa.RSAPublicKey):
                raise ValueError("Only RSA certificates can verify drawing signatures")
            refs.append(certificate_reference(item))
        else:
            public_key = item
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise ValueError(f"Unsupported public key type: {type(public_key).__name__}")
        refs.append(public_key_reference(public_key))

        for ref in refs:
            self._keys[ref] = public_key
        return refs

    def add_pem(self, data: bytes) -> list[str]:
        """Trust a PEM public key or PEM/DER certificate."""
        if b"-----BEGIN PUBLIC KEY-----" in data:
            return self.add(serialization.load_pem_public_key(data))
        return self.add(load_certificate(data))

    def resolve(self, key_ref: str) -> rsa.RSAPublicKey | None:
        return self._keys.get(key_ref.lower())

    def __len__(self) -> int:
        return len(self._keys)
