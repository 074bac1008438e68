"""Drawing signature engine.

Signs the canonical payload of a SignatureRecord with one of two strategies,
chosen by whether the signer authenticated with a certificate:

- RSA-SHA256: PKCS#1 v1.5 padding over SHA-256, using the signer's RSA
  private key. Gives non-repudiation as far as key custody goes.
- HMAC-SHA256: keyed hash using a key from the MacKeyProvider. Shared-secret
  authentication only; anyone holding the key suffix can forge it.

The engine is pure: it never persists anything and holds no key material
between calls. Private-key handles are cleared as soon as a call returns.
"""

from cryptography import x509
from cryptography.hazmat.primitives import hashes, hmac as crypto_hmac
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from drawing_signature.core.errors import SigningError
from drawing_signature.core.identity import Identity
from drawing_signature.core.key_provider import (
    MacKeyProvider,
    PrivateKeyHandle,
    SuffixMacKeyProvider,
    certificate_reference,
    public_key_reference,
)
from drawing_signature.core.logging import get_logger
from drawing_signature.core.secure_memory import temporary_key
from drawing_signature.core.signature_record import SignatureMethod, SignatureRecord

logger = get_logger(__name__)

KeyMaterial = PrivateKeyHandle | rsa.RSAPrivateKey | None


def hmac_sha256(key: bytes | bytearray, payload: bytes) -> bytes:
    """HMAC-SHA256 tag of payload."""
    h = crypto_hmac.HMAC(key, hashes.SHA256())
    h.update(payload)
    return h.finalize()


def encode_payload(payload: str) -> bytes:
    """UTF-8 bytes of a canonical payload.

    Raises:
        SigningError: If the payload holds characters UTF-8 cannot encode
    """
    try:
        return payload.encode("utf-8")
    except UnicodeEncodeError as e:
        raise SigningError(f"Payload cannot be encoded as UTF-8: {e}") from e


class Signer:
    """Produces signatures over signature-record payloads."""

    def __init__(self, mac_key_provider: MacKeyProvider | None = None):
        self._mac_keys = mac_key_provider or SuffixMacKeyProvider.from_settings()

    def sign(
        self,
        record: SignatureRecord,
        identity: Identity,
        key_material: KeyMaterial = None,
    ) -> bytes:
        """Sign the record's canonical payload.

        Args:
            record: Record with identity, timestamp and digest filled in
            identity: The authenticated signer
            key_material: RSA private key or handle (certificate path only).
                A handle is cleared before this returns, whatever the outcome.

        Returns:
            Signature or MAC bytes (never empty)

        Raises:
            SigningError: If the key is missing, unreadable or not RSA, if a key
                is supplied for an identity without a certificate, or if the
                record timestamp is not timezone-aware
        """
        signature, _ = self._sign(record, identity, key_material)
        return signature

    def sign_record(
        self,
        record: SignatureRecord,
        identity: Identity,
        key_material: KeyMaterial = None,
    ) -> SignatureRecord:
        """Return a new record carrying the signature and the method used."""
        signature, method = self._sign(record, identity, key_material)
        return record.with_signature(signature, method)

    def compute_mac(self, payload: str, username: str) -> bytes:
        """HMAC-SHA256 of a payload under the username's MAC key."""
        payload_bytes = encode_payload(payload)
        with temporary_key(self._mac_keys.key_for(username)) as key:
            return hmac_sha256(key, payload_bytes)

    def _sign(
        self,
        record: SignatureRecord,
        identity: Identity,
        key_material: KeyMaterial,
    ) -> tuple[bytes, SignatureMethod]:
        try:
            return self._sign_payload(record, identity, key_material)
        finally:
            if isinstance(key_material, PrivateKeyHandle):
                key_material.clear()

    def _sign_payload(
        self,
        record: SignatureRecord,
        identity: Identity,
        key_material: KeyMaterial,
    ) -> tuple[bytes, SignatureMethod]:
        if record.signer_username != identity.username:
            raise SigningError(
                f"Record signer {record.signer_username!r} does not match "
                f"authenticated user {identity.username!r}"
            )

        if key_material is not None and not identity.has_certificate:
            raise SigningError(
                f"Private key supplied but {identity.username!r} has no certificate"
            )

        try:
            payload = record.canonical_payload
        except ValueError as e:
            raise SigningError(f"Cannot build signing payload: {e}") from e

        if identity.has_certificate:
            signature, method = self._sign_rsa(payload, key_material)
        else:
            signature = self.compute_mac(payload, identity.username)
            method = SignatureMethod.hmac()

        if not signature:
            raise SigningError("Signing produced an empty signature")

        logger.info(
            "Payload signed",
            algorithm=method.algorithm.value,
            key_ref=method.key_ref,
            length=len(signature),
        )
        return signature, method

    def _sign_rsa(
        self,
        payload: str,
        key_material: KeyMaterial,
    ) -> tuple[bytes, SignatureMethod]:
        if key_material is None:
            raise SigningError("Certificate signing requires a private key")

        if isinstance(key_material, PrivateKeyHandle):
            return self._sign_with_key(payload, key_material.load(), key_material.certificate)

        return self._sign_with_key(payload, key_material, None)

    def _sign_with_key(
        self,
        payload: str,
        private_key,
        certificate: x509.Certificate | None,
    ) -> tuple[bytes, SignatureMethod]:
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise SigningError(
                f"Certificate signing requires an RSA private key, got {type(private_key).__name__}"
            )

        payload_bytes = encode_payload(payload)
        key_ref = public_key_reference(private_key.public_key())
        if certificate is not None:
            if public_key_reference(certificate.public_key()) != key_ref:
                raise SigningError("Certificate does not match the private key")
            key_ref = certificate_reference(certificate)

        try:
            signature = private_key.sign(payload_bytes, padding.PKCS1v15(), hashes.SHA256())
        except (ValueError, TypeError) as e:
            raise SigningError(f"RSA signing failed: {e}") from e

        return signature, SignatureMethod.rsa_sha256(key_ref)
