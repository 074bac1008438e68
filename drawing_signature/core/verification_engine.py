"""Drawing signature verification.

A linear check with no retries:

1. NoSignature      - status flag is not Signed, or no record is stored
2. MalformedRecord  - the stored record does not parse
3. InvalidSignature - the MAC/RSA signature does not match the payload
4. ContentTampered  - the document's current digest differs from the signed one
5. Valid

"Signature invalid" is an ordinary answer, so verify() never raises:
anything unexpected becomes InternalError. From step 3 on, the outcome
still names the signer and signing time taken from the record.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from drawing_signature.core.content_digest import ContentDigest, content_digest
from drawing_signature.core.document import DrawingDocumentView
from drawing_signature.core.errors import ParseError
from drawing_signature.core.key_provider import (
    MacKeyProvider,
    PublicKeyResolver,
    SuffixMacKeyProvider,
)
from drawing_signature.core.logging import get_logger
from drawing_signature.core.secure_memory import constant_time_equals, temporary_key
from drawing_signature.core.signature_engine import encode_payload, hmac_sha256
from drawing_signature.core.signature_record import SignatureAlgorithm, SignatureRecord, parse
from drawing_signature.core.signature_store import SignatureStatus, SignatureStore

logger = get_logger(__name__)


class VerificationReason(str, Enum):
    """Why verification passed or failed."""
    VALID = "Valid"
    NO_SIGNATURE = "NoSignature"
    MALFORMED_RECORD = "MalformedRecord"
    INVALID_SIGNATURE = "InvalidSignature"
    CONTENT_TAMPERED = "ContentTampered"
    INTERNAL_ERROR = "InternalError"


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of verifying a document's signature."""
    verified: bool
    reason: VerificationReason
    signer_name: str | None = None
    signer_username: str | None = None
    signed_at: datetime | None = None
    detail: str = ""

    @classmethod
    def failure(
        cls,
        reason: VerificationReason,
        detail: str,
        record: SignatureRecord | None = None,
    ) -> "VerificationOutcome":
        if record is None:
            return cls(verified=False, reason=reason, detail=detail)
        return cls(
            verified=False,
            reason=reason,
            signer_name=record.signer_name,
            signer_username=record.signer_username,
            signed_at=record.signed_at,
            detail=detail,
        )


class Verifier:
    """Checks stored signature records against the current document."""

    def __init__(
        self,
        mac_key_provider: MacKeyProvider | None = None,
        public_keys: PublicKeyResolver | None = None,
        digest: ContentDigest | None = None,
    ):
        self._mac_keys = mac_key_provider or SuffixMacKeyProvider.from_settings()
        self._public_keys = public_keys
        self._digest = digest or content_digest

    def verify(self, document: DrawingDocumentView, store: SignatureStore) -> VerificationOutcome:
        """Verify the signature stored on a document.

        Args:
            document: Read-only view of the current document content
            store: Storage adapter holding the status flag and record

        Returns:
            VerificationOutcome (never raises)
        """
        try:
            if store.get_status() != SignatureStatus.SIGNED:
                return VerificationOutcome.failure(
                    VerificationReason.NO_SIGNATURE, "Document is not signed"
                )
            record_string = store.get_record_string()
        except Exception as e:
            logger.error("Failed to read signature store", error=str(e), exc_info=True)
            return VerificationOutcome.failure(
                VerificationReason.INTERNAL_ERROR, f"Error during verification: {e}"
            )

        return self.verify_record(document, record_string)

    def verify_record(
        self,
        document: DrawingDocumentView,
        record_string: str | None,
    ) -> VerificationOutcome:
        """Verify a serialized record against a document, skipping the status flag."""
        if not record_string:
            return VerificationOutcome.failure(
                VerificationReason.NO_SIGNATURE, "No signature record found"
            )

        record = None
        try:
            try:
                record = parse(record_string)
            except ParseError as e:
                logger.warning("Malformed signature record", kind=e.kind.value, error=str(e))
                return VerificationOutcome.failure(
                    VerificationReason.MALFORMED_RECORD, f"Signature record is malformed: {e}"
                )

            valid, detail = self.check_signature(record)
            if not valid:
                logger.warning(
                    "Signature check failed",
                    signer=record.signer_username,
                    algorithm=record.method.algorithm.value,
                )
                return VerificationOutcome.failure(
                    VerificationReason.INVALID_SIGNATURE, detail, record
                )

            current_digest = self._digest.compute(document)
            if current_digest != record.document_digest:
                logger.warning(
                    "Document content changed after signing",
                    signer=record.signer_username,
                    signed_digest=record.document_digest,
                    current_digest=current_digest,
                )
                return VerificationOutcome.failure(
                    VerificationReason.CONTENT_TAMPERED,
                    "Document content was modified after signing",
                    record,
                )
        except Exception as e:
            logger.error("Verification raised unexpectedly", error=str(e), exc_info=True)
            return VerificationOutcome.failure(
                VerificationReason.INTERNAL_ERROR, f"Error during verification: {e}", record
            )

        logger.info("Signature verified", signer=record.signer_username)
        return VerificationOutcome(
            verified=True,
            reason=VerificationReason.VALID,
            signer_name=record.signer_name,
            signer_username=record.signer_username,
            signed_at=record.signed_at,
            detail="Signature is valid",
        )

    def check_signature(self, record: SignatureRecord) -> tuple[bool, str]:
        """Run the check matching the record's signing method.

        Returns:
            (valid, detail message)
        """
        if record.method.algorithm == SignatureAlgorithm.HMAC_SHA256:
            if self.verify_mac(record.canonical_payload, record.signature, record.signer_username):
                return True, "MAC is valid"
            return False, "Signature is invalid or the record was altered"

        if record.method.algorithm == SignatureAlgorithm.RSA_SHA256:
            return self._check_rsa(record)

        return False, f"Unsupported signature method: {record.method.algorithm}"

    def verify_mac(self, payload: str, signature: bytes, username: str) -> bool:
        """True if signature is the HMAC-SHA256 of payload under username's key."""
        payload_bytes = encode_payload(payload)
        with temporary_key(self._mac_keys.key_for(username)) as key:
            expected = hmac_sha256(key, payload_bytes)
        return constant_time_equals(expected, signature)

    def _check_rsa(self, record: SignatureRecord) -> tuple[bool, str]:
        key_ref = record.method.key_ref or ""
        public_key = self._public_keys.resolve(key_ref) if self._public_keys else None
        if public_key is None:
            return False, f"Signing key {key_ref} is not trusted"

        try:
            public_key.verify(
                record.signature,
                encode_payload(record.canonical_payload),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except InvalidSignature:
            return False, "Signature is invalid or the record was altered"
        return True, "RSA signature is valid"
