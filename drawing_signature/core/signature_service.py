"""Sign and verify drawings end to end.

Signing:
    digest -> record (signer, UTC time, digest) -> sign -> persist record
    -> convenience properties -> status Signed -> optional lock

The status flag is written last, so a failed write never leaves a
document marked Signed without a record.
"""

from datetime import datetime, timezone

from drawing_signature.config import Settings, get_settings
from drawing_signature.core.content_digest import ContentDigest, content_digest
from drawing_signature.core.document import DrawingDocumentView
from drawing_signature.core.document_lock import DocumentLock
from drawing_signature.core.errors import AlreadySignedError
from drawing_signature.core.identity import Identity
from drawing_signature.core.key_provider import PrivateKeyHandle
from drawing_signature.core.logging import get_logger, log_operation, signing_context
from drawing_signature.core.signature_engine import KeyMaterial, Signer
from drawing_signature.core.signature_record import (
    SignatureRecord,
    format_timestamp,
    serialize,
)
from drawing_signature.core.signature_store import SignatureStatus, SignatureStore
from drawing_signature.core.verification_engine import VerificationOutcome, Verifier

logger = get_logger(__name__)


class SignatureService:
    """Composes digest, signer, verifier and the storage adapter."""

    def __init__(
        self,
        signer: Signer | None = None,
        verifier: Verifier | None = None,
        digest: ContentDigest | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.signer = signer or Signer()
        self.verifier = verifier or Verifier()
        self.digest = digest or content_digest

    def is_signed(self, store: SignatureStore) -> bool:
        return store.get_status() == SignatureStatus.SIGNED

    @log_operation("sign_document")
    def sign_document(
        self,
        document: DrawingDocumentView,
        store: SignatureStore,
        identity: Identity,
        key_material: KeyMaterial = None,
        overwrite: bool = False,
        lock: DocumentLock | None = None,
        now: datetime | None = None,
    ) -> SignatureRecord:
        """Sign a document and persist the record.

        Args:
            document: Current document content
            store: Storage adapter of the same document
            identity: Authenticated signer
            key_material: Private key for certificate identities
            overwrite: Replace an existing signature
            lock: Lock to engage after signing (if enabled in settings)
            now: Signing time override (tests)

        Returns:
            The signed record as persisted

        Raises:
            AlreadySignedError: Document is signed and overwrite is False
            SigningError: Key material is missing or unusable
            DigestError: Document content could not be read

        A PrivateKeyHandle is cleared before this returns, including when
        signing is refused or fails before the signer runs.
        """
        try:
            with signing_context(_document_id(document), identity.username):
                return self._sign_document(
                    document, store, identity, key_material, overwrite, lock, now
                )
        finally:
            if isinstance(key_material, PrivateKeyHandle):
                key_material.clear()

    def _sign_document(
        self,
        document: DrawingDocumentView,
        store: SignatureStore,
        identity: Identity,
        key_material: KeyMaterial,
        overwrite: bool,
        lock: DocumentLock | None,
        now: datetime | None,
    ) -> SignatureRecord:
        if self.is_signed(store):
            if not overwrite:
                raise AlreadySignedError("Document is already signed")
            logger.warning("Replacing existing signature")

        signed_at = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        digest_result = self.digest.digest(document)
        digest = digest_result.hex

        record = SignatureRecord(
            signer_name=identity.full_name,
            signer_username=identity.username,
            signed_at=signed_at,
            document_digest=digest,
        )
        record = self.signer.sign_record(record, identity, key_material)
        record_string = serialize(record)

        store.set_record_string(record_string)
        store.upsert(self.settings.signer_name_property, record.signer_name)
        store.upsert(self.settings.signature_time_property, format_timestamp(record.signed_at))
        store.set_status(SignatureStatus.SIGNED)

        if lock is not None and self.settings.lock_after_signing:
            lock.lock()

        logger.info(
            "Document signed",
            digest=digest,
            fields=digest_result.field_count,
            algorithm=record.method.algorithm.value,
        )
        return record

    def verify_document(
        self,
        document: DrawingDocumentView,
        store: SignatureStore,
    ) -> VerificationOutcome:
        """Verify the stored signature against the current document content."""
        with signing_context(_document_id(document)):
            return self.verifier.verify(document, store)


def _document_id(document: DrawingDocumentView) -> str | None:
    return getattr(document, "document_id", None)
