"""
Drawing Signature - tamper-evident electronic signatures for engineering drawings.

Signs the title-block fields and key properties of a drawing with either an
RSA certificate key (SHA-256 with RSA, PKCS#1 v1.5) or a shared-secret
HMAC-SHA256 fallback, and verifies both the signature and that the drawing
has not changed since.

Example:
    from drawing_signature import DrawingDocument, Identity, SignatureService
    from drawing_signature import InMemoryPropertyBag, PropertySignatureStore

    document = DrawingDocument("PN-001")
    document.add_sheet("Sheet:1", [("PartName", "Bracket")])
    store = PropertySignatureStore(InMemoryPropertyBag())

    service = SignatureService()
    service.sign_document(document, store, Identity("alice", "Alice Smith"))
    outcome = service.verify_document(document, store)
"""

from drawing_signature.core.content_digest import (
    ContentDigest,
    canonical_content,
    compute_digest,
)
from drawing_signature.core.document import (
    DrawingDocument,
    DrawingDocumentView,
    Sheet,
    TitleBlockField,
)
from drawing_signature.core.document_lock import DocumentLock, SaveDecision
from drawing_signature.core.errors import (
    AlreadySignedError,
    DigestError,
    DocumentFileError,
    ParseError,
    ParseErrorKind,
    SignatureError,
    SigningError,
)
from drawing_signature.core.identity import Identity
from drawing_signature.core.key_provider import (
    MacKeyProvider,
    PrivateKeyHandle,
    PublicKeyResolver,
    StaticPublicKeyResolver,
    SuffixMacKeyProvider,
)
from drawing_signature.core.secure_memory import constant_time_equals
from drawing_signature.core.signature_engine import Signer
from drawing_signature.core.signature_record import (
    SignatureAlgorithm,
    SignatureMethod,
    SignatureRecord,
    parse,
    serialize,
)
from drawing_signature.core.signature_service import SignatureService
from drawing_signature.core.signature_store import (
    InMemoryPropertyBag,
    PropertyBag,
    PropertySignatureStore,
    SignatureStatus,
    SignatureStore,
)
from drawing_signature.core.verification_engine import (
    VerificationOutcome,
    VerificationReason,
    Verifier,
)

__version__ = "0.1.0"

__all__ = [
    # Digest
    "ContentDigest",
    "compute_digest",
    "canonical_content",
    # Document model
    "DrawingDocument",
    "DrawingDocumentView",
    "Sheet",
    "TitleBlockField",
    # Records
    "SignatureRecord",
    "SignatureMethod",
    "SignatureAlgorithm",
    "serialize",
    "parse",
    # Signing and verification
    "Identity",
    "Signer",
    "Verifier",
    "VerificationOutcome",
    "VerificationReason",
    "SignatureService",
    "constant_time_equals",
    # Keys
    "MacKeyProvider",
    "SuffixMacKeyProvider",
    "PrivateKeyHandle",
    "PublicKeyResolver",
    "StaticPublicKeyResolver",
    # Storage and locking
    "PropertyBag",
    "InMemoryPropertyBag",
    "SignatureStore",
    "PropertySignatureStore",
    "SignatureStatus",
    "DocumentLock",
    "SaveDecision",
    # Errors
    "SignatureError",
    "SigningError",
    "DigestError",
    "ParseError",
    "ParseErrorKind",
    "AlreadySignedError",
    "DocumentFileError",
]
