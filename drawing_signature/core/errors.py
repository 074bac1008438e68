"""
Exception classes for drawing signatures.

Verification failures are not exceptions: the verifier returns a
VerificationOutcome instead. These classes cover misconfiguration,
malformed input and collaborator defects.
"""

from enum import Enum


class SignatureError(Exception):
    """Base exception for drawing signature errors."""
    pass


class SigningError(SignatureError):
    """Signing failed - key unusable or payload could not be encoded."""
    pass


class DigestError(SignatureError):
    """Document content could not be read for hashing."""
    pass


class ParseErrorKind(str, Enum):
    """Why a serialized signature record could not be parsed."""
    FIELD_COUNT = "FieldCount"
    BAD_TIMESTAMP = "BadTimestamp"
    BAD_BASE64 = "BadBase64"
    BAD_METHOD = "BadMethod"


class ParseError(SignatureError):
    """Serialized signature record is malformed."""

    def __init__(self, kind: ParseErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class AlreadySignedError(SignatureError):
    """Document already carries a signature and overwrite was not requested."""
    pass


class DocumentFileError(SignatureError):
    """A document file could not be read, validated or written."""
    pass
