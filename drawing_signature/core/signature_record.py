"""Signature record and its persisted text form.

Serialized layout (one line, `|`-delimited):

    signerName|signerUsername|signedAt|documentDigest|base64(signature)[|method]

- HMAC records carry exactly five fields, the layout written by the
  legacy add-in.
- RSA records append a sixth field `rsa-sha256:<keyRef>` so the verifier
  knows which check to run and which public key to use.
- `|` and `\\` inside a field are escaped as `\\|` and `\\\\`. A backslash
  followed by anything else is kept literally on parse.

The first four fields, joined by `|`, are the canonical payload that gets
signed. A parsed record keeps the payload exactly as stored so that
verification never depends on re-formatting.
"""

import base64
import binascii
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from drawing_signature.core.errors import ParseError, ParseErrorKind

DELIMITER = "|"
ESCAPE = "\\"

MIN_FIELDS = 5
MAX_FIELDS = 6


class SignatureAlgorithm(str, Enum):
    """How the signature bytes were produced."""
    HMAC_SHA256 = "hmac-sha256"
    RSA_SHA256 = "rsa-sha256"


@dataclass(frozen=True)
class SignatureMethod:
    """Tagged signing method: HMAC, or RSA with a reference to the signing key."""
    algorithm: SignatureAlgorithm
    key_ref: str | None = None

    @classmethod
    def hmac(cls) -> "SignatureMethod":
        return cls(SignatureAlgorithm.HMAC_SHA256)

    @classmethod
    def rsa_sha256(cls, key_ref: str) -> "SignatureMethod":
        return cls(SignatureAlgorithm.RSA_SHA256, key_ref)

    @property
    def is_hmac(self) -> bool:
        return self.algorithm == SignatureAlgorithm.HMAC_SHA256

    def to_field(self) -> str:
        if self.key_ref:
            return f"{self.algorithm.value}:{self.key_ref}"
        return self.algorithm.value

    @classmethod
    def from_field(cls, text: str) -> "SignatureMethod":
        name, _, key_ref = text.partition(":")
        try:
            algorithm = SignatureAlgorithm(name)
        except ValueError:
            raise ParseError(
                ParseErrorKind.BAD_METHOD, f"Unknown signature method: {name!r}"
            ) from None
        if algorithm == SignatureAlgorithm.RSA_SHA256 and not key_ref:
            raise ParseError(ParseErrorKind.BAD_METHOD, "RSA method is missing its key reference")
        return cls(algorithm, key_ref or None)


@dataclass(frozen=True)
class SignatureRecord:
    """Who signed which content, when, and the resulting signature bytes."""
    signer_name: str
    signer_username: str
    signed_at: datetime
    document_digest: str
    signature: bytes = b""
    method: SignatureMethod = field(default_factory=SignatureMethod.hmac)
    # Payload text exactly as read from storage; only set by parse()
    _stored_payload: str | None = field(default=None, init=False, compare=False, repr=False)

    @property
    def canonical_payload(self) -> str:
        """The exact string that is signed and verified."""
        if self._stored_payload is not None:
            return self._stored_payload
        return DELIMITER.join([
            escape_field(self.signer_name),
            escape_field(self.signer_username),
            format_timestamp(self.signed_at),
            escape_field(self.document_digest),
        ])

    @property
    def is_signed(self) -> bool:
        return len(self.signature) > 0

    def with_signature(self, signature: bytes, method: SignatureMethod) -> "SignatureRecord":
        """Return a new record carrying the signature; the original is untouched."""
        return replace(self, signature=signature, method=method)


def format_timestamp(value: datetime) -> str:
    """ISO-8601, UTC, microsecond resolution, explicit offset."""
    if value.tzinfo is None:
        raise ValueError("signed_at must be timezone-aware")
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp that carries an offset."""
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        raise ParseError(ParseErrorKind.BAD_TIMESTAMP, f"Invalid timestamp: {text!r}") from None
    if value.tzinfo is None:
        raise ParseError(ParseErrorKind.BAD_TIMESTAMP, f"Timestamp has no UTC offset: {text!r}")
    return value.astimezone(timezone.utc)


def escape_field(value: str) -> str:
    return value.replace(ESCAPE, ESCAPE + ESCAPE).replace(DELIMITER, ESCAPE + DELIMITER)


def unescape_field(raw: str) -> str:
    out = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == ESCAPE and i + 1 < len(raw) and raw[i + 1] in (ESCAPE, DELIMITER):
            out.append(raw[i + 1])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def split_fields(text: str) -> list[str]:
    """Split on unescaped delimiters, returning the raw (still escaped) segments."""
    fields = []
    start = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == ESCAPE and i + 1 < len(text) and text[i + 1] in (ESCAPE, DELIMITER):
            i += 2
            continue
        if ch == DELIMITER:
            fields.append(text[start:i])
            start = i + 1
        i += 1
    fields.append(text[start:])
    return fields


def serialize(record: SignatureRecord) -> str:
    """Render a signed record in its persisted text form."""
    if not record.is_signed:
        raise ValueError("Cannot serialize a record without signature bytes")

    parts = [
        record.canonical_payload,
        base64.b64encode(record.signature).decode("ascii"),
    ]
    if not record.method.is_hmac:
        parts.append(record.method.to_field())
    return DELIMITER.join(parts)


def parse(text: str) -> SignatureRecord:
    """Parse the persisted text form back into a record.

    Raises:
        ParseError: FieldCount, BadTimestamp, BadBase64 or BadMethod
    """
    raw = split_fields(text)
    if not MIN_FIELDS <= len(raw) <= MAX_FIELDS:
        raise ParseError(
            ParseErrorKind.FIELD_COUNT,
            f"Expected {MIN_FIELDS} or {MAX_FIELDS} fields, got {len(raw)}",
        )

    signed_at = parse_timestamp(raw[2])

    try:
        signature = base64.b64decode(raw[4], validate=True)
    except (binascii.Error, ValueError):
        raise ParseError(ParseErrorKind.BAD_BASE64, "Signature is not valid base64") from None
    if not signature:
        raise ParseError(ParseErrorKind.BAD_BASE64, "Signature is empty")

    method = SignatureMethod.from_field(raw[5]) if len(raw) == MAX_FIELDS else SignatureMethod.hmac()

    record = SignatureRecord(
        signer_name=unescape_field(raw[0]),
        signer_username=unescape_field(raw[1]),
        signed_at=signed_at,
        document_digest=unescape_field(raw[3]),
        signature=signature,
        method=method,
    )
    object.__setattr__(record, "_stored_payload", DELIMITER.join(raw[:4]))
    return record
