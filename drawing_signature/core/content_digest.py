"""Content digest for drawing documents.

Hashes only the fields that matter to a signed drawing:
- every title-block field of every sheet, in document order
- the Title, Part Number, Revision Number and Description properties

Save timestamps, view state and other metadata churn never participate,
so re-saving a signed drawing does not invalidate its signature.

Canonical text, one line per entry:

    <fieldName>:<fieldText>
    ...
    Title:<title>
    Number:<part number>
    Revision:<revision>
    Description:<description>

The name/text separator plus a line terminator after every entry keeps
adjacent fields from merging into the same byte stream.
"""

import hashlib
from dataclasses import dataclass

from drawing_signature.core.document import (
    DESCRIPTION,
    PART_NUMBER,
    REVISION_NUMBER,
    TITLE,
    DrawingDocumentView,
)
from drawing_signature.core.errors import DigestError

# Same terminator the legacy Windows add-in wrote, so its digests still match.
LINE_TERMINATOR = "\r\n"

# (label in canonical text, document property name)
PROPERTY_LINES = (
    ("Title", TITLE),
    ("Number", PART_NUMBER),
    ("Revision", REVISION_NUMBER),
    ("Description", DESCRIPTION),
)


@dataclass
class DigestResult:
    """Result of hashing a document."""
    hex: str
    canonical_text: str
    field_count: int


class ContentDigest:
    """Computes the SHA-256 content digest of a drawing document."""

    def canonical_content(self, document: DrawingDocumentView) -> str:
        """Build the canonical text blob that gets hashed.

        Missing properties and fields without text contribute an empty
        string rather than aborting.

        Raises:
            DigestError: If the document accessor itself fails
        """
        lines, _ = self._collect(document)
        return "".join(line + LINE_TERMINATOR for line in lines)

    def digest(self, document: DrawingDocumentView) -> DigestResult:
        """Hash the document and return the digest with its inputs."""
        lines, field_count = self._collect(document)
        text = "".join(line + LINE_TERMINATOR for line in lines)
        digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
        return DigestResult(hex=digest, canonical_text=text, field_count=field_count)

    def compute(self, document: DrawingDocumentView) -> str:
        """Return the 64-character lowercase hex digest of the document."""
        return self.digest(document).hex

    def _collect(self, document: DrawingDocumentView) -> tuple[list[str], int]:
        try:
            lines = [
                f"{tb_field.name}:{_text(tb_field.text)}"
                for sheet in document.sheets
                for tb_field in sheet.fields
            ]
            field_count = len(lines)
            for label, property_name in PROPERTY_LINES:
                lines.append(f"{label}:{_text(document.get_property(property_name))}")
        except Exception as e:
            raise DigestError(f"Failed to read document content: {e}") from e
        return lines, field_count


def _text(value: object) -> str:
    if value is None:
        return ""
    return str(value)


# Singleton instance
content_digest = ContentDigest()


def compute_digest(document: DrawingDocumentView) -> str:
    """Return the lowercase hex SHA-256 digest of the document's signed content."""
    return content_digest.compute(document)


def canonical_content(document: DrawingDocumentView) -> str:
    """Return the canonical text blob hashed by compute_digest."""
    return content_digest.canonical_content(document)
