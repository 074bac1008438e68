"""Read-only document view consumed by the digest and verifier.

The host CAD application owns the real document object model. Anything
that exposes ordered sheets with ordered title-block fields and a
property lookup satisfies DrawingDocumentView.
"""

from dataclasses import dataclass, field
from typing import Iterable, Protocol, Sequence, runtime_checkable

# Document-level property names read by the digest
TITLE = "Title"
PART_NUMBER = "Part Number"
REVISION_NUMBER = "Revision Number"
DESCRIPTION = "Description"

DIGEST_PROPERTIES = (TITLE, PART_NUMBER, REVISION_NUMBER, DESCRIPTION)


@dataclass(frozen=True)
class TitleBlockField:
    """A single named field of a sheet's title block."""
    name: str
    text: str | None = ""


@dataclass
class Sheet:
    """A drawing sheet with its title-block fields in display order."""
    name: str
    fields: list[TitleBlockField] = field(default_factory=list)

    def set_field(self, name: str, text: str) -> None:
        """Replace the text of an existing field, or append a new one."""
        for index, existing in enumerate(self.fields):
            if existing.name == name:
                self.fields[index] = TitleBlockField(name, text)
                return
        self.fields.append(TitleBlockField(name, text))


@runtime_checkable
class DrawingDocumentView(Protocol):
    """What the signing core needs to read from a drawing."""

    @property
    def sheets(self) -> Sequence[Sheet]:
        ...

    def get_property(self, name: str) -> str | None:
        ...


@dataclass
class DrawingDocument:
    """In-memory drawing document.

    Used by the JSON file adapter and the tests; host integrations
    provide their own DrawingDocumentView.
    """
    document_id: str
    sheets: list[Sheet] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)

    def get_property(self, name: str) -> str | None:
        return self.properties.get(name)

    def set_property(self, name: str, value: str) -> None:
        self.properties[name] = value

    def add_sheet(self, name: str, fields: Iterable[tuple[str, str]] = ()) -> Sheet:
        sheet = Sheet(name, [TitleBlockField(n, t) for n, t in fields])
        self.sheets.append(sheet)
        return sheet
