"""JSON document file schema.

A drawing exported to JSON for signing outside the CAD host:

    {
      "documentId": "PN-001",
      "readOnly": false,
      "sheets": [
        {"name": "Sheet:1", "titleBlockFields": [{"name": "PartName", "text": "Bracket"}]}
      ],
      "properties": {"Title": "Bracket Drawing", "Part Number": "PN-001"},
      "signatureProperties": {"SignatureStatus": "Signed", "ElectronicSignatureData": "..."}
    }
"""

from pydantic import BaseModel, ConfigDict, Field


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TitleBlockFieldModel(_CamelModel):
    """A title-block field."""
    name: str = Field(description="Field name as shown in the title block")
    text: str = Field(default="", description="Field text")


class SheetModel(_CamelModel):
    """A sheet and its title-block fields, in display order."""
    name: str = Field(description="Sheet name")
    title_block_fields: list[TitleBlockFieldModel] = Field(default_factory=list)


class DocumentFileModel(_CamelModel):
    """Top-level JSON drawing document."""
    document_id: str = Field(description="Identifier used in logs")
    read_only: bool = Field(default=False, description="Set while the document is locked")
    sheets: list[SheetModel] = Field(default_factory=list)
    properties: dict[str, str] = Field(
        default_factory=dict,
        description="Document properties (Title, Part Number, Revision Number, Description)",
    )
    signature_properties: dict[str, str] = Field(
        default_factory=dict,
        description="User-defined properties holding the signature record and flags",
    )
