"""File-backed drawing document for the CLI.

Loads a DocumentFileModel from JSON, exposes it as a DrawingDocument plus
a PropertySignatureStore, and writes everything back on save().
"""

import json
from pathlib import Path

from pydantic import ValidationError

from drawing_signature.config import Settings
from drawing_signature.core.document import DrawingDocument, Sheet, TitleBlockField
from drawing_signature.core.errors import DocumentFileError
from drawing_signature.core.signature_store import InMemoryPropertyBag, PropertySignatureStore
from drawing_signature.schemas.document import (
    DocumentFileModel,
    SheetModel,
    TitleBlockFieldModel,
)


class JsonDocumentFile:
    """A drawing document stored as a JSON file."""

    def __init__(
        self,
        path: str | Path,
        document: DrawingDocument,
        properties: InMemoryPropertyBag,
        read_only: bool = False,
        settings: Settings | None = None,
    ):
        self.path = Path(path)
        self.document = document
        self.properties = properties
        self.read_only = read_only
        self.store = PropertySignatureStore(properties, settings)

    @classmethod
    def load(cls, path: str | Path, settings: Settings | None = None) -> "JsonDocumentFile":
        """Read and validate a JSON document file.

        Raises:
            DocumentFileError: If the file is missing, not JSON, or fails validation
        """
        path = Path(path)
        try:
            model = DocumentFileModel.model_validate_json(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise DocumentFileError(f"Cannot read {path}: {e}") from e
        except ValidationError as e:
            raise DocumentFileError(f"Invalid document file {path}: {e}") from e

        document = DrawingDocument(
            document_id=model.document_id,
            sheets=[
                Sheet(sheet.name, [TitleBlockField(f.name, f.text) for f in sheet.title_block_fields])
                for sheet in model.sheets
            ],
            properties=dict(model.properties),
        )
        return cls(
            path,
            document,
            InMemoryPropertyBag(model.signature_properties),
            read_only=model.read_only,
            settings=settings,
        )

    def set_read_only(self, value: bool) -> None:
        self.read_only = value

    def to_model(self) -> DocumentFileModel:
        return DocumentFileModel(
            document_id=self.document.document_id,
            read_only=self.read_only,
            sheets=[
                SheetModel(
                    name=sheet.name,
                    title_block_fields=[
                        TitleBlockFieldModel(name=f.name, text=f.text or "") for f in sheet.fields
                    ],
                )
                for sheet in self.document.sheets
            ],
            properties=dict(self.document.properties),
            signature_properties=self.properties.as_dict(),
        )

    def save(self) -> None:
        """Write the document back to its path."""
        data = self.to_model().model_dump(by_alias=True)
        try:
            self.path.write_text(
                json.dumps(data, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            raise DocumentFileError(f"Cannot write {self.path}: {e}") from e
