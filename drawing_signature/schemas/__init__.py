"""Pydantic schemas for drawing signature files."""

from drawing_signature.schemas.document import (
    DocumentFileModel,
    SheetModel,
    TitleBlockFieldModel,
)

__all__ = ["DocumentFileModel", "SheetModel", "TitleBlockFieldModel"]
