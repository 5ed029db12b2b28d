"""Document and category models read from the document store."""

from typing import Optional

from pydantic import BaseModel, Field


class CategoryRecord(BaseModel):
    """Category row as stored by the document service."""

    id: int
    name: str
    parent_id: Optional[int] = None


class DocumentRecord(BaseModel):
    """Document row with the fields the pipeline reads."""

    id: int
    file_name: str
    file_path: str
    content_type: Optional[str] = None
    file_size: int = Field(default=0, ge=0)
    category_id: Optional[int] = None
    category_name: Optional[str] = None

    class Config:
        """Pydantic config."""

        from_attributes = True


class DocumentRef(BaseModel):
    """Reference to a source document returned with an answer."""

    document_id: int
    file_name: Optional[str] = None
