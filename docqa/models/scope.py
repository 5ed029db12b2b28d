"""Search scope: a single category or a single document."""

from typing import Literal, Union

from pydantic import BaseModel


class CategoryScope(BaseModel):
    """Restrict a search to the documents of one category."""

    kind: Literal["category"] = "category"
    category_id: int


class DocumentScope(BaseModel):
    """Restrict a search to one document."""

    kind: Literal["document"] = "document"
    document_id: int


Scope = Union[CategoryScope, DocumentScope]
