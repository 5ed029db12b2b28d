"""Text extraction from stored document files using LangChain loaders."""

import logging
import mimetypes
from pathlib import Path
from typing import Dict, Optional

from langchain_community.document_loaders import (
    CSVLoader,
    Docx2txtLoader,
    PyPDFLoader,
    TextLoader,
    UnstructuredExcelLoader,
    UnstructuredPowerPointLoader,
    UnstructuredWordDocumentLoader,
)

from docqa.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)

LOADERS: Dict[str, type] = {
    "application/pdf": PyPDFLoader,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": Docx2txtLoader,
    "application/msword": UnstructuredWordDocumentLoader,
    "application/vnd.ms-excel": UnstructuredExcelLoader,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": UnstructuredExcelLoader,
    "application/vnd.ms-powerpoint": UnstructuredPowerPointLoader,
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": UnstructuredPowerPointLoader,
    "text/csv": CSVLoader,
}

EXTENSION_TYPES = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".hwp": "application/x-hwp",
    ".hwpx": "application/x-hwp",
}


class TextExtractor:
    """Extracts plain text from heterogeneous document formats."""

    def __init__(self) -> None:
        """Initialize the extractor."""
        for ext, mime in EXTENSION_TYPES.items():
            mimetypes.add_type(mime, ext)

    def resolve_content_type(self, file_path: str, content_type: Optional[str]) -> str:
        """
        Resolve the content type of a file.

        Args:
            file_path: Path of the stored file.
            content_type: Declared content type, if any.

        Returns:
            Content type string.
        """
        if content_type and content_type != "application/octet-stream":
            return content_type.split(";")[0].strip().lower()
        guessed, _ = mimetypes.guess_type(file_path)
        return guessed or "application/octet-stream"

    def extract(self, file_path: str, content_type: Optional[str] = None) -> str:
        """
        Extract plain text from a file.

        Images and unsupported formats are treated as opaque and yield an
        empty string.

        Args:
            file_path: Path of the stored file.
            content_type: Declared content type.

        Returns:
            Extracted text, possibly empty.

        Raises:
            ExtractionError: If the file is missing or cannot be parsed.
        """
        path = Path(file_path)
        if not path.exists():
            raise ExtractionError(f"File not found: {file_path}")

        resolved = self.resolve_content_type(file_path, content_type)
        if resolved.startswith("image/"):
            logger.info(f"Skipping text extraction for image {path.name}")
            return ""

        loader_cls = LOADERS.get(resolved)
        if loader_cls is None and resolved.startswith("text/"):
            loader_cls = TextLoader
        if loader_cls is None:
            logger.warning(f"No text extractor for {resolved}: {path.name}")
            return ""

        try:
            if loader_cls is TextLoader:
                loader = TextLoader(file_path, autodetect_encoding=True)
            else:
                loader = loader_cls(file_path)
            documents = loader.load()
        except Exception as e:
            raise ExtractionError(
                f"Failed to extract text from {path.name}: {str(e)}") from e

        return "\n".join(doc.page_content for doc in documents if doc.page_content)
