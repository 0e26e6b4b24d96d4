"""Plain text loader for the RAG pipeline.

Reads whole files into Document records; one Document per file.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union
import structlog

from docqa.errors import DocumentNotFoundError, ReadError

logger = structlog.get_logger()

PathLike = Union[str, Path]


@dataclass(frozen=True)
class Document:
    """Raw text of a source file with its metadata."""

    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def source(self) -> str:
        return str(self.metadata.get("source", ""))


class TextLoader:
    """Loader for UTF-8 (or other encoded) text files."""

    def __init__(self, encoding: str = "utf-8"):
        """Initialize the loader.

        Args:
            encoding: Text encoding used to decode the files
        """
        self.encoding = encoding

    def load(self, path: PathLike) -> List[Document]:
        """Read a text file into a single Document.

        Args:
            path: Path to the text file

        Returns:
            List containing one Document

        Raises:
            DocumentNotFoundError: If the file doesn't exist
            ReadError: If the file can't be read or decoded
        """
        file_path = Path(path)

        if not file_path.exists():
            logger.error("document_not_found", path=str(file_path))
            raise DocumentNotFoundError(f"Document not found: {file_path}")

        try:
            content = file_path.read_text(encoding=self.encoding)
        except UnicodeDecodeError as e:
            logger.error(
                "document_encoding_error",
                path=str(file_path),
                encoding=self.encoding,
                error=str(e),
            )
            raise ReadError(
                f"Failed to decode {file_path} as {self.encoding}: {e}"
            ) from e
        except OSError as e:
            logger.error("document_read_error", path=str(file_path), error=str(e))
            raise ReadError(f"Failed to read {file_path}: {e}") from e

        logger.info("document_loaded", path=str(file_path), char_count=len(content))

        return [
            Document(
                content=content,
                metadata={"source": str(path), "char_count": len(content)},
            )
        ]

    def load_all(self, paths: Iterable[PathLike]) -> List[Document]:
        """Load several files, one Document per file, in the given order."""
        documents: List[Document] = []
        for path in paths:
            documents.extend(self.load(path))
        return documents
