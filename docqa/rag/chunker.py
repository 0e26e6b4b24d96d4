"""Text chunking with overlap for RAG pipeline.

Implements character-based chunking to avoid tokenizer dependencies.
Each chunk ends on the largest separator (paragraph, line, sentence, word)
found inside the window; when none fits the chunk is cut at the size limit.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List
import structlog

from docqa import config
from docqa.errors import ConfigurationError
from docqa.rag.loader import Document

logger = structlog.get_logger()

# Ordered from the largest semantic boundary to the smallest
SEPARATORS = ["\n\n", "\n", ". ", "! ", "? ", "。", " "]


@dataclass(frozen=True)
class Segment:
    """A chunk of a document with position information."""

    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def start_index(self) -> int:
        return self.metadata.get("start_index", 0)

    @property
    def end_index(self) -> int:
        return self.start_index + len(self.content)

    @property
    def chunk_index(self) -> int:
        return self.metadata.get("chunk_index", 0)

    @property
    def source(self) -> str:
        return str(self.metadata.get("source", ""))


class TextChunker:
    """Character-based text chunker with overlap support."""

    def __init__(
        self,
        chunk_size: int = None,
        chunk_overlap: int = None,
    ):
        """Initialize the text chunker.

        Args:
            chunk_size: Size of each chunk in characters (default from config)
            chunk_overlap: Overlap between chunks in characters (default from config)

        Raises:
            ConfigurationError: If the size/overlap pair is invalid
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = (
            config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap
        )

        # Validate parameters
        if self.chunk_size <= 0:
            raise ConfigurationError(
                f"Chunk size must be positive, got {self.chunk_size}"
            )
        if self.chunk_overlap < 0:
            raise ConfigurationError(
                f"Overlap must not be negative, got {self.chunk_overlap}"
            )
        if self.chunk_overlap >= self.chunk_size:
            raise ConfigurationError(
                f"Overlap ({self.chunk_overlap}) must be less than "
                f"chunk size ({self.chunk_size})"
            )

        logger.debug(
            "chunker_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

    def iter_segments(self, document: Document) -> Iterator[Segment]:
        """Lazily split a document into overlapping segments.

        Consecutive segments share exactly ``chunk_overlap`` characters.
        Every call returns a fresh iterator over the same sequence.

        Args:
            document: Document to chunk

        Yields:
            Segment objects in document order
        """
        text = document.content
        text_length = len(text)
        start = 0
        chunk_index = 0

        while start < text_length:
            if text_length - start <= self.chunk_size:
                end = text_length
            else:
                end = self._find_cut(text, start)

            yield Segment(
                content=text[start:end],
                metadata={
                    **document.metadata,
                    "start_index": start,
                    "chunk_index": chunk_index,
                },
            )

            if end == text_length:
                break

            start = end - self.chunk_overlap
            chunk_index += 1

    def split_documents(self, documents: Iterable[Document]) -> List[Segment]:
        """Split several documents into segments, preserving order.

        Args:
            documents: Documents to chunk

        Returns:
            List of Segment objects
        """
        segments: List[Segment] = []
        for document in documents:
            doc_segments = list(self.iter_segments(document))
            segments.extend(doc_segments)

            if doc_segments:
                logger.info(
                    "text_chunked",
                    source=document.source,
                    text_length=len(document.content),
                    **self.get_chunk_stats(doc_segments),
                )
            else:
                logger.warning("no_chunks_created", source=document.source)

        return segments

    def _find_cut(self, text: str, start: int) -> int:
        """Find where the chunk starting at ``start`` should end.

        The cut goes right after the last occurrence of the largest separator
        inside the window, as long as the chunk stays longer than the overlap
        so that the next chunk moves forward.

        Args:
            text: Full text being chunked
            start: Start position of the current chunk

        Returns:
            End position (exclusive) of the chunk
        """
        window = text[start : start + self.chunk_size]

        for separator in SEPARATORS:
            last_break = window.rfind(separator)
            if last_break == -1:
                continue
            cut = last_break + len(separator)
            if cut > self.chunk_overlap:
                return start + cut

        # No usable boundary, hard split at the size limit
        return start + self.chunk_size

    def get_chunk_stats(self, segments: List[Segment]) -> dict:
        """Get statistics about a set of segments.

        Args:
            segments: List of Segment objects

        Returns:
            Dictionary with chunk statistics
        """
        if not segments:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
            }

        chunk_sizes = [len(s.content) for s in segments]

        return {
            "chunk_count": len(segments),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(segments),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "overlap": self.chunk_overlap,
        }
