"""Retriever for semantic search over the in-memory index.

Handles:
- Query embedding generation
- FAISS vector search
- Result ranking
"""
from dataclasses import dataclass
from typing import List, Optional
import structlog

from docqa import config
from docqa.errors import FatalError
from docqa.llm_client import Embedder
from docqa.rag.chunker import Segment
from docqa.rag.store_faiss import VectorIndex

logger = structlog.get_logger()


@dataclass(frozen=True)
class RetrievalResult:
    """A single retrieved segment with its distance to the query."""

    segment: Segment
    distance: float
    rank: int

    @property
    def content(self) -> str:
        return self.segment.content

    @property
    def source(self) -> str:
        """Get a formatted source string for display."""
        return f"{self.segment.source}@{self.segment.start_index}"

    @property
    def relevance_score(self) -> float:
        """Cosine similarity, i.e. 1 - cosine distance."""
        return 1.0 - self.distance


class Retriever:
    """Semantic retriever for RAG pipeline."""

    def __init__(
        self,
        index: VectorIndex,
        embedder: Embedder,
        top_k: int = None,
    ):
        """Initialize the retriever.

        Args:
            index: Built vector index to search
            embedder: Embedder used to build the index
            top_k: Number of results to retrieve (default from config)
        """
        self.index = index
        self.embedder = embedder
        self.top_k = config.RETRIEVAL_TOP_K if top_k is None else top_k

    async def retrieve(
        self, query: str, k: Optional[int] = None
    ) -> List[RetrievalResult]:
        """Retrieve the segments most similar to a query.

        Embedder errors propagate unchanged.

        Args:
            query: User query text
            k: Number of results to return (overrides default)

        Returns:
            List of RetrievalResult objects, most similar first

        Raises:
            FatalError: If the embedder doesn't return exactly one query vector
        """
        k = self.top_k if k is None else k

        logger.info("retrieval_started", query_length=len(query), top_k=k)

        embeddings = await self.embedder.embed([query])
        if len(embeddings) != 1:
            raise FatalError(
                f"Embedder returned {len(embeddings)} vectors for one query"
            )

        matches = self.index.query(embeddings[0], k)
        results = [
            RetrievalResult(segment=entry.segment, distance=distance, rank=rank)
            for rank, (entry, distance) in enumerate(matches, 1)
        ]

        logger.info(
            "retrieval_completed",
            query_length=len(query),
            results_returned=len(results),
            top_relevance=results[0].relevance_score if results else None,
            sources=[r.source for r in results],
        )

        return results
