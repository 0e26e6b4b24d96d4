"""In-memory FAISS vector index for semantic search.

Handles:
- One-shot index construction from (vector, segment) pairs
- Cosine distance search with deterministic tie-breaking
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
import numpy as np
import faiss
import structlog

from docqa.errors import FatalError
from docqa.llm_client import Embedder
from docqa.rag.chunker import Segment

logger = structlog.get_logger()


@dataclass(frozen=True)
class IndexEntry:
    """An embedding vector paired with the segment it was computed from."""

    vector: Sequence[float]
    segment: Segment


def _normalize(vectors: np.ndarray) -> np.ndarray:
    # Inner product of unit vectors is the cosine similarity
    vectors = np.ascontiguousarray(vectors, dtype=np.float32)
    faiss.normalize_L2(vectors)
    return vectors


class VectorIndex:
    """FAISS-based exact nearest neighbour index over segments.

    Distances are cosine distances (1 - cosine similarity). The index is
    built once and is read-only afterwards.
    """

    def __init__(self):
        self.index: Optional[faiss.Index] = None
        self.dimension: Optional[int] = None
        self.entries: List[IndexEntry] = []
        self._built = False

    def __len__(self) -> int:
        return len(self.entries)

    def build(self, entries: Sequence[IndexEntry]) -> None:
        """Construct the index from all entries at once.

        Args:
            entries: (vector, segment) pairs, in insertion order

        Raises:
            RuntimeError: If the index was already built
            FatalError: If the embedder returned vectors of different dimensions
        """
        if self._built:
            raise RuntimeError("Index already built; it is read-only after build()")

        entries = list(entries)

        if not entries:
            self._built = True
            logger.warning("empty_index_built")
            return

        dimensions = {len(entry.vector) for entry in entries}
        if len(dimensions) != 1:
            logger.error("embedding_dimension_mismatch", dimensions=sorted(dimensions))
            raise FatalError(
                f"Embedding dimension mismatch: got dimensions {sorted(dimensions)}"
            )

        self.dimension = dimensions.pop()
        self.index = faiss.IndexFlatIP(self.dimension)
        self.index.add(_normalize(np.array([e.vector for e in entries])))
        self.entries = entries
        self._built = True

        logger.info(
            "faiss_index_built",
            dimension=self.dimension,
            vector_count=self.index.ntotal,
            index_type="IndexFlatIP",
        )

    def query(
        self, vector: Sequence[float], k: int
    ) -> List[Tuple[IndexEntry, float]]:
        """Find the k entries closest to a query vector.

        Args:
            vector: Query embedding
            k: Maximum number of results

        Returns:
            List of (entry, distance) sorted by increasing distance; equal
            distances keep insertion order

        Raises:
            RuntimeError: If the index hasn't been built
            FatalError: If the query dimension doesn't match the index
        """
        if not self._built:
            raise RuntimeError("No index built. Call build() first.")

        k = min(k, len(self.entries))
        if k <= 0:
            return []

        query_vector = _normalize(np.array([vector]))

        if query_vector.shape[1] != self.dimension:
            raise FatalError(
                f"Query dimension mismatch: expected {self.dimension}, "
                f"got {query_vector.shape[1]}"
            )

        # Exact search over every entry so ties at the k-th place are resolved
        # by insertion order rather than by FAISS heap order
        similarities, indices = self.index.search(query_vector, self.index.ntotal)
        distances = 1.0 - similarities[0]
        order = np.lexsort((indices[0], distances))[:k]

        results = [
            (self.entries[int(indices[0][i])], float(distances[i])) for i in order
        ]

        logger.debug(
            "vector_search_completed",
            top_k=k,
            results_found=len(results),
        )

        return results

    @classmethod
    async def from_segments(
        cls, segments: Sequence[Segment], embedder: Embedder
    ) -> "VectorIndex":
        """Embed all segments and build an index over them.

        Raises:
            FatalError: If the embedder returns the wrong number or shape of vectors
        """
        segments = list(segments)
        vectors = await embedder.embed([s.content for s in segments])

        if len(vectors) != len(segments):
            raise FatalError(
                f"Embedder returned {len(vectors)} vectors for {len(segments)} segments"
            )

        index = cls()
        index.build(
            IndexEntry(vector=vector, segment=segment)
            for vector, segment in zip(vectors, segments)
        )
        return index

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the index.

        Returns:
            Dictionary with index statistics
        """
        if not self._built:
            return {
                "initialized": False,
                "vector_count": 0,
                "dimension": None,
            }

        return {
            "initialized": True,
            "vector_count": len(self.entries),
            "dimension": self.dimension,
        }
