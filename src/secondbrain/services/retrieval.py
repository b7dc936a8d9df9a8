"""Retrieval coordinator: semantic search scoped to one owner."""

import logging

from ..errors import EmbeddingUnavailable, InvalidQuery
from ..interfaces import IDocumentStore, IEmbeddingService, IVectorIndex, SearchResult

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
DEFAULT_MIN_SIMILARITY = 0.4


class RetrievalCoordinator:
    """Embed a query, match it in the index, join hits back to the owner's items.

    The index holds every owner's vectors. Owner scoping happens in the
    join, so a match that belongs to someone else is silently dropped and
    the caller may get fewer than ``top_k`` results.
    """

    def __init__(
        self,
        embedding_service: IEmbeddingService,
        vector_index: IVectorIndex,
        document_store: IDocumentStore,
        top_k: int = DEFAULT_TOP_K,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
        order_by_score: bool = True,
    ):
        self.embedding_service = embedding_service
        self.vector_index = vector_index
        self.document_store = document_store
        self.top_k = top_k
        self.min_similarity = min_similarity
        self.order_by_score = order_by_score

    async def search(self, owner_id: str, query_text: str) -> list[SearchResult]:
        """Search the owner's items.

        Raises:
            InvalidQuery: Empty or whitespace-only query.
            EmbeddingUnavailable: Query could not be embedded.
        """
        if not isinstance(query_text, str) or not query_text.strip():
            raise InvalidQuery()

        try:
            query_vector = await self.embedding_service.embed(query_text)
        except EmbeddingUnavailable:
            raise
        except Exception as e:
            logger.error(f"Query embedding failed: {e}")
            raise EmbeddingUnavailable() from e

        matches = await self.vector_index.query(query_vector, top_k=self.top_k)
        scores = {
            m.id: m.score
            for m in matches[: self.top_k]
            if m.score is not None and m.score >= self.min_similarity
        }
        if not scores:
            return []

        items = await self.document_store.find_by_vector_refs(set(scores), owner_id)
        results = [
            SearchResult(item=item, similarity_score=scores[item.vector_ref])
            for item in items
            if item.vector_ref in scores
        ]
        if self.order_by_score:
            results.sort(key=lambda r: r.similarity_score, reverse=True)
        return results
