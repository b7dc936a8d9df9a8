"""Second Brain service - the single entry point the HTTP layer talks to."""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from ..errors import Forbidden, NotFound
from ..interfaces import (
    AddItemResult,
    ContentKind,
    IDocumentStore,
    IEmbeddingService,
    IMetadataLookup,
    IVectorIndex,
    Item,
    ItemPage,
    MAX_PAGE_SIZE,
    Owner,
    SearchResult,
    SharedView,
    Tag,
)
from .deletion import DeletionCoordinator
from .ingestion import IngestionCoordinator
from .retrieval import RetrievalCoordinator
from .sharing import SharingService
from .tag_registry import TagRegistry

logger = logging.getLogger(__name__)


class BrainService:
    """Wires the stores, the embedding client and the coordinators together.

    Usage:
        service = BrainService(
            document_store=SQLiteDocumentStore("brain.db"),
            vector_index=InMemoryVectorIndex(),
            embedding_service=FastEmbedService(),
            metadata_lookup=YouTubeMetadataService(),
        )

        result = await service.add_item(owner_id, link, "video", "demo", ["x"])
        hits = await service.search(owner_id, "demo")
    """

    def __init__(
        self,
        document_store: IDocumentStore,
        vector_index: IVectorIndex,
        embedding_service: IEmbeddingService,
        metadata_lookup: IMetadataLookup,
        frontend_url: str = "",
        top_k: int = 5,
        min_similarity: float = 0.4,
        order_by_score: bool = True,
    ):
        self.document_store = document_store
        self.vector_index = vector_index
        self.embedding_service = embedding_service
        self.metadata_lookup = metadata_lookup

        self.tag_registry = TagRegistry(document_store)
        self.ingestion = IngestionCoordinator(
            tag_registry=self.tag_registry,
            metadata_lookup=metadata_lookup,
            embedding_service=embedding_service,
            document_store=document_store,
            vector_index=vector_index,
        )
        self.deletion = DeletionCoordinator(
            tag_registry=self.tag_registry,
            document_store=document_store,
            vector_index=vector_index,
        )
        self.retrieval = RetrievalCoordinator(
            embedding_service=embedding_service,
            vector_index=vector_index,
            document_store=document_store,
            top_k=top_k,
            min_similarity=min_similarity,
            order_by_score=order_by_score,
        )
        self.sharing = SharingService(document_store, frontend_url=frontend_url)

    # Owners

    async def create_owner(self, username: str) -> Owner:
        return await self.document_store.create_owner(username)

    async def get_owner(self, owner_id: str) -> Optional[Owner]:
        return await self.document_store.get_owner(owner_id)

    # Items

    async def add_item(
        self,
        owner_id: str,
        link: str,
        kind: Union[str, ContentKind],
        title: str,
        tag_titles: Optional[Sequence[str]] = None,
    ) -> AddItemResult:
        return await self.ingestion.add_item(owner_id, link, kind, title, tag_titles)

    async def reindex_item(self, owner_id: str, item_id: str) -> AddItemResult:
        return await self.ingestion.reindex_item(owner_id, item_id)

    async def get_item(self, owner_id: str, item_id: str) -> Item:
        item = await self.document_store.get_item(item_id)
        if item is None:
            raise NotFound("Content not found.")
        if item.owner_id != owner_id:
            raise Forbidden("Forbidden: cannot view content you do not own.")
        return item

    async def list_items(
        self, owner_id: str, page: int = 1, page_size: int = MAX_PAGE_SIZE
    ) -> ItemPage:
        """One page of the owner's items, most recent first.

        Out-of-range ``page``/``page_size`` values are clamped, not rejected.
        """
        return await self.document_store.list_items(owner_id, page=page, page_size=page_size)

    async def list_items_by_tag(self, owner_id: str, tag_id: str) -> list[Item]:
        return await self.document_store.list_items_by_tag(owner_id, tag_id)

    async def list_tags(self, owner_id: str) -> list[Tag]:
        return await self.document_store.list_distinct_tags_for_owner(owner_id)

    async def delete_item(self, owner_id: str, item_id: str) -> None:
        await self.deletion.delete_item(owner_id, item_id)

    # Search

    async def search(self, owner_id: str, query_text: str) -> list[SearchResult]:
        return await self.retrieval.search(owner_id, query_text)

    # Sharing

    async def set_shared(self, owner_id: str, shared: bool) -> Optional[str]:
        return await self.sharing.set_shared(owner_id, shared)

    async def get_shared_view(self, share_id: str) -> SharedView:
        return await self.sharing.get_shared_view(share_id)

    async def get_stats(self) -> dict:
        """Item and vector counts. ``vectors`` is None if the index can't count."""
        items = await self.document_store.count_items()
        try:
            vectors: Optional[int] = await self.vector_index.count()
        except NotImplementedError:
            vectors = None
        return {"items": items, "vectors": vectors}

    async def close(self) -> None:
        for component in (self.embedding_service, self.metadata_lookup):
            close = getattr(component, "close", None)
            if close is not None:
                await close()
        close_store = getattr(self.document_store, "close", None)
        if close_store is not None:
            close_store()


def create_brain_service(
    config=None,
    embedding_service: Optional[IEmbeddingService] = None,
    metadata_lookup: Optional[IMetadataLookup] = None,
    vector_index: Optional[IVectorIndex] = None,
    document_store: Optional[IDocumentStore] = None,
) -> BrainService:
    """Factory function to create a brain service from configuration.

    Any component passed explicitly is used as-is; the rest are built from
    ``config``.

    Args:
        config: A ``SecondBrainConfig``. Defaults to ``SecondBrainConfig()``.
        embedding_service: Override the embedding client.
        metadata_lookup: Override the source metadata provider.
        vector_index: Override the vector index.
        document_store: Override the document store.

    Returns:
        Configured BrainService ready for use.
    """
    from ..server.config import SecondBrainConfig
    from .document_store import SQLiteDocumentStore
    from .metadata import YouTubeMetadataService
    from .vector_store import InMemoryVectorIndex, LanceDBVectorIndex

    if config is None:
        config = SecondBrainConfig()

    if embedding_service is None:
        if config.embedding.provider == "openai":
            from .embeddings import OpenAIEmbeddingService

            embedding_service = OpenAIEmbeddingService(
                api_key=config.embedding.api_key,
                model=config.embedding.model,
                dimensions=config.embedding.dimensions,
                api_base=config.embedding.api_base,
            )
        else:
            from .fastembed_service import FastEmbedService

            embedding_service = FastEmbedService(
                model=config.embedding.model,
                dimensions=config.embedding.dimensions,
            )
        logger.info(
            "Embedding provider: %s (%s, %d dims)",
            config.embedding.provider,
            config.embedding.model,
            config.embedding.dimensions,
        )

    if document_store is None:
        if config.db.path != ":memory:":
            Path(config.db.path).parent.mkdir(parents=True, exist_ok=True)
        document_store = SQLiteDocumentStore(config.db.path)

    if vector_index is None:
        if config.db.vector_provider == "memory":
            logger.warning("Using in-memory vector index. Vectors will NOT persist across restarts.")
            vector_index = InMemoryVectorIndex(dimensions=embedding_service.dimensions)
        else:
            vector_index = LanceDBVectorIndex(
                dimensions=embedding_service.dimensions,
                db_path=config.db.vector_path if not config.db.vector_uri else None,
                db_uri=config.db.vector_uri,
            )

    if metadata_lookup is None:
        metadata_lookup = YouTubeMetadataService(
            api_key=config.youtube.api_key,
            api_base=config.youtube.api_base,
            timeout_seconds=config.youtube.timeout_seconds,
        )

    return BrainService(
        document_store=document_store,
        vector_index=vector_index,
        embedding_service=embedding_service,
        metadata_lookup=metadata_lookup,
        frontend_url=config.server.frontend_url or "",
        top_k=config.search.top_k,
        min_similarity=config.search.min_similarity,
        order_by_score=config.search.order_by_score,
    )
