"""Ingestion coordinator: the multi-step add-item flow.

Order of effects for a new item:

1. Validate input (kind, title, link shape). Nothing is written yet.
2. Resolve tag titles to ids (may create tags).
3. Look up source metadata.
4. Embed the combined text.
5. Write the item to the document store. This is the commit point.
6. Upsert the vector and record the vector reference on the item.

A failure in step 6 does not roll back step 5. The caller gets an
``AddItemResult`` with ``indexed=False`` and can re-index later.
"""

import logging
from typing import Optional, Sequence, Union

from ..errors import (
    EmbeddingUnavailable,
    Forbidden,
    InvalidInput,
    NotFound,
    SourceNotFound,
    StaleTag,
)
from ..interfaces import (
    AddItemResult,
    ContentKind,
    IDocumentStore,
    IEmbeddingService,
    IMetadataLookup,
    IVectorIndex,
    Item,
    SourceMetadata,
)
from .tag_registry import TagRegistry

logger = logging.getLogger(__name__)

NOT_INDEXED_WARNING = "Content saved but not indexed for search; re-index it to make it searchable."


def build_embedding_text(title: str, source: Optional[SourceMetadata]) -> str:
    """Text embedded for an item: user title, source title, source description.

    Missing source fields become empty strings so the separators stay put.
    """
    source = source or SourceMetadata()
    return ",".join([title, source.title or "", source.description or ""])


def parse_kind(kind: Union[str, ContentKind]) -> ContentKind:
    try:
        return ContentKind(kind)
    except ValueError:
        allowed = ", ".join(k.value for k in ContentKind)
        raise InvalidInput(f"Invalid content type {kind!r}. Expected one of: {allowed}")


class IngestionCoordinator:
    """Coordinates writes across tags, metadata, embeddings and both stores.

    Usage:
        coordinator = IngestionCoordinator(
            tag_registry=TagRegistry(store),
            metadata_lookup=YouTubeMetadataService(),
            embedding_service=FastEmbedService(),
            document_store=store,
            vector_index=index,
        )
        result = await coordinator.add_item(
            owner_id, "https://youtu.be/abc12345678", "video", "demo", ["x"]
        )
    """

    def __init__(
        self,
        tag_registry: TagRegistry,
        metadata_lookup: IMetadataLookup,
        embedding_service: IEmbeddingService,
        document_store: IDocumentStore,
        vector_index: IVectorIndex,
    ):
        self.tag_registry = tag_registry
        self.metadata_lookup = metadata_lookup
        self.embedding_service = embedding_service
        self.document_store = document_store
        self.vector_index = vector_index

    async def add_item(
        self,
        owner_id: str,
        link: str,
        kind: Union[str, ContentKind],
        title: str,
        tag_titles: Optional[Sequence[str]] = None,
    ) -> AddItemResult:
        """Save a new item and index it for search.

        Raises:
            InvalidInput: Bad kind, empty title or empty link.
            InvalidSource: Link has no recognizable video id.
            SourceNotFound: The source has no record of the video.
            EmbeddingUnavailable: Embedding failed. No item was written.
            StaleTag: Tags were swept concurrently twice in a row.
        """
        content_kind = parse_kind(kind)
        if not title or not title.strip():
            raise InvalidInput("Title is required.")
        if not link or not link.strip():
            raise InvalidInput("Link is required.")
        source_id = self.metadata_lookup.extract_source_id(link)

        titles = list(tag_titles or [])
        tag_ids = await self.tag_registry.resolve(titles)

        source = await self.metadata_lookup.lookup(source_id)
        if source is None:
            raise SourceNotFound()

        vector = await self._embed(build_embedding_text(title, source))

        fields = dict(owner_id=owner_id, link=link, kind=content_kind, title=title, source=source)
        try:
            item = await self.document_store.create_item(tag_ids=tag_ids, **fields)
        except StaleTag:
            # A concurrent delete swept one of our tags; resolve again once
            logger.warning("Tag swept during add for owner %s, re-resolving", owner_id)
            tag_ids = await self.tag_registry.resolve(titles)
            item = await self.document_store.create_item(tag_ids=tag_ids, **fields)
        logger.info("Saved item %s for owner %s", item.id, owner_id)

        return await self._sync_vector(item, vector)

    async def reindex_item(self, owner_id: str, item_id: str) -> AddItemResult:
        """Re-embed an existing item and re-sync its vector.

        Used to recover items left unindexed by a partial add.
        """
        item = await self.document_store.get_item(item_id)
        if item is None:
            raise NotFound("Content not found.")
        if item.owner_id != owner_id:
            raise Forbidden("Forbidden: cannot re-index content you do not own.")

        source = SourceMetadata(
            title=item.source_title,
            description=item.source_description,
            thumbnail_url=item.thumbnail_url,
        )
        vector = await self._embed(build_embedding_text(item.title, source))
        return await self._sync_vector(item, vector)

    async def _embed(self, text: str) -> list[float]:
        try:
            return await self.embedding_service.embed(text)
        except EmbeddingUnavailable:
            raise
        except Exception as e:
            logger.error(f"Embedding failed: {e}")
            raise EmbeddingUnavailable() from e

    async def _sync_vector(self, item: Item, vector: list[float]) -> AddItemResult:
        metadata = {
            "owner_id": item.owner_id,
            "link": item.link,
            "kind": item.kind.value,
            "title": item.title,
        }
        try:
            await self.vector_index.upsert(item.id, vector, metadata)
            await self.document_store.set_vector_ref(item.id, item.id)
        except Exception as e:
            logger.warning(f"Item {item.id} saved but vector sync failed: {e}")
            return AddItemResult(item=item, indexed=False, warning=NOT_INDEXED_WARNING)

        item.vector_ref = item.id
        return AddItemResult(item=item)
