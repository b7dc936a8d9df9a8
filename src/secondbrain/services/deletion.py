"""Deletion coordinator: removes an item from both stores and sweeps its tags."""

import logging

from ..errors import Forbidden, NotFound
from ..interfaces import IDocumentStore, IVectorIndex
from .tag_registry import TagRegistry

logger = logging.getLogger(__name__)


class DeletionCoordinator:
    """Delete items owner-checked, vector first, document last.

    The vector delete is best effort. If it fails the document is still
    removed; a stale vector only costs a wasted slot in search results,
    since retrieval joins matches back through the document store.
    """

    def __init__(
        self,
        tag_registry: TagRegistry,
        document_store: IDocumentStore,
        vector_index: IVectorIndex,
    ):
        self.tag_registry = tag_registry
        self.document_store = document_store
        self.vector_index = vector_index

    async def delete_item(self, owner_id: str, item_id: str) -> None:
        """Delete an item owned by ``owner_id``.

        Raises:
            NotFound: No such item.
            Forbidden: The item belongs to someone else. Nothing is changed.
        """
        item = await self.document_store.get_item(item_id)
        if item is None:
            raise NotFound("Content not found.")
        if item.owner_id != owner_id:
            raise Forbidden("Forbidden: cannot delete content you do not own.")

        if item.vector_ref:
            try:
                await self.vector_index.delete(item.vector_ref)
            except Exception as e:
                logger.error(f"Failed to delete vector {item.vector_ref}, continuing: {e}")

        await self.tag_registry.sweep_unused(item.tag_ids, excluding_item=item.id)
        await self.document_store.delete_item(item.id)
        logger.info("Deleted item %s for owner %s", item.id, owner_id)
