"""Tag registry: resolves tag titles to ids and garbage-collects unused tags.

Tags are created eagerly the first time a title is seen and reconciled
lazily: a tag is only checked for remaining references when an item that
carried it is deleted.
"""

import logging
from typing import Optional, Sequence

from ..errors import StoreUnavailable, TagConflict
from ..interfaces import IDocumentStore

logger = logging.getLogger(__name__)


class TagRegistry:
    """Resolve and sweep tags against the document store.

    Two requests introducing the same new title can race. The store's
    unique-title constraint picks a winner; the loser re-reads once and
    uses the winning record. No in-process lock is involved, since the
    racing requests may live in different processes.
    """

    def __init__(self, document_store: IDocumentStore):
        self.document_store = document_store

    async def resolve(self, titles: Sequence[str]) -> list[str]:
        """Resolve titles to tag ids, creating tags on first use.

        Args:
            titles: Tag titles, matched exactly (case-sensitive).

        Returns:
            One tag id per input title, in input order.
        """
        tag_ids: list[str] = []
        for title in titles:
            tag_ids.append(await self._resolve_one(title))
        return tag_ids

    async def _resolve_one(self, title: str) -> str:
        tag = await self.document_store.get_tag_by_title(title)
        if tag is not None:
            return tag.id

        try:
            tag = await self.document_store.create_tag(title)
            return tag.id
        except TagConflict:
            logger.warning("Tag %r created concurrently, re-reading winner", title)

        tag = await self.document_store.get_tag_by_title(title)
        if tag is None:
            # Winner vanished between conflict and re-read (swept already)
            raise StoreUnavailable(f"Could not resolve tag {title!r}")
        return tag.id

    async def sweep_unused(
        self,
        tag_ids: Sequence[str],
        excluding_item: Optional[str] = None,
    ) -> list[str]:
        """Delete tags no longer referenced by any item but ``excluding_item``.

        Safe to call with tags that were already deleted. The reference
        check and the delete are a single store operation, so a tag picked
        up by a concurrent add is never stripped from that item.

        Returns:
            Ids of the tags that were deleted by this call.
        """
        deleted: list[str] = []
        for tag_id in tag_ids:
            if await self.document_store.delete_tag_if_unused(tag_id, excluding_item=excluding_item):
                deleted.append(tag_id)
        if deleted:
            logger.info("Swept %d unused tag(s)", len(deleted))
        return deleted
