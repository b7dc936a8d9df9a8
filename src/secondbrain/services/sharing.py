"""Public sharing of an owner's whole collection."""

import logging
from typing import Optional

from ..errors import InvalidInput, NotFound
from ..interfaces import IDocumentStore, SharedItem, SharedView

logger = logging.getLogger(__name__)


class SharingService:
    """Toggle sharing and serve the public read-only view.

    The share id is the owner id. Revoking sharing hides the view; turning
    it back on yields the same link.
    """

    def __init__(self, document_store: IDocumentStore, frontend_url: str = ""):
        self.document_store = document_store
        self.frontend_url = frontend_url

    def share_link(self, owner_id: str) -> str:
        base = (self.frontend_url or "").rstrip("/")
        return f"{base}/shared-brain/{owner_id}"

    async def set_shared(self, owner_id: str, shared: bool) -> Optional[str]:
        """Enable or disable sharing.

        Returns:
            The share link when enabling, None when disabling.
        """
        if not isinstance(shared, bool):
            raise InvalidInput("Field 'share' must be a boolean.")
        updated = await self.document_store.set_owner_shared(owner_id, shared)
        if not updated:
            raise NotFound("User not found.")
        logger.info("Sharing %s for owner %s", "enabled" if shared else "disabled", owner_id)
        return self.share_link(owner_id) if shared else None

    async def get_shared_view(self, share_id: str) -> SharedView:
        owner = await self.document_store.get_owner(share_id)
        if owner is None or not owner.is_shared:
            raise NotFound("Shared brain not found or sharing is disabled.")
        items = await self.document_store.list_all_items(owner.id)
        return SharedView(
            username=owner.username,
            items=[SharedItem.from_item(item) for item in items],
        )
