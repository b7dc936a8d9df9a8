"""API route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..interfaces import MAX_PAGE_SIZE, AddItemResult, Item, SharedItem
from ..services import BrainService
from .auth import AuthenticatedOwner, get_current_owner
from .models import (
    AddContentRequest,
    AddContentResponse,
    ContentListResponse,
    DeleteContentRequest,
    ErrorResponse,
    HealthResponse,
    ItemResponse,
    ItemsResponse,
    MessageResponse,
    SearchResponse,
    SearchResultResponse,
    ShareRequest,
    ShareResponse,
    SharedItemResponse,
    SharedViewResponse,
    TagResponse,
    TagsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1",
    tags=["brain"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


def get_brain_service() -> BrainService:
    """Dependency injection for the brain service.

    This is set by the app during startup.
    """
    from .app import _brain_service
    if _brain_service is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return _brain_service


def _item_to_response(item: Item) -> ItemResponse:
    """Convert internal Item to API response."""
    return ItemResponse(
        id=item.id,
        link=item.link,
        type=item.kind,
        title=item.title,
        source_title=item.source_title,
        source_description=item.source_description,
        thumbnail_url=item.thumbnail_url,
        tags=[TagResponse(id=t.id, title=t.title) for t in item.tags],
        indexed=item.vector_ref is not None,
        created_at=item.created_at,
    )


def _shared_item_to_response(item: SharedItem) -> SharedItemResponse:
    return SharedItemResponse(
        id=item.id,
        link=item.link,
        type=item.kind,
        title=item.title,
        source_title=item.source_title,
        source_description=item.source_description,
        thumbnail_url=item.thumbnail_url,
        tags=item.tags,
    )


def _result_to_response(result: AddItemResult, message: str) -> AddContentResponse:
    return AddContentResponse(
        status="partial_success" if result.partial else "created",
        message=message,
        content=_item_to_response(result.item),
        warning=result.warning,
    )


@router.post("/content", response_model=AddContentResponse, status_code=status.HTTP_201_CREATED)
async def add_content(
    request: AddContentRequest,
    owner: AuthenticatedOwner = Depends(get_current_owner),
    service: BrainService = Depends(get_brain_service),
) -> AddContentResponse:
    """Save a new item and index it for search."""
    result = await service.add_item(
        owner_id=owner.owner_id,
        link=request.link,
        kind=request.type,
        title=request.title,
        tag_titles=request.tags,
    )
    return _result_to_response(result, "Content added successfully.")


@router.get("/content", response_model=ContentListResponse)
async def list_content(
    page: int = 1,
    limit: int = MAX_PAGE_SIZE,
    owner: AuthenticatedOwner = Depends(get_current_owner),
    service: BrainService = Depends(get_brain_service),
) -> ContentListResponse:
    """List the caller's items, most recent first. Out-of-range paging is clamped."""
    item_page = await service.list_items(owner.owner_id, page=page, page_size=limit)
    return ContentListResponse(
        content=[_item_to_response(i) for i in item_page.items],
        total=item_page.total,
        page=item_page.page,
        page_size=item_page.page_size,
        total_pages=item_page.total_pages,
        has_next_page=item_page.has_next_page,
        has_prev_page=item_page.has_prev_page,
    )


@router.get("/content/tag/{tag_id}", response_model=ItemsResponse)
async def list_content_by_tag(
    tag_id: str,
    owner: AuthenticatedOwner = Depends(get_current_owner),
    service: BrainService = Depends(get_brain_service),
) -> ItemsResponse:
    """List the caller's items carrying a tag."""
    items = await service.list_items_by_tag(owner.owner_id, tag_id)
    return ItemsResponse(content=[_item_to_response(i) for i in items])


@router.get("/content/{content_id}", response_model=ItemResponse)
async def get_content(
    content_id: str,
    owner: AuthenticatedOwner = Depends(get_current_owner),
    service: BrainService = Depends(get_brain_service),
) -> ItemResponse:
    """Get one of the caller's items."""
    item = await service.get_item(owner.owner_id, content_id)
    return _item_to_response(item)


@router.post("/content/{content_id}/reindex", response_model=AddContentResponse)
async def reindex_content(
    content_id: str,
    owner: AuthenticatedOwner = Depends(get_current_owner),
    service: BrainService = Depends(get_brain_service),
) -> AddContentResponse:
    """Re-embed an item and re-sync its vector."""
    result = await service.reindex_item(owner.owner_id, content_id)
    return _result_to_response(result, "Content re-indexed.")


@router.delete("/content", response_model=MessageResponse)
async def delete_content(
    request: DeleteContentRequest,
    owner: AuthenticatedOwner = Depends(get_current_owner),
    service: BrainService = Depends(get_brain_service),
) -> MessageResponse:
    """Delete one of the caller's items."""
    await service.delete_item(owner.owner_id, request.content_id)
    return MessageResponse(message="Content deleted successfully.")


@router.get("/search", response_model=SearchResponse)
async def search(
    q: str = "",
    owner: AuthenticatedOwner = Depends(get_current_owner),
    service: BrainService = Depends(get_brain_service),
) -> SearchResponse:
    """Semantic search over the caller's items."""
    results = await service.search(owner.owner_id, q)
    return SearchResponse(
        query=q,
        results=[
            SearchResultResponse(
                content=_item_to_response(r.item),
                similarity_score=r.similarity_score,
            )
            for r in results
        ],
    )


@router.get("/tags", response_model=TagsResponse)
async def list_tags(
    owner: AuthenticatedOwner = Depends(get_current_owner),
    service: BrainService = Depends(get_brain_service),
) -> TagsResponse:
    """Distinct tags across the caller's items."""
    tags = await service.list_tags(owner.owner_id)
    return TagsResponse(tags=[TagResponse(id=t.id, title=t.title) for t in tags])


@router.post("/brain/share", response_model=ShareResponse)
async def share_brain(
    request: ShareRequest,
    owner: AuthenticatedOwner = Depends(get_current_owner),
    service: BrainService = Depends(get_brain_service),
) -> ShareResponse:
    """Enable or revoke the public view of the caller's collection."""
    link = await service.set_shared(owner.owner_id, request.share)
    if request.share:
        return ShareResponse(share=True, link=link, message="Sharing enabled.")
    return ShareResponse(share=False, message="Sharing disabled.")


@router.get("/brain/share/{share_id}", response_model=SharedViewResponse)
async def get_shared_brain(
    share_id: str,
    service: BrainService = Depends(get_brain_service),
) -> SharedViewResponse:
    """Public read-only view of a shared collection. No authentication."""
    view = await service.get_shared_view(share_id)
    return SharedViewResponse(
        username=view.username,
        content=[_shared_item_to_response(i) for i in view.items],
    )


@router.get("/health", response_model=HealthResponse)
async def health(
    service: BrainService = Depends(get_brain_service),
) -> HealthResponse:
    """Health check endpoint."""
    try:
        stats = await service.get_stats()
        return HealthResponse(
            status="ok",
            item_count=stats["items"],
            vector_count=stats["vectors"],
        )
    except Exception:
        logger.exception("Health check failed")
        return HealthResponse(status="degraded", item_count=0)
