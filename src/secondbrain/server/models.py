"""Pydantic models for HTTP API request/response."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, StrictBool

from ..interfaces import ContentKind


# =============================================================================
# Request Models
# =============================================================================

class AddContentRequest(BaseModel):
    """Request to save a new item."""
    link: str = Field(..., description="YouTube link to save")
    type: ContentKind = Field(..., description="Content kind")
    title: str = Field(..., description="User-supplied title")
    tags: list[str] = Field(
        default_factory=list,
        description="Tag titles, matched exactly (case-sensitive)"
    )


class DeleteContentRequest(BaseModel):
    """Request to delete an item."""
    content_id: str = Field(..., description="Id of the item to delete")


class ShareRequest(BaseModel):
    """Request to toggle public sharing."""
    share: StrictBool = Field(..., description="True to enable sharing, False to revoke")


# =============================================================================
# Response Models
# =============================================================================

class TagResponse(BaseModel):
    """A tag as (id, title)."""
    id: str
    title: str


class ItemResponse(BaseModel):
    """A saved item with its tags."""
    id: str
    link: str
    type: ContentKind
    title: str
    source_title: Optional[str] = None
    source_description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    tags: list[TagResponse] = Field(default_factory=list)
    indexed: bool = Field(description="Whether the item is searchable")
    created_at: datetime


class AddContentResponse(BaseModel):
    """Response from saving an item (or re-indexing it)."""
    status: str = Field(description="'created' or 'partial_success'")
    message: str
    content: ItemResponse
    warning: Optional[str] = None


class ContentListResponse(BaseModel):
    """One page of items plus the pagination envelope."""
    content: list[ItemResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class ItemsResponse(BaseModel):
    """An unpaginated list of items."""
    content: list[ItemResponse]


class SearchResultResponse(BaseModel):
    """A single search hit with its score."""
    content: ItemResponse
    similarity_score: float


class SearchResponse(BaseModel):
    """Results of a semantic search."""
    query: str
    results: list[SearchResultResponse]


class TagsResponse(BaseModel):
    """Distinct tags across the owner's items."""
    tags: list[TagResponse]


class ShareResponse(BaseModel):
    """Response from toggling sharing."""
    share: bool
    link: Optional[str] = None
    message: str


class SharedItemResponse(BaseModel):
    """An item as the public sees it: tag titles only."""
    id: str
    link: str
    type: ContentKind
    title: str
    source_title: Optional[str] = None
    source_description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class SharedViewResponse(BaseModel):
    """Public view of a shared collection."""
    username: str
    content: list[SharedItemResponse]


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    message: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    item_count: int
    vector_count: Optional[int] = None
    version: str = "0.1.0"


class ErrorResponse(BaseModel):
    """Error response."""
    message: str
