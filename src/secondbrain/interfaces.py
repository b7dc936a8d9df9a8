"""Core types and interfaces for Second Brain.

An Item lives in two stores at once: a structured record in the document
store and an embedding in the vector index, joined by the item id. The
interfaces below are the contracts both sides (and their test doubles)
must satisfy.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

# Platform-fixed maximum page size for item listings
MAX_PAGE_SIZE = 8


class ContentKind(str, Enum):
    """Kind of media an item points to."""
    IMAGE = "image"
    VIDEO = "video"
    ARTICLE = "article"
    AUDIO = "audio"


@dataclass
class Tag:
    """A named label. Titles are unique and matched case-sensitively."""
    id: str
    title: str


@dataclass
class Owner:
    """The account that created and controls a set of items."""
    id: str
    username: str
    is_shared: bool = False


@dataclass
class SourceMetadata:
    """Metadata fetched from the external source for a link."""
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None


@dataclass
class Item:
    """A saved content reference.

    Attributes:
        id: Store-assigned identifier. Also the vector id in the index.
        owner_id: Owning account.
        link: Source link as supplied by the owner.
        kind: Content kind.
        title: User-supplied title.
        source_title: Title fetched from the source (None if unavailable).
        source_description: Description fetched from the source.
        thumbnail_url: Thumbnail fetched from the source.
        tags: Tags attached to the item, no duplicates.
        vector_ref: Id of the item's vector in the index. Set only after
            the vector upsert succeeded.
        created_at: Creation time.
    """
    id: str
    owner_id: str
    link: str
    kind: ContentKind
    title: str
    source_title: Optional[str] = None
    source_description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    tags: list[Tag] = field(default_factory=list)
    vector_ref: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def tag_ids(self) -> list[str]:
        return [t.id for t in self.tags]

    @property
    def tag_titles(self) -> list[str]:
        return [t.title for t in self.tags]

    def __repr__(self) -> str:
        return f"Item(id={self.id[:8]}..., title='{self.title}', kind={self.kind.value})"


@dataclass
class ItemPage:
    """One page of an owner's items, most recent first."""
    items: list[Item]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.page_size)

    @property
    def has_next_page(self) -> bool:
        return self.page * self.page_size < self.total

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1


@dataclass
class VectorMatch:
    """A single hit from the vector index."""
    id: str
    score: float


@dataclass
class SearchResult:
    """An owner-scoped search hit with its similarity score."""
    item: Item
    similarity_score: float

    def __repr__(self) -> str:
        return f"SearchResult(score={self.similarity_score:.3f}, item_id={self.item.id[:8]}...)"


@dataclass
class AddItemResult:
    """Outcome of ingesting (or re-indexing) an item.

    The item is committed once the document write succeeds. ``indexed`` is
    False when the vector sync failed afterwards: the item is listed but
    not searchable until re-indexed.
    """
    item: Item
    indexed: bool = True
    warning: Optional[str] = None

    @property
    def partial(self) -> bool:
        return not self.indexed


@dataclass
class SharedItem:
    """Public projection of an item: tag titles only, no owner or vector ids."""
    id: str
    kind: ContentKind
    link: str
    title: str
    source_title: Optional[str]
    source_description: Optional[str]
    thumbnail_url: Optional[str]
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_item(cls, item: Item) -> "SharedItem":
        return cls(
            id=item.id,
            kind=item.kind,
            link=item.link,
            title=item.title,
            source_title=item.source_title,
            source_description=item.source_description,
            thumbnail_url=item.thumbnail_url,
            tags=item.tag_titles,
        )


@dataclass
class SharedView:
    """What the public sees of a shared owner."""
    username: str
    items: list[SharedItem]


class IEmbeddingService(ABC):
    """Interface for embedding generation."""

    dimensions: int

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Generate embedding for text."""
        pass

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts."""
        pass


class IVectorIndex(ABC):
    """Interface for the similarity index.

    All operations address one logical namespace. Tenant isolation is the
    document store's job, not the index's.
    """

    @abstractmethod
    async def upsert(self, vector_id: str, vector: list[float], metadata: dict) -> None:
        """Insert or replace the vector stored under ``vector_id``."""
        pass

    @abstractmethod
    async def query(self, vector: list[float], top_k: int) -> list[VectorMatch]:
        """Return at most ``top_k`` matches, highest similarity first."""
        pass

    @abstractmethod
    async def delete(self, vector_id: str) -> None:
        """Delete a vector. Deleting an unknown id is not an error."""
        pass

    async def count(self) -> int:
        """Number of vectors stored."""
        raise NotImplementedError


class IDocumentStore(ABC):
    """Interface for structured records: owners, items and tags."""

    # Owners

    @abstractmethod
    async def create_owner(self, username: str) -> Owner:
        pass

    @abstractmethod
    async def get_owner(self, owner_id: str) -> Optional[Owner]:
        pass

    @abstractmethod
    async def set_owner_shared(self, owner_id: str, shared: bool) -> bool:
        """Set the shared flag. Returns False if the owner does not exist."""
        pass

    # Items

    @abstractmethod
    async def create_item(
        self,
        owner_id: str,
        link: str,
        kind: ContentKind,
        title: str,
        tag_ids: list[str],
        source: Optional[SourceMetadata] = None,
    ) -> Item:
        """Persist a new item without a vector reference."""
        pass

    @abstractmethod
    async def get_item(self, item_id: str) -> Optional[Item]:
        pass

    @abstractmethod
    async def list_items(self, owner_id: str, page: int = 1, page_size: int = MAX_PAGE_SIZE) -> ItemPage:
        pass

    @abstractmethod
    async def list_all_items(self, owner_id: str) -> list[Item]:
        pass

    @abstractmethod
    async def list_items_by_tag(self, owner_id: str, tag_id: str) -> list[Item]:
        pass

    @abstractmethod
    async def find_by_vector_refs(self, vector_refs: set[str], owner_id: str) -> list[Item]:
        pass

    @abstractmethod
    async def set_vector_ref(self, item_id: str, vector_ref: Optional[str]) -> None:
        pass

    @abstractmethod
    async def delete_item(self, item_id: str) -> None:
        pass

    @abstractmethod
    async def count_items(self) -> int:
        pass

    # Tags

    @abstractmethod
    async def get_tag_by_title(self, title: str) -> Optional[Tag]:
        pass

    @abstractmethod
    async def create_tag(self, title: str) -> Tag:
        """Create a tag. Raises TagConflict if the title already exists."""
        pass

    @abstractmethod
    async def delete_tag_if_unused(self, tag_id: str, excluding_item: Optional[str] = None) -> bool:
        """Atomically delete a tag no item but ``excluding_item`` references.

        Returns:
            True if the tag was deleted.
        """
        pass

    @abstractmethod
    async def items_referencing_tag(self, tag_id: str, excluding_item: Optional[str] = None) -> bool:
        pass

    @abstractmethod
    async def list_distinct_tags_for_owner(self, owner_id: str) -> list[Tag]:
        pass


class IMetadataLookup(ABC):
    """Interface for the external source metadata collaborator."""

    @abstractmethod
    def extract_source_id(self, link: str) -> str:
        """Extract the source identifier from a link or raise InvalidSource."""
        pass

    @abstractmethod
    async def lookup(self, source_id: str) -> Optional[SourceMetadata]:
        """Fetch metadata for a source id, or None when nothing matches."""
        pass
