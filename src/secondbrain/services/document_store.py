"""SQLite document store.

Source of truth for owners, items and tags. Embeddings live in the vector
index, keyed by the item id; the item's ``vector_ref`` column records that
the vector has been written.

Schema:
- owners: (id, username UNIQUE, is_shared, created_at)
- items: (id, owner_id, link, kind, title, source_*, thumbnail_url,
  vector_ref, created_at)
- tags: (id, title UNIQUE)
- item_tags: (item_id, tag_id, position) - many-to-many

Connection management:
    One persistent connection in WAL mode, guarded by an RLock. Public
    methods are coroutines that run the blocking SQLite work in a worker
    thread, so the lock is never held across an await.
"""

import asyncio
import logging
import sqlite3
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..errors import InvalidInput, StaleTag, StoreUnavailable, TagConflict
from ..interfaces import (
    MAX_PAGE_SIZE,
    ContentKind,
    IDocumentStore,
    Item,
    ItemPage,
    Owner,
    SourceMetadata,
    Tag,
)

logger = logging.getLogger(__name__)

_ITEM_COLUMNS = (
    "id, owner_id, link, kind, title, source_title, source_description, "
    "thumbnail_url, vector_ref, created_at"
)


def clamp_page(page: int, page_size: int) -> tuple[int, int]:
    """Clamp paging arguments to ``page >= 1`` and ``1 <= page_size <= 8``."""
    return max(1, int(page)), max(1, min(MAX_PAGE_SIZE, int(page_size)))


class SQLiteDocumentStore(IDocumentStore):
    """SQLite-backed document store.

    Tag titles carry a UNIQUE constraint; a concurrent duplicate insert
    surfaces as ``TagConflict`` so the caller can re-read the winner.

    Lifecycle:
        with SQLiteDocumentStore(db_path) as store:
            ...
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file, or ``":memory:"``.
        """
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            path = Path(self.db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            self.db_path = str(path)

        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._init_schema()

    def _init_schema(self) -> None:
        with self._lock, self._conn:
            self._conn.executescript("""
                CREATE TABLE IF NOT EXISTS owners (
                    id TEXT PRIMARY KEY,
                    username TEXT NOT NULL UNIQUE,
                    is_shared INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS items (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    link TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    title TEXT NOT NULL,
                    source_title TEXT,
                    source_description TEXT,
                    thumbnail_url TEXT,
                    vector_ref TEXT,
                    created_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_items_owner ON items(owner_id);
                CREATE INDEX IF NOT EXISTS idx_items_vector_ref ON items(vector_ref);

                CREATE TABLE IF NOT EXISTS tags (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL UNIQUE
                );

                CREATE TABLE IF NOT EXISTS item_tags (
                    item_id TEXT NOT NULL REFERENCES items(id) ON DELETE CASCADE,
                    tag_id TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
                    position INTEGER NOT NULL,
                    PRIMARY KEY (item_id, tag_id)
                );
                CREATE INDEX IF NOT EXISTS idx_item_tags_tag ON item_tags(tag_id);
            """)

    def __enter__(self) -> "SQLiteDocumentStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        try:
            self._conn.close()
        except sqlite3.ProgrammingError:
            pass

    async def _run(self, fn, *args):
        """Run a blocking store operation in a worker thread."""
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as e:
            logger.error("Document store error in %s: %s", fn.__name__, e)
            raise StoreUnavailable() from e

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _hydrate(self, rows: list[sqlite3.Row]) -> list[Item]:
        """Build Items from item rows, attaching their tags in one query."""
        if not rows:
            return []

        ids = [row["id"] for row in rows]
        placeholders = ",".join("?" * len(ids))
        tag_rows = self._conn.execute(
            f"""
            SELECT it.item_id, t.id, t.title
            FROM item_tags it JOIN tags t ON t.id = it.tag_id
            WHERE it.item_id IN ({placeholders})
            ORDER BY it.position
            """,
            ids,
        ).fetchall()

        tags_by_item: dict[str, list[Tag]] = {}
        for tag_row in tag_rows:
            tags_by_item.setdefault(tag_row["item_id"], []).append(
                Tag(id=tag_row["id"], title=tag_row["title"])
            )

        return [
            Item(
                id=row["id"],
                owner_id=row["owner_id"],
                link=row["link"],
                kind=ContentKind(row["kind"]),
                title=row["title"],
                source_title=row["source_title"],
                source_description=row["source_description"],
                thumbnail_url=row["thumbnail_url"],
                tags=tags_by_item.get(row["id"], []),
                vector_ref=row["vector_ref"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    @staticmethod
    def _row_to_owner(row: sqlite3.Row) -> Owner:
        return Owner(id=row["id"], username=row["username"], is_shared=bool(row["is_shared"]))

    # ------------------------------------------------------------------
    # Owners
    # ------------------------------------------------------------------

    def _create_owner(self, username: str) -> Owner:
        owner = Owner(id=uuid.uuid4().hex, username=username)
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "INSERT INTO owners (id, username, is_shared, created_at) VALUES (?, ?, 0, ?)",
                    (owner.id, username, datetime.utcnow().isoformat()),
                )
        except sqlite3.IntegrityError as e:
            raise InvalidInput(f"Owner already exists: {username}") from e
        return owner

    async def create_owner(self, username: str) -> Owner:
        return await self._run(self._create_owner, username)

    def _get_owner(self, owner_id: str) -> Optional[Owner]:
        with self._lock:
            row = self._conn.execute(
                "SELECT id, username, is_shared FROM owners WHERE id = ?", (owner_id,)
            ).fetchone()
        return self._row_to_owner(row) if row else None

    async def get_owner(self, owner_id: str) -> Optional[Owner]:
        return await self._run(self._get_owner, owner_id)

    def _set_owner_shared(self, owner_id: str, shared: bool) -> bool:
        with self._lock, self._conn:
            cursor = self._conn.execute(
                "UPDATE owners SET is_shared = ? WHERE id = ?", (int(shared), owner_id)
            )
        return cursor.rowcount > 0

    async def set_owner_shared(self, owner_id: str, shared: bool) -> bool:
        return await self._run(self._set_owner_shared, owner_id, shared)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def _create_item(
        self,
        owner_id: str,
        link: str,
        kind: ContentKind,
        title: str,
        tag_ids: list[str],
        source: Optional[SourceMetadata],
    ) -> Item:
        source = source or SourceMetadata()
        item_id = uuid.uuid4().hex
        # Order irrelevant, but no duplicates
        unique_tag_ids = list(dict.fromkeys(tag_ids))

        try:
            with self._lock, self._conn:
                self._conn.execute(
                    f"INSERT INTO items ({_ITEM_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, NULL, ?)",
                    (
                        item_id,
                        owner_id,
                        link,
                        ContentKind(kind).value,
                        title,
                        source.title,
                        source.description,
                        source.thumbnail_url,
                        datetime.utcnow().isoformat(),
                    ),
                )
                self._conn.executemany(
                    "INSERT INTO item_tags (item_id, tag_id, position) VALUES (?, ?, ?)",
                    [(item_id, tag_id, pos) for pos, tag_id in enumerate(unique_tag_ids)],
                )
                row = self._conn.execute(
                    f"SELECT {_ITEM_COLUMNS} FROM items WHERE id = ?", (item_id,)
                ).fetchone()
                return self._hydrate([row])[0]
        except sqlite3.IntegrityError as e:
            # item ids are fresh, so the only possible violation is a tag FK
            raise StaleTag() from e

    async def create_item(
        self,
        owner_id: str,
        link: str,
        kind: ContentKind,
        title: str,
        tag_ids: list[str],
        source: Optional[SourceMetadata] = None,
    ) -> Item:
        return await self._run(self._create_item, owner_id, link, kind, title, tag_ids, source)

    def _get_item(self, item_id: str) -> Optional[Item]:
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM items WHERE id = ?", (item_id,)
            ).fetchone()
            return self._hydrate([row])[0] if row else None

    async def get_item(self, item_id: str) -> Optional[Item]:
        return await self._run(self._get_item, item_id)

    def _list_items(self, owner_id: str, page: int, page_size: int) -> ItemPage:
        page, page_size = clamp_page(page, page_size)
        offset = (page - 1) * page_size
        with self._lock:
            total = self._conn.execute(
                "SELECT COUNT(*) FROM items WHERE owner_id = ?", (owner_id,)
            ).fetchone()[0]
            if offset >= total:
                # Past the end. Huge offsets would overflow SQLite INTEGER.
                return ItemPage(items=[], total=total, page=page, page_size=page_size)
            rows = self._conn.execute(
                f"""
                SELECT {_ITEM_COLUMNS} FROM items
                WHERE owner_id = ?
                ORDER BY rowid DESC
                LIMIT ? OFFSET ?
                """,
                (owner_id, page_size, offset),
            ).fetchall()
            items = self._hydrate(rows)
        return ItemPage(items=items, total=total, page=page, page_size=page_size)

    async def list_items(self, owner_id: str, page: int = 1, page_size: int = MAX_PAGE_SIZE) -> ItemPage:
        return await self._run(self._list_items, owner_id, page, page_size)

    def _list_all_items(self, owner_id: str) -> list[Item]:
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM items WHERE owner_id = ? ORDER BY rowid DESC",
                (owner_id,),
            ).fetchall()
            return self._hydrate(rows)

    async def list_all_items(self, owner_id: str) -> list[Item]:
        return await self._run(self._list_all_items, owner_id)

    def _list_items_by_tag(self, owner_id: str, tag_id: str) -> list[Item]:
        with self._lock:
            rows = self._conn.execute(
                f"""
                SELECT {_ITEM_COLUMNS} FROM items
                WHERE owner_id = ?
                  AND id IN (SELECT item_id FROM item_tags WHERE tag_id = ?)
                ORDER BY rowid DESC
                """,
                (owner_id, tag_id),
            ).fetchall()
            return self._hydrate(rows)

    async def list_items_by_tag(self, owner_id: str, tag_id: str) -> list[Item]:
        return await self._run(self._list_items_by_tag, owner_id, tag_id)

    def _find_by_vector_refs(self, vector_refs: list[str], owner_id: str) -> list[Item]:
        if not vector_refs:
            return []
        placeholders = ",".join("?" * len(vector_refs))
        with self._lock:
            rows = self._conn.execute(
                f"""
                SELECT {_ITEM_COLUMNS} FROM items
                WHERE vector_ref IN ({placeholders}) AND owner_id = ?
                ORDER BY rowid DESC
                """,
                (*vector_refs, owner_id),
            ).fetchall()
            return self._hydrate(rows)

    async def find_by_vector_refs(self, vector_refs: set[str], owner_id: str) -> list[Item]:
        return await self._run(self._find_by_vector_refs, sorted(vector_refs), owner_id)

    def _set_vector_ref(self, item_id: str, vector_ref: Optional[str]) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE items SET vector_ref = ? WHERE id = ?", (vector_ref, item_id)
            )

    async def set_vector_ref(self, item_id: str, vector_ref: Optional[str]) -> None:
        await self._run(self._set_vector_ref, item_id, vector_ref)

    def _delete_item(self, item_id: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM items WHERE id = ?", (item_id,))

    async def delete_item(self, item_id: str) -> None:
        await self._run(self._delete_item, item_id)

    def _count_items(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]

    async def count_items(self) -> int:
        return await self._run(self._count_items)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def _get_tag_by_title(self, title: str) -> Optional[Tag]:
        with self._lock:
            row = self._conn.execute(
                "SELECT id, title FROM tags WHERE title = ?", (title,)
            ).fetchone()
        return Tag(id=row["id"], title=row["title"]) if row else None

    async def get_tag_by_title(self, title: str) -> Optional[Tag]:
        return await self._run(self._get_tag_by_title, title)

    def _create_tag(self, title: str) -> Tag:
        tag = Tag(id=uuid.uuid4().hex, title=title)
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "INSERT INTO tags (id, title) VALUES (?, ?)", (tag.id, tag.title)
                )
        except sqlite3.IntegrityError as e:
            raise TagConflict(title) from e
        return tag

    async def create_tag(self, title: str) -> Tag:
        return await self._run(self._create_tag, title)

    def _delete_tag_if_unused(self, tag_id: str, excluding_item: Optional[str]) -> bool:
        # Reference check and delete must stay one statement
        with self._lock, self._conn:
            cursor = self._conn.execute(
                """
                DELETE FROM tags
                WHERE id = ?
                  AND NOT EXISTS (
                      SELECT 1 FROM item_tags WHERE tag_id = ? AND item_id IS NOT ?
                  )
                """,
                (tag_id, tag_id, excluding_item),
            )
        return cursor.rowcount > 0

    async def delete_tag_if_unused(self, tag_id: str, excluding_item: Optional[str] = None) -> bool:
        return await self._run(self._delete_tag_if_unused, tag_id, excluding_item)

    def _items_referencing_tag(self, tag_id: str, excluding_item: Optional[str]) -> bool:
        with self._lock:
            row = self._conn.execute(
                """
                SELECT 1 FROM item_tags
                WHERE tag_id = ? AND item_id IS NOT ?
                LIMIT 1
                """,
                (tag_id, excluding_item),
            ).fetchone()
        return row is not None

    async def items_referencing_tag(self, tag_id: str, excluding_item: Optional[str] = None) -> bool:
        return await self._run(self._items_referencing_tag, tag_id, excluding_item)

    def _list_distinct_tags_for_owner(self, owner_id: str) -> list[Tag]:
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT DISTINCT t.id, t.title
                FROM tags t
                JOIN item_tags it ON it.tag_id = t.id
                JOIN items i ON i.id = it.item_id
                WHERE i.owner_id = ?
                ORDER BY t.title
                """,
                (owner_id,),
            ).fetchall()
        return [Tag(id=row["id"], title=row["title"]) for row in rows]

    async def list_distinct_tags_for_owner(self, owner_id: str) -> list[Tag]:
        return await self._run(self._list_distinct_tags_for_owner, owner_id)
