"""Vector index implementations.

Provides both LanceDB (persistent) and in-memory indexes. Vectors are
keyed by the owning item's id, which is the join key back into the
document store.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Optional, Union

from ..errors import StoreUnavailable
from ..interfaces import IVectorIndex, VectorMatch
from ..utils import cosine_similarity

logger = logging.getLogger(__name__)

# Metadata fields kept next to each vector (for index-side debugging only)
METADATA_FIELDS = ("owner_id", "link", "kind", "title")


def _sanitize_id(vector_id: str) -> str:
    """Sanitize an id before interpolating it into a LanceDB filter.

    Ids should only contain alphanumeric characters and hyphens.
    """
    if not re.match(r'^[a-zA-Z0-9\-]+$', vector_id):
        raise ValueError(f"Invalid vector id format: {vector_id[:20]}...")
    return vector_id


class LanceDBVectorIndex(IVectorIndex):
    """LanceDB-backed vector index for persistent storage.

    Supports both local file storage and LanceDB Cloud. Similarity is
    cosine (``1 - cosine distance``).
    """

    TABLE_NAME = "item_vectors"

    def __init__(
        self,
        dimensions: int,
        db_path: Optional[Union[str, Path]] = None,
        db_uri: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        self.dimensions = dimensions
        self.db_path = Path(db_path).expanduser() if db_path else None
        self.db_uri = db_uri
        self.api_key = api_key

        self._db = None
        self._table = None
        self._init_lock = asyncio.Lock()

    async def _ensure_initialized(self):
        """Lazily open (or create) the vector table."""
        if self._table is not None:
            return

        async with self._init_lock:
            if self._table is not None:
                return
            try:
                self._table = await asyncio.to_thread(self._open_table)
            except Exception as e:
                logger.error("LanceDB initialization failed: %s", e)
                raise StoreUnavailable() from e

    def _open_table(self):
        import lancedb

        if self.db_uri:
            self._db = lancedb.connect(self.db_uri, api_key=self.api_key)
        elif self.db_path:
            self.db_path.mkdir(parents=True, exist_ok=True)
            self._db = lancedb.connect(str(self.db_path))
        else:
            raise ValueError("Either db_path or db_uri must be provided")

        return self._create_table()

    def _create_table(self):
        """Open the vectors table, creating it with the defined schema if missing."""
        import pyarrow as pa

        schema = pa.schema([
            pa.field("id", pa.string()),
            pa.field("vector", pa.list_(pa.float32(), self.dimensions)),
            pa.field("owner_id", pa.string()),
            pa.field("link", pa.string()),
            pa.field("kind", pa.string()),
            pa.field("title", pa.string()),
        ])

        return self._db.create_table(self.TABLE_NAME, schema=schema, exist_ok=True)

    async def upsert(self, vector_id: str, vector: list[float], metadata: dict) -> None:
        if len(vector) != self.dimensions:
            raise ValueError(
                f"Invalid embedding dimension: got {len(vector)}, expected {self.dimensions}"
            )
        await self._ensure_initialized()

        row = {"id": vector_id, "vector": vector}
        for key in METADATA_FIELDS:
            row[key] = str(metadata.get(key) or "")

        def _merge():
            (
                self._table.merge_insert("id")
                .when_matched_update_all()
                .when_not_matched_insert_all()
                .execute([row])
            )

        try:
            await asyncio.to_thread(_merge)
        except Exception as e:
            raise StoreUnavailable() from e

    async def query(self, vector: list[float], top_k: int) -> list[VectorMatch]:
        await self._ensure_initialized()

        def _search():
            return (
                self._table.search(vector)
                .distance_type("cosine")
                .select(["id"])
                .limit(top_k)
                .to_list()
            )

        try:
            rows = await asyncio.to_thread(_search)
        except Exception as e:
            raise StoreUnavailable() from e

        matches = [
            VectorMatch(id=row["id"], score=1.0 - row.get("_distance", 1.0))
            for row in rows
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def delete(self, vector_id: str) -> None:
        safe_id = _sanitize_id(vector_id)
        await self._ensure_initialized()

        try:
            await asyncio.to_thread(self._table.delete, f"id = '{safe_id}'")
        except Exception as e:
            raise StoreUnavailable() from e

    async def count(self) -> int:
        await self._ensure_initialized()
        try:
            return await asyncio.to_thread(self._table.count_rows)
        except Exception as e:
            raise StoreUnavailable() from e


class InMemoryVectorIndex(IVectorIndex):
    """Simple in-memory vector index for testing and single-process use."""

    def __init__(self, dimensions: Optional[int] = None):
        self.dimensions = dimensions
        self._vectors: dict[str, list[float]] = {}
        self._metadata: dict[str, dict] = {}

    async def upsert(self, vector_id: str, vector: list[float], metadata: dict) -> None:
        if self.dimensions is not None and len(vector) != self.dimensions:
            raise ValueError(
                f"Invalid embedding dimension: got {len(vector)}, expected {self.dimensions}"
            )
        self._vectors[vector_id] = list(vector)
        self._metadata[vector_id] = {k: metadata.get(k) for k in METADATA_FIELDS}

    async def query(self, vector: list[float], top_k: int) -> list[VectorMatch]:
        matches = [
            VectorMatch(id=vector_id, score=cosine_similarity(vector, stored))
            for vector_id, stored in self._vectors.items()
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def delete(self, vector_id: str) -> None:
        self._vectors.pop(vector_id, None)
        self._metadata.pop(vector_id, None)

    async def count(self) -> int:
        return len(self._vectors)

    def get_metadata(self, vector_id: str) -> Optional[dict]:
        return self._metadata.get(vector_id)

    def __contains__(self, vector_id: str) -> bool:
        return vector_id in self._vectors
