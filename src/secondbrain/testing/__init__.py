"""Testing utilities for Second Brain."""

from .mocks import (
    MockEmbeddingService,
    MockMetadataLookup,
    MockVectorIndex,
)
from .embedding_utils import hash_to_embedding

__all__ = [
    "MockEmbeddingService",
    "MockMetadataLookup",
    "MockVectorIndex",
    "hash_to_embedding",
]
