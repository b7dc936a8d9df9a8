"""Second Brain service implementations."""

from .document_store import SQLiteDocumentStore
from .embeddings import OpenAIEmbeddingService
from .fastembed_service import FastEmbedService
from .metadata import YouTubeMetadataService
from .vector_store import LanceDBVectorIndex, InMemoryVectorIndex
from .tag_registry import TagRegistry
from .brain import BrainService, create_brain_service

__all__ = [
    "SQLiteDocumentStore",
    "OpenAIEmbeddingService",
    "FastEmbedService",
    "YouTubeMetadataService",
    "LanceDBVectorIndex",
    "InMemoryVectorIndex",
    "TagRegistry",
    "BrainService",
    "create_brain_service",
]
