"""Pytest fixtures for Second Brain tests."""

import pytest

from secondbrain.services import BrainService, SQLiteDocumentStore, TagRegistry
from secondbrain.testing import (
    MockEmbeddingService,
    MockMetadataLookup,
    MockVectorIndex,
)


@pytest.fixture
def document_store():
    """Provide an in-memory SQLite document store."""
    store = SQLiteDocumentStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def embedding_service():
    """Provide a mock embedding service."""
    return MockEmbeddingService()


@pytest.fixture
def vector_index(embedding_service):
    """Provide an in-memory vector index with failure switches."""
    return MockVectorIndex(dimensions=embedding_service.dimensions)


@pytest.fixture
def metadata_lookup():
    """Provide a metadata provider that knows every video as 'Demo Video'."""
    return MockMetadataLookup()


@pytest.fixture
def tag_registry(document_store):
    return TagRegistry(document_store)


@pytest.fixture
def brain_service(document_store, vector_index, embedding_service, metadata_lookup):
    """Provide a fully wired brain service over mock collaborators."""
    return BrainService(
        document_store=document_store,
        vector_index=vector_index,
        embedding_service=embedding_service,
        metadata_lookup=metadata_lookup,
        frontend_url="https://brain.example.com",
    )
