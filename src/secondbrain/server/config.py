"""Server configuration."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import yaml

from ..services.retrieval import DEFAULT_MIN_SIMILARITY, DEFAULT_TOP_K


@dataclass
class EmbeddingConfig:
    """Embedding service configuration.

    Default: FastEmbed (local ONNX model, no API key).

    For OpenAI embeddings:
        provider: openai
        model: text-embedding-3-small
        dimensions: 1536
        api_key: <your-api-key>
    """
    provider: str = "fastembed"
    model: str = "sentence-transformers/all-MiniLM-L6-v2"
    api_key: Optional[str] = None
    api_base: Optional[str] = None
    dimensions: int = 384

    def __post_init__(self):
        if self.api_key is None:
            self.api_key = os.environ.get("OPENAI_API_KEY")
        if self.api_base is None:
            self.api_base = os.environ.get("SECOND_BRAIN_EMBEDDING_API_BASE")
        if self.provider not in ("fastembed", "openai"):
            raise ValueError(
                f"Invalid embedding provider: {self.provider}. "
                f"Valid options: 'fastembed', 'openai'"
            )
        if self.dimensions < 1:
            raise ValueError("dimensions must be >= 1")


@dataclass
class DatabaseConfig:
    """Storage configuration.

    ``path`` is the SQLite document store. ``vector_path`` is the LanceDB
    directory; ``vector_uri`` points at LanceDB Cloud instead.
    """
    path: str = "~/.second-brain/brain.db"
    vector_provider: str = "lancedb"  # "lancedb" | "memory"
    vector_path: str = "~/.second-brain/lancedb"
    vector_uri: Optional[str] = None

    def __post_init__(self):
        if self.path != ":memory:":
            self.path = str(Path(self.path).expanduser())
        self.vector_path = str(Path(self.vector_path).expanduser())
        if self.vector_provider not in ("lancedb", "memory"):
            raise ValueError(
                f"Invalid vector provider: {self.vector_provider}. "
                f"Valid options: 'lancedb', 'memory'"
            )


@dataclass
class YouTubeConfig:
    """YouTube Data API configuration for metadata lookups."""
    api_key: Optional[str] = None
    api_base: str = "https://www.googleapis.com/youtube/v3"
    timeout_seconds: float = 10.0

    def __post_init__(self):
        if self.api_key is None:
            self.api_key = os.environ.get("YOUTUBE_API_KEY")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")


@dataclass
class AuthConfig:
    """Bearer token verification. Tokens are issued elsewhere."""
    secret_key: Optional[str] = None
    algorithm: str = "HS256"

    def __post_init__(self):
        if self.secret_key is None:
            self.secret_key = os.environ.get("SECOND_BRAIN_SECRET_KEY")


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "127.0.0.1"
    port: int = 3000
    frontend_url: Optional[str] = None
    cors_origins: list[str] = field(default_factory=list)

    def __post_init__(self):
        if self.frontend_url is None:
            self.frontend_url = os.environ.get("FRONTEND_URL", "http://localhost:5173")


@dataclass
class SearchConfig:
    """Semantic search configuration.

    Settings may only tighten search: at most 5 candidates, and never a
    threshold below 0.4.
    """
    top_k: int = DEFAULT_TOP_K
    min_similarity: float = DEFAULT_MIN_SIMILARITY
    order_by_score: bool = True  # False keeps document-store order

    def __post_init__(self):
        if not 1 <= self.top_k <= DEFAULT_TOP_K:
            raise ValueError(f"top_k must be between 1 and {DEFAULT_TOP_K}")
        if not DEFAULT_MIN_SIMILARITY <= self.min_similarity <= 1.0:
            raise ValueError(f"min_similarity must be between {DEFAULT_MIN_SIMILARITY} and 1")


@dataclass
class SecondBrainConfig:
    """Full service configuration."""
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    youtube: YouTubeConfig = field(default_factory=YouTubeConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    search: SearchConfig = field(default_factory=SearchConfig)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SecondBrainConfig":
        """Load configuration from YAML file."""
        path = Path(path).expanduser()
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "SecondBrainConfig":
        """Create configuration from dictionary."""
        db_data = data.get("db", {})
        embedding_data = data.get("embedding", {})
        youtube_data = data.get("youtube", {})
        auth_data = data.get("auth", {})
        server_data = data.get("server", {})
        search_data = data.get("search", {})

        return cls(
            db=DatabaseConfig(**db_data) if db_data else DatabaseConfig(),
            embedding=EmbeddingConfig(**embedding_data) if embedding_data else EmbeddingConfig(),
            youtube=YouTubeConfig(**youtube_data) if youtube_data else YouTubeConfig(),
            auth=AuthConfig(**auth_data) if auth_data else AuthConfig(),
            server=ServerConfig(**server_data) if server_data else ServerConfig(),
            search=SearchConfig(**search_data) if search_data else SearchConfig(),
        )

    @classmethod
    def from_env(cls) -> "SecondBrainConfig":
        """Create configuration from environment variables."""
        config_path = os.environ.get(
            "SECOND_BRAIN_CONFIG",
            "~/.second-brain/config.yaml"
        )
        return cls.from_file(config_path)

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.embedding.provider == "openai":
            # api_key is only required for OpenAI proper (no custom api_base)
            api_base = (self.embedding.api_base or "").strip()
            is_local = (
                api_base != ""
                and "api.openai.com" not in api_base.lower()
            )
            if not self.embedding.api_key and not is_local:
                errors.append(
                    "embedding.api_key is required "
                    "(or set OPENAI_API_KEY)"
                )

        if not self.auth.secret_key:
            errors.append(
                "auth.secret_key is required "
                "(or set SECOND_BRAIN_SECRET_KEY)"
            )

        if not self.youtube.api_key:
            errors.append(
                "youtube.api_key is required "
                "(or set YOUTUBE_API_KEY)"
            )

        return errors
