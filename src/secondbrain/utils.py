"""Shared utility functions for Second Brain.

This module provides common functions used across multiple components
to prevent code duplication and ensure consistency.
"""

import math
import re

from .errors import InvalidSource

# youtube.com/...?v=ID, youtube.com/...&v=ID and youtu.be/ID
YOUTUBE_ID_PATTERN = re.compile(
    r'(?:youtube\.com.*(?:\?|&)v=|youtu\.be/)([a-zA-Z0-9_-]{11})'
)


def normalize_embedding(embedding: list[float]) -> list[float]:
    """Normalize embedding to unit length for consistent similarity math.
    
    Args:
        embedding: Vector of floats representing an embedding.
        
    Returns:
        Normalized embedding with unit length (L2 norm = 1).
        Returns the original embedding if it has zero magnitude.
    """
    norm = math.sqrt(sum(x * x for x in embedding))
    if norm == 0:
        return embedding
    return [x / norm for x in embedding]


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Calculate cosine similarity between two embeddings.

    Raises:
        ValueError: If vectors have different dimensions.
    """
    if len(a) != len(b):
        raise ValueError(f"Embedding dimensions don't match: {len(a)} vs {len(b)}")

    dot_product = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot_product / (norm_a * norm_b)


def extract_video_id(link: str) -> str:
    """Extract the 11-character YouTube video id from a link.

    Supports formats:
    - https://www.youtube.com/watch?v=VIDEO_ID
    - https://www.youtube.com/watch?feature=share&v=VIDEO_ID
    - https://youtu.be/VIDEO_ID

    Raises:
        InvalidSource: If no video id can be extracted.

    Example:
        >>> extract_video_id("https://youtu.be/dQw4w9WgXcQ")
        'dQw4w9WgXcQ'
    """
    match = YOUTUBE_ID_PATTERN.search(link or "")
    if not match:
        raise InvalidSource()
    return match.group(1)
