"""Shared embedding utilities for mock implementations.

Provides consistent, deterministic embedding generation for testing.
"""

import hashlib
import math
import random
import re
from collections import Counter


def hash_to_embedding(text: str, dimensions: int = 384) -> list[float]:
    """Convert text to a deterministic bag-of-words embedding.

    Each word (longer than two characters) maps to a fixed random
    direction, weighted by how often it occurs. Texts sharing words are
    similar; texts with no words in common are close to orthogonal.

    Args:
        text: Text to embed.
        dimensions: Output embedding dimensions.

    Returns:
        Normalized embedding vector.
    """
    embedding = [0.0] * dimensions

    def add_term(term: str, weight: float = 1.0):
        """Add a term's contribution to the embedding."""
        term_hash = hashlib.sha256(term.encode()).digest()
        rng = random.Random(int.from_bytes(term_hash[:8], 'big'))
        for i in range(dimensions):
            embedding[i] += rng.gauss(0, 1) * weight

    counts = Counter(w for w in re.findall(r'\b\w+\b', text.lower()) if len(w) > 2)
    for word, count in counts.items():
        add_term(word, float(count))

    # Normalize to unit vector
    norm = math.sqrt(sum(x * x for x in embedding))
    if norm == 0:
        rng = random.Random(42)
        embedding = [rng.gauss(0, 1) for _ in range(dimensions)]
        norm = math.sqrt(sum(x * x for x in embedding))

    return [x / norm for x in embedding]
