"""Passage (chunk) data models."""
from dataclasses import dataclass
from typing import Optional
import numpy as np


@dataclass
class Chunk:
    """A passage of source text stored in the vector index."""
    chunk_id: str  # Format: "{source_id}_{page}_{offset}"
    text: str
    source_id: str
    offset: int  # ordinal position of the chunk within its source page
    page_number: int = 1
    embedding: Optional[np.ndarray] = None


@dataclass
class ScoredChunk:
    """Chunk with its similarity to a query."""
    chunk: Chunk
    relevance_score: float
