"""Vector index backends: in-process numpy store and Supabase pgvector."""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import numpy as np
from supabase import create_client, Client

from models.chunk import Chunk, ScoredChunk
from services.embedding_model import EmbeddingModel
from services.errors import VectorStoreError
from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)


class VectorIndex(ABC):
    """Stores chunk embeddings and answers top-k similarity queries."""

    def __init__(self, embedding_model: EmbeddingModel):
        self.embedding_model = embedding_model

    @abstractmethod
    def add_chunks(self, chunks: List[Chunk]) -> None:
        """Embed and upsert chunks, keyed by chunk_id."""

    @abstractmethod
    def search(self, query_embedding: List[float], top_k: int = 3) -> List[ScoredChunk]:
        """Return at most top_k chunks ordered by non-increasing similarity."""

    @abstractmethod
    def count(self) -> int:
        """Number of chunks stored."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every chunk."""

    @staticmethod
    def _validate_query(query_embedding: List[float], top_k: int) -> None:
        if query_embedding is None or len(query_embedding) == 0:
            raise ValueError("Query embedding cannot be empty")
        if top_k <= 0:
            raise ValueError("top_k must be positive")


class InMemoryVectorStore(VectorIndex):
    """Cosine-similarity index held in process memory."""

    def __init__(self, embedding_model: EmbeddingModel):
        super().__init__(embedding_model)
        self._chunks: Dict[str, Chunk] = {}  # insertion ordered
        self._matrix: Optional[np.ndarray] = None
        self._lock = threading.Lock()
        logger.info("Initialized InMemoryVectorStore")

    def add_chunks(self, chunks: List[Chunk]) -> None:
        """
        Embed chunks in one batch and upsert them.

        Raises:
            ValueError: If chunks list is empty
            EmbeddingError: If the embedding call fails
        """
        if not chunks:
            raise ValueError("Chunks list cannot be empty")

        logger.info(f"Adding {len(chunks)} chunks to in-memory vector store...")
        embeddings = self.embedding_model.embed_batch([chunk.text for chunk in chunks])

        with self._lock:
            for chunk, embedding in zip(chunks, embeddings):
                chunk.embedding = self._normalize(np.asarray(embedding, dtype=np.float32))
                self._chunks[chunk.chunk_id] = chunk
            self._matrix = None  # rebuilt lazily on next search

        logger.info(f"In-memory vector store now holds {len(self._chunks)} chunks")

    def search(self, query_embedding: List[float], top_k: int = 3) -> List[ScoredChunk]:
        self._validate_query(query_embedding, top_k)

        with self._lock:
            if not self._chunks:
                return []
            stored = list(self._chunks.values())
            if self._matrix is None:
                self._matrix = np.vstack([chunk.embedding for chunk in stored])
            matrix = self._matrix

        query = self._normalize(np.asarray(query_embedding, dtype=np.float32))
        if query.shape[0] != matrix.shape[1]:
            raise ValueError(
                f"Query embedding has dimension {query.shape[0]}, index expects {matrix.shape[1]}"
            )

        scores = matrix @ query
        # Stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[:top_k]

        results = [
            ScoredChunk(chunk=stored[i], relevance_score=float(scores[i]))
            for i in order
        ]
        logger.debug(f"Found {len(results)} chunks for query")
        return results

    def count(self) -> int:
        with self._lock:
            return len(self._chunks)

    def clear(self) -> None:
        with self._lock:
            self._chunks.clear()
            self._matrix = None
        logger.info("Cleared in-memory vector store")

    @staticmethod
    def _normalize(vector: np.ndarray) -> np.ndarray:
        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector
        return vector / norm


class SupabaseVectorStore(VectorIndex):
    """Store chunk embeddings and run similarity search using Supabase pgvector."""

    def __init__(
        self,
        embedding_model: EmbeddingModel,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        table_name: str = "document_chunks"
    ):
        """
        Initialize the vector store with Supabase client.

        Args:
            embedding_model: EmbeddingModel instance for generating embeddings
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Name of the table to store chunks

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        super().__init__(embedding_model)
        self.table_name = table_name
        self.client: Client = create_client(supabase_url, supabase_key)

        logger.info(f"Initialized SupabaseVectorStore with table: {table_name}")

    def add_chunks(self, chunks: List[Chunk]) -> None:
        """
        Embed chunks in one batch and upsert them into the table.

        Raises:
            ValueError: If chunks list is empty
            EmbeddingError: If the embedding call fails
            VectorStoreError: If the database operation fails
        """
        if not chunks:
            raise ValueError("Chunks list cannot be empty")

        logger.info(f"Adding {len(chunks)} chunks to vector store...")
        embeddings = self.embedding_model.embed_batch([chunk.text for chunk in chunks])

        records = [
            {
                "chunk_id": chunk.chunk_id,
                "text": chunk.text,
                "source_id": chunk.source_id,
                "chunk_offset": chunk.offset,
                "page_number": chunk.page_number,
                "embedding": embedding
            }
            for chunk, embedding in zip(chunks, embeddings)
        ]

        try:
            # Upsert so re-ingesting the same chunk_id never duplicates rows
            self.client.table(self.table_name).upsert(records).execute()
        except Exception as e:
            error_msg = f"Failed to add chunks to vector store: {str(e)}"
            logger.error(error_msg)
            raise VectorStoreError(error_msg, cause=e)

        logger.info(f"Successfully added {len(chunks)} chunks to vector store")

    def search(self, query_embedding: List[float], top_k: int = 3) -> List[ScoredChunk]:
        """
        Find the most similar chunks through the `match_chunks` RPC.

        The RPC is expected to be defined as:

            CREATE OR REPLACE FUNCTION match_chunks(
              query_embedding vector(768), match_threshold float, match_count int
            )
            RETURNS TABLE (chunk_id text, text text, source_id text,
                           chunk_offset int, page_number int, similarity float)
            ...
            ORDER BY document_chunks.embedding <=> query_embedding
            LIMIT match_count;
        """
        self._validate_query(query_embedding, top_k)

        try:
            response = self.client.rpc(
                "match_chunks",
                {
                    "query_embedding": list(query_embedding),
                    "match_threshold": 0.0,
                    "match_count": top_k
                }
            ).execute()
        except Exception as e:
            error_msg = f"Failed to search vector store: {str(e)}"
            logger.error(error_msg)
            raise VectorStoreError(error_msg, cause=e)

        scored_chunks = [
            ScoredChunk(
                chunk=Chunk(
                    chunk_id=row["chunk_id"],
                    text=row["text"],
                    source_id=row["source_id"],
                    offset=row.get("chunk_offset", 0),
                    page_number=row.get("page_number", 1)
                ),
                relevance_score=float(row["similarity"])
            )
            for row in (response.data or [])
        ]

        # Similarity order and the top_k cap hold even if the RPC definition drifts
        scored_chunks.sort(key=lambda sc: sc.relevance_score, reverse=True)
        scored_chunks = scored_chunks[:top_k]

        logger.debug(f"Found {len(scored_chunks)} chunks for query")
        return scored_chunks

    def count(self) -> int:
        try:
            response = self.client.table(self.table_name).select("chunk_id", count="exact").execute()
        except Exception as e:
            error_msg = f"Failed to count chunks in vector store: {str(e)}"
            logger.error(error_msg)
            raise VectorStoreError(error_msg, cause=e)
        return response.count if response.count is not None else 0

    def clear(self) -> None:
        try:
            self.client.table(self.table_name).delete().neq("chunk_id", "").execute()
        except Exception as e:
            error_msg = f"Failed to clear vector store: {str(e)}"
            logger.error(error_msg)
            raise VectorStoreError(error_msg, cause=e)
        logger.info("Cleared all chunks from vector store")

