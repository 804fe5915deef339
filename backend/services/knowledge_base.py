"""Lazy, one-time population of the vector index."""
import logging
import threading
from typing import List

from models.chunk import Chunk
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader
from services.errors import CollaboratorUnavailable
from services.vector_store import VectorIndex

logger = logging.getLogger(__name__)


class KnowledgeBase:
    """
    Owns the vector index handle and its initialization lifecycle.

    The index is populated at most once per process. Concurrent first callers
    block on a single lock; later callers take the fast path without locking.
    An index that already holds chunks (e.g. a Supabase table filled by
    ingest_documents.py) is adopted as-is. A failed ingestion discards the chunks
    it already indexed and leaves the knowledge base uninitialized, so the next
    caller starts again from an empty index.
    """

    def __init__(
        self,
        vector_store: VectorIndex,
        document_loader: DocumentLoader,
        chunking_engine: ChunkingEngine,
        use_sample_documents: bool = True,
        batch_size: int = 32
    ):
        self.vector_store = vector_store
        self.document_loader = document_loader
        self.chunking_engine = chunking_engine
        self.use_sample_documents = use_sample_documents
        self.batch_size = batch_size
        self._initialized = False
        self._partial_index = False
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def ensure_initialized(self) -> None:
        """Populate the index if this has not happened yet."""
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return

            if self._partial_index:
                self.vector_store.clear()
                self._partial_index = False

            existing = self.vector_store.count()
            if existing > 0:
                logger.info(f"Vector index already holds {existing} chunks, skipping ingestion")
            else:
                self._ingest()
            self._initialized = True

    def rebuild(self) -> int:
        """Clear the index and ingest all sources again. Returns the chunk count."""
        with self._lock:
            self._initialized = False
            self.vector_store.clear()
            self._partial_index = False
            count = self._ingest()
            self._initialized = True
            return count

    def _ingest(self) -> int:
        documents = self.document_loader.load_documents()
        if not documents and self.use_sample_documents:
            logger.info("No source documents found, using built-in sample documents")
            documents = DocumentLoader.sample_documents()

        chunks: List[Chunk] = self.chunking_engine.chunk_documents(documents)
        if not chunks:
            logger.warning("Knowledge base initialized with no chunks")
            return 0

        total_batches = (len(chunks) + self.batch_size - 1) // self.batch_size
        try:
            for i in range(0, len(chunks), self.batch_size):
                batch = chunks[i:i + self.batch_size]
                logger.debug(f"Indexing batch {i // self.batch_size + 1}/{total_batches} ({len(batch)} chunks)")
                self.vector_store.add_chunks(batch)
        except (CollaboratorUnavailable, ValueError):
            # A partial index would be adopted as complete on the next attempt
            logger.error("Ingestion failed part way, discarding indexed chunks")
            self._discard_partial_index()
            raise

        logger.info(f"Knowledge base initialized: {len(documents)} documents, {len(chunks)} chunks")
        return len(chunks)

    def _discard_partial_index(self) -> None:
        try:
            self.vector_store.clear()
        except CollaboratorUnavailable as e:
            logger.error(f"Could not clear partial index, will retry on next initialization: {e.message}")
            self._partial_index = True
