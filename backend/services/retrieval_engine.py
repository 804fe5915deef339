"""Document retriever: query embedding plus top-k similarity search."""
import logging
from typing import List, Optional
from models.chunk import ScoredChunk
from services.embedding_model import EmbeddingModel
from services.errors import CollaboratorUnavailable, DocumentRetrieverError
from services.knowledge_base import KnowledgeBase
from config import RETRIEVAL_TOP_K, RELEVANCE_THRESHOLD

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Fetch the passages most similar to a query from the knowledge base."""

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        embedding_model: EmbeddingModel,
        default_top_k: int = RETRIEVAL_TOP_K,
        relevance_threshold: float = RELEVANCE_THRESHOLD
    ):
        """
        Initialize the retrieval engine.

        Args:
            knowledge_base: KnowledgeBase owning the vector index
            embedding_model: EmbeddingModel instance for query embedding
            default_top_k: Result count used when none is given
            relevance_threshold: Minimum similarity kept (0 keeps everything)
        """
        self.knowledge_base = knowledge_base
        self.embedding_model = embedding_model
        self.default_top_k = default_top_k
        self.relevance_threshold = relevance_threshold
        logger.info("Initialized RetrievalEngine")

    def retrieve(self, query: str, top_k: Optional[int] = None) -> List[ScoredChunk]:
        """
        Retrieve up to top_k chunks ordered by descending similarity.

        Steps:
        1. Make sure the index has been populated (once per process)
        2. Embed the query
        3. Similarity search in the vector index
        4. Drop chunks at or below the relevance threshold

        Args:
            query: User message used as the search query
            top_k: Maximum number of chunks (default: configured RETRIEVAL_TOP_K)

        Returns:
            Scored chunks, empty if the query is blank or nothing matched

        Raises:
            ValueError: If top_k is not positive
            DocumentRetrieverError: If initialization, embedding or search fails
        """
        top_k = self.default_top_k if top_k is None else top_k
        if top_k <= 0:
            raise ValueError("top_k must be positive")

        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        try:
            self.knowledge_base.ensure_initialized()

            logger.debug(f"Embedding query: {query[:100]}...")
            query_embedding = self.embedding_model.embed_text(query)

            scored_chunks = self.knowledge_base.vector_store.search(query_embedding, top_k=top_k)
        except CollaboratorUnavailable as e:
            logger.error(f"Retrieval failed: {e.message}")
            raise DocumentRetrieverError(f"Document retrieval failed: {e.message}", cause=e)
        except ValueError as e:
            logger.error(f"Retrieval failed: {e}")
            raise DocumentRetrieverError(f"Document retrieval failed: {e}", cause=e)

        if self.relevance_threshold > 0:
            scored_chunks = [
                chunk for chunk in scored_chunks
                if chunk.relevance_score > self.relevance_threshold
            ]

        if not scored_chunks:
            logger.info("No chunks found for query")
            return []

        logger.info(
            f"Retrieved {len(scored_chunks)} chunks (top score: {scored_chunks[0].relevance_score:.3f})"
        )
        return scored_chunks

    def retrieve_texts(self, query: str, top_k: Optional[int] = None) -> List[str]:
        """Passage texts in ranked order."""
        return [scored.chunk.text for scored in self.retrieve(query, top_k)]
