"""Wires collaborators and core components into a SessionOrchestrator."""
import logging
from typing import Optional

import config
from services.checkpoint_store import CheckpointStore, InMemoryCheckpointStore, SupabaseCheckpointStore
from services.chunking_engine import ChunkingEngine
from services.context_window import ContextWindowManager
from services.document_loader import DocumentLoader
from services.embedding_model import EmbeddingModel
from services.knowledge_base import KnowledgeBase
from services.llm_client import LLMClient
from services.response_composer import ResponseComposer
from services.retrieval_engine import RetrievalEngine
from services.retrieval_gate import RetrievalGate
from services.routing_logger import RoutingLogger
from services.session_orchestrator import SessionOrchestrator
from services.vector_store import InMemoryVectorStore, SupabaseVectorStore, VectorIndex

logger = logging.getLogger(__name__)


def build_vector_store(embedding_model: EmbeddingModel, backend: str = config.VECTOR_BACKEND) -> VectorIndex:
    if backend == "memory":
        return InMemoryVectorStore(embedding_model)
    if backend == "supabase":
        return SupabaseVectorStore(embedding_model)
    raise ValueError(f"Unknown VECTOR_BACKEND: {backend}")


def build_checkpoint_store(backend: str = config.CHECKPOINT_BACKEND) -> CheckpointStore:
    if backend == "memory":
        return InMemoryCheckpointStore()
    if backend == "supabase":
        return SupabaseCheckpointStore()
    raise ValueError(f"Unknown CHECKPOINT_BACKEND: {backend}")


def build_knowledge_base(embedding_model: EmbeddingModel) -> KnowledgeBase:
    return KnowledgeBase(
        vector_store=build_vector_store(embedding_model),
        document_loader=DocumentLoader(docs_directory=config.DOCS_DIRECTORY),
        chunking_engine=ChunkingEngine(),
    )


def build_orchestrator(
    llm_client: Optional[LLMClient] = None,
    embedding_model: Optional[EmbeddingModel] = None,
    routing_log_path: Optional[str] = config.ROUTING_LOG_PATH
) -> SessionOrchestrator:
    """Build the full service graph from configuration."""
    llm_client = llm_client or LLMClient()
    embedding_model = embedding_model or EmbeddingModel()
    knowledge_base = build_knowledge_base(embedding_model)

    orchestrator = SessionOrchestrator(
        retrieval_gate=RetrievalGate(llm_client),
        retrieval_engine=RetrievalEngine(knowledge_base, embedding_model),
        response_composer=ResponseComposer(llm_client),
        context_window=ContextWindowManager(llm_client.count_tokens),
        checkpoint_store=build_checkpoint_store(),
        routing_logger=RoutingLogger(routing_log_path) if routing_log_path else None,
    )
    logger.info(
        f"Services ready (vector={config.VECTOR_BACKEND}, checkpoint={config.CHECKPOINT_BACKEND})"
    )
    return orchestrator
