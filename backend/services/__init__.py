"""Services for the RAG conversation orchestrator."""
from .errors import (
    CollaboratorUnavailable, EmbeddingError, VectorStoreError, CheckpointError,
    RetrievalGateError, DocumentRetrieverError, ResponseComposerError, TurnFailedError,
)
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel
from .vector_store import VectorIndex, InMemoryVectorStore, SupabaseVectorStore
from .knowledge_base import KnowledgeBase
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .context_window import ContextWindowManager
from .retrieval_gate import RetrievalGate, RetrievalDecision
from .retrieval_engine import RetrievalEngine
from .response_composer import ResponseComposer, PromptMode, ComposedReply
from .checkpoint_store import CheckpointStore, InMemoryCheckpointStore, SupabaseCheckpointStore
from .routing_logger import RoutingLogger
from .session_orchestrator import SessionOrchestrator, TurnResult, TurnStage

__all__ = [
    'CollaboratorUnavailable', 'EmbeddingError', 'VectorStoreError', 'CheckpointError',
    'RetrievalGateError', 'DocumentRetrieverError', 'ResponseComposerError', 'TurnFailedError',
    'DocumentLoader', 'ChunkingEngine', 'EmbeddingModel',
    'VectorIndex', 'InMemoryVectorStore', 'SupabaseVectorStore', 'KnowledgeBase',
    'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError',
    'ContextWindowManager', 'RetrievalGate', 'RetrievalDecision', 'RetrievalEngine',
    'ResponseComposer', 'PromptMode', 'ComposedReply',
    'CheckpointStore', 'InMemoryCheckpointStore', 'SupabaseCheckpointStore',
    'RoutingLogger', 'SessionOrchestrator', 'TurnResult', 'TurnStage',
]
