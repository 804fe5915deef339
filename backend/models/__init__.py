"""Data models for the RAG conversation orchestrator."""
from .document import Document, Page
from .chunk import Chunk, ScoredChunk
from .conversation import ConversationState, Role, Route, Turn
from .api import TurnRequest, TurnResponse, SessionResponse, TurnView, HistoryResponse, RetrievalResponse

__all__ = [
    "Document",
    "Page",
    "Chunk",
    "ScoredChunk",
    "ConversationState",
    "Role",
    "Route",
    "Turn",
    "TurnRequest",
    "TurnResponse",
    "SessionResponse",
    "TurnView",
    "HistoryResponse",
    "RetrievalResponse",
]
