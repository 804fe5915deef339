"""Failure types raised by the conversation core."""
from typing import Optional


class CollaboratorUnavailable(Exception):
    """A model, embedding, index or checkpoint call failed or timed out."""

    stage = "collaborator"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class EmbeddingError(CollaboratorUnavailable):
    stage = "embedding"


class VectorStoreError(CollaboratorUnavailable):
    stage = "vector_store"


class CheckpointError(CollaboratorUnavailable):
    stage = "checkpoint"


class RetrievalGateError(CollaboratorUnavailable):
    stage = "routing"


class DocumentRetrieverError(CollaboratorUnavailable):
    stage = "retrieving"


class ResponseComposerError(CollaboratorUnavailable):
    stage = "composing"


class TurnFailedError(Exception):
    """A conversation turn could not be completed; session history is unchanged."""

    def __init__(self, session_id: str, stage: str, message: str):
        self.session_id = session_id
        self.stage = stage
        self.message = message
        super().__init__(message)
