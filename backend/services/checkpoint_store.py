"""Checkpoint stores: persistence of conversation state keyed by session id."""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional
from supabase import create_client, Client

from models.conversation import ConversationState
from services.errors import CheckpointError
from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)


class CheckpointStore(ABC):
    """Save and load ConversationState snapshots."""

    @abstractmethod
    def save(self, session_id: str, state: ConversationState) -> None:
        """Persist state under session_id, replacing any previous snapshot."""

    @abstractmethod
    def load(self, session_id: str) -> Optional[ConversationState]:
        """Return the latest snapshot, or None if the session is unknown."""


class InMemoryCheckpointStore(CheckpointStore):
    """
    Process-local store. Snapshots are kept in serialized form, so a loaded
    state never aliases one that was saved.
    """

    def __init__(self):
        self._snapshots: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        logger.info("Initialized InMemoryCheckpointStore")

    def save(self, session_id: str, state: ConversationState) -> None:
        snapshot = state.to_dict()
        with self._lock:
            self._snapshots[session_id] = snapshot
        logger.debug(f"Saved checkpoint for session {session_id} ({len(state.turns)} turns)")

    def load(self, session_id: str) -> Optional[ConversationState]:
        with self._lock:
            snapshot = self._snapshots.get(session_id)
        if snapshot is None:
            return None
        return ConversationState.from_dict(snapshot)


class SupabaseCheckpointStore(CheckpointStore):
    """Stores conversation state as JSON in a Supabase table."""

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        table_name: str = "conversation_states"
    ):
        """
        Initialize the store with a Supabase client.

        Expected table:
            conversation_states(session_id text primary key, state jsonb, updated_at timestamptz)

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")

        self.table_name = table_name
        self.client: Client = create_client(supabase_url, supabase_key)
        logger.info(f"SupabaseCheckpointStore initialized with table: {table_name}")

    def save(self, session_id: str, state: ConversationState) -> None:
        try:
            self.client.table(self.table_name).upsert({
                "session_id": session_id,
                "state": state.to_dict(),
                "updated_at": datetime.now().isoformat()
            }).execute()
        except Exception as e:
            logger.error(f"Error saving checkpoint for session {session_id}: {e}")
            raise CheckpointError(f"Could not save session {session_id}", cause=e)

        logger.debug(f"Saved checkpoint for session {session_id}")

    def load(self, session_id: str) -> Optional[ConversationState]:
        try:
            result = self.client.table(self.table_name).select("state").eq("session_id", session_id).execute()
        except Exception as e:
            logger.error(f"Error loading checkpoint for session {session_id}: {e}")
            raise CheckpointError(f"Could not load session {session_id}", cause=e)

        if not result.data:
            return None

        try:
            return ConversationState.from_dict(result.data[0]["state"])
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Corrupt checkpoint for session {session_id}: {e}")
            raise CheckpointError(f"Stored state for session {session_id} is unreadable", cause=e)
