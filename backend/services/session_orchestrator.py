"""
Session Orchestrator.

Runs one conversation turn through a fixed state machine:

    start -> routing -> (retrieving ->) composing -> done

The machine is re-entered fresh for every inbound user message; only the
persisted ConversationState survives between turns. Turns for the same
session are serialized with a per-session lock; different sessions run
concurrently. A failed turn leaves the persisted state untouched.
"""
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from models.conversation import ConversationState, Role, Route
from services.checkpoint_store import CheckpointStore
from services.context_window import ContextWindowManager
from services.errors import CollaboratorUnavailable, TurnFailedError
from services.response_composer import ComposedReply, ResponseComposer
from services.retrieval_engine import RetrievalEngine
from services.retrieval_gate import RetrievalDecision, RetrievalGate
from services.routing_logger import RoutingLogger
from config import DEFAULT_LANGUAGE, RETRIEVAL_TOP_K

logger = logging.getLogger(__name__)


class TurnStage(str, Enum):
    START = "start"
    ROUTING = "routing"
    RETRIEVING = "retrieving"
    COMPOSING = "composing"
    DONE = "done"


@dataclass
class TurnResult:
    """Outcome of a completed turn."""
    session_id: str
    reply: str
    route: Route
    rule_triggered: str
    passages: List[str]
    prompt_mode: str
    stages: List[TurnStage] = field(default_factory=list)
    tokens_input: int = 0
    tokens_output: int = 0
    latency_ms: int = 0


@dataclass
class _SessionLock:
    """Per-session lock plus the number of turns holding or waiting for it."""
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class SessionOrchestrator:
    """Entry point for conversation turns."""

    def __init__(
        self,
        retrieval_gate: RetrievalGate,
        retrieval_engine: RetrievalEngine,
        response_composer: ResponseComposer,
        context_window: ContextWindowManager,
        checkpoint_store: CheckpointStore,
        default_language: str = DEFAULT_LANGUAGE,
        top_k: int = RETRIEVAL_TOP_K,
        routing_logger: Optional[RoutingLogger] = None
    ):
        self.retrieval_gate = retrieval_gate
        self.retrieval_engine = retrieval_engine
        self.response_composer = response_composer
        self.context_window = context_window
        self.checkpoint_store = checkpoint_store
        self.default_language = default_language
        self.top_k = top_k
        self.routing_logger = routing_logger

        self._session_locks: Dict[str, _SessionLock] = {}
        self._locks_guard = threading.Lock()
        logger.info("SessionOrchestrator initialized")

    def start_new_session(self, language: Optional[str] = None) -> str:
        """Create and persist an empty session. Returns its id."""
        session_id = f"sess_{uuid.uuid4().hex[:12]}"
        state = ConversationState(session_id=session_id, language=language or self.default_language)
        try:
            self.checkpoint_store.save(session_id, state)
        except CollaboratorUnavailable as e:
            raise TurnFailedError(session_id, e.stage, f"Could not create session: {e.message}")
        logger.info(f"Started new session: {session_id}")
        return session_id

    def submit_turn(self, session_id: str, user_text: str, language: Optional[str] = None) -> str:
        """Process one user message and return the assistant reply text."""
        return self.run_turn(session_id, user_text, language).reply

    def run_turn(self, session_id: str, user_text: str, language: Optional[str] = None) -> TurnResult:
        """
        Process one user message through the state machine.

        Args:
            session_id: Session identifier; unknown ids start a new conversation
            user_text: The user's message
            language: Response language; stored on the session when given

        Returns:
            TurnResult

        Raises:
            ValueError: If session_id or user_text is empty
            TurnFailedError: If a collaborator fails; nothing is persisted
        """
        if not session_id:
            raise ValueError("session_id is required")
        if not user_text or not user_text.strip():
            raise ValueError("Message cannot be empty")

        entry = self._acquire_entry(session_id)
        try:
            with entry.lock:
                return self._run_locked(session_id, user_text, language)
        finally:
            self._release_entry(session_id, entry)

    def last_retrieval(self, session_id: str) -> List[str]:
        """Passages retrieved for the session's latest turn (empty if none or unknown)."""
        state = self.get_state(session_id)
        return list(state.retrieval_passages) if state else []

    def get_state(self, session_id: str) -> Optional[ConversationState]:
        try:
            return self.checkpoint_store.load(session_id)
        except CollaboratorUnavailable as e:
            raise TurnFailedError(session_id, e.stage, e.message)

    def close(self) -> None:
        """Release resources held by collaborators (the routing log file)."""
        if self.routing_logger:
            self.routing_logger.close()

    def _acquire_entry(self, session_id: str) -> _SessionLock:
        with self._locks_guard:
            entry = self._session_locks.get(session_id)
            if entry is None:
                entry = _SessionLock()
                self._session_locks[session_id] = entry
            entry.users += 1
            return entry

    def _release_entry(self, session_id: str, entry: _SessionLock) -> None:
        # Entries live only while a turn for the session is running or queued
        with self._locks_guard:
            entry.users -= 1
            if entry.users == 0:
                del self._session_locks[session_id]

    def _run_locked(self, session_id: str, user_text: str, language: Optional[str]) -> TurnResult:
        start_time = time.time()
        stages: List[TurnStage] = []
        stage = TurnStage.START

        try:
            # start: load (or create) state and append the user turn to a working copy
            stages.append(stage)
            persisted = self.checkpoint_store.load(session_id)
            if persisted is None:
                logger.info(f"Creating state for new session {session_id}")
                state = ConversationState(session_id=session_id, language=language or self.default_language)
            else:
                state = persisted.copy()
            if language:
                state.language = language
            state.append_turn(Role.USER, user_text)

            # routing
            stage = TurnStage.ROUTING
            stages.append(stage)
            decision: RetrievalDecision = self.retrieval_gate.decide(state.turns)
            state.route = decision.route

            # retrieving
            passages: List[str] = []
            if decision.needs_retrieval:
                stage = TurnStage.RETRIEVING
                stages.append(stage)
                passages = self.retrieval_engine.retrieve_texts(user_text, top_k=self.top_k)
            state.retrieval_passages = passages

            # composing
            stage = TurnStage.COMPOSING
            stages.append(stage)
            trimmed = self.context_window.trim(state.turns)
            reply: ComposedReply = self.response_composer.compose(trimmed, state.language, passages)
            state.append_turn(Role.ASSISTANT, reply.text)

            # done
            stage = TurnStage.DONE
            stages.append(stage)
            self.checkpoint_store.save(session_id, state)

        except CollaboratorUnavailable as e:
            logger.error(
                f"Turn failed for session {session_id} at stage {stage.value}: {e.message}",
                exc_info=True
            )
            raise TurnFailedError(session_id, e.stage, self._user_message(e))

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Turn completed: session={session_id}, route={decision.route.value}, "
            f"passages={len(passages)}, mode={reply.mode.value}, latency={latency_ms}ms"
        )

        if self.routing_logger:
            self.routing_logger.log_routing_decision(
                session_id=session_id,
                query=user_text,
                route=decision.route.value,
                rule_triggered=decision.rule_triggered,
                passages_retrieved=len(passages),
                prompt_mode=reply.mode.value,
                matched_terms=decision.matched_terms,
                tokens_input=reply.tokens_input,
                tokens_output=reply.tokens_output,
                latency_ms=latency_ms
            )

        return TurnResult(
            session_id=session_id,
            reply=reply.text,
            route=decision.route,
            rule_triggered=decision.rule_triggered,
            passages=passages,
            prompt_mode=reply.mode.value,
            stages=stages,
            tokens_input=reply.tokens_input,
            tokens_output=reply.tokens_output,
            latency_ms=latency_ms
        )

    @staticmethod
    def _user_message(error: CollaboratorUnavailable) -> str:
        messages = {
            "routing": "Could not decide whether to search the knowledge base",
            "retrieving": "Could not search the knowledge base",
            "composing": "Could not generate a reply",
            "checkpoint": "Could not access the conversation history",
        }
        prefix = messages.get(error.stage, "A backing service is unavailable")
        return f"{prefix}: {error.message}. Your conversation is unchanged; please try again."
