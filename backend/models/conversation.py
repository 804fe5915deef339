"""Conversation data models."""
import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Role(str, Enum):
    """Author of a turn."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Route(str, Enum):
    """Routing decision for a user turn."""
    RETRIEVE = "retrieve"
    GENERATE = "generate"


@dataclass(frozen=True)
class Turn:
    """A single message in a conversation. Immutable once appended."""
    role: Role
    content: str
    position: int
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            "position": self.position,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Turn":
        return cls(
            role=Role(data["role"]),
            content=data["content"],
            position=int(data["position"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


def last_user_message(turns: List[Turn]) -> Optional[str]:
    """Content of the most recent user turn, or None if there is none."""
    for turn in reversed(turns):
        if turn.role == Role.USER:
            return turn.content
    return None


@dataclass
class ConversationState:
    """
    Persisted record of one session.

    Attributes:
        session_id: Opaque identifier, unique per conversation
        language: Selected response language
        turns: Append-only ordered turn sequence
        retrieval_passages: Passages retrieved for the latest turn (empty when skipped)
        route: Route computed for the latest turn
        created_at: Creation time of the session
    """
    session_id: str
    language: str
    turns: List[Turn] = field(default_factory=list)
    retrieval_passages: List[str] = field(default_factory=list)
    route: Optional[Route] = None
    created_at: datetime = field(default_factory=datetime.now)

    def append_turn(self, role: Role, content: str) -> Turn:
        """Append a new turn at the end of the sequence and return it."""
        turn = Turn(role=role, content=content, position=len(self.turns))
        self.turns.append(turn)
        return turn

    def copy(self) -> "ConversationState":
        """Independent copy; turns are immutable so they are shared."""
        return ConversationState(
            session_id=self.session_id,
            language=self.language,
            turns=list(self.turns),
            retrieval_passages=list(self.retrieval_passages),
            route=self.route,
            created_at=self.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "language": self.language,
            "turns": [turn.to_dict() for turn in self.turns],
            "retrieval_passages": list(self.retrieval_passages),
            "route": self.route.value if self.route else None,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationState":
        data = copy.deepcopy(data)
        route = data.get("route")
        return cls(
            session_id=data["session_id"],
            language=data["language"],
            turns=[Turn.from_dict(t) for t in data.get("turns", [])],
            retrieval_passages=list(data.get("retrieval_passages", [])),
            route=Route(route) if route else None,
            created_at=datetime.fromisoformat(data["created_at"]),
        )
