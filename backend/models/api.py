"""Request and response schemas for the HTTP API."""
from typing import List, Optional
from pydantic import BaseModel, Field


class TurnRequest(BaseModel):
    """Body of POST /sessions/{session_id}/turns."""
    message: str = Field(..., description="User message")
    language: Optional[str] = Field(None, description="Response language; keeps the session's language when omitted")


class TurnResponse(BaseModel):
    session_id: str
    reply: str
    route: str
    prompt_mode: str
    passages_retrieved: int
    latency_ms: int


class SessionResponse(BaseModel):
    session_id: str


class TurnView(BaseModel):
    role: str
    content: str
    position: int


class HistoryResponse(BaseModel):
    session_id: str
    language: str
    turns: List[TurnView]


class RetrievalResponse(BaseModel):
    session_id: str
    passages: List[str]
