"""HTTP API for the RAG conversation orchestrator."""
import logging
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import PORT, CORS_ORIGINS, LOG_LEVEL, LOG_FORMAT
from logger import setup_logging
from models.api import (
    TurnRequest, TurnResponse, SessionResponse, TurnView, HistoryResponse, RetrievalResponse
)
from services.errors import TurnFailedError
from services.session_orchestrator import SessionOrchestrator
from bootstrap import build_orchestrator

logger = logging.getLogger(__name__)

app = FastAPI(
    title="RAG Conversation Orchestrator",
    description="Multi-turn chatbot that retrieves supporting passages when a question needs them",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Built on startup
orchestrator: SessionOrchestrator = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global orchestrator

    setup_logging(LOG_LEVEL, LOG_FORMAT)
    logger.info("Initializing conversation services...")

    try:
        orchestrator = build_orchestrator()
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Close the routing log on shutdown."""
    if orchestrator is not None:
        orchestrator.close()
        logger.info("Conversation services shut down")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "RAG Conversation Orchestrator API"}


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "service": "rag-conversation-orchestrator",
        "version": "1.0.0"
    }


def _failure(e: TurnFailedError) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={
            "error": {
                "code": "COLLABORATOR_UNAVAILABLE",
                "stage": e.stage,
                "message": e.message
            }
        }
    )


# Handlers below are sync so that FastAPI runs them in its thread pool and
# turns for different sessions progress concurrently.

@app.post("/sessions", response_model=SessionResponse)
def create_session() -> SessionResponse:
    try:
        session_id = orchestrator.start_new_session()
    except TurnFailedError as e:
        raise _failure(e)
    return SessionResponse(session_id=session_id)


@app.post("/sessions/{session_id}/turns", response_model=TurnResponse)
def submit_turn(session_id: str, request: TurnRequest) -> TurnResponse:
    """
    Run one conversation turn.

    Raises:
        HTTPException: 400 for an empty message, 503 when a backing service fails
    """
    logger.info(f"Processing turn for {session_id}: {request.message[:100]}")

    try:
        result = orchestrator.run_turn(session_id, request.message, request.language)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TurnFailedError as e:
        logger.error(f"Turn failed for {session_id}: {e.message}")
        raise _failure(e)

    return TurnResponse(
        session_id=result.session_id,
        reply=result.reply,
        route=result.route.value,
        prompt_mode=result.prompt_mode,
        passages_retrieved=len(result.passages),
        latency_ms=result.latency_ms
    )


@app.get("/sessions/{session_id}", response_model=HistoryResponse)
def get_session(session_id: str) -> HistoryResponse:
    try:
        state = orchestrator.get_state(session_id)
    except TurnFailedError as e:
        raise _failure(e)

    if state is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")

    return HistoryResponse(
        session_id=state.session_id,
        language=state.language,
        turns=[
            TurnView(role=turn.role.value, content=turn.content, position=turn.position)
            for turn in state.turns
        ]
    )


@app.get("/sessions/{session_id}/retrieval", response_model=RetrievalResponse)
def get_last_retrieval(session_id: str) -> RetrievalResponse:
    try:
        state = orchestrator.get_state(session_id)
    except TurnFailedError as e:
        raise _failure(e)

    if state is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")

    return RetrievalResponse(session_id=session_id, passages=list(state.retrieval_passages))


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting RAG Conversation Orchestrator API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
