"""Configuration management for the RAG conversation orchestrator."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_list(name: str, default: list) -> list:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Model Configuration
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2")
CHAT_MODEL = os.getenv("CHAT_MODEL", "llama-3.3-70b-versatile")
GATE_MODEL = os.getenv("GATE_MODEL", "llama-3.1-8b-instant")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60"))  # seconds
LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "2"))
EMBEDDING_TIMEOUT = float(os.getenv("EMBEDDING_TIMEOUT", "120"))  # seconds
MAX_REPLY_TOKENS = int(os.getenv("MAX_REPLY_TOKENS", "1024"))

# Conversation Configuration
DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "中文")
MAX_CONTEXT_TOKENS = int(os.getenv("MAX_CONTEXT_TOKENS", "4000"))

# Chunking Configuration
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))  # characters
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "200"))  # characters
DOCS_DIRECTORY = os.getenv("DOCS_DIRECTORY", "knowledge_docs")

# Retrieval Configuration
RETRIEVAL_ENABLED = _get_bool("RETRIEVAL_ENABLED", True)
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "3"))
RELEVANCE_THRESHOLD = float(os.getenv("RELEVANCE_THRESHOLD", "0.0"))
RETRIEVAL_TRIGGER_TERMS = _get_list("RETRIEVAL_TRIGGER_TERMS", [
    "what is", "how", "why", "explain",
    "langchain", "langgraph", "retrieval", "prompt template", "vector",
    "什么是", "如何", "为什么", "解释", "检索",
])
GATE_AFFIRMATIVE = os.getenv("GATE_AFFIRMATIVE", "是")
GATE_NEGATIVE = os.getenv("GATE_NEGATIVE", "否")

# Storage Backends
VECTOR_BACKEND = os.getenv("VECTOR_BACKEND", "memory")  # "memory" or "supabase"
CHECKPOINT_BACKEND = os.getenv("CHECKPOINT_BACKEND", "memory")  # "memory" or "supabase"
ROUTING_LOG_PATH = os.getenv("ROUTING_LOG_PATH", "logs/routing_decisions.jsonl")

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
