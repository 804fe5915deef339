"""
Document ingestion script.

Rebuilds the configured vector index:
1. Clears existing chunks
2. Loads sources from DOCS_DIRECTORY (falls back to the built-in samples)
3. Splits them into overlapping chunks
4. Embeds and stores every chunk

Mostly useful with VECTOR_BACKEND=supabase, where the index outlives the process.

Usage:
    python ingest_documents.py
"""
import sys
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

import config
from logger import setup_logging
from services.embedding_model import EmbeddingModel
from services.errors import CollaboratorUnavailable
from bootstrap import build_knowledge_base

logger = logging.getLogger(__name__)


def main() -> int:
    """Main ingestion process."""
    setup_logging(config.LOG_LEVEL, config.LOG_FORMAT)

    try:
        logger.info("=" * 60)
        logger.info(f"Rebuilding {config.VECTOR_BACKEND} vector index from {config.DOCS_DIRECTORY}")
        logger.info("=" * 60)

        embedding_model = EmbeddingModel()
        knowledge_base = build_knowledge_base(embedding_model)

        logger.info("Warming up embedding model (can take 15-20 seconds on the free tier)...")
        embedding_model.warmup()

        chunk_count = knowledge_base.rebuild()
        stored = knowledge_base.vector_store.count()

        logger.info("=" * 60)
        logger.info(f"Chunks created: {chunk_count}")
        logger.info(f"Chunks in index: {stored}")
        logger.info("=" * 60)
        return 0

    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        return 1
    except (ValueError, CollaboratorUnavailable) as e:
        logger.error(f"Ingestion failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
