"""Unit tests for the vector index backends."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock, patch, MagicMock
from models.chunk import Chunk, ScoredChunk
from services.errors import EmbeddingError, VectorStoreError
from services.vector_store import InMemoryVectorStore, SupabaseVectorStore
from services.embedding_model import EmbeddingModel


def make_chunk(chunk_id, text):
    return Chunk(chunk_id=chunk_id, text=text, source_id="doc", offset=0)


@pytest.fixture
def embedding_model():
    model = Mock(spec=EmbeddingModel)
    vectors = {
        "cats": [1.0, 0.0, 0.0],
        "dogs": [0.8, 0.6, 0.0],
        "cars": [0.0, 0.0, 1.0],
    }
    model.embed_batch.side_effect = lambda texts: [vectors[t] for t in texts]
    return model


@pytest.fixture
def memory_store(embedding_model):
    store = InMemoryVectorStore(embedding_model)
    store.add_chunks([
        make_chunk("c1", "cats"),
        make_chunk("c2", "dogs"),
        make_chunk("c3", "cars"),
    ])
    return store


class TestInMemoryVectorStore:
    """Test suite for InMemoryVectorStore."""

    def test_search_orders_by_similarity(self, memory_store):
        results = memory_store.search([1.0, 0.0, 0.0], top_k=3)

        assert [r.chunk.chunk_id for r in results] == ["c1", "c2", "c3"]
        assert all(isinstance(r, ScoredChunk) for r in results)
        scores = [r.relevance_score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert scores[0] == pytest.approx(1.0)
        assert scores[1] == pytest.approx(0.8)

    def test_search_returns_at_most_top_k(self, memory_store):
        assert len(memory_store.search([0.0, 0.0, 1.0], top_k=2)) == 2
        assert len(memory_store.search([0.0, 0.0, 1.0], top_k=10)) == 3

    def test_query_is_normalized(self, memory_store):
        results = memory_store.search([0.0, 0.0, 5.0], top_k=1)

        assert results[0].chunk.chunk_id == "c3"
        assert results[0].relevance_score == pytest.approx(1.0)

    def test_ties_keep_insertion_order(self, embedding_model):
        embedding_model.embed_batch.side_effect = lambda texts: [[1.0, 0.0] for _ in texts]
        store = InMemoryVectorStore(embedding_model)
        store.add_chunks([make_chunk("first", "a"), make_chunk("second", "b")])

        results = store.search([1.0, 0.0], top_k=2)

        assert [r.chunk.chunk_id for r in results] == ["first", "second"]

    def test_upsert_by_chunk_id(self, memory_store):
        memory_store.add_chunks([make_chunk("c1", "cats")])

        assert memory_store.count() == 3

    def test_new_chunks_visible_to_search(self, memory_store, embedding_model):
        embedding_model.embed_batch.side_effect = lambda texts: [[0.0, 1.0, 0.0] for _ in texts]
        memory_store.add_chunks([make_chunk("c4", "birds")])

        results = memory_store.search([0.0, 1.0, 0.0], top_k=1)

        assert results[0].chunk.chunk_id == "c4"

    def test_empty_store_returns_nothing(self, embedding_model):
        store = InMemoryVectorStore(embedding_model)

        assert store.search([1.0, 0.0, 0.0]) == []
        assert store.count() == 0

    def test_clear(self, memory_store):
        memory_store.clear()

        assert memory_store.count() == 0
        assert memory_store.search([1.0, 0.0, 0.0]) == []

    def test_invalid_queries(self, memory_store):
        with pytest.raises(ValueError, match="Query embedding cannot be empty"):
            memory_store.search([])
        with pytest.raises(ValueError, match="top_k must be positive"):
            memory_store.search([1.0, 0.0, 0.0], top_k=0)

    def test_dimension_mismatch(self, memory_store):
        with pytest.raises(ValueError, match="dimension"):
            memory_store.search([1.0, 0.0])

    def test_add_empty_list(self, embedding_model):
        store = InMemoryVectorStore(embedding_model)

        with pytest.raises(ValueError, match="Chunks list cannot be empty"):
            store.add_chunks([])

    def test_embedding_failure_leaves_store_unchanged(self, memory_store, embedding_model):
        embedding_model.embed_batch.side_effect = EmbeddingError("API down")

        with pytest.raises(EmbeddingError):
            memory_store.add_chunks([make_chunk("c9", "ships")])

        assert memory_store.count() == 3


class TestSupabaseVectorStore:
    """Test suite for SupabaseVectorStore."""

    @pytest.fixture
    def supabase_client(self):
        with patch('services.vector_store.create_client') as mock_create_client:
            client = MagicMock()
            mock_create_client.return_value = client
            yield client

    @pytest.fixture
    def store(self, embedding_model, supabase_client):
        return SupabaseVectorStore(
            embedding_model=embedding_model,
            supabase_url="https://test.supabase.co",
            supabase_key="test_key"
        )

    def test_initialization_without_credentials(self, embedding_model):
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            SupabaseVectorStore(embedding_model, supabase_url=None, supabase_key="test_key")

        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            SupabaseVectorStore(embedding_model, supabase_url="https://test.supabase.co", supabase_key=None)

    def test_add_chunks_upserts_records(self, store, supabase_client):
        store.add_chunks([make_chunk("c1", "cats"), make_chunk("c2", "dogs")])

        supabase_client.table.assert_called_with("document_chunks")
        records = supabase_client.table.return_value.upsert.call_args[0][0]
        assert [r["chunk_id"] for r in records] == ["c1", "c2"]
        assert records[0]["embedding"] == [1.0, 0.0, 0.0]
        assert records[1]["text"] == "dogs"

    def test_add_chunks_database_error(self, store, supabase_client):
        supabase_client.table.return_value.upsert.return_value.execute.side_effect = Exception("DB down")

        with pytest.raises(VectorStoreError, match="Failed to add chunks"):
            store.add_chunks([make_chunk("c1", "cats")])

    def test_search_parses_and_orders_rows(self, store, supabase_client):
        supabase_client.rpc.return_value.execute.return_value = Mock(data=[
            {"chunk_id": "c2", "text": "dogs", "source_id": "doc", "chunk_offset": 1,
             "page_number": 1, "similarity": 0.5},
            {"chunk_id": "c1", "text": "cats", "source_id": "doc", "chunk_offset": 0,
             "page_number": 1, "similarity": 0.9},
            {"chunk_id": "c3", "text": "cars", "source_id": "doc", "chunk_offset": 2,
             "page_number": 1, "similarity": 0.1},
        ])

        results = store.search([1.0, 0.0, 0.0], top_k=2)

        assert [r.chunk.chunk_id for r in results] == ["c1", "c2"]
        assert results[0].relevance_score == 0.9
        assert results[1].chunk.offset == 1
        args = supabase_client.rpc.call_args[0]
        assert args[0] == "match_chunks"
        assert args[1]["match_count"] == 2

    def test_search_no_rows(self, store, supabase_client):
        supabase_client.rpc.return_value.execute.return_value = Mock(data=[])

        assert store.search([1.0, 0.0, 0.0]) == []

    def test_search_error(self, store, supabase_client):
        supabase_client.rpc.return_value.execute.side_effect = Exception("timeout")

        with pytest.raises(VectorStoreError, match="Failed to search"):
            store.search([1.0, 0.0, 0.0])

    def test_count(self, store, supabase_client):
        supabase_client.table.return_value.select.return_value.execute.return_value = Mock(count=42)

        assert store.count() == 42

    def test_count_none_is_zero(self, store, supabase_client):
        supabase_client.table.return_value.select.return_value.execute.return_value = Mock(count=None)

        assert store.count() == 0

    def test_clear(self, store, supabase_client):
        store.clear()

        supabase_client.table.return_value.delete.return_value.neq.assert_called_once_with("chunk_id", "")
