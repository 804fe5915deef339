"""Unit tests for RoutingLogger."""
import sys
sys.path.insert(0, 'backend')

import json
import threading
import pytest
from pathlib import Path
from services.routing_logger import RoutingLogger


@pytest.fixture
def temp_log_file(tmp_path):
    """Create a temporary log file path."""
    log_file = tmp_path / "test_routing_decisions.jsonl"
    return str(log_file)


@pytest.fixture
def routing_logger(temp_log_file):
    """Create a RoutingLogger instance with temporary log file."""
    logger = RoutingLogger(log_file_path=temp_log_file)
    yield logger
    logger.close()


def read_entries(path):
    with open(path, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def test_log_routing_decision_creates_file(routing_logger, temp_log_file):
    """Test that logging creates the log file."""
    routing_logger.log_routing_decision(
        session_id="sess_1",
        query="What is LangChain?",
        route="retrieve",
        rule_triggered="lexical",
        passages_retrieved=3,
        prompt_mode="grounded",
        matched_terms=["langchain", "what is"],
        tokens_input=234,
        tokens_output=45,
        latency_ms=342
    )

    assert Path(temp_log_file).exists()


def test_entry_fields(routing_logger, temp_log_file):
    """Test that every field is written."""
    routing_logger.log_routing_decision(
        session_id="sess_1",
        query="What is LangChain?",
        route="retrieve",
        rule_triggered="lexical",
        passages_retrieved=3,
        prompt_mode="grounded",
        matched_terms=["langchain"],
        tokens_input=234,
        tokens_output=45,
        latency_ms=342
    )

    entry = read_entries(temp_log_file)[0]
    assert entry["session_id"] == "sess_1"
    assert entry["query"] == "What is LangChain?"
    assert entry["route"] == "retrieve"
    assert entry["rule_triggered"] == "lexical"
    assert entry["matched_terms"] == ["langchain"]
    assert entry["passages_retrieved"] == 3
    assert entry["prompt_mode"] == "grounded"
    assert entry["tokens_input"] == 234
    assert entry["tokens_output"] == 45
    assert entry["latency_ms"] == 342
    assert entry["timestamp"].endswith("Z")


def test_defaults(routing_logger, temp_log_file):
    routing_logger.log_routing_decision(
        session_id="sess_1", query="Hello", route="generate", rule_triggered="model"
    )

    entry = read_entries(temp_log_file)[0]
    assert entry["matched_terms"] == []
    assert entry["passages_retrieved"] == 0
    assert entry["prompt_mode"] == "plain"


def test_non_ascii_query_preserved(routing_logger, temp_log_file):
    routing_logger.log_routing_decision(
        session_id="sess_1", query="什么是检索？", route="retrieve", rule_triggered="lexical"
    )

    with open(temp_log_file, "r", encoding="utf-8") as f:
        assert "什么是检索？" in f.read()


def test_appends_one_line_per_entry(routing_logger, temp_log_file):
    for i in range(3):
        routing_logger.log_routing_decision(
            session_id=f"sess_{i}", query="Hello", route="generate", rule_triggered="model"
        )

    assert [e["session_id"] for e in read_entries(temp_log_file)] == ["sess_0", "sess_1", "sess_2"]


def test_concurrent_writes(routing_logger, temp_log_file):
    def write(worker):
        for i in range(20):
            routing_logger.log_routing_decision(
                session_id=f"sess_{worker}", query=f"q{i}", route="generate", rule_triggered="model"
            )

    threads = [threading.Thread(target=write, args=(w,)) for w in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(read_entries(temp_log_file)) == 100


def test_creates_parent_directory(tmp_path):
    path = tmp_path / "nested" / "logs" / "routing.jsonl"

    logger = RoutingLogger(log_file_path=str(path))
    logger.close()

    assert path.parent.is_dir()


def test_entries_dropped_after_close(temp_log_file):
    logger = RoutingLogger(log_file_path=temp_log_file)
    logger.close()

    logger.log_routing_decision(session_id="s", query="Hello", route="generate", rule_triggered="model")

    assert read_entries(temp_log_file) == []
