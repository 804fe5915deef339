"""
Unit tests for RetrievalGate.

Tests the two-stage routing decision: lexical trigger terms first,
then the yes/no model fallback.
"""
import sys
sys.path.insert(0, 'backend')

import pytest
from unittest.mock import Mock
from models.conversation import Role, Route, Turn
from services.errors import RetrievalGateError
from services.llm_client import LLMClientError, LLMError
from services.retrieval_gate import RetrievalGate


TRIGGER_TERMS = ["what is", "how", "explain", "langchain", "什么是"]


def user_turns(*messages):
    return [Turn(role=Role.USER, content=m, position=i) for i, m in enumerate(messages)]


@pytest.fixture
def llm_client():
    client = Mock()
    client.classify_yes_no.return_value = "否"
    return client


@pytest.fixture
def gate(llm_client):
    return RetrievalGate(llm_client, trigger_terms=TRIGGER_TERMS, affirmative="是", negative="否")


class TestRetrievalGate:
    """Test suite for RetrievalGate."""

    # Lexical stage

    def test_trigger_term_routes_to_retrieval(self, gate, llm_client):
        """A lexical match wins even when the model would have said no."""
        decision = gate.decide(user_turns("What is LangGraph?"))

        assert decision.route == Route.RETRIEVE
        assert decision.needs_retrieval is True
        assert decision.rule_triggered == "lexical"
        assert "what is" in decision.matched_terms
        llm_client.classify_yes_no.assert_not_called()

    def test_trigger_match_is_case_insensitive(self, gate):
        decision = gate.decide(user_turns("EXPLAIN vector stores"))

        assert decision.route == Route.RETRIEVE
        assert decision.matched_terms == ["explain"]

    def test_trigger_match_is_substring(self, gate):
        """Substring matching means 'however' contains 'how'."""
        decision = gate.decide(user_turns("However you like"))

        assert decision.route == Route.RETRIEVE
        assert decision.matched_terms == ["how"]

    def test_chinese_trigger_term(self, gate, llm_client):
        decision = gate.decide(user_turns("什么是检索增强生成？"))

        assert decision.route == Route.RETRIEVE
        llm_client.classify_yes_no.assert_not_called()

    def test_multiple_matched_terms(self, gate):
        decision = gate.decide(user_turns("Explain what is LangChain"))

        assert decision.matched_terms == ["explain", "langchain", "what is"]

    def test_trigger_terms_are_normalized(self, llm_client):
        gate = RetrievalGate(llm_client, trigger_terms=["  Vector ", "vector", "", "RAG"])

        assert gate.trigger_terms == ["rag", "vector"]

    # Model fallback

    def test_greeting_consults_model_and_generates(self, gate, llm_client):
        decision = gate.decide(user_turns("Hello"))

        assert decision.route == Route.GENERATE
        assert decision.rule_triggered == "model"
        assert decision.model_answer == "否"
        llm_client.classify_yes_no.assert_called_once()
        assert llm_client.classify_yes_no.call_args[0][1] == "Hello"

    def test_model_affirmative_routes_to_retrieval(self, gate, llm_client):
        llm_client.classify_yes_no.return_value = "是的"

        decision = gate.decide(user_turns("Tell me about prompt templates"))

        assert decision.route == Route.RETRIEVE
        assert decision.rule_triggered == "model"

    def test_ambiguous_answer_routes_to_generation(self, gate, llm_client):
        llm_client.classify_yes_no.return_value = "maybe"

        decision = gate.decide(user_turns("Tell me a story"))

        assert decision.route == Route.GENERATE
        assert decision.rule_triggered == "ambiguous"
        assert decision.model_answer == "maybe"

    def test_english_gate_tokens(self, llm_client):
        gate = RetrievalGate(llm_client, trigger_terms=[], affirmative="yes", negative="no")
        llm_client.classify_yes_no.return_value = "Yes."

        decision = gate.decide(user_turns("Tell me about agents"))

        assert decision.route == Route.RETRIEVE

    def test_classification_instructions_name_both_tokens(self, gate, llm_client):
        gate.decide(user_turns("Hello"))

        instructions = llm_client.classify_yes_no.call_args[0][0]
        assert '"是"' in instructions
        assert '"否"' in instructions

    def test_uses_latest_user_turn(self, gate, llm_client):
        turns = [
            Turn(role=Role.USER, content="Explain LangChain", position=0),
            Turn(role=Role.ASSISTANT, content="LangChain is a framework.", position=1),
            Turn(role=Role.USER, content="Thanks!", position=2),
        ]

        decision = gate.decide(turns)

        assert decision.route == Route.GENERATE
        assert llm_client.classify_yes_no.call_args[0][1] == "Thanks!"

    def test_model_failure_raises_gate_error(self, gate, llm_client):
        llm_client.classify_yes_no.side_effect = LLMClientError(
            LLMError(code="TIMEOUT_ERROR", message="Request timed out. Please try again.", details={})
        )

        with pytest.raises(RetrievalGateError) as exc_info:
            gate.decide(user_turns("Hello"))

        assert exc_info.value.stage == "routing"
        assert "timed out" in exc_info.value.message

    def test_classifies_latest_user_turn_only(self, gate, llm_client):
        turns = user_turns("What is LangChain?") + [
            Turn(role=Role.ASSISTANT, content="A framework.", position=1),
            Turn(role=Role.USER, content="Thanks!", position=2),
        ]

        decision = gate.decide(turns)

        assert decision.needs_retrieval is False
        llm_client.classify_yes_no.assert_called_once()
        assert llm_client.classify_yes_no.call_args[0][1] == "Thanks!"

    # Short circuits

    def test_no_user_turn_generates_without_model(self, gate, llm_client):
        turns = [
            Turn(role=Role.SYSTEM, content="Be brief", position=0),
            Turn(role=Role.ASSISTANT, content="Hi", position=1),
        ]

        decision = gate.decide(turns)

        assert decision.route == Route.GENERATE
        assert decision.rule_triggered == "no_user_turn"
        llm_client.classify_yes_no.assert_not_called()

    def test_empty_history(self, gate):
        assert gate.decide([]).route == Route.GENERATE

    def test_disabled_gate_always_generates(self, llm_client):
        gate = RetrievalGate(llm_client, trigger_terms=TRIGGER_TERMS, enabled=False)

        decision = gate.decide(user_turns("What is LangChain?"))

        assert decision.route == Route.GENERATE
        assert decision.rule_triggered == "disabled"
        llm_client.classify_yes_no.assert_not_called()
