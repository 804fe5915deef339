"""
Retrieval Gate.

Decides, per user turn, whether supporting documents must be fetched before
replying. Two stages, first match wins:

1. Lexical fast path: case-insensitive substring match against configured
   trigger terms. Any match routes to retrieval without a model call.
2. Model fallback: the gate model answers a strict yes/no question. An answer
   containing the affirmative token routes to retrieval; anything else,
   including an ambiguous answer, routes to plain generation.
"""

from dataclasses import dataclass, field
import logging
from typing import Iterable, List, Optional

from models.conversation import Route, Turn, last_user_message
from services.errors import RetrievalGateError
from services.llm_client import LLMClient, LLMClientError
from config import RETRIEVAL_TRIGGER_TERMS, GATE_AFFIRMATIVE, GATE_NEGATIVE, RETRIEVAL_ENABLED

logger = logging.getLogger(__name__)


@dataclass
class RetrievalDecision:
    """
    Routing decision for one turn. Never persisted beyond the turn.

    Attributes:
        route: RETRIEVE or GENERATE
        reasoning: Explanation of the decision
        rule_triggered: Which stage decided ("lexical", "model", "ambiguous",
            "no_user_turn", "disabled")
        matched_terms: Trigger terms found by the lexical stage
        model_answer: Raw fallback answer when the model was consulted
    """
    route: Route
    reasoning: str
    rule_triggered: str
    matched_terms: List[str] = field(default_factory=list)
    model_answer: Optional[str] = None

    @property
    def needs_retrieval(self) -> bool:
        return self.route == Route.RETRIEVE


class RetrievalGate:
    """Routes a user turn to retrieval or direct generation."""

    CLASSIFICATION_INSTRUCTIONS = (
        "Determine whether this message is a question that requires looking up "
        "reference documents to answer. Reply with only \"{affirmative}\" or \"{negative}\"."
    )

    def __init__(
        self,
        llm_client: LLMClient,
        trigger_terms: Optional[Iterable[str]] = None,
        affirmative: str = GATE_AFFIRMATIVE,
        negative: str = GATE_NEGATIVE,
        enabled: bool = RETRIEVAL_ENABLED
    ):
        """
        Args:
            llm_client: Client used for the yes/no fallback
            trigger_terms: Lexical trigger terms (default: configured RETRIEVAL_TRIGGER_TERMS)
            affirmative: Token meaning "lookup needed"
            negative: Token meaning "no lookup needed"
            enabled: When False every turn routes to generation
        """
        terms = RETRIEVAL_TRIGGER_TERMS if trigger_terms is None else trigger_terms
        self.trigger_terms = sorted({t.strip().lower() for t in terms if t and t.strip()})
        self.affirmative = affirmative
        self.negative = negative
        self.enabled = enabled
        self.llm_client = llm_client

    def decide(self, turns: List[Turn]) -> RetrievalDecision:
        """
        Classify the latest user turn of a conversation.

        Args:
            turns: Conversation so far, including the new user message

        Returns:
            RetrievalDecision

        Raises:
            RetrievalGateError: If the model fallback fails
        """
        message = last_user_message(turns)

        if message is None or not message.strip():
            return RetrievalDecision(
                route=Route.GENERATE,
                reasoning="No user message to retrieve for",
                rule_triggered="no_user_turn"
            )

        if not self.enabled:
            return RetrievalDecision(
                route=Route.GENERATE,
                reasoning="Retrieval is disabled",
                rule_triggered="disabled"
            )

        matched = self.match_trigger_terms(message)
        if matched:
            logger.info(f"Route: {Route.RETRIEVE.value} (lexical: {', '.join(matched)}) - {message[:50]}")
            return RetrievalDecision(
                route=Route.RETRIEVE,
                reasoning=f"Message contains trigger terms: {', '.join(matched)}",
                rule_triggered="lexical",
                matched_terms=matched
            )

        return self._classify_with_model(message)

    def match_trigger_terms(self, message: str) -> List[str]:
        """Trigger terms contained in the message (case-insensitive substring)."""
        message_lower = message.lower()
        return [term for term in self.trigger_terms if term in message_lower]

    def _classify_with_model(self, message: str) -> RetrievalDecision:
        instructions = self.CLASSIFICATION_INSTRUCTIONS.format(
            affirmative=self.affirmative,
            negative=self.negative
        )

        try:
            answer = self.llm_client.classify_yes_no(instructions, message)
        except LLMClientError as e:
            raise RetrievalGateError(f"Retrieval classification failed: {e.error.message}", cause=e)

        answer_lower = answer.strip().lower()

        if self.affirmative.lower() in answer_lower:
            logger.info(f"Route: {Route.RETRIEVE.value} (model answered {answer!r}) - {message[:50]}")
            return RetrievalDecision(
                route=Route.RETRIEVE,
                reasoning="Model classified the message as needing document lookup",
                rule_triggered="model",
                model_answer=answer
            )

        if self.negative.lower() in answer_lower:
            logger.info(f"Route: {Route.GENERATE.value} (model answered {answer!r}) - {message[:50]}")
            return RetrievalDecision(
                route=Route.GENERATE,
                reasoning="Model classified the message as not needing document lookup",
                rule_triggered="model",
                model_answer=answer
            )

        logger.warning(f"Ambiguous classification {answer!r}, defaulting to {Route.GENERATE.value}")
        return RetrievalDecision(
            route=Route.GENERATE,
            reasoning="Model answer was neither affirmative nor negative",
            rule_triggered="ambiguous",
            model_answer=answer
        )
