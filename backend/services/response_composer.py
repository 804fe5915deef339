"""Response composer: builds the system prompt and obtains the model's reply."""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from models.conversation import Role, Turn
from services.errors import ResponseComposerError
from services.llm_client import LLMClient, LLMClientError
from config import DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)


class PromptMode(str, Enum):
    PLAIN = "plain"
    GROUNDED = "grounded"


PLAIN_INSTRUCTIONS = (
    "You are a helpful assistant who converses in a friendly and professional way. "
    "Please answer the user's questions in {language}."
)

GROUNDED_INSTRUCTIONS = """You are an intelligent assistant with retrieval-augmented generation capabilities.
Please answer the user's questions in {language}.

Passages retrieved from the knowledge base are provided below.
If they contain relevant information, use it to give an accurate answer.
Always state clearly that your answer is based on retrieved knowledge.
If the passages do not answer the question, tell the user frankly that the available documents do not cover it, then try to help with your own knowledge.

When answering:
1. Keep the answer concise and clear
2. Ground the answer in the passages
3. When you use retrieved content, say where it comes from
4. Never make up information or give misleading answers

Retrieved passages relevant to the query:
"""


class PlainPrompt:
    """Conversational instructions with no grounding requirement."""

    mode = PromptMode.PLAIN

    def build_instructions(self, language: str, passages: List[str]) -> str:
        return PLAIN_INSTRUCTIONS.format(language=language)


class GroundedPrompt:
    """Instructions that embed the retrieved passages verbatim, in ranked order."""

    mode = PromptMode.GROUNDED

    def build_instructions(self, language: str, passages: List[str]) -> str:
        # Passages are appended after formatting so braces in them stay literal
        return GROUNDED_INSTRUCTIONS.format(language=language) + "\n\n".join(passages)


@dataclass
class ComposedPrompt:
    mode: PromptMode
    system_instructions: str
    messages: List[Turn]


@dataclass
class ComposedReply:
    """Reply text plus how it was produced."""
    text: str
    mode: PromptMode
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


class ResponseComposer:
    """Selects a prompt strategy and makes exactly one model call per reply."""

    def __init__(self, llm_client: LLMClient, default_language: str = DEFAULT_LANGUAGE):
        self.llm_client = llm_client
        self.default_language = default_language
        self._plain = PlainPrompt()
        self._grounded = GroundedPrompt()

    def select_strategy(self, passages: List[str]):
        """Grounded when there is at least one passage, plain otherwise."""
        return self._grounded if passages else self._plain

    def build_prompt(
        self,
        turns: List[Turn],
        language: Optional[str] = None,
        passages: Optional[List[str]] = None
    ) -> ComposedPrompt:
        passages = passages or []
        language = language or self.default_language
        strategy = self.select_strategy(passages)

        # Stored system turns are folded into the system instructions
        extra_system = [t.content for t in turns if t.role == Role.SYSTEM]
        instructions = strategy.build_instructions(language, passages)
        if extra_system:
            instructions = "\n\n".join([instructions] + extra_system)

        return ComposedPrompt(
            mode=strategy.mode,
            system_instructions=instructions,
            messages=[t for t in turns if t.role != Role.SYSTEM]
        )

    def compose(
        self,
        turns: List[Turn],
        language: Optional[str] = None,
        passages: Optional[List[str]] = None
    ) -> ComposedReply:
        """
        Build the prompt and call the model once.

        Args:
            turns: Trimmed conversation history ending with the user message
            language: Response language (default: configured DEFAULT_LANGUAGE)
            passages: Retrieved passage texts in ranked order, possibly empty

        Returns:
            ComposedReply

        Raises:
            ResponseComposerError: If the model call fails; no retry happens here
        """
        prompt = self.build_prompt(turns, language, passages)
        logger.debug(f"Composing reply in {prompt.mode.value} mode with {len(prompt.messages)} turns")

        try:
            response = self.llm_client.generate_reply(prompt.messages, prompt.system_instructions)
        except LLMClientError as e:
            raise ResponseComposerError(f"Reply generation failed: {e.error.message}", cause=e)

        return ComposedReply(
            text=response.text,
            mode=prompt.mode,
            tokens_input=response.tokens_input,
            tokens_output=response.tokens_output,
            latency_ms=response.latency_ms,
            model_used=response.model_used
        )
