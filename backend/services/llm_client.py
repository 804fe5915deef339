"""LLM Client for Groq API integration."""
import time
from dataclasses import dataclass
from typing import List, Optional, Dict, Any
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import tiktoken
import logging

from config import GROQ_API_KEY, CHAT_MODEL, GATE_MODEL, LLM_TIMEOUT, LLM_MAX_RETRIES, MAX_REPLY_TOKENS
from models.conversation import Turn

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for interfacing with Groq API for chat completion and token counting."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        chat_model: str = CHAT_MODEL,
        gate_model: str = GATE_MODEL,
        timeout: float = LLM_TIMEOUT,
        max_retries: int = LLM_MAX_RETRIES,
        max_reply_tokens: int = MAX_REPLY_TOKENS
    ):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            chat_model: Model used for conversational replies
            gate_model: Model used for yes/no classification
            timeout: Per-request deadline in seconds
            max_retries: Transport-level retries performed by the Groq SDK
            max_reply_tokens: Maximum tokens to generate for a reply
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.chat_model = chat_model
        self.gate_model = gate_model
        self.max_reply_tokens = max_reply_tokens
        self.client = Groq(api_key=self.api_key, timeout=timeout, max_retries=max_retries)
        self._encoder = None
        logger.info(f"LLMClient initialized (chat={chat_model}, gate={gate_model})")

    def generate_reply(self, messages: List[Turn], system_instructions: str) -> LLMResponse:
        """
        Generate an assistant reply for a conversation.

        Args:
            messages: Ordered turns to send after the system instructions
            system_instructions: System prompt for this call

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        payload = [{"role": "system", "content": system_instructions}]
        payload.extend({"role": turn.role.value, "content": turn.content} for turn in messages)
        return self._complete(
            model=self.chat_model,
            messages=payload,
            max_tokens=self.max_reply_tokens,
            temperature=0.7
        )

    def classify_yes_no(self, system_instructions: str, user_text: str) -> str:
        """Ask the gate model a yes/no question and return its raw answer."""
        response = self._complete(
            model=self.gate_model,
            messages=[
                {"role": "system", "content": system_instructions},
                {"role": "user", "content": user_text},
            ],
            max_tokens=5,
            temperature=0.0
        )
        return response.text

    def count_tokens(self, text: str) -> int:
        """Count tokens in text."""
        if not text:
            return 0
        if self._encoder is None:
            # o200k_base approximates the Llama 3 tokenizer closely enough for budgeting
            self._encoder = tiktoken.get_encoding("o200k_base")
        return len(self._encoder.encode(text))

    def _complete(
        self,
        model: str,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float
    ) -> LLMResponse:
        start_time = time.time()

        try:
            logger.debug(f"Calling chat completion with model: {model}")

            response = self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature
            )

            latency_ms = int((time.time() - start_time) * 1000)

            text = response.choices[0].message.content
            if text is None:
                raise ValueError("Completion returned no content")

            tokens_input = response.usage.prompt_tokens
            tokens_output = response.usage.completion_tokens

            logger.info(
                f"Completion finished: model={model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return LLMResponse(
                text=text,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=model
            )

        except RateLimitError as e:
            raise self._error(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                model, start_time, e, retry_after=60
            )

        except AuthenticationError as e:
            raise self._error(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                model, start_time, e
            )

        except APITimeoutError as e:
            raise self._error(
                "TIMEOUT_ERROR",
                "Request timed out. Please try again.",
                model, start_time, e
            )

        except APIError as e:
            raise self._error(
                "API_ERROR",
                f"Groq API error: {str(e)}",
                model, start_time, e
            )

        except Exception as e:
            raise self._error(
                "UNKNOWN_ERROR",
                f"Unexpected error during completion: {str(e)}",
                model, start_time, e, error_type=type(e).__name__
            )

    @staticmethod
    def _error(code: str, message: str, model: str, start_time: float, cause: Exception, **extra) -> LLMClientError:
        latency_ms = int((time.time() - start_time) * 1000)
        details = {
            "model": model,
            "latency_ms": latency_ms,
            "original_error": str(cause),
        }
        details.update(extra)
        error = LLMError(code=code, message=message, details=details)
        logger.error(
            f"{code}: model={model}, latency={latency_ms}ms, error={cause}",
            exc_info=True,
            extra={"error_code": code, "error_details": details}
        )
        return LLMClientError(error)
