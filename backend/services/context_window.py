"""Context window manager: trims conversation history to a token budget."""
import logging
from typing import Callable, List

from models.conversation import Role, Turn
from config import MAX_CONTEXT_TOKENS

logger = logging.getLogger(__name__)


class ContextWindowManager:
    """
    Keeps the most recent whole turns that fit a token budget.

    Rules:
    - System turns are always kept and counted against the budget first.
    - The remaining turns form a contiguous suffix of the non-system history.
    - Turns are included whole or not at all.
    - The suffix always reaches back to the latest user turn, even when that
      turn alone exceeds the budget (oversized turns are included, not cut).
    - The suffix starts on a user turn; if there is no user turn at all,
      only the system turns are returned.
    """

    def __init__(self, token_counter: Callable[[str], int], max_tokens: int = MAX_CONTEXT_TOKENS):
        """
        Args:
            token_counter: Counts tokens in a text, usually LLMClient.count_tokens
            max_tokens: Budget for the returned sequence
        """
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        self.token_counter = token_counter
        self.max_tokens = max_tokens

    def trim(self, turns: List[Turn]) -> List[Turn]:
        system_turns = [t for t in turns if t.role == Role.SYSTEM]
        history = [t for t in turns if t.role != Role.SYSTEM]

        remaining = self.max_tokens - sum(self.token_counter(t.content) for t in system_turns)

        latest_user = None
        for idx in range(len(history) - 1, -1, -1):
            if history[idx].role == Role.USER:
                latest_user = idx
                break

        if latest_user is None:
            if history:
                logger.debug("No user turn in history, keeping system turns only")
            return system_turns

        # Everything from the latest user turn onwards is mandatory
        start = latest_user
        remaining -= sum(self.token_counter(t.content) for t in history[start:])
        if remaining < 0:
            logger.warning(
                f"Latest exchange exceeds the context budget by {-remaining} tokens, including it anyway"
            )

        # Extend backwards one whole turn at a time while the budget allows
        while start > 0:
            cost = self.token_counter(history[start - 1].content)
            if cost > remaining:
                break
            remaining -= cost
            start -= 1

        # Never open on an assistant reply
        while history[start].role != Role.USER:
            start += 1

        kept = history[start:]
        dropped = len(history) - len(kept)
        if dropped:
            logger.debug(f"Trimmed {dropped} turns from history to fit {self.max_tokens} tokens")

        return system_turns + kept
