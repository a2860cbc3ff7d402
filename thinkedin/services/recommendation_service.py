"""Relevant-thought recommendations from an LLM over the latest feed."""

import logging
import re

from thinkedin.adapters.llm_adapter import LLMAdapter
from thinkedin.adapters.record_store import RecordStore
from thinkedin.core.config_manager import ConfigManager
from thinkedin.core.exceptions import StoreUnavailableError, ValidationError
from thinkedin.core.types import PostDTO, Recommendation

logger = logging.getLogger("thinkedin")

# First run of numbers in the answer, e.g. "2", "1, 4", "3, 5 and 7"
_NUMBER_LIST_RE = re.compile(r'\b\d+(?:(?:\s*,\s*(?:and\s+)?|\s+and\s+|\s*&\s*)\d+)*\b')


def build_prompt(request: str, posts: list[PostDTO]) -> str:
    """Numbered candidate list followed by the selection instruction."""
    numbered = "\n".join(f'{i}. "{post.content}"' for i, post in enumerate(posts, 1))
    return (
        f'User request: "{request}"\n'
        f"Here are some recent posts:\n"
        f"{numbered}\n\n"
        f"Based on the user's request, which of these posts are most relevant? "
        f"Reply with the numbers of the best matches and a short explanation."
    )


def parse_post_numbers(text: str, count: int) -> list[int]:
    """Zero-based indexes named by the first number list in text.

    Numbers outside 1..count are ignored, repeats are dropped and the
    model's order is kept.
    """
    match = _NUMBER_LIST_RE.search(text or "")
    if not match:
        return []
    indexes = []
    for number in re.findall(r'\d+', match.group(0)):
        index = int(number) - 1
        if 0 <= index < count and index not in indexes:
            indexes.append(index)
    return indexes


class RecommendationService:
    """Asks the LLM which of the latest thoughts match a free-text request.

    Store failures degrade to an empty candidate list; LLM failures
    propagate to the caller.
    """

    def __init__(self, store: RecordStore, llm: LLMAdapter, config: ConfigManager):
        self._store = store
        self._llm = llm
        self._config = config

    def recommend(self, prompt: str) -> Recommendation:
        """Pick the latest thoughts relevant to prompt.

        Raises:
            ValidationError: Blank prompt
            ConfigError: No LLM API key configured
            LLMError: LLM request failed
        """
        request = (prompt or "").strip()
        if not request:
            raise ValidationError("Prompt is required")

        limit = self._config.get("recommend.candidate_count", 20)
        try:
            candidates = self._store.list_posts(limit)
        except StoreUnavailableError as e:
            logger.warning(f"Recommending without candidates, feed unavailable: {e}")
            candidates = []

        model = self._config.get("llm.model", "gemini-2.0-flash")
        text = "".join(self._llm.generate(
            build_prompt(request, candidates),
            model,
            temperature=self._config.get("llm.temperature", 0.4),
            max_tokens=self._config.get("llm.max_tokens", 512),
        ))
        picks = parse_post_numbers(text, len(candidates))
        logger.info(f"{model} picked {len(picks)} of {len(candidates)} thoughts")
        return Recommendation(
            prompt=request,
            text=text.strip(),
            posts=[candidates[i] for i in picks],
        )
