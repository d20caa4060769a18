from __future__ import annotations

"""Non-LLM answer generator for offline and local setups."""

from dataclasses import dataclass

from qa_gateway.rag.llm import EMPTY_COMPLETION_ANSWER
from qa_gateway.rag.types import ContextItem


@dataclass
class ExtractiveGenerator:
    """Return a short extract from the first context item."""
    max_chars: int = 480

    async def generate(self, question: str, contexts: list[ContextItem]) -> str:
        """Generate an extractive answer from context."""
        for item in contexts:
            text = item.answer if item.is_qa_pair else item.content
            if text and text.strip():
                return self._truncate(text.strip())
        return EMPTY_COMPLETION_ANSWER

    def _truncate(self, text: str) -> str:
        """Trim text to the max character budget without cutting words."""
        if len(text) <= self.max_chars:
            return text
        return text[: self.max_chars].rsplit(" ", 1)[0] + "..."
