from __future__ import annotations

"""Test doubles for the embedding, index and generation collaborators."""

from dataclasses import dataclass, field
from typing import Any, Sequence

from qa_gateway.rag.types import ContextItem, Match, StoredRecord
from qa_gateway.vectorstore.base import VectorIndexError


@dataclass
class FakeEmbedder:
    dimension: int = 3
    calls: list[str] = field(default_factory=list)
    error: Exception | None = None

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return [float(len(text)), 1.0, 0.0][: self.dimension]


@dataclass
class FakeIndex:
    qa_matches: list[Match] = field(default_factory=list)
    general_matches: list[Match] = field(default_factory=list)
    queries: list[tuple[int, dict[str, Any] | None]] = field(default_factory=list)
    upserts: list[list[StoredRecord]] = field(default_factory=list)
    fail: bool = False

    async def upsert(self, records: Sequence[StoredRecord]) -> None:
        self.upserts.append(list(records))

    async def query(
        self,
        embedding: list[float],
        top_k: int,
        filter: dict[str, Any] | None = None,
    ) -> list[Match]:
        self.queries.append((top_k, filter))
        if self.fail:
            raise VectorIndexError("index unavailable")
        if filter == {"type": "general_source"}:
            return list(self.general_matches)
        return list(self.qa_matches)


@dataclass
class FakeGenerator:
    answer: str = "generated answer"
    calls: list[tuple[str, list[ContextItem]]] = field(default_factory=list)
    error: Exception | None = None

    async def generate(self, question: str, contexts: list[ContextItem]) -> str:
        self.calls.append((question, contexts))
        if self.error is not None:
            raise self.error
        return self.answer


def qa_match(match_id: str, score: float, question: str, answer: str) -> Match:
    return Match(
        id=match_id,
        score=score,
        metadata={"type": "qa_pair", "question": question, "answer": answer},
    )


def general_match(match_id: str, score: float, content: str) -> Match:
    return Match(
        id=match_id,
        score=score,
        metadata={"type": "general_source", "content": content},
    )
