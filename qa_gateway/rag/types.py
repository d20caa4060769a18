from __future__ import annotations

"""Core data types for Q/A records, retrieval and resolution."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

QA_PAIR_TYPE = "qa_pair"
GENERAL_SOURCE_TYPE = "general_source"


@dataclass(frozen=True)
class QAPair:
    """Question with its canonical answer."""
    question: str
    answer: str

    def to_metadata(self) -> dict[str, Any]:
        return {"type": QA_PAIR_TYPE, "question": self.question, "answer": self.answer}


@dataclass(frozen=True)
class GeneralSource:
    """Unstructured background text used as generation context."""
    content: str

    def to_metadata(self) -> dict[str, Any]:
        return {"type": GENERAL_SOURCE_TYPE, "content": self.content}


@dataclass(frozen=True)
class StoredRecord:
    """Record written to the vector index."""
    id: str
    embedding: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Match:
    """Similarity search hit; score is cosine similarity."""
    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def record_type(self) -> str:
        return str(self.metadata.get("type", ""))


@dataclass(frozen=True)
class ContextItem:
    """Generation context: a Q/A pair or free-text content."""
    question: str | None = None
    answer: str | None = None
    content: str | None = None

    @property
    def is_qa_pair(self) -> bool:
        return bool(self.question and self.answer)

    @classmethod
    def from_match(cls, match: Match) -> "ContextItem":
        metadata = match.metadata
        return cls(
            question=metadata.get("question"),
            answer=metadata.get("answer"),
            content=metadata.get("content"),
        )


@dataclass(frozen=True)
class ProviderConfig:
    """Connection settings for an embedding or generation client."""
    api_key: str
    endpoint: str | None
    model: str
    api_version: str | None = None
    timeout: float = 30.0


class ResolutionSource(str, Enum):
    """Provenance tag naming the branch that produced an answer."""
    PINECONE_DIRECT = "pinecone_direct"
    GENERAL_SOURCES = "general_sources"
    SIMILAR_QUESTIONS = "similar_questions"
    NO_SOURCES = "no_sources"


@dataclass(frozen=True)
class SimilarQuestion:
    question: str
    score: float


@dataclass(frozen=True)
class ResolutionResult:
    """Final answer with confidence and provenance for one question."""
    question: str
    answer: str
    confidence: float
    similar_questions: list[SimilarQuestion]
    source: ResolutionSource
