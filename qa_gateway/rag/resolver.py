from __future__ import annotations

"""Confidence-gated answer resolution over Q/A pairs and general sources."""

import asyncio
import logging
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, AsyncContextManager, Awaitable, TypeVar

from qa_gateway.rag.embeddings import EmbeddingProvider
from qa_gateway.rag.errors import ConfigurationError, ValidationError
from qa_gateway.rag.llm import AnswerGenerator
from qa_gateway.rag.observability import ResolverMetrics
from qa_gateway.rag.types import (
    GENERAL_SOURCE_TYPE,
    QA_PAIR_TYPE,
    ContextItem,
    Match,
    ResolutionResult,
    ResolutionSource,
    SimilarQuestion,
)
from qa_gateway.vectorstore.base import VectorIndex

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONFIDENCE_THRESHOLD = 0.80
DEFAULT_TOP_K = 3
FALLBACK_ANSWER = "I'm sorry, I don't know the answer to that question."


def normalize_question(question: str | None) -> str:
    """Return the trimmed question or raise when it is missing or blank."""
    if question is None or not question.strip():
        raise ValidationError("Question is required")
    return question.strip()


def select_strategy(
    best_score: float | None,
    has_general_sources: bool,
    threshold: float,
) -> ResolutionSource:
    """Pick the answer source for a best Q/A score and general-source availability.

    ``best_score`` is None when no Q/A pair matched. A score equal to the
    threshold counts as a confident match.
    """
    if best_score is not None and best_score >= threshold:
        return ResolutionSource.PINECONE_DIRECT
    if has_general_sources:
        return ResolutionSource.GENERAL_SOURCES
    if best_score is None:
        return ResolutionSource.NO_SOURCES
    return ResolutionSource.SIMILAR_QUESTIONS


def _by_score(matches: list[Match]) -> list[Match]:
    return sorted(matches, key=lambda match: match.score, reverse=True)


@dataclass
class AnswerResolver:
    """Resolve a question to a stored or generated answer with provenance."""
    embedder: EmbeddingProvider
    index: VectorIndex
    generator: AnswerGenerator
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    general_top_k: int = DEFAULT_TOP_K
    fallback_answer: str = FALLBACK_ANSWER
    metrics: ResolverMetrics | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ConfigurationError(
                f"Confidence threshold must be within [0, 1], got {self.confidence_threshold}"
            )
        if self.general_top_k < 0:
            raise ConfigurationError("General source top_k must not be negative")

    def _track(self, operation: str) -> AsyncContextManager[Any]:
        if self.metrics is None:
            return nullcontext()
        return self.metrics.track(operation)

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        async with self._track(operation):
            return await awaitable

    async def resolve(self, question: str, top_k: int = DEFAULT_TOP_K) -> ResolutionResult:
        """Embed the question, then resolve it against the index."""
        question = normalize_question(question)
        embedding = await self._call("embed", self.embedder.embed(question))
        return await self.resolve_embedding(question, embedding, top_k=top_k)

    async def resolve_embedding(
        self,
        question: str,
        embedding: list[float],
        top_k: int = DEFAULT_TOP_K,
    ) -> ResolutionResult:
        """Search both record kinds concurrently and apply the confidence policy."""
        qa_matches, general_matches = await asyncio.gather(
            self._call(
                "search_qa_pairs",
                self.index.query(embedding, top_k, filter={"type": QA_PAIR_TYPE}),
            ),
            self._call(
                "search_general_sources",
                self.index.query(embedding, self.general_top_k, filter={"type": GENERAL_SOURCE_TYPE}),
            ),
        )
        qa_matches = _by_score(qa_matches)
        general_matches = _by_score(general_matches)
        best = qa_matches[0] if qa_matches else None
        best_score = best.score if best is not None else None
        source = select_strategy(best_score, bool(general_matches), self.confidence_threshold)

        if source is ResolutionSource.PINECONE_DIRECT:
            answer = str(best.metadata.get("answer", ""))
        elif source is ResolutionSource.NO_SOURCES:
            answer = self.fallback_answer
        else:
            context_matches = (
                general_matches if source is ResolutionSource.GENERAL_SOURCES else qa_matches
            )
            contexts = [ContextItem.from_match(match) for match in context_matches]
            answer = await self._call("generate", self.generator.generate(question, contexts))

        if self.metrics is not None:
            self.metrics.record_resolution(source.value)
        logger.info(
            "question_resolved",
            extra={
                "source": source.value,
                "best_score": best_score,
                "threshold": self.confidence_threshold,
                "qa_matches": len(qa_matches),
                "general_matches": len(general_matches),
            },
        )
        return ResolutionResult(
            question=question,
            answer=answer,
            confidence=best_score if best_score is not None else 0.0,
            similar_questions=[
                SimilarQuestion(
                    question=str(match.metadata.get("question", "")),
                    score=match.score,
                )
                for match in qa_matches
            ],
            source=source,
        )
