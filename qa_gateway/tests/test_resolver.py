from __future__ import annotations

"""Answer resolution policy tests."""

import asyncio
import itertools

import pytest
from prometheus_client import CollectorRegistry

from fakes import FakeEmbedder, FakeGenerator, FakeIndex, general_match, qa_match
from qa_gateway.rag.errors import ConfigurationError, ValidationError
from qa_gateway.rag.llm import LLMError
from qa_gateway.rag.observability import ResolverMetrics
from qa_gateway.rag.resolver import FALLBACK_ANSWER, AnswerResolver, select_strategy
from qa_gateway.rag.types import ResolutionSource
from qa_gateway.vectorstore.base import VectorIndexError

pytestmark = pytest.mark.anyio


def build_resolver(
    index: FakeIndex,
    generator: FakeGenerator | None = None,
    threshold: float = 0.80,
    metrics: ResolverMetrics | None = None,
) -> AnswerResolver:
    return AnswerResolver(
        embedder=FakeEmbedder(),
        index=index,
        generator=generator or FakeGenerator(),
        confidence_threshold=threshold,
        metrics=metrics,
    )


async def test_high_confidence_returns_stored_answer() -> None:
    generator = FakeGenerator()
    index = FakeIndex(qa_matches=[qa_match("q0", 0.92, "What are your hours?", "9am-5pm weekdays.")])
    resolver = build_resolver(index, generator)

    result = await resolver.resolve("hours?")

    assert result.source is ResolutionSource.PINECONE_DIRECT
    assert result.answer == "9am-5pm weekdays."
    assert result.confidence == 0.92
    assert generator.calls == []


async def test_no_matches_returns_fallback() -> None:
    generator = FakeGenerator()
    resolver = build_resolver(FakeIndex(), generator)

    result = await resolver.resolve("anything?")

    assert result.source is ResolutionSource.NO_SOURCES
    assert result.confidence == 0
    assert result.answer == FALLBACK_ANSWER
    assert result.similar_questions == []
    assert generator.calls == []


async def test_low_confidence_prefers_general_sources() -> None:
    generator = FakeGenerator(answer="synthesized from background")
    index = FakeIndex(
        qa_matches=[qa_match("q1", 0.5, "Where is the office?", "Downtown.")],
        general_matches=[
            general_match("g0", 0.4, "The office is at 123 Business Avenue."),
            general_match("g1", 0.3, "Parking is available."),
        ],
    )
    resolver = build_resolver(index, generator)

    result = await resolver.resolve("where can I park?")

    assert result.source is ResolutionSource.GENERAL_SOURCES
    assert result.confidence == 0.5
    assert result.answer == "synthesized from background"
    question, contexts = generator.calls[0]
    assert question == "where can I park?"
    assert [item.content for item in contexts] == [
        "The office is at 123 Business Avenue.",
        "Parking is available.",
    ]


async def test_low_confidence_without_general_sources_uses_similar_questions() -> None:
    generator = FakeGenerator()
    index = FakeIndex(
        qa_matches=[
            qa_match("q1", 0.6, "Do you ship abroad?", "Yes."),
            qa_match("q2", 0.55, "Can I track my order?", "Yes, by email."),
        ]
    )
    resolver = build_resolver(index, generator)

    result = await resolver.resolve("international delivery?")

    assert result.source is ResolutionSource.SIMILAR_QUESTIONS
    assert result.confidence == 0.6
    assert result.answer == "generated answer"
    _, contexts = generator.calls[0]
    assert [(item.question, item.answer) for item in contexts] == [
        ("Do you ship abroad?", "Yes."),
        ("Can I track my order?", "Yes, by email."),
    ]


async def test_no_qa_match_with_general_sources_has_zero_confidence() -> None:
    index = FakeIndex(general_matches=[general_match("g0", 0.7, "We are closed on holidays.")])
    resolver = build_resolver(index)

    result = await resolver.resolve("holidays?")

    assert result.source is ResolutionSource.GENERAL_SOURCES
    assert result.confidence == 0


async def test_score_equal_to_threshold_is_confident() -> None:
    index = FakeIndex(qa_matches=[qa_match("q0", 0.8, "Hours?", "9-5.")])
    resolver = build_resolver(index, threshold=0.8)

    result = await resolver.resolve("Hours?")

    assert result.source is ResolutionSource.PINECONE_DIRECT


async def test_unsorted_matches_are_ranked_before_branching() -> None:
    index = FakeIndex(
        qa_matches=[
            qa_match("q1", 0.3, "Low?", "low"),
            qa_match("q2", 0.95, "High?", "high"),
        ]
    )
    resolver = build_resolver(index)

    result = await resolver.resolve("High?")

    assert result.answer == "high"
    assert [item.score for item in result.similar_questions] == [0.95, 0.3]


async def test_similar_questions_reported_for_every_branch() -> None:
    index = FakeIndex(
        qa_matches=[qa_match("q0", 0.9, "Hours?", "9-5."), qa_match("q1", 0.2, "Days?", "Mon-Fri.")],
        general_matches=[general_match("g0", 0.1, "Background.")],
    )
    resolver = build_resolver(index)

    result = await resolver.resolve("Hours?")

    assert [(item.question, item.score) for item in result.similar_questions] == [
        ("Hours?", 0.9),
        ("Days?", 0.2),
    ]


async def test_searches_filter_by_record_type() -> None:
    index = FakeIndex()
    resolver = build_resolver(index)

    await resolver.resolve("question?", top_k=5)

    assert sorted(index.queries, key=lambda item: item[1]["type"]) == [
        (3, {"type": "general_source"}),
        (5, {"type": "qa_pair"}),
    ]


async def test_searches_run_concurrently() -> None:
    started: list[str] = []
    both_started = asyncio.Event()

    class WaitingIndex(FakeIndex):
        async def query(self, embedding, top_k, filter=None):
            started.append(filter["type"])
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), timeout=1)
            return []

    resolver = build_resolver(WaitingIndex())

    result = await resolver.resolve("question?")

    assert sorted(started) == ["general_source", "qa_pair"]
    assert result.source is ResolutionSource.NO_SOURCES


async def test_index_failure_propagates() -> None:
    resolver = build_resolver(FakeIndex(fail=True))

    with pytest.raises(VectorIndexError):
        await resolver.resolve("question?")


async def test_generation_failure_propagates_from_similar_questions_branch() -> None:
    generator = FakeGenerator(error=LLMError("completion unavailable"))
    index = FakeIndex(qa_matches=[qa_match("q1", 0.6, "Do you ship abroad?", "Yes.")])
    resolver = build_resolver(index, generator)

    with pytest.raises(LLMError):
        await resolver.resolve("international delivery?")

    assert len(generator.calls) == 1


async def test_blank_question_is_rejected_before_embedding() -> None:
    embedder = FakeEmbedder()
    resolver = AnswerResolver(embedder=embedder, index=FakeIndex(), generator=FakeGenerator())

    with pytest.raises(ValidationError):
        await resolver.resolve("   ")
    assert embedder.calls == []


async def test_question_is_trimmed() -> None:
    embedder = FakeEmbedder()
    resolver = AnswerResolver(embedder=embedder, index=FakeIndex(), generator=FakeGenerator())

    result = await resolver.resolve("  hours?  ")

    assert embedder.calls == ["hours?"]
    assert result.question == "hours?"


async def test_metrics_record_branch_and_calls() -> None:
    registry = CollectorRegistry()
    metrics = ResolverMetrics(registry=registry)
    index = FakeIndex(qa_matches=[qa_match("q0", 0.4, "Hours?", "9-5.")])
    resolver = build_resolver(index, metrics=metrics)

    await resolver.resolve("Hours?")

    assert registry.get_sample_value(
        "qa_resolutions_total", {"source": "similar_questions"}
    ) == 1.0
    for operation in ("embed", "search_qa_pairs", "search_general_sources", "generate"):
        assert registry.get_sample_value(
            "qa_provider_calls_total", {"operation": operation, "status": "ok"}
        ) == 1.0


async def test_metrics_count_failed_calls() -> None:
    registry = CollectorRegistry()
    resolver = build_resolver(FakeIndex(fail=True), metrics=ResolverMetrics(registry=registry))

    with pytest.raises(VectorIndexError):
        await resolver.resolve("Hours?")

    assert registry.get_sample_value(
        "qa_provider_calls_total", {"operation": "search_qa_pairs", "status": "error"}
    ) == 1.0


def test_threshold_outside_unit_interval_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        build_resolver(FakeIndex(), threshold=1.5)


def test_select_strategy_is_total() -> None:
    threshold = 0.8
    outcomes = set()
    for best_score, has_general in itertools.product([None, 0.0, 0.5, 0.8, 0.99], [False, True]):
        source = select_strategy(best_score, has_general, threshold)
        assert isinstance(source, ResolutionSource)
        outcomes.add(source)
        if best_score is not None and best_score >= threshold:
            assert source is ResolutionSource.PINECONE_DIRECT
        elif has_general:
            assert source is ResolutionSource.GENERAL_SOURCES
        elif best_score is None:
            assert source is ResolutionSource.NO_SOURCES
        else:
            assert source is ResolutionSource.SIMILAR_QUESTIONS
    assert outcomes == set(ResolutionSource)
