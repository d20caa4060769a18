from __future__ import annotations

"""Document parsing behavior tests."""

import logging

from qa_gateway.rag.parser import clean_question, parse_document
from qa_gateway.rag.types import GeneralSource, QAPair


def test_parses_general_source_and_split_line_pair() -> None:
    text = "G: Office hours are 9-5.\nQ: What are your hours?\nA: 9am-5pm weekdays."

    parsed = parse_document(text)

    assert parsed.general_sources == [GeneralSource(content="Office hours are 9-5.")]
    assert parsed.qa_pairs == [QAPair(question="What are your hours?", answer="9am-5pm weekdays.")]


def test_question_without_answer_is_dropped(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="qa_gateway.rag.parser"):
        parsed = parse_document("Q: Where is the office?")

    assert parsed.qa_pairs == []
    assert parsed.is_empty
    assert any(record.getMessage() == "qa_question_without_answer" for record in caplog.records)


def test_same_line_pair_strips_separator_glyphs() -> None:
    parsed = parse_document("Q: Do you ship abroad? ♂ A: Yes, to most countries.")

    assert parsed.qa_pairs == [
        QAPair(question="Do you ship abroad?", answer="Yes, to most countries.")
    ]


def test_same_line_pair_splits_at_first_answer_prefix() -> None:
    parsed = parse_document("Q: Status? A: Code A: means accepted")

    assert parsed.qa_pairs[0].question == "Status?"
    assert parsed.qa_pairs[0].answer == "Code A: means accepted"


def test_table_row_separator_is_removed_from_question() -> None:
    parsed = parse_document("Q: How do I reset my password? | A: Use the login page link.")

    assert parsed.qa_pairs == [
        QAPair(question="How do I reset my password?", answer="Use the login page link.")
    ]


def test_blank_lines_between_question_and_answer_are_ignored() -> None:
    parsed = parse_document("Q: Do you have an app?\n\n   \nA: Yes, on iOS and Android.")

    assert parsed.qa_pairs == [
        QAPair(question="Do you have an app?", answer="Yes, on iOS and Android.")
    ]


def test_orphan_answer_and_plain_lines_are_ignored() -> None:
    parsed = parse_document("Intro paragraph\nA: stray answer\nG:   \nNotes")

    assert parsed.qa_pairs == []
    assert parsed.general_sources == []


def test_general_sources_are_collected_independently_of_pairs() -> None:
    text = "\n".join(
        [
            "Q: First?",
            "A: One.",
            "G: Background one.",
            "Q: Second? A: Two.",
            "G: Background two.",
        ]
    )

    parsed = parse_document(text)

    assert [pair.question for pair in parsed.qa_pairs] == ["First?", "Second?"]
    assert [source.content for source in parsed.general_sources] == [
        "Background one.",
        "Background two.",
    ]


def test_each_line_contributes_to_one_category() -> None:
    text = "G: Q: looks like a question A: but is general\nQ: Real? A: Yes."

    parsed = parse_document(text)

    assert parsed.general_sources == [
        GeneralSource(content="Q: looks like a question A: but is general")
    ]
    assert parsed.qa_pairs == [QAPair(question="Real?", answer="Yes.")]


def test_repeated_questions_are_not_deduplicated() -> None:
    text = "Q: Hours?\nA: 9-5.\nQ: Hours?\nA: 9-5."

    parsed = parse_document(text)

    assert len(parsed.qa_pairs) == 2


def test_parsing_is_idempotent() -> None:
    text = "G: Info.\nQ: A?\nA: B.\nQ: Orphan?\nQ: C? A: D."

    assert parse_document(text) == parse_document(text)


def test_empty_document_returns_empty_collections() -> None:
    parsed = parse_document("")

    assert parsed.qa_pairs == []
    assert parsed.general_sources == []


def test_clean_question_keeps_punctuation() -> None:
    assert clean_question("What's \"new\" (today)?; ok-ish! •") == "What's \"new\" (today)?; ok-ish!"
