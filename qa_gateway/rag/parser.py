from __future__ import annotations

"""Parse Q:/A:/G: prefixed document text into Q/A pairs and general sources."""

import logging
import re
from dataclasses import dataclass, field

from qa_gateway.rag.types import GeneralSource, QAPair

logger = logging.getLogger(__name__)

QUESTION_PREFIX = "Q:"
ANSWER_PREFIX = "A:"
GENERAL_PREFIX = "G:"

# Glyphs outside this set (e.g. cell separators) are blanked out of same-line questions.
_QUESTION_NOISE_RE = re.compile(r"[^\w\s.,?!;:()'\"-]")


@dataclass(frozen=True)
class ParsedDocument:
    """Records extracted from a single document."""
    qa_pairs: list[QAPair] = field(default_factory=list)
    general_sources: list[GeneralSource] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.qa_pairs or self.general_sources)


def split_lines(text: str) -> list[str]:
    """Return non-empty, trimmed lines."""
    return [line.strip() for line in text.split("\n") if line.strip()]


def _strip_prefix(line: str, prefix: str) -> str:
    return line[len(prefix):].strip()


def clean_question(text: str) -> str:
    """Replace stray glyphs with spaces and trim."""
    return _QUESTION_NOISE_RE.sub(" ", text).strip()


def parse_general_sources(lines: list[str]) -> list[GeneralSource]:
    sources: list[GeneralSource] = []
    for line in lines:
        if not line.startswith(GENERAL_PREFIX):
            continue
        content = _strip_prefix(line, GENERAL_PREFIX)
        if content:
            sources.append(GeneralSource(content=content))
    return sources


def parse_qa_pairs(lines: list[str]) -> list[QAPair]:
    pairs: list[QAPair] = []
    for index, line in enumerate(lines):
        if not line.startswith(QUESTION_PREFIX):
            continue
        if ANSWER_PREFIX in line:
            before, _, after = line.partition(ANSWER_PREFIX)
            question = clean_question(_strip_prefix(before, QUESTION_PREFIX))
            pairs.append(QAPair(question=question, answer=after.strip()))
            continue
        question = _strip_prefix(line, QUESTION_PREFIX)
        next_index = index + 1
        if next_index < len(lines) and lines[next_index].startswith(ANSWER_PREFIX):
            answer = _strip_prefix(lines[next_index], ANSWER_PREFIX)
            pairs.append(QAPair(question=question, answer=answer))
        else:
            logger.warning("qa_question_without_answer", extra={"question": question})
    return pairs


def parse_document(text: str) -> ParsedDocument:
    """Extract Q/A pairs and general sources from document text.

    General sources are collected in their own pass, so their order is
    independent of the Q/A pairs. A question whose answer is neither on the
    same line nor on the next line is dropped with a warning.
    """
    lines = split_lines(text)
    general_sources = parse_general_sources(lines)
    qa_pairs = parse_qa_pairs(lines)
    logger.info(
        "document_parsed",
        extra={
            "lines": len(lines),
            "qa_pairs": len(qa_pairs),
            "general_sources": len(general_sources),
        },
    )
    return ParsedDocument(qa_pairs=qa_pairs, general_sources=general_sources)
