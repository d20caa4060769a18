from __future__ import annotations

"""Loader for manually curated Q/A lists stored as JSON."""

import json
from pathlib import Path

from qa_gateway.rag.types import QAPair


class QAJsonLoaderError(RuntimeError):
    """Raised when a Q/A list file is malformed."""
    pass


def parse_qa_pairs_json(raw: str) -> list[QAPair]:
    """Parse ``[{"question": ..., "answer": ...}, ...]`` into Q/A pairs."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise QAJsonLoaderError(f"Invalid JSON: {exc.msg}") from exc
    if not isinstance(data, list):
        raise QAJsonLoaderError("Expected a JSON list of question/answer objects")
    pairs: list[QAPair] = []
    for position, item in enumerate(data):
        if not isinstance(item, dict):
            raise QAJsonLoaderError(f"Item {position} is not an object")
        question = item.get("question")
        answer = item.get("answer")
        if not isinstance(question, str) or not isinstance(answer, str):
            raise QAJsonLoaderError(f"Item {position} needs string question and answer")
        if not question.strip() or not answer.strip():
            raise QAJsonLoaderError(f"Item {position} has an empty question or answer")
        pairs.append(QAPair(question=question.strip(), answer=answer.strip()))
    return pairs


def load_qa_pairs_json(path: Path) -> list[QAPair]:
    return parse_qa_pairs_json(path.read_text(encoding="utf-8"))
