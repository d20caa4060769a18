from __future__ import annotations

"""Plain text loader for ingestion."""

from pathlib import Path


def load_text_file(path: Path) -> str:
    """Read a UTF-8 text document from disk."""
    return path.read_text(encoding="utf-8")

