from __future__ import annotations

"""DOCX loader flattening paragraphs and table rows into lines."""

from io import BytesIO
from pathlib import Path

from docx import Document as DocxDocument


class DocxLoaderError(RuntimeError):
    """Raised when DOCX loading fails."""
    pass


def _flatten(doc) -> str:
    parts: list[str] = []
    for paragraph in doc.paragraphs:
        text = paragraph.text.strip()
        if text:
            parts.append(text)

    # One line per row keeps "Q: ... | A: ..." tables parseable as same-line pairs.
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))

    return "\n".join(parts).strip()


def load_docx_bytes(data: bytes) -> str:
    """Load a DOCX file from bytes into newline-separated text."""
    try:
        doc = DocxDocument(BytesIO(data))
    except Exception as exc:
        raise DocxLoaderError(f"Unable to read DOCX document: {type(exc).__name__}") from exc
    return _flatten(doc)


def load_docx_file(path: Path) -> str:
    """Load a DOCX file from disk into newline-separated text."""
    return load_docx_bytes(path.read_bytes())
