from __future__ import annotations

"""Shared pytest fixtures and test environment defaults."""

import os
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ["EMBEDDING_PROVIDER"] = "hash"
os.environ["EMBEDDING_DIMENSION"] = "64"
os.environ["QA_VECTORSTORE"] = "memory"
os.environ["QA_GENERATOR"] = "extractive"
os.environ.setdefault("QA_CONFIDENCE_THRESHOLD", "0.80")
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("PINECONE_API_KEY", None)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
