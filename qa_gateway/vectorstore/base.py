from __future__ import annotations

"""Vector index contract shared by all backends."""

from typing import Any, Protocol, Sequence

from qa_gateway.rag.errors import ProviderError
from qa_gateway.rag.types import Match, StoredRecord


class VectorIndexError(ProviderError):
    """Raised when an upsert or similarity query fails."""
    pass


class VectorIndex(Protocol):
    """Similarity index holding Q/A pairs and general sources.

    ``query`` must return matches sorted by descending score.
    """

    async def upsert(self, records: Sequence[StoredRecord]) -> None:
        raise NotImplementedError

    async def query(
        self,
        embedding: list[float],
        top_k: int,
        filter: dict[str, Any] | None = None,
    ) -> list[Match]:
        raise NotImplementedError


def matches_filter(metadata: dict[str, Any], filter: dict[str, Any] | None) -> bool:
    """Return True when every filter key equals the metadata value."""
    if not filter:
        return True
    return all(metadata.get(key) == value for key, value in filter.items())
