from __future__ import annotations

"""In-memory vector index for local testing and small datasets."""

import math
from dataclasses import dataclass, field
from typing import Any, Sequence

from qa_gateway.rag.types import Match, StoredRecord
from qa_gateway.vectorstore.base import VectorIndexError, matches_filter


@dataclass
class InMemoryVectorIndex:
    """Simple in-memory vector index with cosine similarity search."""
    dimension: int | None = None
    records: dict[str, StoredRecord] = field(default_factory=dict)

    async def upsert(self, records: Sequence[StoredRecord]) -> None:
        """Store records, replacing any existing record with the same id."""
        for record in records:
            if self.dimension is not None and len(record.embedding) != self.dimension:
                raise VectorIndexError(
                    f"Vector dimension {len(record.embedding)} does not match index dimension {self.dimension}"
                )
            self.records[record.id] = record

    async def query(
        self,
        embedding: list[float],
        top_k: int,
        filter: dict[str, Any] | None = None,
    ) -> list[Match]:
        """Search stored vectors, optionally restricted by metadata equality."""
        if top_k <= 0 or not self.records:
            return []
        if self.dimension is not None and len(embedding) != self.dimension:
            raise VectorIndexError(
                f"Query dimension {len(embedding)} does not match index dimension {self.dimension}"
            )
        scored = [
            Match(
                id=record.id,
                score=self._cosine_similarity(embedding, record.embedding),
                metadata=dict(record.metadata),
            )
            for record in self.records.values()
            if matches_filter(record.metadata, filter)
        ]
        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[:top_k]

    def _cosine_similarity(self, a: list[float], b: list[float]) -> float:
        """Compute cosine similarity between two vectors."""
        dot = sum(x * y for x, y in zip(a, b))
        norm_a = math.sqrt(sum(x * x for x in a))
        norm_b = math.sqrt(sum(y * y for y in b))
        if norm_a == 0.0 or norm_b == 0.0:
            return 0.0
        return dot / (norm_a * norm_b)

