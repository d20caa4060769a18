from __future__ import annotations

"""Milvus-backed vector index for self-hosted deployments."""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Sequence

from qa_gateway.rag.errors import ConfigurationError
from qa_gateway.rag.types import Match, StoredRecord
from qa_gateway.vectorstore.base import VectorIndexError


class MilvusDependencyError(ConfigurationError):
    """Raised when Milvus dependencies are missing."""
    pass


@dataclass
class MilvusConfig:
    """Configuration for Milvus connection and indexing."""
    uri: str
    token: str | None
    collection: str
    dimension: int
    consistency: str = "Strong"
    index_type: str = "IVF_FLAT"
    metric_type: str = "COSINE"
    nlist: int = 1024
    nprobe: int = 10


def build_filter_expr(filter: dict[str, Any] | None) -> str | None:
    """Build a Milvus JSON filter expression from an equality mapping."""
    if not filter:
        return None
    clauses = [
        f"metadata[{json.dumps(key)}] == {json.dumps(value)}" for key, value in filter.items()
    ]
    return " and ".join(clauses)


@dataclass
class MilvusVectorIndex:
    """Milvus collection with id, JSON metadata and dense embedding fields."""
    config: MilvusConfig
    collection: Any = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Connect to Milvus and ensure collection exists."""
        try:
            from pymilvus import connections
        except ImportError as exc:
            raise MilvusDependencyError("pymilvus is required for MilvusVectorIndex") from exc
        if self.config.dimension <= 0:
            raise ConfigurationError(
                "Embedding dimension must be set before initializing MilvusVectorIndex"
            )
        connections.connect(alias="default", uri=self.config.uri, token=self.config.token)
        self.ensure_collection()

    def ensure_collection(self) -> None:
        """Create collection schema and index when missing."""
        from pymilvus import Collection, CollectionSchema, DataType, FieldSchema, utility

        if utility.has_collection(self.config.collection):
            self.collection = Collection(
                self.config.collection, consistency_level=self.config.consistency
            )
            existing_dim = self._existing_embedding_dim()
            if existing_dim is not None and existing_dim != self.config.dimension:
                raise ConfigurationError(
                    "Milvus collection embedding dimension mismatch: "
                    f"{existing_dim} (collection) vs {self.config.dimension} (embedder). "
                    "Update EMBEDDING_DIMENSION or use a new MILVUS_COLLECTION."
                )
            return

        fields = [
            FieldSchema(name="id", dtype=DataType.VARCHAR, is_primary=True, max_length=256),
            FieldSchema(name="metadata", dtype=DataType.JSON),
            FieldSchema(name="embedding", dtype=DataType.FLOAT_VECTOR, dim=self.config.dimension),
        ]
        schema = CollectionSchema(fields=fields, description="Q/A pairs and general sources")
        self.collection = Collection(
            self.config.collection,
            schema,
            consistency_level=self.config.consistency,
        )
        self.collection.create_index(
            field_name="embedding",
            index_params={
                "index_type": self.config.index_type,
                "metric_type": self.config.metric_type,
                "params": {"nlist": self.config.nlist},
            },
        )

    def _existing_embedding_dim(self) -> int | None:
        """Read embedding dimension from existing collection schema."""
        for schema_field in self.collection.schema.fields:
            if schema_field.name != "embedding":
                continue
            params = getattr(schema_field, "params", None) or {}
            dim = params.get("dim") if isinstance(params, dict) else None
            try:
                return int(dim) if dim is not None else None
            except (TypeError, ValueError):
                return None
        return None

    def _upsert_sync(self, records: Sequence[StoredRecord]) -> None:
        rows = [
            {"id": record.id, "metadata": record.metadata, "embedding": record.embedding}
            for record in records
        ]
        self.collection.upsert(rows)
        self.collection.flush()

    def _query_sync(
        self, embedding: list[float], top_k: int, filter: dict[str, Any] | None
    ) -> list[Match]:
        self.collection.load()
        results = self.collection.search(
            data=[embedding],
            anns_field="embedding",
            param={"metric_type": self.config.metric_type, "params": {"nprobe": self.config.nprobe}},
            limit=top_k,
            expr=build_filter_expr(filter),
            output_fields=["id", "metadata"],
        )
        matches: list[Match] = []
        for hit in results[0]:
            metadata = hit.entity.get("metadata") or {}
            if isinstance(metadata, str):
                metadata = json.loads(metadata)
            matches.append(Match(id=str(hit.id), score=float(hit.score), metadata=metadata))
        matches.sort(key=lambda match: match.score, reverse=True)
        return matches

    async def upsert(self, records: Sequence[StoredRecord]) -> None:
        """Upsert records without blocking the event loop."""
        if not records:
            return
        try:
            await asyncio.to_thread(self._upsert_sync, records)
        except Exception as exc:
            raise VectorIndexError(f"Milvus upsert failed: {type(exc).__name__}") from exc

    async def query(
        self,
        embedding: list[float],
        top_k: int,
        filter: dict[str, Any] | None = None,
    ) -> list[Match]:
        """Search the collection without blocking the event loop."""
        if top_k <= 0:
            return []
        try:
            return await asyncio.to_thread(self._query_sync, embedding, top_k, filter)
        except Exception as exc:
            raise VectorIndexError(f"Milvus query failed: {type(exc).__name__}") from exc
