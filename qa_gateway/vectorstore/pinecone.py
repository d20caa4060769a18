from __future__ import annotations

"""Pinecone-backed vector index using the data-plane REST API."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

import httpx

from qa_gateway.rag.errors import ConfigurationError
from qa_gateway.rag.types import Match, StoredRecord
from qa_gateway.vectorstore.base import VectorIndexError

logger = logging.getLogger(__name__)

CONTROL_PLANE_URL = "https://api.pinecone.io"
API_VERSION = "2024-07"


@dataclass(frozen=True)
class PineconeConfig:
    """Configuration for a Pinecone serverless index."""
    api_key: str
    index_name: str
    host: str | None = None
    namespace: str = ""
    timeout: float = 15.0


def _filter_expression(filter: dict[str, Any] | None) -> dict[str, Any] | None:
    """Translate an equality mapping into Pinecone metadata filter syntax."""
    if not filter:
        return None
    return {key: {"$eq": value} for key, value in filter.items()}


@dataclass
class PineconeVectorIndex:
    """Vector index stored in Pinecone, queried with metadata filters."""
    config: PineconeConfig
    client: httpx.AsyncClient | None = None
    _host: str | None = field(default=None, init=False, repr=False)
    _host_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.config.api_key:
            raise ConfigurationError("PINECONE_API_KEY is required for PineconeVectorIndex")
        if not (self.config.index_name or self.config.host):
            raise ConfigurationError("PINECONE_INDEX is required for PineconeVectorIndex")
        if self.config.host:
            self._host = self._normalize_host(self.config.host)

    def _normalize_host(self, host: str) -> str:
        host = host.rstrip("/")
        if not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        return host

    def _headers(self) -> dict[str, str]:
        return {
            "Api-Key": self.config.api_key,
            "X-Pinecone-API-Version": API_VERSION,
        }

    async def _request(
        self, method: str, url: str, payload: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        owns_client = self.client is None
        client = self.client or httpx.AsyncClient(timeout=self.config.timeout)
        try:
            response = await client.request(method, url, json=payload, headers=self._headers())
            response.raise_for_status()
            data = response.json() if response.content else {}
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise VectorIndexError(f"Pinecone request failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise VectorIndexError("Pinecone returned invalid JSON") from exc
        finally:
            if owns_client:
                await client.aclose()
        if not isinstance(data, dict):
            raise VectorIndexError("Pinecone returned an unexpected body")
        return data

    async def resolve_host(self) -> str:
        """Return the data-plane host, describing the index on first use."""
        if self._host:
            return self._host
        async with self._host_lock:
            if self._host:
                return self._host
            data = await self._request(
                "GET", f"{CONTROL_PLANE_URL}/indexes/{self.config.index_name}"
            )
            host = data.get("host")
            if not isinstance(host, str) or not host:
                raise VectorIndexError(f"Pinecone index {self.config.index_name} has no host")
            self._host = self._normalize_host(host)
        logger.info(
            "pinecone_host_resolved",
            extra={"index": self.config.index_name, "host": self._host},
        )
        return self._host

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()

    async def upsert(self, records: Sequence[StoredRecord]) -> None:
        """Upsert vectors with their metadata."""
        if not records:
            return
        host = await self.resolve_host()
        payload: dict[str, Any] = {
            "vectors": [
                {"id": record.id, "values": record.embedding, "metadata": record.metadata}
                for record in records
            ]
        }
        if self.config.namespace:
            payload["namespace"] = self.config.namespace
        data = await self._request("POST", f"{host}/vectors/upsert", payload)
        logger.info(
            "pinecone_upsert_complete",
            extra={"requested": len(records), "upserted": data.get("upsertedCount")},
        )

    async def query(
        self,
        embedding: list[float],
        top_k: int,
        filter: dict[str, Any] | None = None,
    ) -> list[Match]:
        """Query nearest neighbours and return matches by descending score."""
        if top_k <= 0:
            return []
        host = await self.resolve_host()
        payload: dict[str, Any] = {
            "vector": embedding,
            "topK": top_k,
            "includeMetadata": True,
            "includeValues": False,
        }
        expression = _filter_expression(filter)
        if expression:
            payload["filter"] = expression
        if self.config.namespace:
            payload["namespace"] = self.config.namespace
        data = await self._request("POST", f"{host}/query", payload)
        matches: list[Match] = []
        for item in data.get("matches") or []:
            try:
                matches.append(
                    Match(
                        id=str(item["id"]),
                        score=float(item.get("score", 0.0)),
                        metadata=dict(item.get("metadata") or {}),
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise VectorIndexError("Pinecone returned a malformed match") from exc
        matches.sort(key=lambda match: match.score, reverse=True)
        return matches
