from __future__ import annotations

"""Embedding providers and configuration validation."""

import hashlib
import math
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

from openai import AsyncAzureOpenAI, AsyncOpenAI, OpenAIError

from qa_gateway.rag.errors import ConfigurationError, ProviderError
from qa_gateway.rag.types import ProviderConfig

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class EmbeddingError(ProviderError):
    """Raised when embeddings fail or are invalid."""
    pass


class EmbeddingProvider(Protocol):
    """Protocol for embedding providers."""
    dimension: int

    async def embed(self, text: str) -> list[float]:
        """Return an embedding vector for the provided text."""
        raise NotImplementedError


def validate_vector(vector: list[float], dimension: int) -> list[float]:
    """Validate and normalize embedding vectors."""
    if len(vector) != dimension:
        raise EmbeddingError(
            f"Embedding dimension mismatch: expected {dimension}, got {len(vector)}"
        )
    cleaned: list[float] = []
    for value in vector:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise EmbeddingError("Embedding contains a non-numeric value")
        if not math.isfinite(value):
            raise EmbeddingError("Embedding contains a non-finite value")
        cleaned.append(float(value))
    return cleaned


@dataclass
class HashEmbedder:
    """Deterministic hash-based embedder for testing or offline use."""
    dimension: int = 256

    async def embed(self, text: str) -> list[float]:
        """Embed text using token hashing and L2 normalization."""
        tokens = _TOKEN_RE.findall(text.lower())
        if not tokens:
            return validate_vector([0.0] * self.dimension, self.dimension)
        vector = [0.0] * self.dimension
        for token in tokens:
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            idx = digest[0] % self.dimension
            vector[idx] += 1.0
        return validate_vector(self._l2_normalize(vector), self.dimension)

    def _l2_normalize(self, vector: list[float]) -> list[float]:
        """Normalize vector magnitude to 1.0."""
        norm = math.sqrt(sum(value * value for value in vector))
        if norm == 0.0:
            return vector
        return [value / norm for value in vector]


def resolve_openai_dimension(model: str) -> int | None:
    """Return expected dimension for OpenAI embedding model."""
    mapping = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }
    return mapping.get(model)


@dataclass(frozen=True)
class EmbeddingConfigReport:
    """Validation report for embedding settings."""
    provider: str
    model: str | None
    configured_dimension: int
    expected_dimension: int | None
    ok: bool
    status: str
    detail: str | None = None
    action: str | None = None


def build_embedding_config_report(
    provider: str, model: str | None, dimension: int
) -> EmbeddingConfigReport:
    """Build a validation report for embedding settings."""
    normalized = provider.lower().strip()

    if normalized in {"", "hash"}:
        if dimension <= 0:
            return EmbeddingConfigReport(
                provider="hash",
                model=None,
                configured_dimension=dimension,
                expected_dimension=None,
                ok=False,
                status="error",
                detail="EMBEDDING_DIMENSION must be greater than zero for hash embeddings.",
                action="Set EMBEDDING_DIMENSION to a positive integer.",
            )
        return EmbeddingConfigReport(
            provider="hash",
            model=None,
            configured_dimension=dimension,
            expected_dimension=dimension,
            ok=True,
            status="ok",
        )

    if normalized not in {"openai", "azure"}:
        return EmbeddingConfigReport(
            provider=normalized,
            model=model,
            configured_dimension=dimension,
            expected_dimension=None,
            ok=False,
            status="error",
            detail="Unsupported embedding provider.",
            action="Set EMBEDDING_PROVIDER to hash, openai, or azure.",
        )

    if not model:
        return EmbeddingConfigReport(
            provider=normalized,
            model=None,
            configured_dimension=dimension,
            expected_dimension=None,
            ok=False,
            status="error",
            detail="An embedding model or deployment name is required.",
            action="Set OPENAI_EMBEDDING_MODEL or AZURE_EMBEDDING_DEPLOYMENT in .env.",
        )
    expected = resolve_openai_dimension(model)
    if dimension <= 0:
        return EmbeddingConfigReport(
            provider=normalized,
            model=model,
            configured_dimension=dimension,
            expected_dimension=expected,
            ok=False,
            status="error",
            detail="EMBEDDING_DIMENSION is missing for the configured model.",
            action=f"Set EMBEDDING_DIMENSION to {expected}."
            if expected
            else "Set EMBEDDING_DIMENSION based on the model documentation.",
        )
    if expected is not None and dimension != expected:
        return EmbeddingConfigReport(
            provider=normalized,
            model=model,
            configured_dimension=dimension,
            expected_dimension=expected,
            ok=False,
            status="error",
            detail="EMBEDDING_DIMENSION does not match the model dimension.",
            action=f"Set EMBEDDING_DIMENSION to {expected}.",
        )
    if expected is None:
        # Azure deployments carry custom names, so the width cannot be inferred.
        return EmbeddingConfigReport(
            provider=normalized,
            model=model,
            configured_dimension=dimension,
            expected_dimension=None,
            ok=True,
            status="warning",
            detail="Model dimension cannot be auto-validated. Confirm EMBEDDING_DIMENSION manually.",
        )
    return EmbeddingConfigReport(
        provider=normalized,
        model=model,
        configured_dimension=dimension,
        expected_dimension=expected,
        ok=True,
        status="ok",
    )


@dataclass
class OpenAIEmbedder:
    """Embedding provider using the OpenAI embeddings API."""
    config: ProviderConfig
    dimension: int
    client: Any = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate OpenAI configuration and create a client."""
        if not self.config.api_key:
            raise ConfigurationError("OPENAI_API_KEY is required for OpenAIEmbedder")
        if not self.config.model:
            raise ConfigurationError("OPENAI_EMBEDDING_MODEL is required for OpenAIEmbedder")
        if self.dimension <= 0:
            resolved = resolve_openai_dimension(self.config.model)
            if resolved is None:
                raise ConfigurationError(
                    "EMBEDDING_DIMENSION must be set for OpenAI embeddings when model is unknown"
                )
            self.dimension = resolved
        self.client = self._build_client()

    def _build_client(self) -> Any:
        return AsyncOpenAI(
            api_key=self.config.api_key,
            base_url=self.config.endpoint or None,
            timeout=self.config.timeout,
            max_retries=0,
        )

    async def aclose(self) -> None:
        await self.client.close()

    async def embed(self, text: str) -> list[float]:
        """Embed text using the embeddings API.

        Stored records and queries share one index, so every call uses the
        configured model.
        """
        try:
            response = await self.client.embeddings.create(model=self.config.model, input=text)
        except OpenAIError as exc:
            raise EmbeddingError(f"Embedding request failed: {type(exc).__name__}") from exc
        if not response.data:
            raise EmbeddingError("Embedding response missing embedding vector")
        vector = list(response.data[0].embedding)
        return validate_vector(vector, self.dimension)


@dataclass
class AzureOpenAIEmbedder(OpenAIEmbedder):
    """Embedding provider using an Azure OpenAI embeddings deployment."""

    def __post_init__(self) -> None:
        if not self.config.api_key:
            raise ConfigurationError("AZURE_OPENAI_API_KEY is required for AzureOpenAIEmbedder")
        if not self.config.endpoint:
            raise ConfigurationError("AZURE_OPENAI_ENDPOINT is required for AzureOpenAIEmbedder")
        if not self.config.model:
            raise ConfigurationError("AZURE_EMBEDDING_DEPLOYMENT is required for AzureOpenAIEmbedder")
        if self.dimension <= 0:
            self.dimension = resolve_openai_dimension(self.config.model) or 0
        if self.dimension <= 0:
            raise ConfigurationError("EMBEDDING_DIMENSION must be set for Azure embeddings")
        self.client = self._build_client()

    def _build_client(self) -> Any:
        return AsyncAzureOpenAI(
            api_key=self.config.api_key,
            azure_endpoint=self.config.endpoint.rstrip("/"),
            api_version=self.config.api_version or "2025-01-01-preview",
            timeout=self.config.timeout,
            max_retries=0,
        )
