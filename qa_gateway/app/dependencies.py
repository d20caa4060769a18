from __future__ import annotations

from functools import lru_cache

import httpx

from qa_gateway.app.settings import settings
from qa_gateway.rag.answerer import ExtractiveGenerator
from qa_gateway.rag.embeddings import (
    AzureOpenAIEmbedder,
    EmbeddingConfigReport,
    EmbeddingProvider,
    HashEmbedder,
    OpenAIEmbedder,
    build_embedding_config_report,
)
from qa_gateway.rag.errors import ConfigurationError
from qa_gateway.rag.ingest import QAIngestor
from qa_gateway.rag.llm import (
    AnswerGenerator,
    AzureOpenAIGenerator,
    OllamaGenerator,
    OpenAIGenerator,
)
from qa_gateway.rag.observability import ResolverMetrics
from qa_gateway.rag.resolver import AnswerResolver
from qa_gateway.rag.types import ProviderConfig
from qa_gateway.vectorstore.base import VectorIndex
from qa_gateway.vectorstore.inmemory import InMemoryVectorIndex
from qa_gateway.vectorstore.milvus import MilvusConfig, MilvusVectorIndex
from qa_gateway.vectorstore.pinecone import PineconeConfig, PineconeVectorIndex


@lru_cache
def get_resolver() -> AnswerResolver:
    embedder = build_embedder()
    return AnswerResolver(
        embedder=embedder,
        index=build_vector_index(embedder),
        generator=build_generator(),
        confidence_threshold=settings.confidence_threshold,
        general_top_k=settings.general_top_k,
        metrics=get_resolver_metrics(),
    )


@lru_cache
def get_ingestor() -> QAIngestor:
    resolver = get_resolver()
    return QAIngestor(
        embedder=resolver.embedder,
        index=resolver.index,
        batch_size=settings.ingest_batch_size,
    )


@lru_cache
def get_resolver_metrics() -> ResolverMetrics:
    # Collectors live in the process-wide registry and must be created once.
    return ResolverMetrics()


def reset_resolver_cache() -> None:
    get_resolver.cache_clear()
    get_ingestor.cache_clear()


async def close_resolver() -> None:
    """Close the shared provider clients of the cached resolver, if one was built."""
    if get_resolver.cache_info().currsize == 0:
        return
    resolver = get_resolver()
    for component in (resolver.embedder, resolver.index, resolver.generator):
        aclose = getattr(component, "aclose", None)
        if aclose is not None:
            await aclose()
    reset_resolver_cache()


def get_embedding_config_report() -> EmbeddingConfigReport:
    return build_embedding_config_report(
        settings.embedding_provider,
        settings.embedding_model,
        settings.embedding_dimension,
    )


def build_embedder() -> EmbeddingProvider:
    provider = settings.embedding_provider.lower().strip()
    if provider == "hash":
        return HashEmbedder(dimension=settings.embedding_dimension)
    if provider == "openai":
        return OpenAIEmbedder(
            config=ProviderConfig(
                api_key=settings.openai_api_key or "",
                endpoint=settings.openai_base_url,
                model=settings.openai_embedding_model or "",
                timeout=settings.embedding_timeout,
            ),
            dimension=settings.embedding_dimension,
        )
    if provider == "azure":
        return AzureOpenAIEmbedder(
            config=ProviderConfig(
                api_key=settings.azure_openai_api_key or "",
                endpoint=settings.azure_openai_endpoint,
                model=settings.azure_embedding_deployment,
                api_version=settings.azure_openai_api_version,
                timeout=settings.embedding_timeout,
            ),
            dimension=settings.embedding_dimension,
        )
    raise ConfigurationError(f"Unsupported embedding provider: {provider}")


def build_vector_index(embedder: EmbeddingProvider) -> VectorIndex:
    backend = settings.vectorstore_backend.lower().strip()
    if backend == "pinecone":
        return PineconeVectorIndex(
            config=PineconeConfig(
                api_key=settings.pinecone_api_key or "",
                index_name=settings.pinecone_index or "",
                host=settings.pinecone_index_host,
                namespace=settings.pinecone_namespace,
                timeout=settings.pinecone_timeout,
            ),
            client=httpx.AsyncClient(timeout=settings.pinecone_timeout),
        )
    if backend == "milvus":
        return MilvusVectorIndex(
            config=MilvusConfig(
                uri=settings.milvus_uri,
                token=settings.milvus_token,
                collection=settings.milvus_collection,
                dimension=embedder.dimension,
                consistency=settings.milvus_consistency,
                index_type=settings.milvus_index_type,
                metric_type=settings.milvus_metric_type,
                nlist=settings.milvus_nlist,
                nprobe=settings.milvus_nprobe,
            )
        )
    if backend == "memory":
        return InMemoryVectorIndex(dimension=embedder.dimension)
    raise ConfigurationError(f"Unsupported vector store backend: {backend}")


def build_generator() -> AnswerGenerator:
    provider = settings.generator_provider.lower().strip()
    if provider == "extractive":
        return ExtractiveGenerator()
    if provider == "openai":
        return OpenAIGenerator(
            config=ProviderConfig(
                api_key=settings.openai_api_key or "",
                endpoint=settings.openai_base_url,
                model=settings.openai_chat_model,
                timeout=settings.llm_timeout,
            ),
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            client=httpx.AsyncClient(timeout=settings.llm_timeout),
        )
    if provider == "azure":
        return AzureOpenAIGenerator(
            config=ProviderConfig(
                api_key=settings.azure_openai_api_key or "",
                endpoint=settings.azure_openai_endpoint,
                model=settings.azure_completion_deployment,
                api_version=settings.azure_openai_api_version,
                timeout=settings.llm_timeout,
            ),
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            client=httpx.AsyncClient(timeout=settings.llm_timeout),
        )
    if provider == "ollama":
        return OllamaGenerator(
            config=ProviderConfig(
                api_key="",
                endpoint=settings.ollama_base_url,
                model=settings.ollama_model,
                timeout=settings.llm_timeout,
            ),
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            client=httpx.AsyncClient(timeout=settings.llm_timeout),
        )
    raise ConfigurationError(f"Unsupported generator provider: {provider}")
