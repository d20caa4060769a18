from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    metrics_enabled: bool = _env_bool("QA_METRICS_ENABLED", "true")
    cors_allow_origin: str = os.getenv("QA_CORS_ALLOW_ORIGIN", "*")
    confidence_threshold: float = float(os.getenv("QA_CONFIDENCE_THRESHOLD", "0.80"))
    default_top_k: int = int(os.getenv("QA_DEFAULT_TOP_K", "3"))
    general_top_k: int = int(os.getenv("QA_GENERAL_TOP_K", "3"))
    ingest_batch_size: int = int(os.getenv("QA_INGEST_BATCH_SIZE", "10"))
    embedding_provider: str = os.getenv("EMBEDDING_PROVIDER", "hash")
    embedding_dimension: int = int(os.getenv("EMBEDDING_DIMENSION", "256"))
    embedding_timeout: float = float(os.getenv("EMBEDDING_TIMEOUT", "30"))
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_base_url: str | None = os.getenv("OPENAI_BASE_URL")
    openai_embedding_model: str | None = os.getenv("OPENAI_EMBEDDING_MODEL")
    openai_chat_model: str = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    azure_openai_api_key: str | None = os.getenv("AZURE_OPENAI_API_KEY")
    azure_openai_endpoint: str | None = os.getenv("AZURE_OPENAI_ENDPOINT")
    azure_openai_api_version: str = os.getenv("AZURE_OPENAI_API_VERSION", "2025-01-01-preview")
    azure_embedding_deployment: str = os.getenv("AZURE_EMBEDDING_DEPLOYMENT", "text-embedding-ada-002")
    azure_completion_deployment: str = os.getenv("AZURE_COMPLETION_DEPLOYMENT", "gpt-4o-mini")
    vectorstore_backend: str = os.getenv("QA_VECTORSTORE", "memory")
    pinecone_api_key: str | None = os.getenv("PINECONE_API_KEY")
    pinecone_index: str | None = os.getenv("PINECONE_INDEX")
    pinecone_index_host: str | None = os.getenv("PINECONE_INDEX_HOST")
    pinecone_namespace: str = os.getenv("PINECONE_NAMESPACE", "")
    pinecone_timeout: float = float(os.getenv("PINECONE_TIMEOUT", "15"))
    milvus_uri: str = os.getenv("MILVUS_URI", "http://localhost:19530")
    milvus_token: str | None = os.getenv("MILVUS_TOKEN")
    milvus_collection: str = os.getenv("MILVUS_COLLECTION", "qa_records")
    milvus_consistency: str = os.getenv("MILVUS_CONSISTENCY", "Strong")
    milvus_index_type: str = os.getenv("MILVUS_INDEX_TYPE", "IVF_FLAT")
    milvus_metric_type: str = os.getenv("MILVUS_METRIC_TYPE", "COSINE")
    milvus_nlist: int = int(os.getenv("MILVUS_NLIST", "1024"))
    milvus_nprobe: int = int(os.getenv("MILVUS_NPROBE", "10"))
    generator_provider: str = os.getenv("QA_GENERATOR", "extractive")
    llm_temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    llm_max_tokens: int = int(os.getenv("LLM_MAX_TOKENS", "500"))
    llm_timeout: float = float(os.getenv("LLM_TIMEOUT", "60"))
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "llama3.1")
    google_docs_id: str | None = os.getenv("GOOGLE_DOCS_ID")
    google_docs_access_token: str | None = os.getenv("GOOGLE_DOCS_ACCESS_TOKEN")
    google_service_account_file: str | None = os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE")

    @property
    def embedding_model(self) -> str | None:
        provider = self.embedding_provider.lower().strip()
        if provider == "openai":
            return self.openai_embedding_model
        if provider == "azure":
            return self.azure_embedding_deployment
        return None


settings = Settings()
