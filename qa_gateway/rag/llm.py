from __future__ import annotations

"""LLM answer generation over chat-completion HTTP APIs."""

from dataclasses import dataclass
import logging
from typing import Any, Protocol

import httpx

from qa_gateway.rag.errors import ConfigurationError, ProviderError
from qa_gateway.rag.types import ContextItem, ProviderConfig


class LLMError(ProviderError):
    """Raised when LLM requests fail or responses are invalid."""
    pass


logger = logging.getLogger(__name__)

EMPTY_COMPLETION_ANSWER = "I'm sorry, I couldn't generate an answer."

_BASE_PROMPT = "You are a helpful assistant that answers questions accurately and concisely."
_QA_CONTEXT_PROMPT = (
    " Use the following information to help answer the question, "
    "but don't reference the source directly:"
)
_GENERAL_CONTEXT_PROMPT = (
    " Use the following general sources to answer the question, "
    "but don't reference these sources directly in your answer:"
)
_NO_CONTEXT_PROMPT = (
    " If you don't know the answer based on the provided context, "
    "just say you don't have enough information to answer accurately."
)


class AnswerGenerator(Protocol):
    """Protocol for answer generation providers."""

    async def generate(self, question: str, contexts: list[ContextItem]) -> str:
        """Return an answer for the question using the supplied context."""
        raise NotImplementedError


def build_system_prompt(contexts: list[ContextItem]) -> str:
    """Build the system instruction embedding the supplied sources."""
    blocks: list[str] = []
    for item in contexts:
        if item.is_qa_pair:
            blocks.append(f"Question: {item.question}\nAnswer: {item.answer}")
        elif item.content:
            blocks.append(item.content.strip())
    if not blocks:
        return _BASE_PROMPT + _NO_CONTEXT_PROMPT
    all_qa = all(item.is_qa_pair for item in contexts)
    prompt = _BASE_PROMPT + (_QA_CONTEXT_PROMPT if all_qa else _GENERAL_CONTEXT_PROMPT)
    for idx, block in enumerate(blocks, start=1):
        prompt += f"\n\nSource {idx}:\n{block}"
    return prompt


def build_messages(question: str, contexts: list[ContextItem]) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": build_system_prompt(contexts)},
        {"role": "user", "content": question},
    ]


def _completion_content(data: dict[str, Any]) -> str:
    """Extract assistant text from an OpenAI-style response body."""
    choices = data.get("choices") or []
    if not choices:
        raise LLMError("Invalid completion response: no choices")
    message = choices[0].get("message") or {}
    content = message.get("content")
    if content is None:
        return EMPTY_COMPLETION_ANSWER
    if not isinstance(content, str):
        raise LLMError("Invalid completion response content")
    return content.strip() or EMPTY_COMPLETION_ANSWER


@dataclass
class _HTTPChatGenerator:
    config: ProviderConfig
    temperature: float = 0.7
    max_tokens: int = 500
    client: httpx.AsyncClient | None = None

    provider_name = "http"

    def _url(self) -> str:
        raise NotImplementedError

    def _headers(self) -> dict[str, str]:
        raise NotImplementedError

    def _payload(self, question: str, contexts: list[ContextItem]) -> dict[str, Any]:
        return {
            "messages": build_messages(question, contexts),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def _parse(self, data: dict[str, Any]) -> str:
        return _completion_content(data)

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()

    async def generate(self, question: str, contexts: list[ContextItem]) -> str:
        """Generate an answer grounded on the supplied context."""
        logger.info(
            "llm_request",
            extra={
                "provider": self.provider_name,
                "model": self.config.model,
                "contexts": len(contexts),
            },
        )
        owns_client = self.client is None
        client = self.client or httpx.AsyncClient(timeout=self.config.timeout)
        try:
            response = await client.post(
                self._url(),
                json=self._payload(question, contexts),
                headers=self._headers(),
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise LLMError(f"{self.provider_name} request failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise LLMError(f"{self.provider_name} returned invalid JSON") from exc
        finally:
            if owns_client:
                await client.aclose()
        if not isinstance(data, dict):
            raise LLMError(f"{self.provider_name} returned an unexpected body")
        try:
            return self._parse(data)
        except (AttributeError, KeyError, TypeError) as exc:
            raise LLMError(f"{self.provider_name} returned a malformed completion") from exc


@dataclass
class OpenAIGenerator(_HTTPChatGenerator):
    """Answer generator backed by OpenAI chat completions."""

    provider_name = "openai"

    def __post_init__(self) -> None:
        if not self.config.api_key:
            raise ConfigurationError("OPENAI_API_KEY is required for OpenAIGenerator")

    def _url(self) -> str:
        base_url = (self.config.endpoint or "https://api.openai.com/v1").rstrip("/")
        return f"{base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    def _payload(self, question: str, contexts: list[ContextItem]) -> dict[str, Any]:
        payload = super()._payload(question, contexts)
        payload["model"] = self.config.model
        return payload


@dataclass
class AzureOpenAIGenerator(_HTTPChatGenerator):
    """Answer generator backed by an Azure OpenAI chat deployment."""

    provider_name = "azure"

    def __post_init__(self) -> None:
        if not self.config.api_key:
            raise ConfigurationError("AZURE_OPENAI_API_KEY is required for AzureOpenAIGenerator")
        if not self.config.endpoint:
            raise ConfigurationError("AZURE_OPENAI_ENDPOINT is required for AzureOpenAIGenerator")

    def _url(self) -> str:
        base_url = (self.config.endpoint or "").rstrip("/")
        api_version = self.config.api_version or "2025-01-01-preview"
        return (
            f"{base_url}/openai/deployments/{self.config.model}"
            f"/chat/completions?api-version={api_version}"
        )

    def _headers(self) -> dict[str, str]:
        return {"api-key": self.config.api_key}


@dataclass
class OllamaGenerator(_HTTPChatGenerator):
    """Answer generator backed by the Ollama chat API."""

    provider_name = "ollama"

    def _url(self) -> str:
        base_url = (self.config.endpoint or "http://localhost:11434").rstrip("/")
        return f"{base_url}/api/chat"

    def _headers(self) -> dict[str, str]:
        return {}

    def _payload(self, question: str, contexts: list[ContextItem]) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": build_messages(question, contexts),
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }

    def _parse(self, data: dict[str, Any]) -> str:
        message = data.get("message") or {}
        content = message.get("content")
        if not isinstance(content, str):
            raise LLMError("Invalid Ollama response")
        return content.strip() or EMPTY_COMPLETION_ANSWER
