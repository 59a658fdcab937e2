from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from time import perf_counter
from typing import Any, Dict, List

import requests
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI

from submission_review.shared.errors import (
    ConfigurationError,
    LLMInvocationError,
    UpstreamTimeoutError,
)
from submission_review.shared.types import LLMResult, ReviewRequest


logger = logging.getLogger(__name__)

ERROR_BODY_PREVIEW_CHARS = 200


def _token_count(value: Any) -> int | None:
    # Usage is informational; anything but a plain int is dropped.
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


class LLMProvider(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GEMINI = "gemini"
    OLLAMA = "ollama"
    OPENROUTER = "openrouter"


@dataclass(frozen=True)
class LLMClientConfig:
    provider: str
    model: str
    max_tokens: int
    timeout_seconds: float
    anthropic_api_key: str | None
    anthropic_api_url: str
    anthropic_version: str
    openai_api_key: str | None
    google_api_key: str | None
    ollama_base_url: str
    openrouter_api_key: str | None
    openrouter_base_url: str


class LLMClient:
    """Single request/response call to the configured text generator.

    Failures are never retried here; a failed run is re-triggered by the
    caller. ``timeout_seconds`` bounds every call.
    """

    def __init__(self, config: LLMClientConfig) -> None:
        try:
            provider = LLMProvider(config.provider)
        except ValueError as exc:
            raise ConfigurationError(f"Unsupported LLM provider: {config.provider}") from exc

        self._provider = provider
        self._model = config.model
        self._max_tokens = config.max_tokens
        self._timeout_seconds = config.timeout_seconds
        self._anthropic_api_key = config.anthropic_api_key
        self._anthropic_api_url = config.anthropic_api_url
        self._anthropic_version = config.anthropic_version
        self._openai_api_key = config.openai_api_key
        self._google_api_key = config.google_api_key
        self._ollama_base_url = config.ollama_base_url
        self._openrouter_api_key = config.openrouter_api_key
        self._openrouter_base_url = config.openrouter_base_url

    @property
    def provider_name(self) -> str:
        return self._provider.value

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def is_configured(self) -> bool:
        if self._provider is LLMProvider.ANTHROPIC:
            return bool(self._anthropic_api_key)
        if self._provider is LLMProvider.OPENAI:
            return bool(self._openai_api_key)
        if self._provider is LLMProvider.GEMINI:
            return bool(self._google_api_key)
        if self._provider is LLMProvider.OPENROUTER:
            return bool(self._openrouter_api_key)
        return True

    def generate(self, request: ReviewRequest) -> LLMResult:
        logger.info(
            "Calling text generator: provider=%s, model=%s, timeout=%ss",
            self._provider.value,
            self._model,
            self._timeout_seconds,
        )
        if self._provider is LLMProvider.ANTHROPIC:
            return self._generate_anthropic(request)
        return self._generate_langchain(request)

    # Anthropic Messages API

    def _anthropic_headers(self) -> Dict[str, str]:
        if not self._anthropic_api_key:
            raise ConfigurationError("AI API key not configured (AI_API_KEY or ANTHROPIC_API_KEY)")
        return {
            "content-type": "application/json",
            "x-api-key": self._anthropic_api_key,
            "anthropic-version": self._anthropic_version,
        }

    def _generate_anthropic(self, request: ReviewRequest) -> LLMResult:
        headers = self._anthropic_headers()
        body = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "system": request["system"],
            "messages": request["messages"],
        }

        started_at = perf_counter()
        try:
            response = requests.post(
                self._anthropic_api_url,
                headers=headers,
                json=body,
                timeout=self._timeout_seconds,
            )
        except requests.Timeout as exc:
            raise UpstreamTimeoutError(
                f"AI API did not respond within {self._timeout_seconds}s"
            ) from exc
        except requests.RequestException as exc:
            raise LLMInvocationError(f"AI API request failed: {exc}") from exc
        elapsed = perf_counter() - started_at

        if not response.ok:
            raise LLMInvocationError(
                f"AI API error {response.status_code}: {response.text[:ERROR_BODY_PREVIEW_CHARS]}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMInvocationError("AI API returned invalid JSON") from exc

        text = self._extract_anthropic_text(data)
        if not text:
            raise LLMInvocationError("Empty response from AI")

        result: LLMResult = {
            "content": text,
            "provider": self._provider.value,
            "model": self._model,
            "elapsed_seconds": elapsed,
        }

        usage = data.get("usage") if isinstance(data, dict) else None
        if isinstance(usage, dict):
            input_tokens = _token_count(usage.get("input_tokens"))
            output_tokens = _token_count(usage.get("output_tokens"))
            if input_tokens is not None:
                result["input_tokens"] = input_tokens
            if output_tokens is not None:
                result["output_tokens"] = output_tokens
            if input_tokens is not None and output_tokens is not None:
                result["total_tokens"] = input_tokens + output_tokens

        return result

    @staticmethod
    def _extract_anthropic_text(data: Any) -> str:
        if not isinstance(data, dict):
            return ""
        content = data.get("content")
        if not isinstance(content, list) or not content:
            return ""
        first = content[0]
        if not isinstance(first, dict):
            return ""
        text = first.get("text")
        return text if isinstance(text, str) else ""

    # LangChain providers

    @staticmethod
    def _to_langchain_messages(request: ReviewRequest) -> List[BaseMessage]:
        lc_messages: List[BaseMessage] = [SystemMessage(content=request["system"])]
        for message in request["messages"]:
            role = message.get("role")
            content = message.get("content", "")

            if role == "user":
                lc_messages.append(HumanMessage(content=content))
            elif role == "assistant":
                lc_messages.append(AIMessage(content=content))
            else:
                logger.warning("Unknown message role '%s', treating as user", role)
                lc_messages.append(HumanMessage(content=content))

        return lc_messages

    def _create_openai_llm(self) -> ChatOpenAI:
        if not self._openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")

        return ChatOpenAI(
            model=self._model,
            api_key=self._openai_api_key,
            max_tokens=self._max_tokens,
            timeout=self._timeout_seconds,
            max_retries=0,
        )

    def _create_gemini_llm(self) -> ChatGoogleGenerativeAI:
        if not self._google_api_key:
            raise ConfigurationError("GOOGLE_API_KEY is not set (required when LLM_PROVIDER=gemini)")

        return ChatGoogleGenerativeAI(
            model=self._model,
            api_key=self._google_api_key,
            max_output_tokens=self._max_tokens,
            timeout=self._timeout_seconds,
            max_retries=0,
        )

    def _create_ollama_llm(self) -> ChatOllama:
        return ChatOllama(
            model=self._model,
            base_url=self._ollama_base_url,
            num_predict=self._max_tokens,
            client_kwargs={"timeout": self._timeout_seconds},
        )

    def _create_openrouter_llm(self) -> ChatOpenAI:
        if not self._openrouter_api_key:
            raise ConfigurationError(
                "OPENROUTER_API_KEY is not set (required when LLM_PROVIDER=openrouter)"
            )

        return ChatOpenAI(
            model=self._model,
            api_key=self._openrouter_api_key,
            base_url=self._openrouter_base_url,
            max_tokens=self._max_tokens,
            timeout=self._timeout_seconds,
            max_retries=0,
        )

    def _create_llm(self) -> BaseChatModel:
        if self._provider is LLMProvider.OPENAI:
            return self._create_openai_llm()
        if self._provider is LLMProvider.GEMINI:
            return self._create_gemini_llm()
        if self._provider is LLMProvider.OPENROUTER:
            return self._create_openrouter_llm()
        if self._provider is LLMProvider.OLLAMA:
            return self._create_ollama_llm()

        raise ConfigurationError(f"Unsupported LangChain provider: {self._provider.value}")

    def _generate_langchain(self, request: ReviewRequest) -> LLMResult:
        llm = self._create_llm()
        lc_messages = self._to_langchain_messages(request)

        try:
            started_at = perf_counter()
            response = llm.invoke(lc_messages)
            elapsed = perf_counter() - started_at
        except Exception as exc:  # noqa: BLE001 - external provider wrapper
            if "timeout" in type(exc).__name__.lower():
                raise UpstreamTimeoutError(
                    f"{self._provider.value} did not respond within {self._timeout_seconds}s"
                ) from exc
            raise LLMInvocationError(f"Failed to invoke {self._provider.value}: {exc}") from exc

        content = str(response.content).strip()
        if not content:
            raise LLMInvocationError("Empty response from AI")

        result: LLMResult = {
            "content": content,
            "provider": self._provider.value,
            "model": self._model,
            "elapsed_seconds": elapsed,
        }

        usage_metadata = getattr(response, "usage_metadata", None)
        if isinstance(usage_metadata, dict):
            for key in ("input_tokens", "output_tokens", "total_tokens"):
                value = _token_count(usage_metadata.get(key))
                if value is not None:
                    result[key] = value  # type: ignore[literal-required]

        return result
