# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from typing import Any, Dict, List, Protocol

import httpx

from coreason_flow.core.exceptions import ProviderError
from coreason_flow.models.schemas import ChatRequest, ChatResponse, ModelConfig
from coreason_flow.utils.logger import logger

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_ANTHROPIC_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"


class ProviderClient(Protocol):
    """
    A single chat capability that every vendor backend implements.
    """

    async def chat(self, request: ChatRequest, config: ModelConfig) -> ChatResponse:
        """Sends one chat completion request. Raises ProviderError on failure."""
        ...


class OpenAICompatibleClient:
    """
    Client for every vendor exposing an OpenAI style /chat/completions endpoint
    (OpenAI, GLM, MiniMax, Kimi, Qwen, DeepSeek and custom deployments).
    """

    def __init__(
        self,
        provider: str = "openai",
        default_base_url: str = DEFAULT_OPENAI_BASE_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.provider = provider
        self.default_base_url = default_base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def _payload(self, request: ChatRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": request.model,
            "messages": [m.model_dump() for m in request.messages],
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens:
            payload["max_tokens"] = request.max_tokens
        if request.top_p is not None:
            payload["top_p"] = request.top_p
        return payload

    async def chat(self, request: ChatRequest, config: ModelConfig) -> ChatResponse:
        base_url = (config.base_url or self.default_base_url).rstrip("/")
        url = f"{base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {config.api_key}"}

        logger.debug(f"{self.provider} -> POST {url} | model: {request.model}")

        try:
            resp = await self.client.post(url, json=self._payload(request), headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(self.provider, f"HTTP {e.response.status_code}: {e.response.text}") from e
        except httpx.HTTPError as e:
            raise ProviderError(self.provider, f"request failed: {e!r}") from e
        except ValueError as e:
            raise ProviderError(self.provider, "invalid JSON response") from e

        if not isinstance(data, dict):
            raise ProviderError(self.provider, "unexpected response shape")

        choices = data.get("choices") or []
        if not choices:
            raise ProviderError(self.provider, "response contained no choices")

        first = choices[0]
        message = first.get("message") or {}
        return ChatResponse(
            model=data.get("model", request.model),
            content=message.get("content") or "",
            finish_reason=first.get("finish_reason") or "",
        )

    async def aclose(self) -> None:
        await self.client.aclose()


class AnthropicClient:
    """
    Client for the Anthropic Messages API.
    """

    provider = "anthropic"

    def __init__(
        self,
        default_base_url: str = DEFAULT_ANTHROPIC_BASE_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.default_base_url = default_base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def _payload(self, request: ChatRequest) -> Dict[str, Any]:
        # System prompts travel outside the message list
        system_parts: List[str] = []
        messages: List[Dict[str, str]] = []
        for m in request.messages:
            if m.role == "system":
                system_parts.append(m.content)
            else:
                messages.append({"role": m.role, "content": m.content})

        payload: Dict[str, Any] = {
            "model": request.model,
            "messages": messages,
            "max_tokens": request.max_tokens or 4096,
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.top_p is not None:
            payload["top_p"] = request.top_p
        return payload

    async def chat(self, request: ChatRequest, config: ModelConfig) -> ChatResponse:
        base_url = (config.base_url or self.default_base_url).rstrip("/")
        url = f"{base_url}/v1/messages"
        headers = {
            "x-api-key": config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

        logger.debug(f"anthropic -> POST {url} | model: {request.model}")

        try:
            resp = await self.client.post(url, json=self._payload(request), headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(self.provider, f"HTTP {e.response.status_code}: {e.response.text}") from e
        except httpx.HTTPError as e:
            raise ProviderError(self.provider, f"request failed: {e!r}") from e
        except ValueError as e:
            raise ProviderError(self.provider, "invalid JSON response") from e

        if not isinstance(data, dict):
            raise ProviderError(self.provider, "unexpected response shape")

        blocks = data.get("content") or []
        text = "".join(b.get("text", "") for b in blocks if b.get("type") == "text")
        return ChatResponse(
            model=data.get("model", request.model),
            content=text,
            finish_reason=data.get("stop_reason") or "",
        )

    async def aclose(self) -> None:
        await self.client.aclose()
