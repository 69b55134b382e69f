# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

import asyncio
import threading
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from coreason_flow.config import ProviderSettings
from coreason_flow.core.exceptions import (
    ModelNotFoundError,
    NoAvailableModelError,
    ProviderError,
    ProviderUnavailableError,
)
from coreason_flow.models.providers import AnthropicClient, OpenAICompatibleClient, ProviderClient
from coreason_flow.models.schemas import ChatMessage, ChatRequest, ChatResponse, ModelConfig, ModelProvider
from coreason_flow.utils.logger import logger

# Fallback order used when the preferred model has no credential
PRIORITY_MODELS: Tuple[str, ...] = (
    "gpt-4",
    "glm-4",
    "glm-4-plus",
    "claude-3-opus",
    "moonshot-v1-8k-chat",
    "qwen-turbo",
    "deepseek-chat",
)

# (logical name, provider, vendor model name, max tokens)
DEFAULT_CATALOG: Tuple[Tuple[str, ModelProvider, str, int], ...] = (
    ("gpt-4", ModelProvider.OPENAI, "gpt-4", 4096),
    ("gpt-3.5-turbo", ModelProvider.OPENAI, "gpt-3.5-turbo", 4096),
    ("claude-3-opus", ModelProvider.ANTHROPIC, "claude-3-opus-20240229", 4096),
    ("claude-3-sonnet", ModelProvider.ANTHROPIC, "claude-3-sonnet-20240229", 4096),
    ("glm-4", ModelProvider.GLM, "glm-4", 4096),
    ("glm-4-plus", ModelProvider.GLM, "glm-4-plus", 4096),
    ("glm-4-flash", ModelProvider.GLM, "glm-4-flash", 4096),
    ("glm-3-turbo", ModelProvider.GLM, "glm-3-turbo", 4096),
    ("abab6.5s-chat", ModelProvider.MINIMAX, "abab6.5s-chat", 4096),
    ("moonshot-v1-8k-chat", ModelProvider.KIMI, "moonshot-v1-8k-chat", 4096),
    ("moonshot-v1-32k-chat", ModelProvider.KIMI, "moonshot-v1-32k-chat", 32768),
    ("qwen-turbo", ModelProvider.QWEN, "qwen-turbo", 8192),
    ("qwen-plus", ModelProvider.QWEN, "qwen-plus", 32768),
    ("qwen-max", ModelProvider.QWEN, "qwen-max", 8192),
    ("deepseek-chat", ModelProvider.DEEPSEEK, "deepseek-chat", 4096),
    ("deepseek-coder", ModelProvider.DEEPSEEK, "deepseek-coder", 4096),
)


def default_models(settings: ProviderSettings) -> Dict[str, ModelConfig]:
    """Builds the built-in model catalog with credentials taken from settings."""
    models: Dict[str, ModelConfig] = {}
    for name, provider, model_name, max_tokens in DEFAULT_CATALOG:
        models[name] = ModelConfig(
            provider=provider,
            model_name=model_name,
            api_key=settings.api_key(provider),
            base_url=settings.base_url(provider),
            max_tokens=max_tokens,
            temperature=0.7,
        )
    return models


def default_clients(settings: ProviderSettings) -> Dict[ModelProvider, ProviderClient]:
    """Creates one client per provider that has a credential configured."""
    clients: Dict[ModelProvider, ProviderClient] = {}
    for provider in ModelProvider:
        if not settings.api_key(provider):
            continue
        if provider == ModelProvider.ANTHROPIC:
            clients[provider] = AnthropicClient(
                default_base_url=settings.base_url(provider) or "https://api.anthropic.com",
                timeout=settings.request_timeout,
            )
        else:
            clients[provider] = OpenAICompatibleClient(
                provider=provider.value,
                default_base_url=settings.base_url(provider) or "https://api.openai.com/v1",
                timeout=settings.request_timeout,
            )
    return clients


class ModelRegistry:
    """
    Holds the named model configurations and one client per provider.

    The registry is shared by every concurrent run; both maps are guarded by a
    single lock that is never held across a network call.
    """

    def __init__(
        self,
        models: Mapping[str, ModelConfig] | None = None,
        clients: Mapping[ModelProvider, ProviderClient] | None = None,
        priority: Sequence[str] = PRIORITY_MODELS,
    ) -> None:
        self._lock = threading.RLock()
        self._models: Dict[str, ModelConfig] = dict(models or {})
        self._clients: Dict[ModelProvider, ProviderClient] = dict(clients or {})
        self.priority: Tuple[str, ...] = tuple(priority)

    @classmethod
    def from_settings(cls, settings: ProviderSettings | None = None) -> "ModelRegistry":
        settings = settings or ProviderSettings.from_env()
        registry = cls(default_models(settings), default_clients(settings))
        logger.info(f"Model registry initialised with {len(registry.available_models())} available models")
        return registry

    def register_model(self, name: str, config: ModelConfig) -> None:
        """Inserts or replaces a model configuration. Credentials are not checked."""
        with self._lock:
            self._models[name] = config

    set_model = register_model

    def register_client(self, provider: ModelProvider, client: ProviderClient) -> None:
        with self._lock:
            self._clients[provider] = client

    def get_model(self, name: str) -> ModelConfig | None:
        with self._lock:
            return self._models.get(name)

    def list_models(self) -> List[Tuple[str, ModelConfig]]:
        with self._lock:
            return list(self._models.items())

    def available_models(self) -> List[str]:
        with self._lock:
            return [name for name, cfg in self._models.items() if cfg.api_key]

    def is_available(self, name: str) -> bool:
        cfg = self.get_model(name)
        return cfg is not None and bool(cfg.api_key)

    def filter_available(self, names: Iterable[str]) -> List[str]:
        return [name for name in names if self.is_available(name)]

    def resolve_for_use(self, preferred: str = "") -> str:
        """
        Picks the model to call: the preferred one if it has a credential,
        else the first available model of the priority list, else any
        available model in registration order.

        Raises:
            NoAvailableModelError: If no model has a credential.
        """
        if preferred and self.is_available(preferred):
            return preferred

        for name in self.priority:
            if self.is_available(name):
                if preferred:
                    logger.warning(f"Model '{preferred}' not available, falling back to '{name}'")
                return name

        available = self.available_models()
        if available:
            return available[0]

        raise NoAvailableModelError()

    async def invoke(
        self,
        model_name: str,
        messages: Sequence[ChatMessage],
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> ChatResponse:
        """
        Calls a model through its provider client.

        Args:
            model_name: Logical model name as registered.
            messages: The chat history, system prompt first if any.
            temperature: Overrides the configured sampling temperature.
            timeout: Seconds before the call is abandoned.

        Raises:
            ModelNotFoundError: If the model is not registered.
            ProviderUnavailableError: If the provider has no client or credential.
            ProviderError: If the call fails or times out.
        """
        with self._lock:
            cfg = self._models.get(model_name)
            client = self._clients.get(cfg.provider) if cfg else None

        if cfg is None:
            raise ModelNotFoundError(model_name)
        if client is None or not cfg.api_key:
            raise ProviderUnavailableError(cfg.provider.value)

        request = ChatRequest(
            model=cfg.model_name,
            messages=list(messages),
            temperature=cfg.temperature if temperature is None else temperature,
            max_tokens=cfg.max_tokens,
            top_p=cfg.top_p,
        )

        try:
            if timeout is None:
                return await client.chat(request, cfg)
            return await asyncio.wait_for(client.chat(request, cfg), timeout=timeout)
        except TimeoutError as e:
            raise ProviderError(cfg.provider.value, f"timed out after {timeout}s") from e

    async def aclose(self) -> None:
        with self._lock:
            clients = list(self._clients.values())
        for client in clients:
            close = getattr(client, "aclose", None)
            if close is not None:
                await close()
