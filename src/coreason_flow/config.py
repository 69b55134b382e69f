# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

import os
from typing import Dict

from pydantic import BaseModel, Field

from coreason_flow.models.schemas import ModelProvider

# Environment variable holding each provider's credential
API_KEY_ENV: Dict[ModelProvider, str] = {
    ModelProvider.OPENAI: "OPENAI_API_KEY",
    ModelProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
    ModelProvider.GLM: "ZHIPU_API_KEY",
    ModelProvider.MINIMAX: "MINIMAX_API_KEY",
    ModelProvider.KIMI: "KIMI_API_KEY",
    ModelProvider.QWEN: "DASHSCOPE_API_KEY",
    ModelProvider.DEEPSEEK: "DEEPSEEK_API_KEY",
    ModelProvider.CUSTOM: "CUSTOM_API_KEY",
}

DEFAULT_BASE_URLS: Dict[ModelProvider, str] = {
    ModelProvider.OPENAI: "https://api.openai.com/v1",
    ModelProvider.ANTHROPIC: "https://api.anthropic.com",
    ModelProvider.GLM: "https://open.bigmodel.cn/api/paas/v4",
    ModelProvider.MINIMAX: "https://api.minimax.chat/v1",
    ModelProvider.KIMI: "https://api.moonshot.cn/v1",
    ModelProvider.QWEN: "https://dashscope.aliyuncs.com/compatible-mode/v1",
    ModelProvider.DEEPSEEK: "https://api.deepseek.com/v1",
}


class ProviderSettings(BaseModel):
    """
    Provider credentials and service knobs, read once at startup.
    """

    api_keys: Dict[ModelProvider, str] = Field(default_factory=dict, repr=False)
    base_urls: Dict[ModelProvider, str] = Field(default_factory=lambda: dict(DEFAULT_BASE_URLS))
    vote_timeout: float = 60.0
    request_timeout: float = 60.0
    redis_url: str | None = None
    tools_url: str | None = None

    @classmethod
    def from_env(cls) -> "ProviderSettings":
        """Builds settings from the process environment."""
        api_keys: Dict[ModelProvider, str] = {}
        for provider, env_name in API_KEY_ENV.items():
            value = os.getenv(env_name, "")
            if value:
                api_keys[provider] = value

        base_urls = dict(DEFAULT_BASE_URLS)
        for provider in ModelProvider:
            override = os.getenv(f"{provider.value.upper()}_BASE_URL")
            if override:
                base_urls[provider] = override

        return cls(
            api_keys=api_keys,
            base_urls=base_urls,
            vote_timeout=float(os.getenv("COREASON_VOTE_TIMEOUT", "60")),
            request_timeout=float(os.getenv("COREASON_REQUEST_TIMEOUT", "60")),
            redis_url=os.getenv("REDIS_URL"),
            tools_url=os.getenv("COREASON_TOOLS_URL"),
        )

    def api_key(self, provider: ModelProvider) -> str:
        return self.api_keys.get(provider, "")

    def base_url(self, provider: ModelProvider) -> str:
        return self.base_urls.get(provider, "")
