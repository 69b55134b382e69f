# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ModelProvider(str, Enum):
    """Supported model vendors."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GLM = "glm"
    MINIMAX = "minimax"
    KIMI = "kimi"
    QWEN = "qwen"
    DEEPSEEK = "deepseek"
    CUSTOM = "custom"


class ModelConfig(BaseModel):
    """
    Configuration of one logical model: who serves it and how to call it.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    provider: ModelProvider
    model_name: str
    api_key: str = Field(default="", repr=False, exclude=True)
    base_url: str = ""
    max_tokens: int = 4096
    temperature: float = 0.7
    top_p: Optional[float] = None


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    model: str
    messages: List[ChatMessage]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None


class ChatResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    model: str
    content: str
    finish_reason: str = ""


def system_message(content: str) -> ChatMessage:
    return ChatMessage(role="system", content=content)


def user_message(content: str) -> ChatMessage:
    return ChatMessage(role="user", content=content)
