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
from typing import Any, Callable, Dict, Iterable, List, Tuple

import pytest

from coreason_flow.core.exceptions import ProviderError
from coreason_flow.core.manifest import Flow
from coreason_flow.infrastructure.flow_store import InMemoryFlowStore
from coreason_flow.models.registry import ModelRegistry
from coreason_flow.models.schemas import ChatRequest, ChatResponse, ModelConfig, ModelProvider

pytest_plugins = ("pytest_asyncio",)


class FakeProviderClient:
    """Answers per vendor model name; records every call."""

    def __init__(
        self,
        responses: Dict[str, Any] | None = None,
        failures: Iterable[str] = (),
        delay: float | Dict[str, float] = 0.0,
        default: str = "Default Response",
    ) -> None:
        self.responses = responses or {}
        self.failures = set(failures)
        self.delay = delay
        self.default = default
        self.calls: List[Tuple[str, float | None, List[str]]] = []

    async def chat(self, request: ChatRequest, config: ModelConfig) -> ChatResponse:
        self.calls.append((request.model, request.temperature, [m.content for m in request.messages]))

        delay = self.delay.get(request.model, 0.0) if isinstance(self.delay, dict) else self.delay
        if delay:
            await asyncio.sleep(delay)

        if request.model in self.failures:
            raise ProviderError("openai", f"Simulated failure for {request.model}")

        content = self.responses.get(request.model, self.default)
        if callable(content):
            content = content(request)
        return ChatResponse(model=request.model, content=content, finish_reason="stop")


def build_registry(
    client: Any,
    available: Iterable[str] = ("m1", "m2"),
    unavailable: Iterable[str] = (),
) -> ModelRegistry:
    models: Dict[str, ModelConfig] = {}
    for name in available:
        models[name] = ModelConfig(provider=ModelProvider.OPENAI, model_name=name, api_key="test-key")
    for name in unavailable:
        models[name] = ModelConfig(provider=ModelProvider.OPENAI, model_name=name, api_key="")
    return ModelRegistry(models, {ModelProvider.OPENAI: client}, priority=())


@pytest.fixture
def fake_client() -> FakeProviderClient:
    return FakeProviderClient()


@pytest.fixture
def client_factory() -> Callable[..., FakeProviderClient]:
    return FakeProviderClient


@pytest.fixture
def registry_factory() -> Callable[..., ModelRegistry]:
    return build_registry


@pytest.fixture
def make_flow() -> Callable[..., Flow]:
    def _make(
        nodes: List[Dict[str, Any]],
        edges: List[Tuple[str, str] | Tuple[str, str, str] | Dict[str, Any]],
        flow_id: str = "flow-1",
        enabled: bool = True,
    ) -> Flow:
        edge_dicts = []
        for i, edge in enumerate(edges):
            if isinstance(edge, dict):
                edge_dicts.append(edge)
                continue
            entry: Dict[str, Any] = {"id": f"e{i}", "source": edge[0], "target": edge[1]}
            if len(edge) == 3:
                entry["condition"] = edge[2]
            edge_dicts.append(entry)
        return Flow.model_validate(
            {"id": flow_id, "name": flow_id, "nodes": nodes, "edges": edge_dicts, "enabled": enabled}
        )

    return _make


@pytest.fixture
def store() -> InMemoryFlowStore:
    return InMemoryFlowStore()
