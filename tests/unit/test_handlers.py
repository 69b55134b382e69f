# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from typing import Any, Callable, Dict

import pytest

from coreason_flow.core.manifest import AgentNode, ConditionNode, LLMNode, ToolNode
from coreason_flow.engine.context import ExecutionContext
from coreason_flow.engine.handlers import (
    DEFAULT_AGENT_PROMPT,
    AgentNodeHandler,
    ConditionNodeHandler,
    LLMNodeHandler,
    RunScope,
    ToolNodeHandler,
)
from coreason_flow.events.sink import CollectingEventSink
from coreason_flow.models.registry import ModelRegistry
from coreason_flow.strategies.consensus import ConsensusEngine


class StaticAgentContext:
    def __init__(self, background: str) -> None:
        self.background = background
        self.queries: list[tuple[str, str]] = []

    async def resolve(self, agent_id: str, query: str) -> str:
        self.queries.append((agent_id, query))
        return self.background


class RecordingTools:
    def __init__(self, result: Any) -> None:
        self.result = result
        self.received: Dict[str, Any] = {}

    async def execute(self, tool_name: str, params: Dict[str, Any]) -> Any:
        self.received = {"tool": tool_name, "params": params}
        return self.result


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(flow_id="flow-1", input="hi")


@pytest.fixture
def scope() -> RunScope:
    return RunScope("flow-1", CollectingEventSink(), run_id="run-1")


@pytest.mark.asyncio
async def test_agent_single_model(
    registry_factory: Callable[..., ModelRegistry],
    client_factory: Callable[..., Any],
    context: ExecutionContext,
    scope: RunScope,
) -> None:
    client = client_factory(responses={"m2": "agent answer"})
    handler = AgentNodeHandler(registry_factory(client, available=("m1", "m2")))
    node = AgentNode.model_validate({"id": "a", "type": "agent", "data": {"model": "m2"}})

    output = await handler.execute(node, "question", context, scope)

    assert output == "agent answer"
    assert client.calls == [("m2", 0.7, [DEFAULT_AGENT_PROMPT, "question"])]


@pytest.mark.asyncio
async def test_agent_unavailable_model_falls_back(
    registry_factory: Callable[..., ModelRegistry],
    client_factory: Callable[..., Any],
    context: ExecutionContext,
    scope: RunScope,
) -> None:
    client = client_factory()
    handler = AgentNodeHandler(registry_factory(client, available=("m1",), unavailable=("m9",)))
    node = AgentNode.model_validate({"id": "a", "type": "agent", "data": {"model": "m9"}})

    await handler.execute(node, "question", context, scope)

    assert client.calls[0][0] == "m1"


@pytest.mark.asyncio
async def test_agent_appends_background(
    registry_factory: Callable[..., ModelRegistry],
    client_factory: Callable[..., Any],
    context: ExecutionContext,
    scope: RunScope,
) -> None:
    client = client_factory()
    agent_context = StaticAgentContext("User prefers short answers.")
    handler = AgentNodeHandler(registry_factory(client, available=("m1",)), agent_context=agent_context)
    node = AgentNode.model_validate(
        {"id": "a", "type": "agent", "data": {"agentId": "support", "systemPrompt": "You are support."}}
    )

    await handler.execute(node, "question", context, scope)

    system_prompt = client.calls[0][2][0]
    assert system_prompt == "You are support.\n\nRelevant background:\nUser prefers short answers."
    assert agent_context.queries == [("support", "question")]


@pytest.mark.asyncio
async def test_agent_uses_memory_from_request_context(
    registry_factory: Callable[..., ModelRegistry],
    client_factory: Callable[..., Any],
    scope: RunScope,
) -> None:
    client = client_factory()
    handler = AgentNodeHandler(registry_factory(client, available=("m1",)))
    context = ExecutionContext(flow_id="flow-1", context={"memory": "Lives in Berlin."})
    node = AgentNode.model_validate({"id": "a", "type": "agent", "data": {}})

    await handler.execute(node, "question", context, scope)

    assert client.calls[0][2][0].endswith("Relevant background:\nLives in Berlin.")


@pytest.mark.asyncio
async def test_agent_voting(
    registry_factory: Callable[..., ModelRegistry],
    client_factory: Callable[..., Any],
    context: ExecutionContext,
    scope: RunScope,
) -> None:
    client = client_factory(responses={"m1": "brief", "m2": "a much more extensive reply"})
    registry = registry_factory(client, available=("m1", "m2"))
    handler = AgentNodeHandler(registry, ConsensusEngine(registry))
    node = AgentNode.model_validate(
        {
            "id": "council",
            "type": "agent",
            "data": {"voting": {"models": ["m1", "m2"], "votingMethod": "length"}},
        }
    )

    output = await handler.execute(node, "question", context, scope)

    assert output == "a much more extensive reply"
    assert context.get_var("vote_winner_council") == "m2"
    sink = scope.sink
    assert isinstance(sink, CollectingEventSink)
    vote = sink.events[0]
    assert vote.event_type == "COUNCIL_VOTE"
    assert vote.run_id == "run-1"
    assert vote.payload["winner"] == "m2"
    assert set(vote.payload["votes"]) == {"m1", "m2"}


@pytest.mark.asyncio
async def test_agent_voting_without_engine(context: ExecutionContext, scope: RunScope) -> None:
    handler = AgentNodeHandler(None)
    node = AgentNode.model_validate({"id": "a", "type": "agent", "data": {"voting": {"models": ["m1"]}}})

    with pytest.raises(RuntimeError, match="consensus"):
        await handler.execute(node, "question", context, scope)


@pytest.mark.asyncio
async def test_llm_node_prompt_and_input(
    registry_factory: Callable[..., ModelRegistry],
    client_factory: Callable[..., Any],
    context: ExecutionContext,
    scope: RunScope,
) -> None:
    client = client_factory(responses={"m1": "summary"})
    handler = LLMNodeHandler(registry_factory(client, available=("m1",)))
    node = LLMNode.model_validate({"id": "l", "type": "llm", "data": {"prompt": "Summarize"}})

    output = await handler.execute(node, "long text", context, scope)

    assert output == "summary"
    assert client.calls[0][2] == ["Summarize\n\n输入: long text"]


@pytest.mark.asyncio
async def test_llm_node_without_registry(context: ExecutionContext, scope: RunScope) -> None:
    node = LLMNode.model_validate({"id": "l", "type": "llm", "data": {}})

    with pytest.raises(RuntimeError):
        await LLMNodeHandler(None).execute(node, "x", context, scope)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "result, expected",
    [
        ("plain", "plain"),
        (None, ""),
        ({"temp": 21, "city": "北京"}, '{"temp": 21, "city": "北京"}'),
        ([1, 2], "[1, 2]"),
    ],
)
async def test_tool_node_stringifies_result(
    context: ExecutionContext, scope: RunScope, result: Any, expected: str
) -> None:
    tools = RecordingTools(result)
    node = ToolNode.model_validate(
        {"id": "t", "type": "tool", "data": {"toolName": "weather", "params": {"units": "metric"}}}
    )

    output = await ToolNodeHandler(tools).execute(node, "Beijing", context, scope)

    assert output == expected
    assert tools.received == {"tool": "weather", "params": {"units": "metric", "input": "Beijing"}}


@pytest.mark.asyncio
async def test_tool_node_errors(context: ExecutionContext, scope: RunScope) -> None:
    unnamed = ToolNode.model_validate({"id": "t", "type": "tool", "data": {}})
    named = ToolNode.model_validate({"id": "t", "type": "tool", "data": {"toolName": "weather"}})

    with pytest.raises(ValueError, match="toolName"):
        await ToolNodeHandler(RecordingTools("x")).execute(unnamed, "", context, scope)
    with pytest.raises(RuntimeError, match="weather"):
        await ToolNodeHandler(None).execute(named, "", context, scope)


@pytest.mark.asyncio
async def test_condition_node(context: ExecutionContext, scope: RunScope) -> None:
    node = ConditionNode.model_validate({"id": "c", "type": "condition", "data": {"condition": "contains:ok"}})
    handler = ConditionNodeHandler()

    assert await handler.execute(node, "all ok", context, scope) == "true"
    assert await handler.execute(node, "broken", context, scope) == "false"
