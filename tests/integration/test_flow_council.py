# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from typing import Any, Callable

import pytest

from coreason_flow.core.contracts import ExecuteRequest
from coreason_flow.core.manifest import Flow
from coreason_flow.engine.runner import GraphExecutor
from coreason_flow.events.sink import CollectingEventSink
from coreason_flow.infrastructure.flow_store import InMemoryFlowStore
from coreason_flow.models.registry import ModelRegistry
from coreason_flow.strategies.consensus import ConsensusEngine


def _council_flow(make_flow: Callable[..., Flow], models: list[str]) -> Flow:
    """Trigger -> council agent -> LLM polish"""
    return make_flow(
        [
            {"id": "T", "type": "trigger", "data": {"triggerType": "message"}},
            {
                "id": "council",
                "type": "agent",
                "data": {
                    "systemPrompt": "You are a strategy council.",
                    "voting": {"models": models, "votingMethod": "length", "taskType": "decision"},
                },
            },
            {"id": "polish", "type": "llm", "data": {"model": "m3", "prompt": "Polish this"}},
        ],
        [("T", "council"), ("council", "polish")],
        flow_id="council-flow",
    )


@pytest.mark.asyncio
async def test_council_result_flows_downstream(
    store: InMemoryFlowStore,
    make_flow: Callable[..., Flow],
    registry_factory: Callable[..., ModelRegistry],
    client_factory: Callable[..., Any],
) -> None:
    provider = client_factory(
        responses={
            "m1": "Expand.",
            "m2": "Consolidate the core business before expanding.",
            "m3": lambda req: f"polished({req.messages[-1].content.split(': ', 1)[1]})",
        }
    )
    registry = registry_factory(provider, available=("m1", "m2", "m3"))
    sink = CollectingEventSink()
    store.save(_council_flow(make_flow, ["m1", "m2"]))
    executor = GraphExecutor(store, registry=registry, consensus=ConsensusEngine(registry), event_sink=sink)

    result = await executor.execute(ExecuteRequest(flow_id="council-flow", input="Should we expand?"))

    council = result.nodes_exec[1]
    assert council.node_id == "council"
    assert council.output == "Consolidate the core business before expanding."
    assert result.nodes_exec[2].input == council.output
    assert result.output == "polished(Consolidate the core business before expanding.)"

    votes = [e for e in sink.events if e.event_type == "COUNCIL_VOTE"]
    assert len(votes) == 1
    assert votes[0].node_id == "council"
    assert votes[0].payload["winner"] == "m2"

    # Every council member saw the system prompt and the trigger output
    member_calls = [c for c in provider.calls if c[0] in ("m1", "m2")]
    assert all(c[2] == ["You are a strategy council.", "Should we expand?"] for c in member_calls)


@pytest.mark.asyncio
async def test_failed_council_prunes_downstream(
    store: InMemoryFlowStore,
    make_flow: Callable[..., Flow],
    registry_factory: Callable[..., ModelRegistry],
    client_factory: Callable[..., Any],
) -> None:
    provider = client_factory(failures=("m1", "m2"))
    registry = registry_factory(provider, available=("m1", "m2", "m3"))
    store.save(_council_flow(make_flow, ["m1", "m2"]))
    executor = GraphExecutor(store, registry=registry)

    result = await executor.execute(ExecuteRequest(flow_id="council-flow", input="Should we expand?"))

    assert [r.node_id for r in result.nodes_exec] == ["T", "council"]
    assert result.nodes_exec[1].error == "All models failed: please check API keys"
    assert not any(c[0] == "m3" for c in provider.calls)
    # Only the trigger succeeded
    assert result.output == "Should we expand?"
