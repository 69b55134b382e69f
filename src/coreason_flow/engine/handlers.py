# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

import json
import uuid
from typing import Any, Protocol

from coreason_flow.core.interfaces import AgentContext, ToolExecutor
from coreason_flow.core.manifest import AgentNode, ConditionNode, LLMNode, Node, ToolNode, TriggerNode
from coreason_flow.engine.conditions import ConditionEvaluator
from coreason_flow.engine.context import ExecutionContext
from coreason_flow.events.factory import EventFactory
from coreason_flow.events.protocol import GraphEvent
from coreason_flow.events.sink import AsyncEventSink
from coreason_flow.models.registry import ModelRegistry
from coreason_flow.models.schemas import system_message, user_message
from coreason_flow.strategies.consensus import ConsensusEngine
from coreason_flow.strategies.schemas import VoteRequest

DEFAULT_AGENT_PROMPT = "You are an AI assistant. Help the user solve their problem."
LLM_INPUT_SEPARATOR = "\n\n输入: "


class RunScope:
    """Identity of one run plus the sink its events go to."""

    def __init__(self, flow_id: str, sink: AsyncEventSink | None = None, run_id: str | None = None) -> None:
        self.run_id = run_id or str(uuid.uuid4())
        self.flow_id = flow_id
        self.sink = sink

    async def emit(self, event: GraphEvent) -> None:
        if self.sink is not None:
            await self.sink.emit(event)


class NodeHandler(Protocol):
    """
    Interface for handling execution of a specific node type.
    """

    async def execute(self, node: Node, node_input: str, context: ExecutionContext, scope: RunScope) -> str:
        """
        Executes the node logic.

        Args:
            node: The node to execute.
            node_input: Output of the node this one was reached from.
            context: The shared execution context of the run.
            scope: The run identity, used to emit intermediate events.

        Returns:
            The output of the node execution.
        """
        ...


class TriggerNodeHandler:
    async def execute(self, node: TriggerNode, node_input: str, context: ExecutionContext, scope: RunScope) -> str:
        trigger_type = node.data.trigger_type
        if trigger_type in ("定时", "schedule"):
            return "triggered"
        if trigger_type == "webhook":
            return "webhook triggered"
        # "message" / "用户消息" and anything unrecognised pass the input through
        return context.input


class AgentNodeHandler:
    """
    Answers with a single model, or with a consensus vote when the node lists
    voting models.
    """

    def __init__(
        self,
        registry: ModelRegistry | None,
        consensus: ConsensusEngine | None = None,
        agent_context: AgentContext | None = None,
        timeout: float | None = None,
    ) -> None:
        self.registry = registry
        self.consensus = consensus
        self.agent_context = agent_context
        self.timeout = timeout

    async def _system_prompt(self, node: AgentNode, node_input: str, context: ExecutionContext) -> str:
        prompt = node.data.system_prompt or DEFAULT_AGENT_PROMPT

        background = ""
        if self.agent_context is not None and node.data.agent_id:
            background = await self.agent_context.resolve(node.data.agent_id, node_input)
        if not background:
            background = str(context.context.get("memory") or "")

        if background:
            prompt += "\n\nRelevant background:\n" + background
        return prompt

    async def execute(self, node: AgentNode, node_input: str, context: ExecutionContext, scope: RunScope) -> str:
        system_prompt = await self._system_prompt(node, node_input, context)
        voting = node.data.voting

        if voting is not None and voting.models:
            if self.consensus is None:
                raise RuntimeError(f"Agent node '{node.id}' requests voting but no consensus engine is configured")
            result = await self.consensus.vote(
                VoteRequest(
                    models=voting.models,
                    messages=[user_message(node_input)],
                    system_prompt=system_prompt,
                    task_type=voting.task_type,
                    voting_method=voting.voting_method,
                )
            )
            context.set_var(f"vote_winner_{node.id}", result.winner)
            await scope.emit(
                EventFactory.create_council_vote(
                    scope.run_id, scope.flow_id, node.id, result.winner, result.responses, result.scores
                )
            )
            return result.winner_content

        if self.registry is None:
            raise RuntimeError(f"Agent node '{node.id}' needs a model registry")
        model = self.registry.resolve_for_use(node.data.model)
        resp = await self.registry.invoke(
            model,
            [system_message(system_prompt), user_message(node_input)],
            timeout=self.timeout,
        )
        return resp.content


class LLMNodeHandler:
    def __init__(self, registry: ModelRegistry | None, timeout: float | None = None) -> None:
        self.registry = registry
        self.timeout = timeout

    async def execute(self, node: LLMNode, node_input: str, context: ExecutionContext, scope: RunScope) -> str:
        if self.registry is None:
            raise RuntimeError(f"LLM node '{node.id}' needs a model registry")

        prompt = node.data.prompt + LLM_INPUT_SEPARATOR + node_input
        model = self.registry.resolve_for_use(node.data.model)
        resp = await self.registry.invoke(model, [user_message(prompt)], timeout=self.timeout)
        return resp.content


def _stringify(result: Any) -> str:
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    return json.dumps(result, ensure_ascii=False, default=str)


class ToolNodeHandler:
    def __init__(self, tool_executor: ToolExecutor | None) -> None:
        self.tool_executor = tool_executor

    async def execute(self, node: ToolNode, node_input: str, context: ExecutionContext, scope: RunScope) -> str:
        tool_name = node.data.tool_name
        if not tool_name:
            raise ValueError(f"Tool node '{node.id}' has no toolName")
        if self.tool_executor is None:
            raise RuntimeError(f"No tool executor configured for tool '{tool_name}'")

        params = {**node.data.params, "input": node_input}
        result = await self.tool_executor.execute(tool_name, params)
        return _stringify(result)


class ConditionNodeHandler:
    def __init__(self, evaluator: ConditionEvaluator | None = None) -> None:
        self.evaluator = evaluator or ConditionEvaluator()

    async def execute(self, node: ConditionNode, node_input: str, context: ExecutionContext, scope: RunScope) -> str:
        result = self.evaluator.evaluate(node.data.condition, context, node_input)
        return "true" if result else "false"
