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
import time
import traceback
from typing import Dict, List

from coreason_flow.core.contracts import ExecuteRequest, ExecuteResponse, NodeExecution
from coreason_flow.core.exceptions import (
    FlowDisabledError,
    FlowExecutionError,
    FlowNotFoundError,
    NoTriggerNodeError,
)
from coreason_flow.core.interfaces import AgentContext, FlowStore, ToolExecutor
from coreason_flow.core.manifest import Node, NodeKind
from coreason_flow.engine.conditions import ConditionEvaluator
from coreason_flow.engine.context import ExecutionContext
from coreason_flow.engine.handlers import (
    AgentNodeHandler,
    ConditionNodeHandler,
    LLMNodeHandler,
    NodeHandler,
    RunScope,
    ToolNodeHandler,
    TriggerNodeHandler,
)
from coreason_flow.engine.topology import FlowGraph
from coreason_flow.events.factory import EventFactory
from coreason_flow.events.sink import AsyncEventSink
from coreason_flow.models.registry import ModelRegistry
from coreason_flow.strategies.consensus import ConsensusEngine
from coreason_flow.utils.logger import logger


class _Run:
    """Bookkeeping for one execute() call."""

    def __init__(self, graph: FlowGraph, context: ExecutionContext, scope: RunScope) -> None:
        self.graph = graph
        self.context = context
        self.scope = scope
        self.records: List[NodeExecution] = []
        self.terminal_reached = False


class GraphExecutor:
    """
    Walks a flow graph from its trigger nodes and runs every reachable node.

    Traversal is depth first and sequential within a run. A node runs at most
    once per run: later arrivals (diamonds, cycles) are skipped. A failing node
    is recorded and its subtree is not entered; the rest of the run goes on.
    """

    def __init__(
        self,
        store: FlowStore,
        registry: ModelRegistry | None = None,
        consensus: ConsensusEngine | None = None,
        tool_executor: ToolExecutor | None = None,
        agent_context: AgentContext | None = None,
        event_sink: AsyncEventSink | None = None,
        node_timeout: float | None = None,
    ) -> None:
        if node_timeout is not None and node_timeout <= 0:
            raise ValueError("node_timeout must be > 0")
        self.store = store
        self.event_sink = event_sink
        self.node_timeout = node_timeout
        self.evaluator = ConditionEvaluator()
        if consensus is None and registry is not None:
            consensus = ConsensusEngine(registry)
        self.handlers: Dict[NodeKind, NodeHandler] = {
            NodeKind.TRIGGER: TriggerNodeHandler(),
            NodeKind.AGENT: AgentNodeHandler(registry, consensus, agent_context),
            NodeKind.LLM: LLMNodeHandler(registry),
            NodeKind.TOOL: ToolNodeHandler(tool_executor),
            NodeKind.CONDITION: ConditionNodeHandler(self.evaluator),
        }

    async def execute(self, request: ExecuteRequest) -> ExecuteResponse:
        """
        Executes a stored flow.

        The flow output is the output of the last terminal node (a node without
        outgoing edges) that succeeded, in traversal order. When no terminal
        node succeeded it is the output of the last node that succeeded.

        Raises:
            FlowNotFoundError: If the store has no such flow.
            FlowDisabledError: If the flow is disabled.
            NoTriggerNodeError: If the flow has no trigger node.
            GraphIntegrityError: If an edge references an unknown node.
            FlowExecutionError: If no node produced output.
        """
        flow = await self.store.get_flow(request.flow_id)
        if flow is None:
            raise FlowNotFoundError(request.flow_id)
        if not flow.enabled:
            raise FlowDisabledError(request.flow_id)

        graph = FlowGraph.build(flow)
        triggers = graph.triggers
        if not triggers:
            raise NoTriggerNodeError(request.flow_id)

        context = ExecutionContext(
            flow_id=request.flow_id,
            user_id=request.user_id,
            channel_id=request.channel_id,
            input=request.input,
            context=dict(request.context),
        )
        run = _Run(graph, context, RunScope(request.flow_id, self.event_sink))

        logger.info(f"Executing flow '{request.flow_id}' (run {run.scope.run_id}) for user '{request.user_id}'")
        await run.scope.emit(EventFactory.create_flow_start(run.scope.run_id, request.flow_id, request.user_id))

        for trigger in triggers:
            await self._visit(run, trigger, request.input)

        succeeded = [r for r in run.records if r.succeeded]
        failed = len(run.records) - len(succeeded)
        if not succeeded:
            raise FlowExecutionError(f"No node of flow '{request.flow_id}' produced output")

        if not run.terminal_reached:
            context.set_output(succeeded[-1].output)
        output = context.get_output()

        await run.scope.emit(
            EventFactory.create_flow_done(run.scope.run_id, request.flow_id, output, len(run.records), failed)
        )
        logger.info(f"Flow '{request.flow_id}' finished: {len(run.records)} nodes executed, {failed} failed")

        return ExecuteResponse(
            flow_id=request.flow_id,
            output=output,
            nodes_exec=run.records,
            context=context.context,
        )

    async def _run_handler(self, node: Node, node_input: str, run: _Run) -> str:
        handler = self.handlers[node.kind]
        call = handler.execute(node, node_input, run.context, run.scope)
        if self.node_timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self.node_timeout)

    async def _visit(self, run: _Run, node: Node, node_input: str) -> None:
        if not run.context.mark_visited(node.id):
            logger.debug(f"Node '{node.id}' already executed in this run, skipping")
            return

        scope = run.scope
        run.context.set_var(f"node_input_{node.id}", node_input)
        await scope.emit(EventFactory.create_node_start(scope.run_id, scope.flow_id, node.id, node.type, node_input))

        started = time.perf_counter()
        try:
            output = await self._run_handler(node, node_input, run)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            duration_ms = int((time.perf_counter() - started) * 1000)
            message = str(e) or type(e).__name__
            logger.error(f"Node '{node.id}' ({node.type}) failed: {message}")
            run.records.append(
                NodeExecution(
                    node_id=node.id,
                    node_type=node.kind,
                    input=node_input,
                    error=message,
                    duration_ms=duration_ms,
                )
            )
            await scope.emit(
                EventFactory.create_error(
                    scope.run_id, scope.flow_id, node.id, message, traceback.format_exc(), duration_ms
                )
            )
            return

        duration_ms = int((time.perf_counter() - started) * 1000)
        # Only a completed handler result is ever stored
        run.context.set_result(node.id, output)
        run.records.append(
            NodeExecution(
                node_id=node.id,
                node_type=node.kind,
                input=node_input,
                output=output,
                duration_ms=duration_ms,
            )
        )
        await scope.emit(EventFactory.create_node_done(scope.run_id, scope.flow_id, node.id, output, duration_ms))

        if run.graph.is_terminal(node.id):
            run.context.set_output(output)
            run.terminal_reached = True
            return

        for edge in run.graph.out_edges(node.id):
            if not self.evaluator.evaluate(edge.condition, run.context, output):
                await scope.emit(
                    EventFactory.create_node_skipped(
                        scope.run_id, scope.flow_id, edge.target, f"condition '{edge.condition}' not met"
                    )
                )
                continue

            await scope.emit(
                EventFactory.create_edge_active(
                    scope.run_id, scope.flow_id, edge.id, edge.source, edge.target, edge.condition
                )
            )
            child = run.graph.node(edge.target)
            if child is not None:
                await self._visit(run, child, output)
