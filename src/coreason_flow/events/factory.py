# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

import time
from typing import Dict

from coreason_flow.events.protocol import (
    CouncilVote,
    EdgeTraversed,
    FlowSummary,
    GraphEvent,
    NodeCompleted,
    NodeErrorPayload,
    NodeSkipped,
    NodeStarted,
)

SUMMARY_LIMIT = 200


def _summary(text: str) -> str:
    return text if len(text) <= SUMMARY_LIMIT else text[:SUMMARY_LIMIT] + "..."


class EventFactory:
    """
    Factory for creating standardized GraphEvents.
    Reduces boilerplate in the executor.
    """

    @staticmethod
    def create_flow_start(run_id: str, flow_id: str, user_id: str) -> GraphEvent:
        return GraphEvent(
            event_type="FLOW_START",
            run_id=run_id,
            flow_id=flow_id,
            timestamp=time.time(),
            payload={"user_id": user_id},
        )

    @staticmethod
    def create_node_start(run_id: str, flow_id: str, node_id: str, node_type: str, node_input: str) -> GraphEvent:
        payload = NodeStarted(node_id=node_id, node_type=node_type, input_summary=_summary(node_input))
        return GraphEvent(
            event_type="NODE_START",
            run_id=run_id,
            flow_id=flow_id,
            node_id=node_id,
            timestamp=time.time(),
            payload=payload.model_dump(),
        )

    @staticmethod
    def create_node_done(run_id: str, flow_id: str, node_id: str, output: str, duration_ms: int) -> GraphEvent:
        payload = NodeCompleted(node_id=node_id, output_summary=_summary(output), duration_ms=duration_ms)
        return GraphEvent(
            event_type="NODE_DONE",
            run_id=run_id,
            flow_id=flow_id,
            node_id=node_id,
            timestamp=time.time(),
            payload=payload.model_dump(),
        )

    @staticmethod
    def create_node_skipped(run_id: str, flow_id: str, node_id: str, reason: str) -> GraphEvent:
        payload = NodeSkipped(node_id=node_id, reason=reason)
        return GraphEvent(
            event_type="NODE_SKIPPED",
            run_id=run_id,
            flow_id=flow_id,
            node_id=node_id,
            timestamp=time.time(),
            payload=payload.model_dump(),
        )

    @staticmethod
    def create_edge_active(
        run_id: str, flow_id: str, edge_id: str, source: str, target: str, condition: str | None
    ) -> GraphEvent:
        payload = EdgeTraversed(edge_id=edge_id, source=source, target=target, condition=condition)
        return GraphEvent(
            event_type="EDGE_ACTIVE",
            run_id=run_id,
            flow_id=flow_id,
            node_id=source,  # Edge events are associated with the source node
            timestamp=time.time(),
            payload=payload.model_dump(),
        )

    @staticmethod
    def create_council_vote(
        run_id: str, flow_id: str, node_id: str, winner: str, votes: Dict[str, str], scores: Dict[str, float]
    ) -> GraphEvent:
        payload = CouncilVote(node_id=node_id, winner=winner, votes=votes, scores=scores)
        return GraphEvent(
            event_type="COUNCIL_VOTE",
            run_id=run_id,
            flow_id=flow_id,
            node_id=node_id,
            timestamp=time.time(),
            payload=payload.model_dump(),
        )

    @staticmethod
    def create_error(
        run_id: str, flow_id: str, node_id: str, error: str, stack: str, duration_ms: int
    ) -> GraphEvent:
        payload = NodeErrorPayload(node_id=node_id, error_message=error, stack_trace=stack, duration_ms=duration_ms)
        return GraphEvent(
            event_type="ERROR",
            run_id=run_id,
            flow_id=flow_id,
            node_id=node_id,
            timestamp=time.time(),
            payload=payload.model_dump(),
        )

    @staticmethod
    def create_flow_done(run_id: str, flow_id: str, output: str, executed: int, failed: int) -> GraphEvent:
        payload = FlowSummary(output_summary=_summary(output), nodes_executed=executed, nodes_failed=failed)
        return GraphEvent(
            event_type="FLOW_DONE",
            run_id=run_id,
            flow_id=flow_id,
            timestamp=time.time(),
            payload=payload.model_dump(),
        )
