# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

EventType = Literal[
    "FLOW_START",
    "NODE_START",
    "NODE_DONE",
    "NODE_SKIPPED",
    "EDGE_ACTIVE",
    "COUNCIL_VOTE",
    "ERROR",
    "FLOW_DONE",
]


class GraphEvent(BaseModel):
    """
    The atomic unit of run telemetry, published while a flow executes.
    """

    model_config = ConfigDict(extra="forbid")

    event_type: EventType
    run_id: str
    flow_id: str
    node_id: Optional[str] = None
    timestamp: float

    payload: Dict[str, Any] = Field(default_factory=dict, description="The event data")


# Payload Models
class NodeStarted(BaseModel):
    model_config = ConfigDict(extra="forbid")
    node_id: str
    node_type: str
    input_summary: str
    status: Literal["RUNNING"] = "RUNNING"


class NodeCompleted(BaseModel):
    model_config = ConfigDict(extra="forbid")
    node_id: str
    output_summary: str
    duration_ms: int
    status: Literal["SUCCESS"] = "SUCCESS"


class NodeSkipped(BaseModel):
    model_config = ConfigDict(extra="forbid")
    node_id: str
    reason: str


class EdgeTraversed(BaseModel):
    model_config = ConfigDict(extra="forbid")
    edge_id: str
    source: str
    target: str
    condition: Optional[str] = None


class CouncilVote(BaseModel):
    model_config = ConfigDict(extra="forbid")
    node_id: str
    winner: str
    votes: Dict[str, str]
    scores: Dict[str, float]


class NodeErrorPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")
    node_id: str
    error_message: str
    stack_trace: str
    duration_ms: int


class FlowSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")
    output_summary: str
    nodes_executed: int
    nodes_failed: int
