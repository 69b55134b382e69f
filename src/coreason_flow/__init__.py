# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from coreason_flow.core.contracts import ExecuteRequest, ExecuteResponse, Message, NodeExecution
from coreason_flow.core.manifest import Edge, Flow, NodeKind
from coreason_flow.engine.runner import GraphExecutor
from coreason_flow.engine.topology import FlowGraph
from coreason_flow.events.protocol import GraphEvent
from coreason_flow.models.registry import ModelRegistry
from coreason_flow.services import FlowDispatcher
from coreason_flow.strategies.consensus import ConsensusEngine
from coreason_flow.strategies.schemas import VoteRequest, VoteResponse

__all__ = [
    "ConsensusEngine",
    "Edge",
    "ExecuteRequest",
    "ExecuteResponse",
    "Flow",
    "FlowDispatcher",
    "FlowGraph",
    "GraphEvent",
    "GraphExecutor",
    "Message",
    "ModelRegistry",
    "NodeExecution",
    "NodeKind",
    "VoteRequest",
    "VoteResponse",
]
