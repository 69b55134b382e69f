# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from coreason_flow.core.manifest import NodeKind


class Message(BaseModel):
    """
    A normalized inbound chat message, as produced by a channel adapter.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content: str
    user_id: str
    channel_id: str
    type: str = "text"
    channel: Optional[str] = None


class ExecuteRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    flow_id: str
    input: str = ""
    user_id: str = ""
    channel_id: str = ""
    context: Dict[str, Any] = Field(default_factory=dict)


class NodeExecution(BaseModel):
    """One executed node of a run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    node_id: str
    node_type: NodeKind
    input: str = ""
    output: str = ""
    error: Optional[str] = None
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ExecuteResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    flow_id: str
    output: str = ""
    nodes_exec: List[NodeExecution] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)
