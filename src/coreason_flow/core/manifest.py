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
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NodeKind(str, Enum):
    """The node types a flow may contain."""

    TRIGGER = "trigger"
    AGENT = "agent"
    TOOL = "tool"
    CONDITION = "condition"
    LLM = "llm"


class Position(BaseModel):
    """Canvas position kept from the flow editor."""

    model_config = ConfigDict(extra="allow")

    x: float = 0.0
    y: float = 0.0


# Node payloads. Unknown keys are kept so a stored definition survives a round trip.


class NodeData(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    label: Optional[str] = None


class TriggerData(NodeData):
    trigger_type: str = Field(default="message", alias="triggerType")


class VotingConfig(BaseModel):
    """Consensus settings for an agent node."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    models: List[str] = Field(default_factory=list)
    voting_method: str = Field(default="default", alias="votingMethod")
    task_type: str = Field(default="", alias="taskType")


class AgentData(NodeData):
    agent_id: str = Field(default="", alias="agentId")
    model: str = ""
    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")
    voting: Optional[VotingConfig] = None


class ToolData(NodeData):
    tool_name: str = Field(default="", alias="toolName")
    tool_type: str = Field(default="", alias="toolType")
    params: Dict[str, Any] = Field(default_factory=dict)


class ConditionData(NodeData):
    condition: str = ""


class LLMData(NodeData):
    model: str = ""
    prompt: str = ""


class BaseNode(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    position: Optional[Position] = None

    @property
    def kind(self) -> NodeKind:
        return NodeKind(self.type)  # type: ignore[attr-defined]


class TriggerNode(BaseNode):
    type: Literal["trigger"]
    data: TriggerData = Field(default_factory=TriggerData)


class AgentNode(BaseNode):
    type: Literal["agent"]
    data: AgentData = Field(default_factory=AgentData)


class ToolNode(BaseNode):
    type: Literal["tool"]
    data: ToolData = Field(default_factory=ToolData)


class ConditionNode(BaseNode):
    type: Literal["condition"]
    data: ConditionData = Field(default_factory=ConditionData)


class LLMNode(BaseNode):
    type: Literal["llm"]
    data: LLMData = Field(default_factory=LLMData)


# Discriminated Union
Node = Annotated[
    Union[TriggerNode, AgentNode, ToolNode, ConditionNode, LLMNode],
    Field(discriminator="type"),
]


class Edge(BaseModel):
    """
    Represents a directed edge between two nodes.
    An edge without a condition is always followed.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")
    condition: Optional[str] = None


class Flow(BaseModel):
    """
    A stored, named graph of nodes and edges.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
    enabled: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Relational stores hand out integer ids
        if isinstance(value, int):
            return str(value)
        return value

    @classmethod
    def from_json(cls, raw: str | bytes) -> "Flow":
        """Parses a stored JSON flow definition."""
        return cls.model_validate_json(raw)

    @classmethod
    def from_parts(
        cls,
        flow_id: str,
        name: str,
        nodes_json: str,
        edges_json: str,
        enabled: bool = True,
    ) -> "Flow":
        """
        Builds a Flow from a storage row where nodes and edges are kept as
        separate JSON columns.
        """
        return cls.model_validate(
            {
                "id": flow_id,
                "name": name,
                "nodes": json.loads(nodes_json or "[]"),
                "edges": json.loads(edges_json or "[]"),
                "enabled": enabled,
            }
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_unset=True)
