# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from typing import Any, Dict, Optional, Protocol

from coreason_flow.core.manifest import Flow


class FlowStore(Protocol):
    """
    Interface for the persistent flow store.
    """

    async def get_flow(self, flow_id: str) -> Optional[Flow]:
        """Returns the flow, or None when it does not exist."""
        ...


class AgentContext(Protocol):
    """
    Interface for agent identity and memory lookup.
    """

    async def resolve(self, agent_id: str, query: str) -> str:
        """Returns background context to append to the agent's system prompt."""
        ...


class ToolExecutor(Protocol):
    """
    Interface for the tool executor.
    """

    async def execute(self, tool_name: str, params: Dict[str, Any]) -> Any:
        """Executes a tool. Raises on failure."""
        ...


class MessageChannel(Protocol):
    """
    Interface for sending replies back to a chat platform.
    """

    async def send(self, user_id: str, text: str) -> None:
        """Sends a text reply."""
        ...
