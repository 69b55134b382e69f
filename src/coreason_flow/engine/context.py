# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

import threading
from typing import Any, Dict, Set

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


class ExecutionContext(BaseModel):
    """
    Mutable state of one flow run.

    Owned by a single run. Every read and write of ``variables``, ``results``,
    ``visited`` and ``output`` goes through the accessors below, which share one
    lock scoped to this instance. The lock is never held across an await.
    """

    model_config = ConfigDict(extra="forbid")

    flow_id: str
    user_id: str = ""
    channel_id: str = ""
    input: str = ""
    output: str = ""
    context: Dict[str, Any] = Field(default_factory=dict)
    variables: Dict[str, Any] = Field(default_factory=dict)
    results: Dict[str, str] = Field(default_factory=dict)
    visited: Set[str] = Field(default_factory=set)

    _lock: Any = PrivateAttr(default_factory=threading.RLock)

    def set_var(self, key: str, value: Any) -> None:
        with self._lock:
            self.variables[key] = value

    def get_var(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self.variables.get(key, default)

    def has_var(self, key: str) -> bool:
        with self._lock:
            return key in self.variables or key in self.context

    def set_result(self, node_id: str, result: str) -> None:
        with self._lock:
            self.results[node_id] = result

    def get_result(self, node_id: str, default: str = "") -> str:
        with self._lock:
            return self.results.get(node_id, default)

    def set_output(self, output: str) -> None:
        with self._lock:
            self.output = output

    def get_output(self) -> str:
        with self._lock:
            return self.output

    def mark_visited(self, node_id: str) -> bool:
        """
        Marks a node as visited for this run.

        Returns:
            bool: True if the node was not visited before (the caller owns its
            execution), False if another path already claimed it.
        """
        with self._lock:
            if node_id in self.visited:
                return False
            self.visited.add(node_id)
            return True

    def is_visited(self, node_id: str) -> bool:
        with self._lock:
            return node_id in self.visited

    def snapshot(self) -> Dict[str, Any]:
        """A consistent copy of the shared state."""
        with self._lock:
            return {
                "flow_id": self.flow_id,
                "input": self.input,
                "output": self.output,
                "variables": dict(self.variables),
                "results": dict(self.results),
                "visited": sorted(self.visited),
            }
