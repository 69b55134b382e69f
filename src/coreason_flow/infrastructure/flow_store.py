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
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from coreason_flow.core.manifest import Flow
from coreason_flow.utils.logger import logger


class InMemoryFlowStore:
    """
    Flow store backed by a dict, optionally seeded from JSON definitions on disk.
    """

    def __init__(self, flows: Iterable[Flow] = ()) -> None:
        self._lock = threading.Lock()
        self._flows: Dict[str, Flow] = {}
        for flow in flows:
            self.save(flow)

    @classmethod
    def from_directory(cls, path: str | Path) -> "InMemoryFlowStore":
        """Loads every ``*.json`` file in ``path`` as a flow definition."""
        store = cls()
        for file in sorted(Path(path).glob("*.json")):
            flow = Flow.from_json(file.read_text(encoding="utf-8"))
            if not flow.id:
                flow.id = file.stem
            store.save(flow)
            logger.debug(f"Loaded flow '{flow.id}' from {file}")
        return store

    def save(self, flow: Flow) -> None:
        with self._lock:
            self._flows[flow.id] = flow

    def delete(self, flow_id: str) -> None:
        with self._lock:
            self._flows.pop(flow_id, None)

    def list_flows(self) -> List[Flow]:
        with self._lock:
            return list(self._flows.values())

    async def get_flow(self, flow_id: str) -> Optional[Flow]:
        with self._lock:
            return self._flows.get(flow_id)
