# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from typing import Any, Dict, List

import httpx

from coreason_flow.utils.logger import logger


class ToolExecutionError(RuntimeError):
    """Raised when the remote tool service rejects or fails a call."""

    pass


class RemoteToolExecutor:
    """
    ToolExecutor that calls a remote tool service over HTTP.

    The service answers ``{"success": bool, "data": ..., "error": str}``.
    """

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None, timeout: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def execute(self, tool_name: str, params: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/tools/execute"
        logger.debug(f"Flow -> Tools: POST {url} | Tool: {tool_name}")

        try:
            resp = await self.client.post(url, json={"tool_name": tool_name, "params": params})
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise ToolExecutionError(f"Tool '{tool_name}' failed: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"Could not reach tool service: {e!r}") from e

        if not data.get("success", False):
            raise ToolExecutionError(data.get("error") or f"Tool '{tool_name}' failed")
        return data.get("data")

    async def list_tools(self) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/tools"
        resp = await self.client.get(url)
        resp.raise_for_status()
        tools: List[Dict[str, Any]] = resp.json()
        return tools

    async def aclose(self) -> None:
        await self.client.aclose()
