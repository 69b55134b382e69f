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
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List
from unittest.mock import patch

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from coreason_flow.core.manifest import Flow
from coreason_flow.engine.runner import GraphExecutor
from coreason_flow.infrastructure.flow_store import InMemoryFlowStore
from coreason_flow.infrastructure.remote_tools import RemoteToolExecutor
from coreason_flow.models.registry import ModelRegistry
from coreason_flow.server import create_app
from coreason_flow.strategies.consensus import ConsensusEngine


@pytest.fixture  # type: ignore
def client(
    store: InMemoryFlowStore,
    make_flow: Callable[..., Flow],
    registry_factory: Callable[..., ModelRegistry],
    client_factory: Callable[..., Any],
) -> Generator[TestClient, None, None]:
    provider = client_factory(responses={"m1": "short", "m2": "a noticeably longer reply"})
    registry = registry_factory(provider, available=("m1", "m2"), unavailable=("m3",))
    consensus = ConsensusEngine(registry)

    store.save(
        make_flow(
            [
                {"id": "T", "type": "trigger"},
                {"id": "answer", "type": "llm", "data": {"model": "m2", "prompt": "Reply"}},
            ],
            [("T", "answer")],
            flow_id="chat",
        )
    )
    store.save(make_flow([{"id": "T", "type": "trigger"}], [], flow_id="off", enabled=False))
    store.save(make_flow([{"id": "A", "type": "condition"}], [], flow_id="no-trigger"))

    executor = GraphExecutor(store, registry=registry, consensus=consensus)
    with TestClient(create_app(executor=executor, consensus=consensus, registry=registry)) as c:
        yield c


def test_health(client: TestClient) -> None:
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_list_models(client: TestClient) -> None:
    resp = client.get("/models")

    assert resp.status_code == 200
    models = {m["name"]: m for m in resp.json()}
    assert models["m1"]["available"] is True
    assert models["m3"]["available"] is False
    assert models["m1"]["provider"] == "openai"


def test_execute_flow(client: TestClient) -> None:
    resp = client.post("/flows/chat/execute", json={"input": "hello", "userId": "u1"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["flowId"] == "chat"
    assert data["output"] == "a noticeably longer reply"
    assert [n["nodeId"] for n in data["nodesExec"]] == ["T", "answer"]
    assert data["nodesExec"][1]["nodeType"] == "llm"


@pytest.mark.parametrize(
    "flow_id, status",
    [("missing", 404), ("off", 409), ("no-trigger", 422)],
)
def test_execute_flow_errors(client: TestClient, flow_id: str, status: int) -> None:
    resp = client.post(f"/flows/{flow_id}/execute", json={"input": "hello"})

    assert resp.status_code == status
    assert flow_id in resp.json()["detail"]


def test_vote(client: TestClient) -> None:
    resp = client.post(
        "/vote",
        json={
            "models": ["m1", "m2"],
            "messages": [{"role": "user", "content": "Which plan?"}],
            "votingMethod": "length",
        },
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["winner"] == "m2"
    assert data["winnerContent"] == "a noticeably longer reply"
    assert set(data["scores"]) == {"m1", "m2"}


@pytest.mark.parametrize(
    "models, status",
    [([], 400), (["m3"], 503)],
)
def test_vote_errors(client: TestClient, models: list[str], status: int) -> None:
    resp = client.post("/vote", json={"models": models, "messages": [{"role": "user", "content": "x"}]})

    assert resp.status_code == status


def test_vote_all_failed(
    registry_factory: Callable[..., ModelRegistry], client_factory: Callable[..., Any], store: InMemoryFlowStore
) -> None:
    registry = registry_factory(client_factory(failures=("m1", "m2")), available=("m1", "m2"))
    consensus = ConsensusEngine(registry)
    app = create_app(executor=GraphExecutor(store, registry=registry), consensus=consensus, registry=registry)

    with TestClient(app) as c:
        resp = c.post("/vote", json={"models": ["m1", "m2"], "messages": [{"role": "user", "content": "x"}]})

    assert resp.status_code == 502
    assert "please check API keys" in resp.json()["detail"]


def test_module_app() -> None:
    from coreason_flow.main import app

    assert isinstance(app, FastAPI)
    assert {"/health", "/models", "/vote", "/flows/{flow_id}/execute"} <= {r.path for r in app.routes}


def test_tool_nodes_use_configured_tools_service(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    registry_factory: Callable[..., ModelRegistry],
    client_factory: Callable[..., Any],
) -> None:
    (tmp_path / "search.json").write_text(
        json.dumps(
            {
                "nodes": [
                    {"id": "T", "type": "trigger"},
                    {"id": "X", "type": "tool", "data": {"toolName": "search"}},
                ],
                "edges": [{"id": "e0", "source": "T", "target": "X"}],
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("COREASON_FLOWS_DIR", str(tmp_path))
    monkeypatch.setenv("COREASON_TOOLS_URL", "http://tools.local")
    monkeypatch.delenv("REDIS_URL", raising=False)

    seen: List[Dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "data": "3 results"})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    def build_tools(base_url: str, timeout: float = 30.0) -> RemoteToolExecutor:
        assert base_url == "http://tools.local"
        return RemoteToolExecutor(base_url, client=http, timeout=timeout)

    registry = registry_factory(client_factory(), available=("m1",))
    with patch("coreason_flow.server.RemoteToolExecutor", side_effect=build_tools):
        with TestClient(create_app(registry=registry)) as c:
            resp = c.post("/flows/search/execute", json={"input": "flow engines"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["nodesExec"][1]["error"] is None
    assert data["output"] == "3 results"
    assert seen == [{"tool_name": "search", "params": {"input": "flow engines"}}]
    assert http.is_closed
