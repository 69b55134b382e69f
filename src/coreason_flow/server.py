# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

import os
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List

import redis.asyncio as redis
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from coreason_flow.config import ProviderSettings
from coreason_flow.core.contracts import ExecuteRequest, ExecuteResponse
from coreason_flow.core.exceptions import (
    AllModelsFailedError,
    FlowDisabledError,
    FlowError,
    FlowNotFoundError,
    NoAvailableModelsError,
    NoModelsSpecifiedError,
)
from coreason_flow.engine.runner import GraphExecutor
from coreason_flow.events.sink import AsyncEventSink, LoggingEventSink, RedisEventSink
from coreason_flow.infrastructure.flow_store import InMemoryFlowStore
from coreason_flow.infrastructure.remote_tools import RemoteToolExecutor
from coreason_flow.models.registry import ModelRegistry
from coreason_flow.strategies.consensus import ConsensusEngine
from coreason_flow.strategies.schemas import VoteRequest, VoteResponse
from coreason_flow.utils.logger import logger


# --- Data Models ---
class ExecuteFlowBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    input: str = ""
    user_id: str = ""
    channel_id: str = ""
    context: Dict[str, Any] = Field(default_factory=dict)


class ModelInfo(BaseModel):
    name: str
    provider: str
    model_name: str
    available: bool


def create_app(
    executor: GraphExecutor | None = None,
    consensus: ConsensusEngine | None = None,
    registry: ModelRegistry | None = None,
) -> FastAPI:
    """
    Builds the HTTP surface. Components not supplied are created from the
    environment on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        settings = ProviderSettings.from_env()
        redis_client: redis.Redis | None = None
        tools: RemoteToolExecutor | None = None

        app.state.registry = registry or ModelRegistry.from_settings(settings)
        app.state.consensus = consensus or ConsensusEngine(app.state.registry, timeout=settings.vote_timeout)

        if executor is not None:
            app.state.executor = executor
        else:
            sink: AsyncEventSink
            if settings.redis_url:
                try:
                    redis_client = redis.from_url(settings.redis_url, decode_responses=True)
                    sink = RedisEventSink(redis_client)
                except Exception as e:
                    logger.error(f"Failed to connect to Redis: {e}")
                    sink = LoggingEventSink()
            else:
                logger.warning("REDIS_URL not set, using Logging sink")
                sink = LoggingEventSink()

            if settings.tools_url:
                tools = RemoteToolExecutor(settings.tools_url, timeout=settings.request_timeout)
            else:
                logger.warning("COREASON_TOOLS_URL not set, tool nodes will fail")

            flows_dir = os.getenv("COREASON_FLOWS_DIR")
            store = InMemoryFlowStore.from_directory(flows_dir) if flows_dir else InMemoryFlowStore()
            app.state.executor = GraphExecutor(
                store=store,
                registry=app.state.registry,
                consensus=app.state.consensus,
                tool_executor=tools,
                event_sink=sink,
            )

        logger.info("Starting up...")
        yield
        logger.info("Shutting down...")

        if redis_client is not None:
            await redis_client.aclose()
        if tools is not None:
            await tools.aclose()
        if registry is None:
            await app.state.registry.aclose()

    app = FastAPI(title="CoReason Flow", lifespan=lifespan)

    @app.get("/health")
    async def health_check() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/models", response_model=List[ModelInfo])
    async def list_models() -> List[ModelInfo]:
        reg: ModelRegistry = app.state.registry
        return [
            ModelInfo(name=name, provider=cfg.provider.value, model_name=cfg.model_name, available=bool(cfg.api_key))
            for name, cfg in reg.list_models()
        ]

    @app.post("/flows/{flow_id}/execute", response_model=ExecuteResponse)
    async def execute_flow(flow_id: str, body: ExecuteFlowBody) -> ExecuteResponse:
        request = ExecuteRequest(
            flow_id=flow_id,
            input=body.input,
            user_id=body.user_id,
            channel_id=body.channel_id,
            context=body.context,
        )
        try:
            return await app.state.executor.execute(request)
        except FlowNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except FlowDisabledError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        except FlowError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

    @app.post("/vote", response_model=VoteResponse)
    async def vote(request: VoteRequest) -> VoteResponse:
        try:
            return await app.state.consensus.vote(request)
        except NoModelsSpecifiedError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except NoAvailableModelsError as e:
            raise HTTPException(status_code=503, detail=str(e)) from e
        except AllModelsFailedError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e

    return app
