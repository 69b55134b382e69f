# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

import asyncio
from typing import Dict, List, Sequence, Tuple

from coreason_flow.core.exceptions import (
    AllModelsFailedError,
    NoAvailableModelsError,
    NoModelsSpecifiedError,
)
from coreason_flow.models.registry import ModelRegistry
from coreason_flow.models.schemas import ChatMessage, system_message
from coreason_flow.strategies.schemas import (
    Candidate,
    VoteRequest,
    VoteResponse,
    error_marker,
)
from coreason_flow.strategies.scoring import (
    ComprehensiveScoring,
    CrossScoring,
    LengthScoring,
    ScoringStrategy,
    select_winner,
)
from coreason_flow.utils.logger import logger

# Sampling temperatures used to draw diverse answers from a single model
SINGLE_MODEL_VARIANTS: Tuple[Tuple[str, float], ...] = (
    ("conservative", 0.3),
    ("balanced", 0.7),
    ("creative", 1.0),
)

# (key, model, temperature)
_Call = Tuple[str, str, float | None]


class ConsensusEngine:
    """
    Fans a prompt out to several models, scores the answers and picks a winner.
    """

    def __init__(self, registry: ModelRegistry, timeout: float | None = 60.0) -> None:
        """Initializes the ConsensusEngine.

        Args:
            registry: The model registry used to reach every provider.
            timeout: Per-call timeout shared by all concurrent model calls.
        """
        self.registry = registry
        self.timeout = timeout

    def strategy_for(self, voting_method: str) -> ScoringStrategy:
        if voting_method == "length":
            return LengthScoring()
        if voting_method in ("cross", "交叉评估"):
            return CrossScoring(self.registry, timeout=self.timeout)
        return ComprehensiveScoring()

    @staticmethod
    def build_messages(request: VoteRequest) -> List[ChatMessage]:
        messages: List[ChatMessage] = []
        if request.system_prompt:
            messages.append(system_message(request.system_prompt))
        messages.extend(request.messages)
        return messages

    async def _call(self, call: _Call, messages: Sequence[ChatMessage]) -> str:
        _, model, temperature = call
        resp = await self.registry.invoke(model, messages, temperature=temperature, timeout=self.timeout)
        return resp.content

    async def _fan_out(
        self, calls: Sequence[_Call], messages: Sequence[ChatMessage]
    ) -> List[Tuple[_Call, str | BaseException]]:
        """Runs every call concurrently and waits for all of them."""
        results = await asyncio.gather(*(self._call(call, messages) for call in calls), return_exceptions=True)
        for call, result in zip(calls, results):
            # Cancellation of the vote itself must not be mistaken for a model failure
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning(f"Model {call[0]} failed during vote: {result}")
        return list(zip(calls, results))

    async def _single_model(
        self, model: str, messages: Sequence[ChatMessage]
    ) -> Tuple[Dict[str, str], List[Candidate]]:
        """Asks one model three times at different temperatures."""
        calls: List[_Call] = [(f"{model}_{label}", model, temp) for label, temp in SINGLE_MODEL_VARIANTS]
        responses: Dict[str, str] = {}
        candidates: List[Candidate] = []
        for (key, _, _), result in await self._fan_out(calls, messages):
            if isinstance(result, BaseException):
                responses[key] = error_marker(result)
            else:
                responses[key] = result
                candidates.append(Candidate(key=key, model=model, content=result))
        return responses, candidates

    async def vote(self, request: VoteRequest) -> VoteResponse:
        """Runs a consensus vote.

        Raises:
            NoModelsSpecifiedError: If the request names no models.
            NoAvailableModelsError: If none of the models has a credential.
            AllModelsFailedError: If every model call failed.
        """
        if not request.models:
            raise NoModelsSpecifiedError()

        models = self.registry.filter_available(dict.fromkeys(request.models))
        if not models:
            raise NoAvailableModelsError()

        messages = self.build_messages(request)
        logger.debug(f"Vote across {models} using '{request.voting_method}'")

        responses: Dict[str, str] = {}
        candidates: List[Candidate] = []

        if len(models) == 1:
            responses, candidates = await self._single_model(models[0], messages)
        else:
            results = await self._fan_out([(m, m, None) for m in models], messages)
            succeeded = [call[1] for call, result in results if not isinstance(result, BaseException)]

            if len(succeeded) == 1:
                logger.info(f"Only {succeeded[0]} answered, falling back to single-model consensus")
                for (key, _, _), result in results:
                    if isinstance(result, BaseException):
                        responses[key] = error_marker(result)
                    else:
                        variants, candidates = await self._single_model(key, messages)
                        responses.update(variants)
                        if not candidates:
                            # Every retry failed; the first answer still counts
                            responses[key] = result
                            candidates = [Candidate(key=key, model=key, content=result)]
            else:
                for (key, model, _), result in results:
                    if isinstance(result, BaseException):
                        responses[key] = error_marker(result)
                    else:
                        responses[key] = result
                        candidates.append(Candidate(key=key, model=model, content=result))

        if not candidates:
            raise AllModelsFailedError(responses)

        scores, evaluation = await self.strategy_for(request.voting_method).score(candidates, request.task_type)
        winner, best = select_winner(scores)
        logger.info(f"Vote winner: {winner} ({best:.1f})")

        return VoteResponse(
            responses=responses,
            winner=winner,
            winner_content=responses[winner],
            scores=dict(scores),
            evaluation=evaluation,
        )
