# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from coreason_flow.models.schemas import ChatMessage

ERROR_MARKER_PREFIX = "[Error:"


def error_marker(error: BaseException | str) -> str:
    """The placeholder stored in a vote's responses for a failed model."""
    return f"[Error: {error}]"


def is_error_marker(content: str) -> bool:
    return content.startswith(ERROR_MARKER_PREFIX)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VoteRequest(_CamelModel):
    models: List[str] = Field(default_factory=list)
    messages: List[ChatMessage] = Field(default_factory=list)
    system_prompt: str = ""
    task_type: str = ""  # decision / creation / analysis
    voting_method: str = "default"  # length / default / cross


class Rating(_CamelModel):
    """Multi-axis score of one response, every axis in [0, 100]."""

    overall_score: float = 0.0
    accuracy: float = 0.0
    completeness: float = 0.0
    clarity: float = 0.0
    creativity: float = 0.0


class ProsCons(_CamelModel):
    pros: List[str] = Field(default_factory=list)
    cons: List[str] = Field(default_factory=list)


class Evaluation(_CamelModel):
    task_type: str = ""
    winner_reason: str = ""
    model_ratings: Dict[str, Rating] = Field(default_factory=dict)
    pros_cons: Dict[str, ProsCons] = Field(default_factory=dict)

    def ratings_to_scores(self) -> Dict[str, float]:
        return {model: rating.overall_score for model, rating in self.model_ratings.items()}


class VoteResponse(_CamelModel):
    responses: Dict[str, str] = Field(default_factory=dict)
    winner: str = ""
    winner_content: str = ""
    scores: Dict[str, float] = Field(default_factory=dict)
    evaluation: Evaluation | None = None


class Candidate(BaseModel):
    """
    A successful response taking part in scoring.

    ``key`` is the entry name in the vote (a model name, or a labelled
    variant such as ``gpt-4_creative``); ``model`` is the model that produced it.
    """

    key: str
    model: str
    content: str
