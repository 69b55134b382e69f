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
import json
import re
from typing import Any, Dict, List, Protocol, Sequence, Tuple

from coreason_flow.models.registry import ModelRegistry
from coreason_flow.models.schemas import system_message, user_message
from coreason_flow.strategies.schemas import Candidate, Evaluation, ProsCons, Rating
from coreason_flow.utils.logger import logger

# Axis weights of the overall score
AXIS_WEIGHTS: Dict[str, float] = {
    "accuracy": 0.3,
    "completeness": 0.3,
    "clarity": 0.2,
    "creativity": 0.2,
}

# Per task type axis multipliers
TASK_BOOSTS: Dict[str, Dict[str, float]] = {
    "decision": {"accuracy": 1.2, "completeness": 1.2},
    "creation": {"creativity": 1.3},
    "analysis": {"completeness": 1.2, "clarity": 1.2},
}

ACTION_MARKERS = ("首先", "第一步", "建议", "应该", "first,", "step 1", "recommend", "should")
STRUCTURE_MARKERS = ("1.", "①", "•", "\n- ", "\n* ")
UNCERTAINTY_MARKERS = ("错误", "不确定", "not sure", "uncertain", "incorrect")
ENUMERATIONS = (("第一", "第二", "第三"), ("first", "second", "third"), ("1.", "2.", "3."))
TRANSITIONS = ("首先", "其次", "firstly", "secondly", "furthermore", "moreover")
CONTRAST_MARKERS = ("但是", "然而", "however", "on the other hand")
ORIGINALITY_MARKERS = ("创新", "独特", "innovative", "novel", "unique")
SUGGESTION_MARKERS = ("建议", "应该", "recommend", "should", "suggest")
HEDGE_MARKERS = ("可能", "也许", "maybe", "perhaps", "might")

ScoreList = List[Tuple[str, float]]


def _contains_any(text: str, markers: Sequence[str]) -> bool:
    return any(marker in text for marker in markers)


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def weighted_overall(rating: Rating) -> float:
    return (
        rating.accuracy * AXIS_WEIGHTS["accuracy"]
        + rating.completeness * AXIS_WEIGHTS["completeness"]
        + rating.clarity * AXIS_WEIGHTS["clarity"]
        + rating.creativity * AXIS_WEIGHTS["creativity"]
    )


def select_winner(scores: Sequence[Tuple[str, float]]) -> Tuple[str, float]:
    """
    Returns the entry with the highest score.

    Ties go to the entry listed first, so the result depends only on the
    order of ``scores``, never on dict or set iteration.
    """
    if not scores:
        return "", 0.0
    winner, best = scores[0]
    for key, score in scores[1:]:
        if score > best:
            winner, best = key, score
    return winner, best


def winner_reason(winner: str, score: float, pros_cons: Dict[str, ProsCons]) -> str:
    reason = f"{winner} scored {score:.1f}"
    pc = pros_cons.get(winner)
    if pc and pc.pros:
        reason += f", strength: {pc.pros[0]}"
    return reason


def rate_response(content: str, task_type: str) -> Rating:
    """
    Rates a response on four axes with keyword and length heuristics,
    then applies the task type weighting.
    """
    text = content.lower()
    axes = {"accuracy": 70.0, "completeness": 70.0, "clarity": 70.0, "creativity": 70.0}

    if _contains_any(text, UNCERTAINTY_MARKERS):
        axes["accuracy"] -= 10

    if any(all(m in text for m in group) for group in ENUMERATIONS):
        axes["completeness"] += 15
    if len(content) > 200:
        axes["completeness"] += 10

    if _contains_any(text, TRANSITIONS):
        axes["clarity"] += 15
    if ("。" in text and "，" in text) or (". " in text and ", " in text):
        axes["clarity"] += 10

    if _contains_any(text, CONTRAST_MARKERS):
        axes["creativity"] += 10
    if _contains_any(text, ORIGINALITY_MARKERS):
        axes["creativity"] += 15

    for axis, factor in TASK_BOOSTS.get(task_type, {}).items():
        axes[axis] *= factor

    rating = Rating(**{axis: _clamp(value) for axis, value in axes.items()})
    rating.overall_score = _clamp(weighted_overall(rating))
    return rating


def extract_pros_cons(content: str) -> ProsCons:
    text = content.lower()
    pc = ProsCons()

    if len(content) > 100:
        pc.pros.append("Detailed content")
    if _contains_any(text, SUGGESTION_MARKERS):
        pc.pros.append("Concrete suggestions")
    if _contains_any(text, ("1.", "①")):
        pc.pros.append("Clear structure")

    if len(content) < 50:
        pc.cons.append("Too brief")
    if _contains_any(text, HEDGE_MARKERS):
        pc.cons.append("Hesitant tone")

    return pc


def basic_evaluation(candidates: Sequence[Candidate], task_type: str) -> Evaluation:
    """A single flat keyword score per response, reported on every axis."""
    ratings: Dict[str, Rating] = {}
    pros_cons: Dict[str, ProsCons] = {}

    for c in candidates:
        text = c.content.lower()
        score = 50.0
        if _contains_any(text, ACTION_MARKERS):
            score += 10
        if _contains_any(c.content, STRUCTURE_MARKERS):
            score += 10
        if len(c.content) < 50:
            score -= 10
        elif len(c.content) > 5000:
            score -= 5

        ratings[c.key] = Rating(
            overall_score=score,
            accuracy=score,
            completeness=score,
            clarity=score,
            creativity=score,
        )
        pros_cons[c.key] = ProsCons(pros=["Complete response"])

    return Evaluation(task_type=task_type, model_ratings=ratings, pros_cons=pros_cons)


class ScoringStrategy(Protocol):
    """
    Scores a set of successful responses.

    Returns the scores in candidate order together with the evaluation.
    """

    async def score(self, candidates: Sequence[Candidate], task_type: str) -> Tuple[ScoreList, Evaluation]: ...


class LengthScoring:
    """Longer responses win: 100 * len / longest length."""

    async def score(self, candidates: Sequence[Candidate], task_type: str) -> Tuple[ScoreList, Evaluation]:
        max_len = max((len(c.content) for c in candidates), default=0)
        scores: ScoreList = []
        for c in candidates:
            if max_len > 0:
                scores.append((c.key, 100.0 * len(c.content) / max_len))
            else:
                scores.append((c.key, 50.0))

        evaluation = basic_evaluation(candidates, task_type)
        winner, best = select_winner(scores)
        evaluation.winner_reason = f"{winner} gave the most extensive answer ({best:.1f})"
        return scores, evaluation


class ComprehensiveScoring:
    """Heuristic multi-axis rating of each response, weighted by task type."""

    async def score(self, candidates: Sequence[Candidate], task_type: str) -> Tuple[ScoreList, Evaluation]:
        ratings: Dict[str, Rating] = {}
        pros_cons: Dict[str, ProsCons] = {}
        scores: ScoreList = []

        for c in candidates:
            rating = rate_response(c.content, task_type)
            ratings[c.key] = rating
            pros_cons[c.key] = extract_pros_cons(c.content)
            scores.append((c.key, rating.overall_score))

        winner, best = select_winner(scores)
        return scores, Evaluation(
            task_type=task_type,
            winner_reason=winner_reason(winner, best, pros_cons),
            model_ratings=ratings,
            pros_cons=pros_cons,
        )


JUDGE_SYSTEM_PROMPT = "You are a professional AI evaluator. Rate strictly and return only JSON."

JUDGE_PROMPT = """Evaluate the quality of the following AI answers to the same question.

Task type: {task_type}

Rate every answer from 1 to 10 (10 is best) on:
- accuracy: is the answer correct
- completeness: does it cover all important aspects
- clarity: is it clearly expressed
- creativity: does it offer original insight

Answers to evaluate:
{answers}

Return JSON in exactly this shape:
{{"ratings": {{"<name>": {{"accuracy": X, "completeness": X, "clarity": X, "creativity": X, "overall": X}}}}, "pros": {{"<name>": ["..."]}}, "cons": {{"<name>": ["..."]}}}}"""

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


def build_judge_prompt(candidates: Sequence[Candidate], task_type: str) -> str:
    answers = "".join(f"\n[{c.key}]:\n{c.content}\n" for c in candidates)
    return JUDGE_PROMPT.format(task_type=task_type or "general", answers=answers)


def parse_judge_output(content: str) -> Dict[str, Any] | None:
    """Extracts the JSON object from a judge reply, fenced or bare."""
    match = _FENCED_JSON.search(content)
    raw = match.group(1) if match else None
    if raw is None:
        start, end = content.find("{"), content.rfind("}")
        if start == -1 or end <= start:
            return None
        raw = content[start : end + 1]
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _as_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class CrossScoring:
    """
    Every responding model judges all responses against a shared rubric.

    Judge ratings (1-10) are averaged per response and scaled to 0-100.
    A model may grade its own answer. Responses that no judge rated get 50.
    """

    def __init__(self, registry: ModelRegistry, timeout: float | None = 60.0) -> None:
        self.registry = registry
        self.timeout = timeout

    async def _judge(self, judge: str, prompt: str) -> Dict[str, Any] | None:
        messages = [system_message(JUDGE_SYSTEM_PROMPT), user_message(prompt)]
        try:
            resp = await self.registry.invoke(judge, messages, timeout=self.timeout)
        except Exception as e:
            logger.warning(f"Judge {judge} failed: {e}")
            return None
        parsed = parse_judge_output(resp.content)
        if parsed is None:
            logger.warning(f"Judge {judge} returned an unparsable evaluation")
        return parsed

    async def score(self, candidates: Sequence[Candidate], task_type: str) -> Tuple[ScoreList, Evaluation]:
        judges: List[str] = []
        for c in candidates:
            if c.model not in judges:
                judges.append(c.model)

        prompt = build_judge_prompt(candidates, task_type)
        verdicts = await asyncio.gather(*(self._judge(judge, prompt) for judge in judges))

        axes = ("accuracy", "completeness", "clarity", "creativity")
        collected: Dict[str, List[Dict[str, float]]] = {c.key: [] for c in candidates}
        pros_cons: Dict[str, ProsCons] = {c.key: ProsCons() for c in candidates}

        for verdict in verdicts:
            if not verdict:
                continue
            ratings = verdict.get("ratings") or {}
            if not isinstance(ratings, dict):
                continue
            for key, raw in ratings.items():
                if key not in collected or not isinstance(raw, dict):
                    continue
                values = {axis: _as_float(raw.get(axis)) for axis in (*axes, "overall")}
                if values["overall"] is None:
                    axis_values = [v for a, v in values.items() if a != "overall" and v is not None]
                    if not axis_values:
                        continue
                    values["overall"] = sum(axis_values) / len(axis_values)
                collected[key].append({k: v for k, v in values.items() if v is not None})

            for field, target in (("pros", "pros"), ("cons", "cons")):
                entries = verdict.get(field) or {}
                if not isinstance(entries, dict):
                    continue
                for key, items in entries.items():
                    if key not in pros_cons or not isinstance(items, list):
                        continue
                    bucket = getattr(pros_cons[key], target)
                    for item in items:
                        if isinstance(item, str) and item not in bucket:
                            bucket.append(item)

        model_ratings: Dict[str, Rating] = {}
        scores: ScoreList = []
        for c in candidates:
            judged = collected[c.key]
            if not judged:
                scores.append((c.key, 50.0))
                continue

            def mean(axis: str) -> float:
                values = [j[axis] for j in judged if axis in j]
                return _clamp(10 * sum(values) / len(values)) if values else 0.0

            rating = Rating(
                overall_score=mean("overall"),
                accuracy=mean("accuracy"),
                completeness=mean("completeness"),
                clarity=mean("clarity"),
                creativity=mean("creativity"),
            )
            model_ratings[c.key] = rating
            scores.append((c.key, rating.overall_score))

        winner, best = select_winner(scores)
        return scores, Evaluation(
            task_type=task_type,
            winner_reason=winner_reason(winner, best, pros_cons),
            model_ratings=model_ratings,
            pros_cons=pros_cons,
        )
