# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from coreason_flow.engine.context import ExecutionContext


class ConditionEvaluator:
    """
    Evaluates edge and condition-node expressions against a run's context.

    Supported forms:
        ""/"always"                 -> true
        "never"                     -> false
        "input contains <text>"     -> the run input contains <text>
        "contains:<text>"           -> the upstream output contains <text>
        "variable_exists:<name>"    -> a variable or request context key is set
        "equals:<text>"             -> the upstream output equals <text>
        anything else               -> the upstream output equals the expression
    """

    def evaluate(self, condition: str | None, context: ExecutionContext, upstream: str = "") -> bool:
        if condition is None:
            return True

        expr = condition.strip()
        lowered = expr.lower()

        if lowered in ("", "always"):
            return True
        if lowered == "never":
            return False

        if lowered.startswith("input contains "):
            return expr[len("input contains ") :].strip() in context.input
        if lowered.startswith("contains:"):
            return expr[len("contains:") :].strip() in upstream
        if lowered.startswith("variable_exists:"):
            return context.has_var(expr[len("variable_exists:") :].strip())
        if lowered.startswith("equals:"):
            return upstream.strip() == expr[len("equals:") :].strip()

        # Simple equality match against the source node's output
        return upstream.strip() == expr
