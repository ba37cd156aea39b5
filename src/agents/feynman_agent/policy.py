"""
Adaptation policy: what happens after a scored quiz.

Pass -> advance to the next checkpoint (or complete the track).
Fail -> regenerate the same checkpoint in simplified mode.
No retry limit: a learner may fail and simplify indefinitely.
"""

from __future__ import annotations

from enum import Enum

from agents.feynman_agent.schemas import QuizResult


class NextStep(str, Enum):
    PROCEED = "proceed"
    SIMPLIFY = "simplify"


def next_step(result: QuizResult) -> NextStep:
    return NextStep.PROCEED if result.passed else NextStep.SIMPLIFY


def allows(result: QuizResult, step: NextStep) -> bool:
    """True if `step` is the transition the policy opens for this result."""
    return next_step(result) == step
