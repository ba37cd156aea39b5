"""Quiz evaluator: pure scoring of submitted answers."""

from __future__ import annotations

import random
from typing import Optional, Sequence

from agents.feynman_agent.errors import IncompleteSubmission
from agents.feynman_agent.schemas import QuizQuestion, QuizResult

PASS_THRESHOLD = 70

STATIC_FEEDBACK = {
    True: (
        "Excellent mastery! You've clearly grasped these concepts.",
        "Great job! You're ready to move on to the next challenge.",
        "Perfect understanding. Your learning trajectory is looking solid.",
        "Well done! You have successfully cleared this checkpoint.",
    ),
    False: (
        "A few gaps were detected. Let's try to refine your understanding.",
        "Not quite there yet. The Feynman simplification might help clear things up.",
        "Reviewing the material one more time will help solidify these concepts.",
        "You're close! A quick review and you'll have this mastered.",
    ),
}


def percent_score(correct: int, total: int) -> int:
    """100 * correct / total rounded half-up, in integer arithmetic."""
    if total <= 0:
        raise ValueError("total must be positive")
    return (200 * correct + total) // (2 * total)


def check_submission(quiz: Sequence[QuizQuestion], answers: Sequence[int]) -> None:
    if len(answers) != len(quiz):
        raise IncompleteSubmission(f"got {len(answers)} answers for {len(quiz)} questions")


def score(
    quiz: Sequence[QuizQuestion],
    answers: Sequence[int],
    rng: Optional[random.Random] = None,
) -> QuizResult:
    """
    Score answers against the quiz. Callers must check_submission first;
    this raises IncompleteSubmission itself if they didn't.
    """
    check_submission(quiz, answers)
    correct = sum(1 for q, a in zip(quiz, answers) if a == q.correct_option_index)
    value = percent_score(correct, len(quiz))
    passed = value >= PASS_THRESHOLD
    feedback = (rng or random).choice(STATIC_FEEDBACK[passed])
    return QuizResult(score=value, passed=passed, feedback=feedback)
