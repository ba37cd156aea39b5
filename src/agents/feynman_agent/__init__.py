"""Feynman agent: checkpoint planning, lessons, quizzes and the session state machine."""

from agents.feynman_agent.errors import (
    ErrorCode,
    IncompleteSubmission,
    InvalidPlan,
    InvalidTransition,
    MalformedResponse,
    ProviderUnavailable,
    TutorError,
)
from agents.feynman_agent.pipeline import ContentPipeline
from agents.feynman_agent.schemas import (
    Checkpoint,
    CheckpointStatus,
    LessonMode,
    QuizQuestion,
    QuizResult,
    SessionSnapshot,
    SessionState,
)
from agents.feynman_agent.session import LearningSession

__all__ = [
    "Checkpoint",
    "CheckpointStatus",
    "ContentPipeline",
    "ErrorCode",
    "IncompleteSubmission",
    "InvalidPlan",
    "InvalidTransition",
    "LearningSession",
    "LessonMode",
    "MalformedResponse",
    "ProviderUnavailable",
    "QuizQuestion",
    "QuizResult",
    "SessionSnapshot",
    "SessionState",
    "TutorError",
]
