"""
Pydantic schemas for the learning session.

Checkpoint: one milestone; only `status` ever changes after planning.
QuizQuestion / QuizResult: immutable once built.
PlanItem / QuizQuestion double as the validators for structured provider output.
SessionSnapshot: the read-only view handed to the presentation layer.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator, model_validator


class SessionState(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    LEARNING = "learning"
    QUIZ_GENERATION = "quiz_generation"
    QUIZ = "quiz"
    RESULT = "result"
    FEYNMAN = "feynman"
    COMPLETE = "complete"


class CheckpointStatus(str, Enum):
    CURRENT = "current"
    LOCKED = "locked"
    COMPLETED = "completed"


class LessonMode(str, Enum):
    STANDARD = "standard"
    SIMPLIFIED = "simplified"


def _non_blank(value: str, field: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{field} must not be blank")
    return value


class PlanItem(BaseModel):
    """One planned checkpoint as returned by the provider."""
    title: StrictStr
    objective: StrictStr

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return _non_blank(v, "title")

    @field_validator("objective")
    @classmethod
    def _objective(cls, v: str) -> str:
        return _non_blank(v, "objective")


class Checkpoint(BaseModel):
    id: int = Field(description="Position at creation time; never changes")
    title: str
    objective: str
    status: CheckpointStatus = CheckpointStatus.LOCKED


class QuizQuestion(BaseModel):
    """Multiple-choice question; the answer index is checked against the options."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    question: StrictStr
    options: List[StrictStr] = Field(min_length=2)
    correct_option_index: StrictInt = Field(alias="correctOptionIndex")

    @field_validator("question")
    @classmethod
    def _question(cls, v: str) -> str:
        return _non_blank(v, "question")

    @model_validator(mode="after")
    def _index_in_range(self) -> "QuizQuestion":
        if not 0 <= self.correct_option_index < len(self.options):
            raise ValueError(
                f"correctOptionIndex {self.correct_option_index} outside 0..{len(self.options) - 1}"
            )
        return self


class QuizResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    passed: bool
    feedback: str


class Notice(BaseModel):
    """User-visible notification for the last failed action."""
    model_config = ConfigDict(frozen=True)

    code: str
    message: str


class SessionSnapshot(BaseModel):
    session_id: str
    epoch: int
    state: SessionState
    topic: str = ""
    context_notes: str = ""
    checkpoints: List[Checkpoint] = Field(default_factory=list)
    active_index: int = 0
    active_content: str = ""
    active_quiz: List[QuizQuestion] = Field(default_factory=list)
    last_result: Optional[QuizResult] = None
    pending: bool = False
    notice: Optional[Notice] = None

    @property
    def active_checkpoint(self) -> Optional[Checkpoint]:
        if 0 <= self.active_index < len(self.checkpoints):
            return self.checkpoints[self.active_index]
        return None

    def to_serializable(self) -> Dict[str, Any]:
        """JSON-serializable dict for events/API."""
        return self.model_dump(mode="json")


# Output constraints sent with structured requests.
PLAN_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "objective": {"type": "string"},
        },
        "required": ["title", "objective"],
    },
}

QUIZ_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "question": {"type": "string"},
            "options": {"type": "array", "items": {"type": "string"}},
            "correctOptionIndex": {"type": "integer"},
        },
        "required": ["question", "options", "correctOptionIndex"],
    },
}
