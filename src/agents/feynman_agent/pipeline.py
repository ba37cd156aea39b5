"""
Content generation pipeline: path plan, lesson, quiz.

Each operation is one request/response exchange with the provider.
Structured results are parsed into a Parsed value (ok or reason) and only
validated data leaves this module; anything else raises MalformedResponse.
Provider failures of any kind surface as ProviderUnavailable.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from agents.core.llm import LLM
from agents.feynman_agent.errors import MalformedResponse, ProviderUnavailable
from agents.feynman_agent.prompts import (
    QUIZ_QUESTION_COUNT,
    build_lesson_prompt,
    build_plan_prompt,
    build_quiz_prompt,
)
from agents.feynman_agent.schemas import (
    PLAN_RESPONSE_SCHEMA,
    QUIZ_RESPONSE_SCHEMA,
    Checkpoint,
    LessonMode,
    PlanItem,
    QuizQuestion,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMPTY_LESSON_PLACEHOLDER = "No content generated."
EMPTY_STRUCTURED = "[]"

_plan_adapter = TypeAdapter(List[PlanItem])
_quiz_adapter = TypeAdapter(List[QuizQuestion])


@dataclass(frozen=True)
class Parsed(Generic[T]):
    """Either validated data or the reason validation failed."""
    value: Optional[T] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    def unwrap(self, what: str) -> T:
        if self.reason is not None:
            raise MalformedResponse(f"{what}: {self.reason}")
        return self.value  # type: ignore[return-value]


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    err = errors[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))


def parse_plan(text: str | None) -> Parsed[List[PlanItem]]:
    """Empty text is an empty plan (not malformed); the checkpoint track rejects it."""
    try:
        items = _plan_adapter.validate_json(text or EMPTY_STRUCTURED)
    except ValidationError as e:
        return Parsed(reason=_first_error(e))
    return Parsed(value=items)


def parse_quiz(text: str | None) -> Parsed[List[QuizQuestion]]:
    """A quiz must have at least one question and every question must be valid."""
    try:
        questions = _quiz_adapter.validate_json(text or EMPTY_STRUCTURED)
    except ValidationError as e:
        return Parsed(reason=_first_error(e))
    if not questions:
        return Parsed(reason="empty quiz")
    return Parsed(value=questions)


class ContentPipeline:
    """Builds provider prompts and validates provider results."""

    def __init__(self, llm: LLM):
        self.llm = llm

    async def _call(self, what: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        start_time = time.time()
        try:
            result = await fn()
        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception("%s failed after %.2fs: %s", what, elapsed, e)
            raise ProviderUnavailable(f"{what}: {e}") from e
        logger.info("%s completed in %.2fs", what, time.time() - start_time)
        return result

    async def plan_path(self, topic: str, notes: str | None = None) -> List[PlanItem]:
        prompt = build_plan_prompt(topic, notes)
        text = await self._call("plan_path", lambda: self.llm.agenerate_json(prompt, PLAN_RESPONSE_SCHEMA))
        items = parse_plan(text).unwrap("plan_path")
        logger.debug("plan_path topic=%r checkpoints=%d", topic, len(items))
        return items

    async def generate_lesson(self, topic: str, checkpoint: Checkpoint, mode: LessonMode) -> str:
        prompt = build_lesson_prompt(topic, checkpoint, mode)
        text = await self._call("generate_lesson", lambda: self.llm.agenerate(prompt))
        if not text:
            logger.warning("generate_lesson got empty text for checkpoint %d", checkpoint.id)
            return EMPTY_LESSON_PLACEHOLDER
        return text

    async def generate_quiz(self, lesson_content: str) -> List[QuizQuestion]:
        prompt = build_quiz_prompt(lesson_content)
        text = await self._call("generate_quiz", lambda: self.llm.agenerate_json(prompt, QUIZ_RESPONSE_SCHEMA))
        questions = parse_quiz(text).unwrap("generate_quiz")
        if len(questions) != QUIZ_QUESTION_COUNT:
            logger.warning("generate_quiz asked for %d questions, got %d", QUIZ_QUESTION_COUNT, len(questions))
        return questions
