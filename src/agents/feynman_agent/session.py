"""
Learning session state machine.

IDLE -> PLANNING -> LEARNING -> QUIZ_GENERATION -> QUIZ -> RESULT
RESULT(passed) -> LEARNING (next checkpoint) | COMPLETE
RESULT(failed) -> FEYNMAN (same checkpoint, simplified) -> QUIZ_GENERATION ...
any non-terminal -> IDLE via end_session.

Every provider call is tagged with the epoch it was issued in; end_session
bumps the epoch, so a late result from a reset session is dropped instead of
applied. At most one generation is in flight; generation triggers that arrive
while one is pending are no-ops.

Learner-facing failures never raise out of a control operation: they land on
the snapshot as a notice and the session falls back to a stable state.
"""

from __future__ import annotations

import inspect
import logging
import random
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union
from uuid import uuid4

from agents.feynman_agent import evaluator, policy
from agents.feynman_agent.checkpoints import CheckpointTrack
from agents.feynman_agent.errors import InvalidTransition, TutorError
from agents.feynman_agent.pipeline import ContentPipeline
from agents.feynman_agent.schemas import (
    LessonMode,
    Notice,
    QuizQuestion,
    QuizResult,
    SessionSnapshot,
    SessionState,
)

logger = logging.getLogger(__name__)

Listener = Callable[[SessionSnapshot], Union[None, Awaitable[None]]]

_LESSON_STATES = (SessionState.LEARNING, SessionState.FEYNMAN)


class LearningSession:
    """One learner working through one topic. Sole mutator of its own state."""

    def __init__(
        self,
        pipeline: ContentPipeline,
        *,
        session_id: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ):
        self.session_id = session_id or uuid4().hex
        self.pipeline = pipeline
        self._rng = rng
        self._listeners: List[Listener] = []
        self._epoch = 0
        self._clear()

    def _clear(self) -> None:
        self.state = SessionState.IDLE
        self.topic = ""
        self.context_notes = ""
        self.track = CheckpointTrack()
        self.active_index = 0
        self.active_content = ""
        self.active_quiz: List[QuizQuestion] = []
        self.last_result: Optional[QuizResult] = None
        self.notice: Optional[Notice] = None
        self.pending = False

    # ----- Observers -----

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            epoch=self._epoch,
            state=self.state,
            topic=self.topic,
            context_notes=self.context_notes,
            checkpoints=self.track.snapshot(),
            active_index=self.active_index,
            active_content=self.active_content,
            active_quiz=list(self.active_quiz),
            last_result=self.last_result,
            pending=self.pending,
            notice=self.notice,
        )

    async def _emit(self) -> SessionSnapshot:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                result = listener(snap)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("session=%s snapshot listener failed", self.session_id)
        return snap

    # ----- Internal helpers -----

    def _set_state(self, new_state: SessionState) -> None:
        if new_state != self.state:
            logger.info("session=%s %s -> %s", self.session_id, self.state.value, new_state.value)
        self.state = new_state

    def _is_stale(self, tag: int, what: str) -> bool:
        if tag != self._epoch:
            logger.info(
                "session=%s discarding stale %s result (epoch %d, now %d)",
                self.session_id, what, tag, self._epoch,
            )
            return True
        return False

    def _dropped(self, trigger: str) -> SessionSnapshot:
        logger.warning("session=%s dropping %s: generation already in flight", self.session_id, trigger)
        return self.snapshot()

    async def _fail(self, error: TutorError, fallback: SessionState) -> SessionSnapshot:
        code = error.code.value if error.code else "error"
        logger.warning("session=%s %s: %s (-> %s)", self.session_id, code, error, fallback.value)
        self.notice = Notice(code=code, message=error.user_message)
        self.pending = False
        self._set_state(fallback)
        return await self._emit()

    async def _load_checkpoint(self, index: int, mode: LessonMode) -> SessionSnapshot:
        """Show the checkpoint as loading right away, then fill in the lesson."""
        tag = self._epoch
        self.active_index = index
        self.active_content = ""
        self.active_quiz = []
        self.last_result = None
        self.pending = True
        self._set_state(SessionState.FEYNMAN if mode == LessonMode.SIMPLIFIED else SessionState.LEARNING)
        await self._emit()

        try:
            content = await self.pipeline.generate_lesson(self.topic, self.track[index], mode)
        except TutorError as e:
            if self._is_stale(tag, "lesson"):
                return self.snapshot()
            return await self._fail(e, SessionState.IDLE)
        if self._is_stale(tag, "lesson"):
            return self.snapshot()

        self.active_content = content
        self.pending = False
        self.notice = None
        return await self._emit()

    def _require(self, trigger: str, *states: SessionState) -> None:
        if self.state not in states:
            raise InvalidTransition(trigger, self.state.value)

    # ----- Control surface -----

    async def start(self, topic: str, notes: str = "") -> SessionSnapshot:
        """Plan the checkpoint track for `topic`, then load the first lesson."""
        if self.pending:
            return self._dropped("start")
        self._require("start", SessionState.IDLE)
        topic = (topic or "").strip()
        if not topic:
            logger.info("session=%s start ignored: empty topic", self.session_id)
            return self.snapshot()

        tag = self._epoch
        self.topic = topic
        self.context_notes = notes or ""
        self.notice = None
        self.pending = True
        self._set_state(SessionState.PLANNING)
        await self._emit()

        try:
            items = await self.pipeline.plan_path(self.topic, self.context_notes)
            if self._is_stale(tag, "plan"):
                return self.snapshot()
            self.track.plan(items)
        except TutorError as e:
            if self._is_stale(tag, "plan"):
                return self.snapshot()
            return await self._fail(e, SessionState.IDLE)

        logger.info("session=%s planned %d checkpoints for %r", self.session_id, len(self.track), self.topic)
        return await self._load_checkpoint(0, LessonMode.STANDARD)

    async def request_verification(self) -> SessionSnapshot:
        """Generate a quiz from the current lesson."""
        if self.pending:
            return self._dropped("request_verification")
        self._require("request_verification", *_LESSON_STATES)
        if not self.active_content:
            raise InvalidTransition("request_verification", self.state.value)

        tag = self._epoch
        self.pending = True
        self.notice = None
        self._set_state(SessionState.QUIZ_GENERATION)
        await self._emit()

        try:
            quiz = await self.pipeline.generate_quiz(self.active_content)
        except TutorError as e:
            if self._is_stale(tag, "quiz"):
                return self.snapshot()
            return await self._fail(e, SessionState.LEARNING)
        if self._is_stale(tag, "quiz"):
            return self.snapshot()

        self.active_quiz = list(quiz)
        self.pending = False
        self._set_state(SessionState.QUIZ)
        return await self._emit()

    async def submit(self, answers: Sequence[Any]) -> SessionSnapshot:
        """Score the active quiz. Incomplete submissions leave the quiz open."""
        self._require("submit", SessionState.QUIZ)
        answers = list(answers or [])
        try:
            evaluator.check_submission(self.active_quiz, answers)
        except TutorError as e:
            return await self._fail(e, SessionState.QUIZ)

        self.last_result = evaluator.score(self.active_quiz, answers, rng=self._rng)
        logger.info(
            "session=%s checkpoint=%d score=%d passed=%s",
            self.session_id, self.active_index, self.last_result.score, self.last_result.passed,
        )
        self.notice = None
        self._set_state(SessionState.RESULT)
        return await self._emit()

    async def proceed(self) -> SessionSnapshot:
        """After a pass: complete this checkpoint and move on (or finish)."""
        if self.pending:
            return self._dropped("proceed")
        self._require("proceed", SessionState.RESULT)
        if self.last_result is None or not policy.allows(self.last_result, policy.NextStep.PROCEED):
            raise InvalidTransition("proceed", self.state.value)

        next_index = self.track.advance(self.active_index)
        if next_index is None:
            self.notice = None
            self._set_state(SessionState.COMPLETE)
            return await self._emit()
        return await self._load_checkpoint(next_index, LessonMode.STANDARD)

    async def simplify(self) -> SessionSnapshot:
        """After a fail: re-teach the same checkpoint in simplified mode."""
        if self.pending:
            return self._dropped("simplify")
        self._require("simplify", SessionState.RESULT)
        if self.last_result is None or not policy.allows(self.last_result, policy.NextStep.SIMPLIFY):
            raise InvalidTransition("simplify", self.state.value)
        return await self._load_checkpoint(self.active_index, LessonMode.SIMPLIFIED)

    async def end_session(self) -> SessionSnapshot:
        """Reset to IDLE; results of calls still in flight will be discarded."""
        if self.state == SessionState.COMPLETE:
            raise InvalidTransition("end_session", self.state.value)
        self._epoch += 1
        logger.info("session=%s ended, epoch now %d", self.session_id, self._epoch)
        self._clear()
        return await self._emit()
