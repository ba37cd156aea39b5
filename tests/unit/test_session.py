"""Unit tests for the learning session state machine (scripted provider)."""
import asyncio

import pytest

from agents.feynman_agent.errors import ErrorCode, InvalidTransition
from agents.feynman_agent.evaluator import STATIC_FEEDBACK
from agents.feynman_agent.pipeline import ContentPipeline
from agents.feynman_agent.schemas import CheckpointStatus, SessionState
from agents.feynman_agent.session import LearningSession
from fake_llm import DEFAULT_QUIZ_ANSWERS, FakeLLM, plan_json

PASSING = list(DEFAULT_QUIZ_ANSWERS)
# One of three right: 33%
FAILING = [0, 0, 0]


async def _settle():
    """Let background tasks run up to their next real suspension point."""
    for _ in range(10):
        await asyncio.sleep(0)


async def _to_result(session, answers):
    await session.request_verification()
    return await session.submit(answers)


def _statuses(snap):
    return [cp.status for cp in snap.checkpoints]


def _assert_track_invariant(snap):
    statuses = _statuses(snap)
    if not statuses:
        return
    if all(s == CheckpointStatus.COMPLETED for s in statuses):
        return
    assert statuses.count(CheckpointStatus.CURRENT) == 1
    current = statuses.index(CheckpointStatus.CURRENT)
    assert all(s == CheckpointStatus.COMPLETED for s in statuses[:current])
    assert all(s == CheckpointStatus.LOCKED for s in statuses[current + 1:])


@pytest.mark.unit
class TestHappyPath:
    @pytest.mark.asyncio
    async def test_start_plans_and_loads_first_lesson(self, session, fake_llm):
        snap = await session.start("Thermodynamics", "Focus on entropy")
        assert snap.state == SessionState.LEARNING
        assert snap.topic == "Thermodynamics"
        assert snap.context_notes == "Focus on entropy"
        assert len(snap.checkpoints) == 4
        assert _statuses(snap)[0] == CheckpointStatus.CURRENT
        assert snap.active_index == 0
        assert snap.active_content.startswith("# Lesson 1")
        assert snap.pending is False
        assert snap.notice is None
        assert "STANDARD ACADEMIC" in fake_llm.prompts("lesson")[0]

    @pytest.mark.asyncio
    async def test_verify_then_pass_then_proceed(self, session):
        await session.start("Thermodynamics")
        quiz = await session.request_verification()
        assert quiz.state == SessionState.QUIZ
        assert len(quiz.active_quiz) == 3

        result = await session.submit(PASSING)
        assert result.state == SessionState.RESULT
        assert result.last_result.score == 100
        assert result.last_result.passed is True
        assert result.last_result.feedback in STATIC_FEEDBACK[True]

        nxt = await session.proceed()
        assert nxt.state == SessionState.LEARNING
        assert nxt.active_index == 1
        assert _statuses(nxt) == [
            CheckpointStatus.COMPLETED,
            CheckpointStatus.CURRENT,
            CheckpointStatus.LOCKED,
            CheckpointStatus.LOCKED,
        ]
        assert nxt.active_content.startswith("# Lesson 2")
        assert nxt.active_quiz == []
        assert nxt.last_result is None

    @pytest.mark.asyncio
    async def test_full_track_reaches_complete(self, session, fake_llm):
        fake_llm.queue("plan", plan_json(3))
        snap = await session.start("Optics")
        for expected_index in range(3):
            assert snap.state == SessionState.LEARNING
            assert snap.active_index == expected_index
            _assert_track_invariant(snap)
            await _to_result(session, PASSING)
            snap = await session.proceed()
        assert snap.state == SessionState.COMPLETE
        assert all(s == CheckpointStatus.COMPLETED for s in _statuses(snap))

    @pytest.mark.asyncio
    async def test_single_checkpoint_plan(self, session, fake_llm):
        fake_llm.queue("plan", plan_json(1))
        await session.start("Optics")
        await _to_result(session, PASSING)
        snap = await session.proceed()
        assert snap.state == SessionState.COMPLETE
        assert _statuses(snap) == [CheckpointStatus.COMPLETED]


@pytest.mark.unit
class TestFeynmanLoop:
    @pytest.mark.asyncio
    async def test_fail_then_simplify_same_checkpoint(self, session, fake_llm):
        await session.start("Thermodynamics")
        result = await _to_result(session, FAILING)
        assert result.last_result.score == 33
        assert result.last_result.passed is False
        assert result.last_result.feedback in STATIC_FEEDBACK[False]

        snap = await session.simplify()
        assert snap.state == SessionState.FEYNMAN
        assert snap.active_index == 0
        assert _statuses(snap)[0] == CheckpointStatus.CURRENT
        assert "ACTIVATE FEYNMAN MODE" in fake_llm.prompts("lesson")[-1]

    @pytest.mark.asyncio
    async def test_one_wrong_answer_scores_67_and_fails(self, session):
        await session.start("Thermodynamics")
        c0, c1, c2 = DEFAULT_QUIZ_ANSWERS
        result = await _to_result(session, [c0 + 1, c1, c2])
        assert result.state == SessionState.RESULT
        assert result.last_result.score == 67
        assert result.last_result.passed is False
        snap = await session.simplify()
        assert snap.state == SessionState.FEYNMAN
        assert snap.active_index == 0

    @pytest.mark.asyncio
    async def test_pass_after_simplify_advances(self, session):
        await session.start("Thermodynamics")
        await _to_result(session, FAILING)
        await session.simplify()
        quiz = await session.request_verification()
        assert quiz.state == SessionState.QUIZ
        await session.submit(PASSING)
        snap = await session.proceed()
        assert snap.state == SessionState.LEARNING
        assert snap.active_index == 1

    @pytest.mark.asyncio
    async def test_no_retry_limit(self, session, fake_llm):
        await session.start("Thermodynamics")
        for _ in range(4):
            await _to_result(session, FAILING)
            snap = await session.simplify()
            assert snap.state == SessionState.FEYNMAN
            assert snap.active_index == 0
            assert _statuses(snap)[1:] == [CheckpointStatus.LOCKED] * 3
        assert len(fake_llm.prompts("lesson")) == 5


@pytest.mark.unit
class TestFailures:
    @pytest.mark.asyncio
    async def test_provider_failure_on_plan_returns_to_idle(self, session, fake_llm):
        fake_llm.queue("plan", ConnectionError("refused"))
        snap = await session.start("Thermodynamics")
        assert snap.state == SessionState.IDLE
        assert snap.notice.code == ErrorCode.PROVIDER_UNAVAILABLE.value
        assert snap.pending is False
        assert snap.checkpoints == []

    @pytest.mark.asyncio
    async def test_empty_plan_returns_to_idle(self, session, fake_llm):
        fake_llm.queue("plan", "[]")
        snap = await session.start("Thermodynamics")
        assert snap.state == SessionState.IDLE
        assert snap.notice.code == ErrorCode.INVALID_PLAN.value
        assert fake_llm.prompts("lesson") == []

    @pytest.mark.asyncio
    async def test_malformed_plan_returns_to_idle(self, session, fake_llm):
        fake_llm.queue("plan", "1. intro 2. more")
        snap = await session.start("Thermodynamics")
        assert snap.state == SessionState.IDLE
        assert snap.notice.code == ErrorCode.MALFORMED_RESPONSE.value

    @pytest.mark.asyncio
    async def test_can_start_again_after_failure(self, session, fake_llm):
        fake_llm.queue("plan", ConnectionError("refused"))
        await session.start("Thermodynamics")
        snap = await session.start("Thermodynamics")
        assert snap.state == SessionState.LEARNING
        assert snap.notice is None

    @pytest.mark.asyncio
    async def test_first_lesson_failure_returns_to_idle(self, session, fake_llm):
        fake_llm.queue("lesson", ConnectionError("refused"))
        snap = await session.start("Thermodynamics")
        assert snap.state == SessionState.IDLE
        assert snap.notice.code == ErrorCode.PROVIDER_UNAVAILABLE.value
        assert snap.pending is False

    @pytest.mark.asyncio
    async def test_lesson_failure_on_proceed_returns_to_idle(self, session, fake_llm):
        fake_llm.queue("lesson", "# L1", ConnectionError("refused"))
        await session.start("Thermodynamics")
        await _to_result(session, PASSING)
        snap = await session.proceed()
        assert snap.state == SessionState.IDLE
        assert snap.notice.code == ErrorCode.PROVIDER_UNAVAILABLE.value
        assert snap.pending is False

    @pytest.mark.asyncio
    async def test_quiz_failure_returns_to_learning(self, session, fake_llm):
        fake_llm.queue("quiz", ConnectionError("refused"))
        await session.start("Thermodynamics")
        lesson = session.active_content
        snap = await session.request_verification()
        assert snap.state == SessionState.LEARNING
        assert snap.notice.code == ErrorCode.PROVIDER_UNAVAILABLE.value
        assert snap.active_content == lesson
        assert snap.active_quiz == []
        # Retry works
        assert (await session.request_verification()).state == SessionState.QUIZ

    @pytest.mark.asyncio
    async def test_quiz_failure_from_feynman_returns_to_learning(self, session, fake_llm):
        await session.start("Thermodynamics")
        await _to_result(session, FAILING)
        await session.simplify()
        fake_llm.queue("quiz", "[]")
        snap = await session.request_verification()
        assert snap.state == SessionState.LEARNING
        assert snap.notice.code == ErrorCode.MALFORMED_RESPONSE.value

    @pytest.mark.asyncio
    async def test_incomplete_submission_keeps_quiz_open(self, session):
        await session.start("Thermodynamics")
        await session.request_verification()
        snap = await session.submit([1])
        assert snap.state == SessionState.QUIZ
        assert snap.notice.code == ErrorCode.INCOMPLETE_SUBMISSION.value
        assert snap.notice.message == "Please answer all questions before submitting."
        assert snap.last_result is None
        assert len(snap.active_quiz) == 3

        done = await session.submit(PASSING)
        assert done.state == SessionState.RESULT
        assert done.notice is None

    @pytest.mark.asyncio
    async def test_empty_submission_keeps_quiz_open(self, session):
        await session.start("Thermodynamics")
        await session.request_verification()
        snap = await session.submit([])
        assert snap.state == SessionState.QUIZ
        assert snap.notice.code == ErrorCode.INCOMPLETE_SUBMISSION.value

    @pytest.mark.asyncio
    async def test_empty_lesson_uses_placeholder(self, session, fake_llm):
        fake_llm.queue("lesson", "")
        snap = await session.start("Thermodynamics")
        assert snap.state == SessionState.LEARNING
        assert snap.active_content == "No content generated."


@pytest.mark.unit
class TestInvalidTransitions:
    @pytest.mark.asyncio
    async def test_triggers_in_idle(self, session):
        with pytest.raises(InvalidTransition):
            await session.request_verification()
        with pytest.raises(InvalidTransition):
            await session.submit(PASSING)
        with pytest.raises(InvalidTransition):
            await session.proceed()
        with pytest.raises(InvalidTransition):
            await session.simplify()
        assert session.state == SessionState.IDLE

    @pytest.mark.asyncio
    async def test_start_while_learning(self, session):
        await session.start("Thermodynamics")
        with pytest.raises(InvalidTransition) as excinfo:
            await session.start("Optics")
        assert excinfo.value.trigger == "start"
        assert excinfo.value.state == "learning"
        assert session.topic == "Thermodynamics"

    @pytest.mark.asyncio
    async def test_proceed_after_fail_rejected(self, session):
        await session.start("Thermodynamics")
        await _to_result(session, FAILING)
        with pytest.raises(InvalidTransition):
            await session.proceed()
        assert session.state == SessionState.RESULT

    @pytest.mark.asyncio
    async def test_simplify_after_pass_rejected(self, session):
        await session.start("Thermodynamics")
        await _to_result(session, PASSING)
        with pytest.raises(InvalidTransition):
            await session.simplify()

    @pytest.mark.asyncio
    async def test_end_session_in_complete_rejected(self, session, fake_llm):
        fake_llm.queue("plan", plan_json(1))
        await session.start("Optics")
        await _to_result(session, PASSING)
        await session.proceed()
        with pytest.raises(InvalidTransition):
            await session.end_session()
        assert session.state == SessionState.COMPLETE

    @pytest.mark.asyncio
    async def test_blank_topic_is_ignored(self, session, fake_llm):
        snap = await session.start("   ")
        assert snap.state == SessionState.IDLE
        assert fake_llm.calls == []


@pytest.mark.unit
class TestEndSession:
    @pytest.mark.asyncio
    async def test_end_resets_everything(self, session):
        await session.start("Thermodynamics", "notes")
        await session.request_verification()
        snap = await session.end_session()
        assert snap.state == SessionState.IDLE
        assert snap.topic == ""
        assert snap.context_notes == ""
        assert snap.checkpoints == []
        assert snap.active_content == ""
        assert snap.active_quiz == []
        assert snap.last_result is None
        assert snap.epoch == 1

    @pytest.mark.asyncio
    async def test_end_in_idle_is_harmless(self, session):
        snap = await session.end_session()
        assert snap.state == SessionState.IDLE


@pytest.mark.unit
class TestInFlight:
    @pytest.mark.asyncio
    async def test_second_start_while_planning_is_dropped(self, session, fake_llm):
        gate = fake_llm.hold("plan")
        first = asyncio.create_task(session.start("Thermodynamics"))
        await _settle()
        assert session.state == SessionState.PLANNING
        assert session.pending is True

        snap = await session.start("Thermodynamics")
        assert snap.state == SessionState.PLANNING
        assert len(fake_llm.prompts("plan")) == 1

        gate.set()
        done = await first
        assert done.state == SessionState.LEARNING
        assert len(fake_llm.prompts("plan")) == 1

    @pytest.mark.asyncio
    async def test_verify_while_lesson_loading_is_dropped(self, session, fake_llm):
        gate = fake_llm.hold("lesson")
        task = asyncio.create_task(session.start("Thermodynamics"))
        await _settle()
        assert session.state == SessionState.LEARNING
        assert session.pending is True

        snap = await session.request_verification()
        assert snap.state == SessionState.LEARNING
        assert fake_llm.prompts("quiz") == []

        gate.set()
        await task
        assert session.pending is False

    @pytest.mark.asyncio
    async def test_late_plan_after_end_is_discarded(self, session, fake_llm):
        gate = fake_llm.hold("plan")
        task = asyncio.create_task(session.start("Thermodynamics"))
        await _settle()
        await session.end_session()

        gate.set()
        await task
        assert session.state == SessionState.IDLE
        assert session.topic == ""
        assert len(session.track) == 0
        assert fake_llm.prompts("lesson") == []

    @pytest.mark.asyncio
    async def test_late_lesson_after_end_is_discarded(self, session, fake_llm):
        gate = fake_llm.hold("lesson")
        task = asyncio.create_task(session.start("Thermodynamics"))
        await _settle()
        await session.end_session()

        gate.set()
        await task
        assert session.state == SessionState.IDLE
        assert session.active_content == ""

    @pytest.mark.asyncio
    async def test_late_failure_after_end_leaves_no_notice(self, session, fake_llm):
        fake_llm.queue("plan", ConnectionError("refused"))
        gate = fake_llm.hold("plan")
        task = asyncio.create_task(session.start("Thermodynamics"))
        await _settle()
        await session.end_session()

        gate.set()
        await task
        assert session.state == SessionState.IDLE
        assert session.notice is None

    @pytest.mark.asyncio
    async def test_old_result_does_not_leak_into_new_session(self, session, fake_llm):
        fake_llm.queue("plan", plan_json(5, topic="Old"), plan_json(2, topic="New"))
        gate = fake_llm.hold("plan")
        old = asyncio.create_task(session.start("Old"))
        await _settle()
        await session.end_session()

        snap = await session.start("New")
        assert snap.state == SessionState.LEARNING
        assert len(snap.checkpoints) == 2

        gate.set()
        await old
        assert session.topic == "New"
        assert len(session.track) == 2
        assert session.track[0].title == "New part 1"


@pytest.mark.unit
class TestObservers:
    @pytest.mark.asyncio
    async def test_listener_sees_loading_then_loaded(self, session):
        seen = []
        session.subscribe(seen.append)
        await session.start("Thermodynamics")

        assert [s.state for s in seen] == [
            SessionState.PLANNING,
            SessionState.LEARNING,
            SessionState.LEARNING,
        ]
        assert seen[0].pending is True
        assert seen[1].pending is True
        assert seen[1].active_content == ""
        assert len(seen[1].checkpoints) == 4
        assert seen[2].pending is False
        assert seen[2].active_content

    @pytest.mark.asyncio
    async def test_async_listener_awaited(self, session):
        seen = []

        async def listener(snap):
            seen.append(snap.state)

        session.subscribe(listener)
        await session.start("Thermodynamics")
        assert seen[-1] == SessionState.LEARNING

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_session(self, session):
        def broken(_snap):
            raise RuntimeError("boom")

        session.subscribe(broken)
        snap = await session.start("Thermodynamics")
        assert snap.state == SessionState.LEARNING

    @pytest.mark.asyncio
    async def test_unsubscribe(self, session):
        seen = []
        session.subscribe(seen.append)
        session.unsubscribe(seen.append)
        await session.start("Thermodynamics")
        assert seen == []

    @pytest.mark.asyncio
    async def test_snapshot_is_detached(self, session):
        await session.start("Thermodynamics")
        snap = session.snapshot()
        snap.checkpoints[0].status = CheckpointStatus.COMPLETED
        assert session.track[0].status == CheckpointStatus.CURRENT

    @pytest.mark.asyncio
    async def test_snapshot_serializes(self, session):
        await session.start("Thermodynamics")
        await session.request_verification()
        data = session.snapshot().to_serializable()
        assert data["state"] == "quiz"
        assert data["checkpoints"][0]["status"] == "current"
        assert "correct_option_index" in data["active_quiz"][0]


@pytest.mark.unit
class TestSessionsAreIndependent:
    @pytest.mark.asyncio
    async def test_two_sessions_share_nothing(self):
        llm = FakeLLM()
        pipeline = ContentPipeline(llm)
        a = LearningSession(pipeline, session_id="a")
        b = LearningSession(pipeline, session_id="b")
        await a.start("Thermodynamics")
        assert b.state == SessionState.IDLE
        await b.start("Optics")
        await a.end_session()
        assert b.state == SessionState.LEARNING
        assert b.topic == "Optics"
