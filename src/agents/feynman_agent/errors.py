"""
Error taxonomy for learning sessions.

Learner-facing errors carry an ErrorCode; the session turns them into a
notice on the snapshot instead of raising. InvalidTransition is the one error
raised to callers: it means the control surface was driven out of order.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    INVALID_PLAN = "invalid_plan"
    MALFORMED_RESPONSE = "malformed_response"
    INCOMPLETE_SUBMISSION = "incomplete_submission"
    PROVIDER_UNAVAILABLE = "provider_unavailable"


class TutorError(Exception):
    """Base class for all learning-session errors."""

    code: ErrorCode | None = None
    user_message = "Something went wrong."

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.user_message)
        self.detail = detail


class InvalidPlan(TutorError):
    """The provider planned zero checkpoints."""

    code = ErrorCode.INVALID_PLAN
    user_message = "Error generating path: no checkpoints were planned."


class MalformedResponse(TutorError):
    """Structured provider output failed validation."""

    code = ErrorCode.MALFORMED_RESPONSE
    user_message = "The tutor returned content it could not use. Please try again."


class ProviderUnavailable(TutorError):
    """Transport or provider-level failure."""

    code = ErrorCode.PROVIDER_UNAVAILABLE
    user_message = "The content provider is unavailable. Please try again."


class IncompleteSubmission(TutorError):
    """Fewer answers than questions."""

    code = ErrorCode.INCOMPLETE_SUBMISSION
    user_message = "Please answer all questions before submitting."


class InvalidTransition(TutorError):
    """A trigger was fired in a state that has no such transition."""

    def __init__(self, trigger: str, state: str):
        super().__init__(f"'{trigger}' is not allowed in state {state}")
        self.trigger = trigger
        self.state = state
