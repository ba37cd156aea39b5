from typing import List

from pydantic import BaseModel, Field


class StartSessionRequest(BaseModel):
    """Body for POST /sessions/{session_id}/start."""
    topic: str = Field(min_length=1, description="Subject to learn")
    notes: str = Field(default="", description="Optional context notes; only a prefix reaches the provider")


class SubmitAnswersRequest(BaseModel):
    """Body for POST /sessions/{session_id}/submit: one option index per question, in order."""
    answers: List[int] = Field(default_factory=list)


class ProviderHealthResponse(BaseModel):
    model: str
    base_url: str
    available: bool
