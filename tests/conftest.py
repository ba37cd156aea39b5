"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides a scripted content provider.
"""
import random
import sys
from pathlib import Path

import pytest

# Add project root, src and tests to Python path for imports
project_root = Path(__file__).parent.parent
for path in (project_root, project_root / "src", Path(__file__).parent):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from fake_llm import FakeLLM  # noqa: E402


@pytest.fixture
def fake_llm() -> FakeLLM:
    """Provider with default responses: 4 checkpoints, narrative lessons, 3-question quizzes."""
    return FakeLLM()


@pytest.fixture
def pipeline(fake_llm):
    from agents.feynman_agent.pipeline import ContentPipeline
    return ContentPipeline(fake_llm)


@pytest.fixture
def session(pipeline):
    """A fresh IDLE session with a seeded feedback picker."""
    from agents.feynman_agent.session import LearningSession
    return LearningSession(pipeline, session_id="test-session", rng=random.Random(7))
