"""
Pytest configuration and shared fixtures for study buddy tests.
"""
import pytest
import os
import sys
from typing import Dict, List, Optional
from unittest.mock import patch

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.schemas.profile import UserProfile
from app.services.response_reconciler import ReconcilerHook


@pytest.fixture(autouse=True)
def mock_environment():
    """Ensure environment variables are set for testing."""
    env_vars = {
        'OPENAI_API_KEY': 'test-openai-key',
        'OPENAI_MODEL': 'gpt-4.1-mini',
        'LOG_LEVEL': 'WARNING',
        'ENVIRONMENT': 'test',
        'DYNAMO_PROFILE_TABLE_NAME': 'test-users',
        'AWS_REGION': 'us-east-1',
        'AWS_ACCESS_KEY_ID': 'test-access-key',
        'AWS_SECRET_ACCESS_KEY': 'test-secret-key',
        'AWS_ENDPOINT_URL': 'http://localhost:4566',
        'API_KEY': 'test-api-key',
    }
    with patch.dict(os.environ, env_vars):
        yield


class FakeProfileStore:
    """In-memory profile store that records every read."""

    def __init__(self, profiles: Optional[List[UserProfile]] = None):
        self.profiles = list(profiles or [])
        self.calls: List[str] = []

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        self.calls.append(f"get:{user_id}")
        return next((p for p in self.profiles if p.id == user_id), None)

    def list_profiles(self) -> List[UserProfile]:
        self.calls.append("list")
        return list(self.profiles)


class FakeLLM:
    """Model invoker returning a scripted reply (or raising a scripted error)."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class RecordingHook(ReconcilerHook):
    """Collects reconciler events instead of logging them."""

    def __init__(self):
        self.events: List[Dict] = []

    def emit(self, event: str, **context) -> None:
        self.events.append({"event": event, **context})

    def names(self) -> List[str]:
        return [e["event"] for e in self.events]


def make_profile(user_id: str, name: str = "Anonymous", bio: str = "", interests=(), image_url: str = "") -> UserProfile:
    return UserProfile(id=user_id, name=name, bio=bio, interests=tuple(interests), image_url=image_url)


@pytest.fixture
def caller():
    return make_profile("user-me", name="Sam", bio="CS sophomore", interests=["algorithms", "python"])


@pytest.fixture
def candidates():
    """Three other users, in store order."""
    return [
        make_profile("user-a", name="Ada", bio="Loves proofs", interests=["discrete math", "python"],
                     image_url="https://img.example/ada.png"),
        make_profile("user-b", name="Ben", bio="", interests=["organic chemistry"]),
        make_profile("user-c", name="Cleo", bio="Night owl", interests=["algorithms"]),
    ]


@pytest.fixture
def store(caller, candidates):
    return FakeProfileStore([candidates[0], caller, candidates[1], candidates[2]])


@pytest.fixture
def hook():
    return RecordingHook()
