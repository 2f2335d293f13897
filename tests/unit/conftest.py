"""Shared fixtures for unit tests."""

import logging
from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    """Controllable replacement for utc_now."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeSolver:
    """Solver double that records its calls."""

    def __init__(self, token="abc123", challenge=None):
        self.token = token
        self.challenge = challenge if challenge is not None else {"program": "p", "globalName": "g"}
        self.create_error: Exception | None = None
        self.generate_error: Exception | None = None
        self.create_calls = []
        self.generate_calls = []

    async def create_challenge(self, request):
        self.create_calls.append(request)
        if self.create_error:
            raise self.create_error
        return self.challenge

    async def generate_token(self, challenge, request):
        self.generate_calls.append((challenge, request))
        if self.generate_error:
            raise self.generate_error
        return self.token


class FakeVisitorSource:
    def __init__(self, result="visitor-data-1"):
        self.result = result
        self.calls = 0

    async def generate(self) -> str:
        self.calls += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() so caplog sees pot_provider records."""
    yield
    logger = logging.getLogger("pot_provider")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def solver():
    return FakeSolver()


@pytest.fixture
def visitor_source():
    return FakeVisitorSource()
