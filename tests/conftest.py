"""
Pytest configuration and fixtures for the ranking service tests.

Purpose
-------
Shared fixtures for unit and route tests:

- an in-memory SQLite database per test (StaticPool, so the FastAPI
  TestClient thread sees the same connection),
- a fixed clock, injected wherever "now" matters,
- small factories for users, problems, submissions, solves and entries,
- an async Redis double for the daily challenge cache.

Environment variables are set before any application module is imported,
because ``config`` reads them at import time.
"""

from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ["SQLALCHEMY_DATABASE_URL"] = "sqlite://"
os.environ["X_API_KEY"] = "test-api-key"
os.environ.pop("REDIS_CONN_STRING", None)

from datetime import date, datetime, timedelta
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from dependencies import get_clock, get_redis_client
from main import app
from models import (
    DailyChallenge,
    LeaderboardEntry,
    Problem,
    ProblemStat,
    Submission,
    User,
    UserAchievement,
)
from repository import RankingRepository

API_KEY = "test-api-key"

# Monday afternoon, mid-month: MONTHLY window opens 2026-10-01,
# WEEKLY window opens 2026-10-12 15:30.
NOW = datetime(2026, 10, 19, 15, 30)
TODAY = NOW.date()


# ============================================================================
# DATABASE
# ============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repo(db) -> RankingRepository:
    return RankingRepository(db)


@pytest.fixture
def clock():
    return lambda: NOW


# ============================================================================
# FACTORIES
# ============================================================================


class Factory:
    """Inserts rows with sensible defaults and commits immediately."""

    def __init__(self, db):
        self.db = db
        self._seq = count(1)

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, xp=0, **kwargs) -> User:
        n = next(self._seq)
        kwargs.setdefault("name", f"Coder {n}")
        kwargs.setdefault("username", f"coder{n}")
        kwargs.setdefault("email", f"coder{n}@example.com")
        return self._save(User(xp=xp, **kwargs))

    def problem(self, published=True, created_at=None, **kwargs) -> Problem:
        n = next(self._seq)
        kwargs.setdefault("slug", f"problem-{n}")
        kwargs.setdefault("title", f"Problem {n}")
        kwargs.setdefault("difficulty", "EASY")
        return self._save(Problem(
            published_at=NOW - timedelta(days=365) if published else None,
            created_at=created_at or datetime(2025, 1, 1) + timedelta(minutes=n),
            **kwargs,
        ))

    def submission(self, user, problem, status="ACCEPTED", at=NOW) -> Submission:
        return self._save(Submission(
            user_id=user.id, problem_id=problem.id, status=status, created_at=at
        ))

    def solve(self, user, problem, at=NOW, hints_used=False) -> ProblemStat:
        return self._save(ProblemStat(
            user_id=user.id, problem_id=problem.id, solved=True, solved_at=at,
            hints_used=hints_used,
        ))

    def achievement(self, user, achievement_id="first-blood") -> UserAchievement:
        return self._save(UserAchievement(user_id=user.id, achievement_id=achievement_id))

    def entry(self, user, period="ALL_TIME", score=None, rank=None) -> LeaderboardEntry:
        return self._save(LeaderboardEntry(
            user_id=user.id,
            period=period,
            score=user.xp if score is None else score,
            rank=rank,
            last_updated=NOW,
        ))

    def challenge(self, problem, day: date, xp_bonus=20) -> DailyChallenge:
        return self._save(DailyChallenge(date=day, problem_id=problem.id, xp_bonus=xp_bonus))


@pytest.fixture
def make(db) -> Factory:
    return Factory(db)


# ============================================================================
# HTTP
# ============================================================================


class FakeRedis:
    """Just the async Redis calls the daily challenge cache uses."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    async def delete(self, key):
        self.store.pop(key, None)
        self.ttls.pop(key, None)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def client(db, clock, fake_redis):
    def override_get_db():
        yield db

    async def override_get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_redis_client] = override_get_redis
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"X-API-Key": API_KEY}
