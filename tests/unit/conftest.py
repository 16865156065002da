"""
Unit test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during unit tests. Tests control config exclusively through monkeypatch.setenv().

Also provides a controllable clock and an in-memory stand-in for
UserRepository so service tests never touch MongoDB.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from bson import ObjectId

from schemas.models.user import UserDoc, VerificationRecord

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all unit tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


class FakeClock:
    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class FakeUserRepository:
    """Dict-backed replacement for repositories.user_repository.UserRepository.

    find_by_id() returns a deep copy so tests can only observe what the
    service explicitly saved.
    """

    def __init__(self) -> None:
        self.users: dict[str, UserDoc] = {}
        self.saves = 0

    def add(self, **fields) -> str:
        user_id = str(ObjectId())
        self.users[user_id] = UserDoc(_id=user_id, **fields)
        return user_id

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        user = self.users.get(user_id)
        return user.model_copy(deep=True) if user is not None else None

    async def save_verification(self, user_id: str, record: VerificationRecord) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        self.saves += 1
        user.verification = record.model_copy(deep=True)
        return True

    def record(self, user_id: str) -> VerificationRecord:
        return self.users[user_id].verification


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def user_repo():
    return FakeUserRepository()
