"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from app.main import app
from app.milestones.ledger import InMemoryLedger, LedgerReadError, LedgerWriteError
from app.milestones.models import WeightMeasurement
from app.milestones.router import get_ledger
from app.milestones.units import WeightUnit


# ---------------------------------------------------------------------------
# Fake DB session (no real Postgres needed)
# ---------------------------------------------------------------------------

class FakeSession:
    """Minimal stand-in for AsyncSession used by the SQL ledger tests."""

    def __init__(self, rows: list[dict[str, Any]] | None = None, fail: bool = False):
        self._rows = rows or []
        self.fail = fail
        self.statements: list[tuple[str, dict]] = []
        self.commits = 0
        self.rollbacks = 0

    async def execute(self, stmt, params=None):
        self.statements.append((str(stmt), params or {}))
        if self.fail:
            raise OperationalError(str(stmt), params, Exception("connection lost"))
        return FakeResult(self._rows)

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1


class FakeResult:
    def __init__(self, rows: list[dict[str, Any]]):
        self._rows = rows
        self._keys = list(rows[0].keys()) if rows else []

    def keys(self):
        return self._keys

    def fetchall(self):
        return [tuple(r[k] for k in self._keys) for r in self._rows]

    def fetchone(self):
        rows = self.fetchall()
        return rows[0] if rows else None


class FailingLedger(InMemoryLedger):
    """Ledger whose writes always fail; reads behave normally."""

    async def record(self, achievement):
        raise LedgerWriteError("disk full")


class UnreadableLedger(InMemoryLedger):
    """Ledger whose backend is down for reads too."""

    async def list_all(self):
        raise LedgerReadError("connection lost")

    async def achievements_for_goal(self, goal_weight, unit, tolerance=0.1):
        raise LedgerReadError("connection lost")

    async def most_recent(self):
        raise LedgerReadError("connection lost")


class RecordingNotifier:
    def __init__(self, accept: bool = True):
        self.accept = accept
        self.requests = []

    async def schedule(self, request) -> bool:
        self.requests.append(request)
        return self.accept


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def ledger():
    return InMemoryLedger()


@pytest.fixture()
def override_ledger(ledger):
    """Swap the SQL ledger dependency for an in-memory one."""
    async def _override():
        return ledger

    app.dependency_overrides[get_ledger] = _override
    yield ledger
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_ledger):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


BASE_TS = datetime(2026, 1, 5, 7, 30, tzinfo=timezone.utc)


def make_entry(
    weight: float,
    day: int = 0,
    unit: WeightUnit = WeightUnit.lb,
) -> WeightMeasurement:
    """Helper to build a measurement `day` days after BASE_TS."""
    return WeightMeasurement(timestamp=BASE_TS + timedelta(days=day), weight=weight, unit=unit)


def make_entries(*weights: float, unit: WeightUnit = WeightUnit.lb) -> list[WeightMeasurement]:
    """One measurement per day, in order."""
    return [make_entry(w, day=i, unit=unit) for i, w in enumerate(weights)]
