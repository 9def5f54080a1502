"""
Test fixtures and configuration for pytest.
"""

import copy
from datetime import datetime, timedelta, timezone
from typing import Dict, Generator, List, Optional

import pytest
from asyncpg.exceptions import UniqueViolationError
from fastapi.testclient import TestClient

from affiliates.config import settings
from affiliates.database import get_db
from affiliates.main import app
from affiliates.schema import MEMBER_NUMBER_CONSTRAINT, NATIONAL_ID_CONSTRAINT

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _normalize(query: str) -> str:
    return " ".join(query.split())


def _unescape_like(pattern: str) -> str:
    term = pattern[1:-1]
    return term.replace("\\%", "%").replace("\\_", "_").replace("\\\\", "\\")


def _unique_violation(constraint: str) -> UniqueViolationError:
    exc = UniqueViolationError(f'duplicate key value violates unique constraint "{constraint}"')
    exc.constraint_name = constraint
    return exc


class MockDatabase:
    """
    In-memory stand-in for the asyncpg-backed Database.

    Interprets the statements issued by the record store and the audit log,
    enforces the unique constraints like PostgreSQL would, and rolls back
    both tables when a transaction block raises.
    """

    def __init__(self):
        self.affiliates: Dict[int, dict] = {}
        self.audit_log: List[dict] = []
        self.next_affiliate_id = 1
        self.next_log_id = 1
        self.queries: List[str] = []
        self.healthy = True
        self.transactions = 0
        self.rollbacks = 0
        self._failures: Dict[str, Exception] = {}
        self._hidden: set = set()

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def fail_on(self, fragment: str, exc: Exception) -> None:
        """Raise ``exc`` whenever a query containing ``fragment`` runs."""
        self._failures[fragment] = exc

    def hide_once(self, value: str) -> None:
        """Make the next lookup of this national ID or member number miss."""
        self._hidden.add(value)

    def seed(self, national_id: str, full_name: str, member_number: str, **extra) -> dict:
        """Insert a row directly, bypassing the service and the audit log."""
        row = self._new_row(national_id, member_number, full_name, **extra)
        self.affiliates[row['id']] = row
        return row

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record(self, query: str) -> str:
        q = _normalize(query)
        self.queries.append(q)
        for fragment, exc in self._failures.items():
            if fragment in q:
                raise exc
        return q

    def _new_row(self, national_id, member_number, full_name,
                 category=None, employer=None, admission_date=None) -> dict:
        now = BASE_TIME + timedelta(seconds=self.next_affiliate_id)
        row = {
            "id": self.next_affiliate_id,
            "national_id": national_id,
            "member_number": member_number,
            "full_name": full_name,
            "category": category,
            "employer": employer,
            "admission_date": admission_date,
            "created_at": now,
            "updated_at": now,
        }
        self.next_affiliate_id += 1
        return row

    def _by(self, column: str, value: str) -> Optional[dict]:
        if value in self._hidden:
            self._hidden.discard(value)
            return None
        for row in self.affiliates.values():
            if row[column] == value:
                return row
        return None

    def _holder(self, column: str, value: str) -> Optional[dict]:
        for row in self.affiliates.values():
            if row[column] == value:
                return row
        return None

    # ------------------------------------------------------------------
    # asyncpg-like API
    # ------------------------------------------------------------------

    async def fetchrow(self, query: str, *args):
        q = self._record(query)

        if q.startswith("INSERT INTO affiliates"):
            national_id, member_number, full_name, category, employer, admission_date = args
            if self._holder("national_id", national_id):
                raise _unique_violation(NATIONAL_ID_CONSTRAINT)
            if self._holder("member_number", member_number):
                raise _unique_violation(MEMBER_NUMBER_CONSTRAINT)
            row = self._new_row(national_id, member_number, full_name,
                                category, employer, admission_date)
            self.affiliates[row['id']] = row
            return dict(row)

        if q.startswith("UPDATE affiliates"):
            national_id, full_name, member_number, category, employer, admission_date = args
            row = self._holder("national_id", national_id)
            if row is None:
                return None
            other = self._holder("member_number", member_number)
            if other is not None and other['id'] != row['id']:
                raise _unique_violation(MEMBER_NUMBER_CONSTRAINT)
            row.update(
                full_name=full_name,
                member_number=member_number,
                category=category if category is not None else row['category'],
                employer=employer if employer is not None else row['employer'],
                admission_date=admission_date if admission_date is not None else row['admission_date'],
                updated_at=row['updated_at'] + timedelta(minutes=1),
            )
            return dict(row)

        if q.startswith("DELETE FROM affiliates"):
            row = self._holder("national_id", args[0])
            if row is None:
                return None
            del self.affiliates[row['id']]
            return dict(row)

        if q.startswith("INSERT INTO audit_log"):
            action, national_id, full_name, member_number = args
            entry = {
                "id": self.next_log_id,
                "action": action,
                "national_id": national_id,
                "full_name": full_name,
                "member_number": member_number,
                "timestamp_utc": BASE_TIME + timedelta(minutes=self.next_log_id),
            }
            self.next_log_id += 1
            self.audit_log.append(entry)
            return dict(entry)

        if "FROM affiliates WHERE national_id = $1" in q:
            row = self._by("national_id", args[0])
            return dict(row) if row else None

        if "FROM affiliates WHERE member_number = $1" in q:
            row = self._by("member_number", args[0])
            return dict(row) if row else None

        return None

    async def fetch(self, query: str, *args):
        q = self._record(query)

        if "FROM affiliates WHERE full_name ILIKE" in q:
            terms = [_unescape_like(p).lower() for p in args[:-1]]
            limit = args[-1]
            rows = [
                r for r in self.affiliates.values()
                if all(t in r['full_name'].lower() for t in terms)
            ]
            rows.sort(key=lambda r: (r['full_name'], r['id']))
            return [dict(r) for r in rows[:limit]]

        if "FROM audit_log" in q:
            entries = list(self.audit_log)
            if "action = $1" in q:
                entries = [e for e in entries if e['action'] == args[0]]
            entries.sort(key=lambda e: (e['timestamp_utc'], e['id']), reverse=True)
            return [dict(e) for e in entries[:args[-1]]]

        return []

    async def fetchval(self, query: str, *args):
        q = self._record(query)

        if q == "SELECT 1":
            if not self.healthy:
                raise ConnectionRefusedError("database is down")
            return 1
        if "COUNT(*) FROM audit_log" in q:
            return len(self.audit_log)
        return None

    async def execute(self, query: str, *args):
        self._record(query)
        return "OK"

    async def health_check(self) -> bool:
        try:
            return await self.fetchval("SELECT 1") == 1
        except OSError:
            return False

    def transaction(self):
        return MockTransaction(self)


class MockTransaction:
    """Snapshot on enter, restore on error."""

    def __init__(self, db: MockDatabase):
        self.db = db
        self._snapshot = None

    async def __aenter__(self):
        self.db.transactions += 1
        self._snapshot = (
            copy.deepcopy(self.db.affiliates),
            copy.deepcopy(self.db.audit_log),
            self.db.next_affiliate_id,
            self.db.next_log_id,
        )
        return self.db

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.db.rollbacks += 1
            (self.db.affiliates, self.db.audit_log,
             self.db.next_affiliate_id, self.db.next_log_id) = self._snapshot
        return False


@pytest.fixture
def mock_db() -> MockDatabase:
    """Create a mock database for testing."""
    return MockDatabase()


@pytest.fixture(autouse=True)
def admin_pin(monkeypatch) -> str:
    """Configure a PIN; the shipped default is empty, which denies everyone."""
    monkeypatch.setattr(settings, "admin_pin", "4821")
    return settings.admin_pin


@pytest.fixture
def admin_headers(admin_pin: str) -> dict:
    return {settings.admin_header_name: settings.admin_pin}


@pytest.fixture
def client(mock_db: MockDatabase) -> Generator[TestClient, None, None]:
    """
    TestClient wired to the mock database.

    The lifespan (and with it the real connection pool) is not started.
    """
    app.dependency_overrides[get_db] = lambda: mock_db
    yield TestClient(app)
    app.dependency_overrides.clear()
