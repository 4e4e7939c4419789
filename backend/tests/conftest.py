"""
Shared fixtures: an in-memory SQLite registration cache and fake
collaborators for the ledger.
"""
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

import pytest
from sqlalchemy.pool import StaticPool

from remixhub.database import Database
from remixhub.models.registry import LedgerRegistration
from remixhub.services.external.ledger import LedgerClient
from remixhub.services.registry import AnchorWriter, RegistrationCache

# Real CIDv0 identifiers (valid base58 shape)
ORIGINAL_CID = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
REMIX_CID = "QmT78zSuBmuS4z925WZfrqQ1qHaJ56DQaTfyMUF7F8ff5o"
SECOND_REMIX_CID = "QmXoypizjW3WknFiJnKLwHCnL72vedxjQkDDP1mXWo6uco"


class FakeClock:
    """Naive UTC datetimes advancing one minute per call (SQLite drops tzinfo)."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2025, 1, 1, 12, 0, 0)
        self.calls = 0

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(minutes=1)
        self.calls += 1
        return value


class FakeLedger(LedgerClient):
    """Records registrations and hands out sequential identifiers."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.fail_with = fail_with
        self.originals: List[Tuple[str, str, Optional[str]]] = []
        self.derivatives: List[Tuple[str, str, str]] = []

    def _next(self) -> LedgerRegistration:
        n = len(self.originals) + len(self.derivatives)
        return LedgerRegistration(ip_id=f"0x{n:040x}", tx_hash=f"0x{n:064x}")

    def register_ip(self, metadata_cid, cid_hash, title=None):
        if self.fail_with:
            raise self.fail_with
        self.originals.append((metadata_cid, cid_hash, title))
        return self._next()

    def register_derivative(self, parent_ip_id, child_cid, cid_hash):
        if self.fail_with:
            raise self.fail_with
        self.derivatives.append((parent_ip_id, child_cid, cid_hash))
        return self._next()


@pytest.fixture
def database():
    """In-memory SQLite shared across sessions through a static pool."""
    db = Database("sqlite://", poolclass=StaticPool)
    db.connect()
    db.init_schema()
    yield db
    db.dispose()


@pytest.fixture
def file_database(tmp_path):
    """File-backed SQLite, one connection per session (for cross-session reads)."""
    db = Database(f"sqlite:///{tmp_path / 'registry.db'}")
    db.connect()
    db.init_schema()
    yield db
    db.dispose()


@pytest.fixture
def db_session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(db_session, clock):
    return RegistrationCache(db_session, clock=clock)


@pytest.fixture
def writer(cache, clock):
    return AnchorWriter(cache, clock=clock)


@pytest.fixture
def ledger():
    return FakeLedger()
