"""Shared fixtures for the ledger tests."""

import pytest

from splitledger.audit import AuditLogger
from splitledger.config import get_settings
from splitledger.ledger import BalanceLedger
from splitledger.models.ledger import Member
from splitledger.orchestrator import GroupLedgerService
from splitledger.services.storage import InMemoryAuditStorage


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Every test starts from default settings."""
    for name in (
        "SPLITLEDGER_DEFAULT_CURRENCY",
        "SPLITLEDGER_SETTLE_TOLERANCE",
        "SPLITLEDGER_SPLIT_TOLERANCE",
        "SPLITLEDGER_MAX_EXPENSE_AMOUNT",
        "SPLITLEDGER_MINOR_UNIT_OVERRIDES",
        "AUDIT_LOG_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def alice():
    return Member(id="A", display_name="Alice", user_id="user-a")


@pytest.fixture
def bob():
    return Member(id="B", display_name="Bob", user_id="user-b")


@pytest.fixture
def carol():
    return Member(id="C", display_name="Carol")


@pytest.fixture
def members(alice, bob, carol):
    return [alice, bob, carol]


@pytest.fixture
def ledger(members):
    return BalanceLedger(members)


@pytest.fixture
def storage():
    return InMemoryAuditStorage()


@pytest.fixture
def service(storage):
    """Group with Alice, Bob and Carol, auditing into memory."""
    svc = GroupLedgerService(
        group_id="trip",
        currency="USD",
        audit_logger=AuditLogger(storage),
    )
    svc.add_member("Alice", member_id="A", user_id="user-a")
    svc.add_member("Bob", member_id="B", user_id="user-b")
    svc.add_ghost_member("Carol", member_id="C")
    return svc