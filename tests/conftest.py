"""Shared test fixtures for the maintenance test suite."""

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock
from uuid import UUID, uuid4
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from clients.postgres_client import PostgresClient, Transaction
from core.config import MaintenanceConfig
from core.event_bus import EventBus
from core.models import MaintenanceRequest, TechnicianSeed, TechnicianSkill
from utils.actor_context import actor_context, clear_current_actor


# =============================================================================
# TEST ACTOR CONSTANTS
# =============================================================================

TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
TEST_ORG_ID = UUID("00000000-0000-0000-0000-0000000000a1")
TEST_BRANCH_ID = UUID("00000000-0000-0000-0000-0000000000b1")
OTHER_BRANCH_ID = UUID("00000000-0000-0000-0000-0000000000b2")

T0 = datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# ACTOR CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_actor_context():
    """Ensure clean actor context before and after each test."""
    clear_current_actor()
    yield
    clear_current_actor()


@pytest.fixture
def test_user_id() -> UUID:
    return TEST_USER_ID


@pytest.fixture
def test_org_id() -> UUID:
    return TEST_ORG_ID


@pytest.fixture
def as_test_user(test_user_id, test_org_id):
    """Act as the primary test user inside the test organization."""
    with actor_context(test_user_id, test_org_id):
        yield test_user_id


# =============================================================================
# PERSISTENCE FIXTURES
# =============================================================================


@pytest.fixture
def tx():
    """Transaction handle yielded by db.transaction()."""
    return MagicMock(spec=Transaction)


@pytest.fixture
def db(tx):
    """PostgresClient double. Script execute/execute_single per test."""
    client = MagicMock(spec=PostgresClient)
    client.transaction.return_value.__enter__.return_value = tx
    client.transaction.return_value.__exit__.return_value = False
    client.execute.return_value = []
    client.execute_single.return_value = None
    return client


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def config():
    return MaintenanceConfig()


# =============================================================================
# DOMAIN FACTORIES
# =============================================================================


@pytest.fixture
def request_row():
    """Factory for maintenance_requests rows as the database returns them."""

    def make(**overrides) -> dict:
        row = {
            "id": uuid4(),
            "organization_id": TEST_ORG_ID,
            "branch_id": TEST_BRANCH_ID,
            "created_by": TEST_USER_ID,
            "title": "Espresso machine leaking",
            "description": None,
            "category": "espresso",
            "equipment_id": None,
            "priority": "medium",
            "status": "pending",
            "sla_hours": 24,
            "sla_mode": "calendar",
            "due_at": datetime(2024, 1, 2, 0, 0, tzinfo=timezone.utc),
            "is_paused": False,
            "sla_paused_at": None,
            "sla_paused_seconds": 0,
            "pause_count": 0,
            "sla_status": "on_track",
            "assigned_user_id": None,
            "assigned_vendor_id": None,
            "assigned_at": None,
            "completed_at": None,
            "created_at": T0,
            "updated_at": T0,
        }
        row.update(overrides)
        return row

    return make


@pytest.fixture
def make_request(request_row):
    def make(**overrides) -> MaintenanceRequest:
        return MaintenanceRequest.model_validate(request_row(**overrides))

    return make


@pytest.fixture
def make_technician():
    """Factory for roster entries; `skills` maps category to level."""

    def make(name: str = "Somchai", skills: dict | None = None, **overrides) -> TechnicianSeed:
        profile_id = overrides.pop("profile_id", uuid4())
        return TechnicianSeed(
            profile_id=profile_id,
            name=name,
            skills=[
                TechnicianSkill(profile_id=profile_id, category=category, skill_level=level)
                for category, level in (skills or {}).items()
            ],
            **overrides,
        )

    return make
