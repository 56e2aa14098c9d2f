"""API test fixtures: the real app over mocked services."""

from unittest.mock import MagicMock

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from core.services.assignment_service import AssignmentService
from core.services.calendar_service import CalendarService
from core.services.escalation_service import EscalationService
from core.services.job_control_service import JobControlService
from core.services.request_service import RequestService


# =============================================================================
# SERVICES DICT
# =============================================================================


@pytest.fixture
def services():
    return {
        "request": MagicMock(spec=RequestService),
        "job_control": MagicMock(spec=JobControlService),
        "assignment": MagicMock(spec=AssignmentService),
        "calendar": MagicMock(spec=CalendarService),
        "escalation": MagicMock(spec=EscalationService),
    }


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services):
    return create_app(services)


@pytest.fixture
def client(app, test_user_id, test_org_id):
    """Client carrying gateway identity headers."""
    c = TestClient(app, raise_server_exceptions=False)
    c.headers.update({
        "X-User-Id": str(test_user_id),
        "X-Organization-Id": str(test_org_id),
    })
    return c


@pytest.fixture
def anonymous_client(app):
    """Client without identity headers."""
    return TestClient(app, raise_server_exceptions=False)
