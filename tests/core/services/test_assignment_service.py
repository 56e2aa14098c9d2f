"""Tests for AssignmentService: recommendation and race-safe assignment."""

from datetime import datetime, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from core.audit import AuditLogger
from core.events import RequestAssigned
from core.exceptions import RequestNotFoundError
from core.models import AssignmentStrategy
from core.services.assignment_service import AssignmentService
from core.services.request_service import RequestService
from core.services.roster_service import RosterService

NOW = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
AIRCON = "แอร์"


@pytest.fixture
def request_service():
    return MagicMock(spec=RequestService)


@pytest.fixture
def roster_service():
    return MagicMock(spec=RosterService)


@pytest.fixture
def audit():
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def service(db, audit, event_bus, request_service, roster_service, config):
    return AssignmentService(db, audit, event_bus, request_service, roster_service, config)


@pytest.fixture
def assigned(event_bus):
    received = []
    event_bus.subscribe(RequestAssigned, received.append)
    return received


def rule_row(**overrides) -> dict:
    row = {
        "id": uuid4(),
        "name": "rule",
        "conditions": {},
        "assignment_strategy": None,
        "target_technician_id": None,
        "priority": 0,
        "is_active": True,
    }
    row.update(overrides)
    return row


# =============================================================================
# RECOMMEND
# =============================================================================


class TestRecommend:

    def test_default_strategy_without_rules(
        self, service, db, request_service, roster_service, make_request, make_technician
    ):
        request = make_request(category=AIRCON)
        request_service.require.return_value = request
        expert = make_technician("Expert", {AIRCON: 5}, current_workload=2)
        idle = make_technician("Idle", {})
        roster_service.list_technicians.return_value = [idle, expert]

        result = service.recommend(request.id, now=NOW)

        assert result.strategy == AssignmentStrategy.SKILL_MATCH
        assert result.recommended_id == expert.profile_id
        roster_service.list_technicians.assert_called_once_with(request.branch_id, NOW.date())

    def test_explicit_strategy_skips_rules(
        self, service, db, request_service, roster_service, make_request, make_technician
    ):
        request_service.require.return_value = make_request()
        roster_service.list_technicians.return_value = [make_technician()]

        result = service.recommend(uuid4(), strategy=AssignmentStrategy.LEAST_LOADED, now=NOW)

        assert result.strategy == AssignmentStrategy.LEAST_LOADED
        db.execute.assert_not_called()

    def test_matching_rule_picks_strategy(
        self, service, db, request_service, roster_service, make_request, make_technician
    ):
        request_service.require.return_value = make_request(category=AIRCON)
        roster_service.list_technicians.return_value = [make_technician()]
        db.execute.return_value = [rule_row(
            conditions={"category": AIRCON}, assignment_strategy="round_robin"
        )]

        result = service.recommend(uuid4(), now=NOW)

        assert result.strategy == AssignmentStrategy.ROUND_ROBIN

    def test_manual_rule_pins_technician(
        self, service, db, request_service, roster_service, make_request, make_technician
    ):
        request_service.require.return_value = make_request(category=AIRCON)
        pinned = make_technician("Pinned", {})
        roster_service.list_technicians.return_value = [
            make_technician("Expert", {AIRCON: 5}), pinned
        ]
        db.execute.return_value = [rule_row(
            assignment_strategy="manual", target_technician_id=pinned.profile_id
        )]

        result = service.recommend(uuid4(), now=NOW)

        assert result.strategy == AssignmentStrategy.MANUAL
        assert [c.profile_id for c in result.candidates] == [pinned.profile_id]

    def test_pinned_technician_at_capacity_falls_back_to_ranking(
        self, service, db, request_service, roster_service, make_request, make_technician
    ):
        request_service.require.return_value = make_request(category=AIRCON)
        pinned = make_technician("Pinned", {}, current_workload=3, max_workload=3)
        other = make_technician("Other", {AIRCON: 2})
        roster_service.list_technicians.return_value = [pinned, other]
        db.execute.return_value = [rule_row(
            assignment_strategy="manual", target_technician_id=pinned.profile_id
        )]

        result = service.recommend(uuid4(), now=NOW)

        assert result.strategy == AssignmentStrategy.SKILL_MATCH
        assert result.recommended_id == other.profile_id

    def test_unknown_request(self, service, request_service):
        request_service.require.side_effect = RequestNotFoundError(uuid4())
        with pytest.raises(RequestNotFoundError):
            service.recommend(uuid4())


# =============================================================================
# ASSIGN
# =============================================================================


class TestAssign:

    def test_success(
        self, service, tx, audit, request_service, roster_service, make_request, make_technician,
        request_row, assigned
    ):
        current = make_request()
        tech = make_technician(current_workload=1)
        request_service.require.return_value = current
        roster_service.get_technician.return_value = tech
        tx.execute_single.side_effect = [
            request_row(id=current.id, status="assigned", assigned_user_id=tech.profile_id, assigned_at=NOW),
            {"id": tech.profile_id},
        ]

        outcome = service.assign(current.id, tech.profile_id, now=NOW)

        assert outcome.success is True
        assert outcome.profile_id == tech.profile_id
        claim_query, claim_params = tx.execute_single.call_args_list[0][0]
        assert "assigned_user_id IS NULL" in claim_query
        assert claim_params[:3] == (tech.profile_id, None, "assigned")
        workload_query = tx.execute_single.call_args_list[1][0][0]
        assert "current_workload = COALESCE(current_workload, 0) + 1" in workload_query
        audit.log_change.assert_called_once()
        assert len(assigned) == 1
        assert assigned[0].assignee_id == tech.profile_id
        assert assigned[0].request.assigned_user_id == tech.profile_id

    def test_already_assigned_request(
        self, service, db, request_service, make_request, assigned
    ):
        request_service.require.return_value = make_request(status="assigned", assigned_user_id=uuid4())

        outcome = service.assign(uuid4(), uuid4(), now=NOW)

        assert outcome.success is False
        assert outcome.code == "ALREADY_ASSIGNED"
        db.transaction.assert_not_called()
        assert assigned == []

    def test_lost_race_reports_already_assigned(
        self, service, tx, audit, request_service, roster_service, make_request, make_technician, assigned
    ):
        request_service.require.return_value = make_request()
        tech = make_technician()
        roster_service.get_technician.return_value = tech
        tx.execute_single.side_effect = [None]

        outcome = service.assign(uuid4(), tech.profile_id, now=NOW)

        assert outcome.success is False
        assert outcome.code == "ALREADY_ASSIGNED"
        audit.log_change.assert_not_called()
        assert assigned == []

    def test_capacity_reached_at_commit(
        self, service, tx, audit, request_service, roster_service, make_request, make_technician,
        request_row, assigned
    ):
        current = make_request()
        tech = make_technician(current_workload=9, max_workload=10)
        request_service.require.return_value = current
        roster_service.get_technician.return_value = tech
        tx.execute_single.side_effect = [
            request_row(id=current.id, status="assigned", assigned_user_id=tech.profile_id),
            None,
        ]

        outcome = service.assign(current.id, tech.profile_id, now=NOW)

        assert outcome.success is False
        assert outcome.code == "TECHNICIAN_NOT_ELIGIBLE"
        assert "no longer eligible" in outcome.error
        audit.log_change.assert_not_called()
        assert assigned == []

    def test_ineligible_snapshot(
        self, service, db, request_service, roster_service, make_request, make_technician
    ):
        request_service.require.return_value = make_request()
        tech = make_technician(current_workload=5, max_workload=5)
        roster_service.get_technician.return_value = tech

        outcome = service.assign(uuid4(), tech.profile_id, now=NOW)

        assert outcome.code == "TECHNICIAN_NOT_ELIGIBLE"
        assert "capacity" in outcome.error
        db.transaction.assert_not_called()

    def test_unknown_technician(self, service, request_service, roster_service, make_request):
        request_service.require.return_value = make_request()
        roster_service.get_technician.return_value = None

        outcome = service.assign(uuid4(), uuid4(), now=NOW)

        assert outcome.code == "TECHNICIAN_NOT_ELIGIBLE"
        assert "is not a technician" in outcome.error

    def test_unknown_request(self, service, request_service):
        request_service.require.side_effect = RequestNotFoundError(uuid4())

        outcome = service.assign(uuid4(), uuid4(), now=NOW)

        assert outcome.success is False
        assert outcome.code == "NOT_FOUND"

    def test_closed_request(self, service, request_service, make_request):
        request_service.require.return_value = make_request(status="cancelled")

        outcome = service.assign(uuid4(), uuid4(), now=NOW)

        assert outcome.code == "INVALID_STATUS_TRANSITION"


class TestAssignVendor:

    def test_success_skips_workload(
        self, service, tx, request_service, make_request, request_row, assigned
    ):
        current = make_request()
        vendor_id = uuid4()
        request_service.require.return_value = current
        tx.execute_single.return_value = request_row(
            id=current.id, status="assigned", assigned_vendor_id=vendor_id
        )

        outcome = service.assign_vendor(current.id, vendor_id, now=NOW)

        assert outcome.success is True
        assert tx.execute_single.call_count == 1
        claim_params = tx.execute_single.call_args[0][1]
        assert claim_params[:2] == (None, vendor_id)
        assert assigned[0].request.assigned_user_id is None

    def test_vendor_on_assigned_request(self, service, request_service, make_request):
        request_service.require.return_value = make_request(status="assigned", assigned_vendor_id=uuid4())

        outcome = service.assign_vendor(uuid4(), uuid4(), now=NOW)

        assert outcome.code == "ALREADY_ASSIGNED"
