"""Tests for CalendarService."""

from datetime import date, datetime, time, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from core.audit import AuditAction, AuditLogger
from core.models import HolidayCreate, WorkingHours, WorkingHoursSet
from core.services.calendar_service import CalendarService


@pytest.fixture
def audit():
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def service(db, audit, config):
    return CalendarService(db, audit, config)


def hours_row(branch_id, day, open_at="09:00", close_at="18:00", is_closed=False) -> dict:
    return {
        "branch_id": branch_id,
        "day_of_week": day,
        "open_time": open_at,
        "close_time": close_at,
        "is_closed": is_closed,
    }


class TestBuildCalendar:

    def test_loads_hours_and_holidays(self, service, db):
        branch_id = uuid4()
        db.execute.side_effect = [
            [hours_row(branch_id, d) for d in range(1, 6)],
            [{"id": uuid4(), "date": date(2024, 1, 2), "name": "Closed", "branch_id": None,
              "is_recurring": False}],
        ]

        calendar = service.build_calendar(branch_id, datetime(2024, 1, 1, 3, tzinfo=timezone.utc))

        assert calendar.is_configured
        assert calendar.is_holiday(date(2024, 1, 2))
        holiday_params = db.execute.call_args_list[1][0][1]
        assert holiday_params[0] == branch_id
        assert holiday_params[1] == date(2023, 12, 31)

    def test_unconfigured_branch_logs_warning(self, service, db, caplog):
        db.execute.side_effect = [[], []]

        calendar = service.build_calendar(uuid4(), datetime(2024, 1, 1, tzinfo=timezone.utc))

        assert calendar.is_configured is False
        assert "no opening hours" in caplog.text

    def test_midnight_close_from_database(self, service, db):
        branch_id = uuid4()
        db.execute.return_value = [hours_row(branch_id, 5, "18:00", "24:00:00")]
        hours = service.get_working_hours(branch_id)
        assert hours[0].closes_at_midnight

    def test_overnight_row_treated_as_closed(self, service, db, caplog):
        branch_id = uuid4()
        db.execute.side_effect = [
            [hours_row(branch_id, 1, "22:00", "06:00"), hours_row(branch_id, 2)],
            [],
        ]

        calendar = service.build_calendar(branch_id, datetime(2024, 1, 1, 3, tzinfo=timezone.utc))

        assert calendar.is_configured
        assert calendar.open_window(date(2024, 1, 1)) is None
        assert calendar.open_window(date(2024, 1, 2)) is not None
        assert "treating the day as closed" in caplog.text


class TestAdmin:

    def test_set_working_hours_upserts_and_audits(self, as_test_user, service, db, tx, audit):
        branch_id = uuid4()
        db.execute.side_effect = [
            [hours_row(branch_id, 1)],
            [hours_row(branch_id, 1, "08:00", "17:00"), hours_row(branch_id, 2, is_closed=True)],
        ]
        data = WorkingHoursSet(branch_id=branch_id, days=[
            WorkingHours(day_of_week=1, open_time=time(8), close_time=time(17)),
            WorkingHours(day_of_week=2, open_time=time(9), close_time=time(18), is_closed=True),
        ])

        result = service.set_working_hours(data)

        assert len(result) == 2
        assert tx.execute.call_count == 2
        assert "ON CONFLICT (branch_id, day_of_week)" in tx.execute.call_args_list[0][0][0]
        changes = audit.log_change.call_args.kwargs["changes"]
        assert changes["1"]["old"]["open_time"] == "09:00:00"
        assert changes["2"]["old"] is None

    def test_duplicate_days_rejected(self):
        with pytest.raises(ValueError, match="unique"):
            WorkingHoursSet(branch_id=uuid4(), days=[
                WorkingHours(day_of_week=1, open_time=time(8), close_time=time(17)),
                WorkingHours(day_of_week=1, open_time=time(9), close_time=time(18)),
            ])

    def test_inverted_window_rejected(self):
        with pytest.raises(ValueError, match="must be after"):
            WorkingHoursSet(branch_id=uuid4(), days=[
                WorkingHours(day_of_week=1, open_time=time(22), close_time=time(6)),
            ])

    def test_add_holiday(self, as_test_user, service, db, audit, test_org_id):
        holiday_id = uuid4()
        db.execute_returning.return_value = [{
            "id": holiday_id, "date": date(2024, 4, 13), "name": "Songkran",
            "branch_id": None, "is_recurring": True,
        }]

        holiday = service.add_holiday(HolidayCreate(date=date(2024, 4, 13), name="Songkran", is_recurring=True))

        assert holiday.id == holiday_id
        assert holiday.covers(date(2025, 4, 13))
        assert db.execute_returning.call_args[0][1][1] == test_org_id
        assert audit.log_change.call_args.kwargs["action"] == AuditAction.CREATE
