"""
Branch opening hours and holidays.

Supplies the lookups the working-hours SLA needs and lets admins maintain
them. Holidays with branch_id NULL apply to every branch of the organization.
"""

import logging
from datetime import date, datetime, timedelta
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.audit import AuditAction, AuditLogger
from core.config import MaintenanceConfig
from core.models import Holiday, HolidayCreate, WorkingHours, WorkingHoursSet
from core.working_hours import BranchCalendar
from utils.actor_context import get_current_organization_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class CalendarService:
    """Service for branch calendars."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, config: MaintenanceConfig):
        self.postgres = postgres
        self.audit = audit
        self.config = config

    def get_working_hours(self, branch_id: UUID) -> list[WorkingHours]:
        """Weekly schedule of a branch, Sunday first. Empty if never configured."""
        rows = self.postgres.execute(
            """
            SELECT branch_id, day_of_week, open_time, close_time, is_closed
            FROM branch_working_hours
            WHERE branch_id = %s
            ORDER BY day_of_week
            """,
            (branch_id,)
        )
        hours = []
        for row in rows:
            schedule = WorkingHours.model_validate(row)
            if schedule.is_inverted:
                logger.warning(
                    f"Branch {branch_id} day {schedule.day_of_week} closes at {schedule.close_time} "
                    f"before opening at {schedule.open_time}; treating the day as closed"
                )
                schedule = schedule.model_copy(update={"is_closed": True})
            hours.append(schedule)
        return hours

    def get_holidays(self, branch_id: UUID | None, start: date, end: date) -> list[Holiday]:
        """
        Holidays for a branch (plus organization-wide ones) between start and end.

        Recurring holidays are returned regardless of their stored year.
        """
        rows = self.postgres.execute(
            """
            SELECT id, date, name, branch_id, is_recurring
            FROM holidays
            WHERE (branch_id = %s OR branch_id IS NULL)
              AND (is_recurring OR date BETWEEN %s AND %s)
            ORDER BY date
            """,
            (branch_id, start, end)
        )
        return [Holiday.model_validate(row) for row in rows]

    def build_calendar(self, branch_id: UUID, start: datetime) -> BranchCalendar:
        """BranchCalendar with holidays loaded for the configured horizon after `start`."""
        first_day = start.date() - timedelta(days=1)
        last_day = start.date() + timedelta(days=self.config.calendar_horizon_days + 1)

        calendar = BranchCalendar(
            self.get_working_hours(branch_id),
            self.get_holidays(branch_id, first_day, last_day),
            tz_name=self.config.branch_timezone,
            horizon_days=self.config.calendar_horizon_days,
        )
        if not calendar.is_configured:
            logger.warning(f"Branch {branch_id} has no opening hours configured")
        return calendar

    def set_working_hours(self, data: WorkingHoursSet) -> list[WorkingHours]:
        """Replace the listed weekdays of a branch's schedule."""
        before = {wh.day_of_week: wh for wh in self.get_working_hours(data.branch_id)}

        with self.postgres.transaction() as tx:
            for day in data.days:
                tx.execute(
                    """
                    INSERT INTO branch_working_hours
                        (id, branch_id, day_of_week, open_time, close_time, is_closed, created_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (branch_id, day_of_week) DO UPDATE SET
                        open_time = EXCLUDED.open_time,
                        close_time = EXCLUDED.close_time,
                        is_closed = EXCLUDED.is_closed
                    """,
                    (
                        uuid4(), data.branch_id, day.day_of_week,
                        day.open_time, day.close_time, day.is_closed, now_utc()
                    )
                )

            changes = {}
            for day in data.days:
                old = before.get(day.day_of_week)
                changes[str(day.day_of_week)] = {
                    "old": old.model_dump(mode="json", exclude={"branch_id"}) if old else None,
                    "new": day.model_dump(mode="json", exclude={"branch_id"}),
                }
            self.audit.log_change(
                entity_type="branch_working_hours",
                entity_id=data.branch_id,
                action=AuditAction.UPDATE,
                changes=changes,
                tx=tx,
            )

        return self.get_working_hours(data.branch_id)

    def add_holiday(self, data: HolidayCreate) -> Holiday:
        row = self.postgres.execute_returning(
            """
            INSERT INTO holidays (id, organization_id, branch_id, date, name, is_recurring, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING id, date, name, branch_id, is_recurring
            """,
            (
                uuid4(), get_current_organization_id(), data.branch_id,
                data.date, data.name, data.is_recurring, now_utc()
            )
        )[0]

        holiday = Holiday.model_validate(row)

        self.audit.log_change(
            entity_type="holiday",
            entity_id=holiday.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json")},
        )

        return holiday
