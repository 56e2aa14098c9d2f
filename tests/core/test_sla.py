"""Tests for the SLA engine. Pure functions, no DB needed."""

import logging
from datetime import datetime, time, timedelta, timezone

import pytest

from core import sla
from core.exceptions import InvalidTransitionError
from core.models import RequestStatus, SLAMode, SLAStatus, WorkingHours
from core.working_hours import BranchCalendar

UTC = timezone.utc
CREATED = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
DUE = datetime(2024, 1, 2, 9, 0, tzinfo=UTC)


def hours(n: float) -> timedelta:
    return timedelta(hours=n)


def always_open() -> BranchCalendar:
    return BranchCalendar(
        [WorkingHours(day_of_week=d, open_time=time(0, 0), close_time=time(0, 0)) for d in range(7)],
        tz_name="Asia/Bangkok",
    )


# =============================================================================
# DUE TIME
# =============================================================================


class TestComputeDueAt:

    def test_calendar_mode_adds_wall_time(self):
        assert sla.compute_due_at(CREATED, 24, SLAMode.CALENDAR) == DUE

    def test_fractional_hours(self):
        assert sla.compute_due_at(CREATED, 1.5, SLAMode.CALENDAR) == CREATED + timedelta(minutes=90)

    @pytest.mark.parametrize("sla_hours", [0.5, 4, 24, 100])
    def test_working_hours_equals_calendar_for_always_open_branch(self, sla_hours):
        calendar_due = sla.compute_due_at(CREATED, sla_hours, SLAMode.CALENDAR)
        working_due = sla.compute_due_at(CREATED, sla_hours, SLAMode.WORKING_HOURS, always_open())
        assert working_due == calendar_due

    def test_unconfigured_branch_falls_back_to_calendar(self, caplog):
        empty = BranchCalendar([], tz_name="Asia/Bangkok")

        with caplog.at_level(logging.WARNING, logger="core.sla"):
            due = sla.compute_due_at(CREATED, 24, SLAMode.WORKING_HOURS, empty)

        assert due == DUE
        assert "no opening hours" in caplog.text

    def test_missing_calendar_falls_back_to_calendar(self):
        assert sla.compute_due_at(CREATED, 24, SLAMode.WORKING_HOURS, None) == DUE

    def test_exhausted_calendar_falls_back_to_calendar(self, caplog):
        # One hour a week cannot hold 5 hours inside a one-week horizon.
        sparse = BranchCalendar(
            [WorkingHours(day_of_week=1, open_time=time(9, 0), close_time=time(10, 0))],
            tz_name="Asia/Bangkok",
            horizon_days=7,
        )

        with caplog.at_level(logging.WARNING, logger="core.sla"):
            due = sla.compute_due_at(CREATED, 5, SLAMode.WORKING_HOURS, sparse)

        assert due == CREATED + hours(5)
        assert "calendar time instead" in caplog.text


# =============================================================================
# CLASSIFICATION
# =============================================================================


class TestClassifyFraction:

    @pytest.mark.parametrize("fraction,expected", [
        (0.0, SLAStatus.ON_TRACK),
        (0.749999, SLAStatus.ON_TRACK),
        (0.75, SLAStatus.WARNING),
        (0.899999, SLAStatus.WARNING),
        (0.90, SLAStatus.CRITICAL),
        (0.999999, SLAStatus.CRITICAL),
        (1.0, SLAStatus.BREACHED),
        (3.5, SLAStatus.BREACHED),
    ])
    def test_cut_overs_are_exact(self, fraction, expected):
        assert sla.classify_fraction(fraction) == expected


class TestClassify:

    def test_exact_thresholds_through_elapsed_time(self):
        created = datetime(2024, 1, 1, tzinfo=UTC)
        due = created + hours(100)

        def at(h):
            return sla.classify(created, due, RequestStatus.IN_PROGRESS, created + hours(h))

        assert at(74) == SLAStatus.ON_TRACK
        assert at(75) == SLAStatus.WARNING
        assert at(90) == SLAStatus.CRITICAL
        assert at(100) == SLAStatus.BREACHED

    @pytest.mark.parametrize("status", [RequestStatus.COMPLETED, RequestStatus.CANCELLED])
    def test_closed_requests_are_completed(self, status):
        assert sla.classify(CREATED, DUE, status, DUE + hours(100)) == SLAStatus.COMPLETED

    def test_missing_due_at_is_no_sla(self):
        assert sla.classify(CREATED, None, RequestStatus.PENDING, DUE) == SLAStatus.NO_SLA

    def test_missing_created_at_is_no_sla(self):
        assert sla.classify(None, DUE, RequestStatus.PENDING, DUE) == SLAStatus.NO_SLA

    def test_zero_budget_is_breached(self):
        assert sla.classify(CREATED, CREATED, RequestStatus.PENDING, CREATED) == SLAStatus.BREACHED

    def test_now_before_creation_clamps_to_zero(self):
        assert sla.elapsed_fraction(CREATED, DUE, CREATED - hours(5)) == 0.0

    def test_classification_is_idempotent(self):
        now = CREATED + hours(20)
        first = sla.classify(CREATED, DUE, RequestStatus.ASSIGNED, now)
        second = sla.classify(CREATED, DUE, RequestStatus.ASSIGNED, now)
        assert first == second == SLAStatus.WARNING

    def test_open_pause_freezes_fraction(self):
        paused_at = CREATED + hours(10)
        before = sla.elapsed_fraction(CREATED, DUE, paused_at)
        during = sla.elapsed_fraction(CREATED, DUE, paused_at + hours(30), paused_at=paused_at)
        assert during == before


# =============================================================================
# END-TO-END SCENARIOS
# =============================================================================


class TestScenarios:

    def test_calendar_request_on_track_then_critical(self, make_request):
        request = make_request(created_at=CREATED, due_at=DUE, status="assigned")

        assert request.due_at == sla.compute_due_at(CREATED, 24, SLAMode.CALENDAR)

        at_17h = sla.evaluate(request, datetime(2024, 1, 2, 2, 0, tzinfo=UTC))
        assert at_17h.status == SLAStatus.ON_TRACK
        assert at_17h.elapsed_fraction == pytest.approx(17 / 24)

        at_23h = sla.evaluate(request, datetime(2024, 1, 2, 8, 0, tzinfo=UTC))
        assert at_23h.status == SLAStatus.CRITICAL
        assert at_23h.elapsed_fraction == pytest.approx(23 / 24)

    def test_three_hour_pause_extends_due_and_keeps_status(self):
        clock = sla.SLAClock(created_at=CREATED, due_at=DUE)
        paused_at = CREATED + hours(10)
        resumed_at = paused_at + hours(3)

        status_before = clock.status(RequestStatus.IN_PROGRESS, paused_at)
        resumed = clock.pause(paused_at).resume(resumed_at)

        assert resumed.due_at == datetime(2024, 1, 2, 12, 0, tzinfo=UTC)
        assert resumed.paused_total == hours(3)
        assert resumed.status(RequestStatus.IN_PROGRESS, resumed_at) == status_before == SLAStatus.ON_TRACK
        assert resumed.elapsed_fraction(resumed_at) == pytest.approx(10 / 24)


# =============================================================================
# PAUSE / RESUME CLOCK
# =============================================================================


class TestSLAClock:

    def test_pause_while_paused_raises(self):
        clock = sla.SLAClock(created_at=CREATED, due_at=DUE).pause(CREATED + hours(1))
        with pytest.raises(InvalidTransitionError):
            clock.pause(CREATED + hours(2))

    def test_resume_without_pause_raises(self):
        with pytest.raises(InvalidTransitionError):
            sla.SLAClock(created_at=CREATED, due_at=DUE).resume(CREATED + hours(1))

    def test_due_at_is_monotonic_over_cycles(self):
        clock = sla.SLAClock(created_at=CREATED, due_at=DUE)
        now = CREATED
        previous_due = clock.due_at

        for gap, pause_length in [(1, 2), (0.5, 0), (3, 7.25), (0, 1)]:
            now += hours(gap)
            clock = clock.pause(now)
            now += hours(pause_length)
            clock = clock.resume(now)
            assert clock.due_at >= previous_due
            previous_due = clock.due_at

        assert clock.due_at == DUE + hours(2 + 0 + 7.25 + 1)
        assert clock.paused_total == hours(10.25)

    def test_resume_before_pause_start_adds_nothing(self):
        paused_at = CREATED + hours(5)
        clock = sla.SLAClock(created_at=CREATED, due_at=DUE).pause(paused_at)
        resumed = clock.resume(paused_at - timedelta(minutes=1))
        assert resumed.due_at == DUE
        assert resumed.paused_total == timedelta(0)

    def test_from_request_reads_open_pause(self, make_request):
        paused_at = CREATED + hours(4)
        request = make_request(
            created_at=CREATED, due_at=DUE, status="in_progress",
            is_paused=True, sla_paused_at=paused_at, sla_paused_seconds=3600,
        )
        clock = sla.SLAClock.from_request(request)
        assert clock.is_paused
        assert clock.paused_at == paused_at
        assert clock.paused_total == hours(1)


# =============================================================================
# SLA INFO, PROGRESS, ESCALATION
# =============================================================================


class TestEvaluate:

    def test_overdue_request(self, make_request):
        request = make_request(created_at=CREATED, due_at=DUE, status="in_progress")
        info = sla.evaluate(request, DUE + timedelta(minutes=45))

        assert info.status == SLAStatus.BREACHED
        assert info.is_overdue is True
        assert info.formatted_time_remaining == "เกิน 45 นาที"
        assert info.label == "เกิน SLA"

    def test_completed_request(self, make_request):
        request = make_request(created_at=CREATED, due_at=DUE, status="completed")
        info = sla.evaluate(request, DUE + hours(5))

        assert info.status == SLAStatus.COMPLETED
        assert info.is_overdue is False
        assert info.formatted_time_remaining == "-"

    def test_paused_request_countdown_is_frozen(self, make_request):
        paused_at = CREATED + hours(20)
        request = make_request(
            created_at=CREATED, due_at=DUE, status="in_progress",
            is_paused=True, sla_paused_at=paused_at,
        )
        info = sla.evaluate(request, paused_at + hours(10))
        assert info.time_remaining == hours(4)
        assert info.status == SLAStatus.WARNING


class TestFormatTimeRemaining:

    @pytest.mark.parametrize("remaining,expected", [
        (timedelta(hours=50, minutes=5), "2 วัน 2 ชม."),
        (timedelta(hours=3, minutes=15), "3 ชม. 15 นาที"),
        (timedelta(minutes=42), "42 นาที"),
        (timedelta(hours=-2, minutes=-30), "เกิน 2 ชม. 30 นาที"),
    ])
    def test_thai_formatting(self, remaining, expected):
        assert sla.format_time_remaining(remaining) == expected


class TestWorkingHoursProgress:

    def test_half_way_through_working_time(self):
        calendar = BranchCalendar(
            [WorkingHours(day_of_week=d, open_time=time(9, 0), close_time=time(18, 0)) for d in range(1, 6)],
            tz_name="Asia/Bangkok",
        )
        # Monday 2024-01-01 09:00 Bangkok
        created = datetime(2024, 1, 1, 2, 0, tzinfo=UTC)
        due = calendar.add_working_time(created, hours(18))

        progress = sla.working_hours_progress(calendar, created, due, created + hours(9))

        assert progress.total == hours(18)
        assert progress.elapsed == hours(9)
        assert progress.remaining == hours(9)
        assert progress.percentage == pytest.approx(50.0)


class TestShouldEscalate:

    @pytest.mark.parametrize("previous,new,expected", [
        (None, SLAStatus.WARNING, True),
        (SLAStatus.ON_TRACK, SLAStatus.WARNING, True),
        (SLAStatus.WARNING, SLAStatus.CRITICAL, True),
        (SLAStatus.WARNING, SLAStatus.BREACHED, True),
        (SLAStatus.WARNING, SLAStatus.WARNING, False),
        (SLAStatus.CRITICAL, SLAStatus.WARNING, False),
        (SLAStatus.WARNING, SLAStatus.ON_TRACK, False),
        (None, SLAStatus.COMPLETED, False),
        (SLAStatus.NO_SLA, SLAStatus.CRITICAL, True),
    ])
    def test_escalates_only_into_worse_status(self, previous, new, expected):
        assert sla.should_escalate(previous, new) is expected
