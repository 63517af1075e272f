"""
Pruebas de la reconciliación de muestras (funciones puras, sin base de datos).
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.services.progress_reconciler import (
    ProgressSample,
    ReconcileAction,
    WatchStatus,
    calculate_status,
    clamp_percent,
    reconcile,
    status_label,
)

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


def sample(percent, session_id="12", **kwargs):
    return ProgressSample(
        video_id=kwargs.pop("video_id", "video-1"),
        session_id=session_id,
        session_name=kwargs.pop("session_name", "Inducción"),
        percent=percent,
        current_duration=kwargs.pop("current_duration", "00:04:30"),
        full_duration=kwargs.pop("full_duration", "00:10:00"),
        **kwargs,
    )


def stored(percent, status, enrolment_date=None):
    return SimpleNamespace(id=1, percent=percent, status=int(status), enrolment_date=enrolment_date)


def apply(existing, result):
    """Simula la escritura condicional sobre un registro en memoria."""
    if existing is None:
        return stored(result.percent, result.status, result.enrolment_date)
    if result.applied:
        return stored(result.percent, result.status, existing.enrolment_date or result.enrolment_date)
    return existing


class TestClampPercent:
    @pytest.mark.parametrize("value, expected", [
        (-5, 0), (0, 0), (45.9, 45), (99.99, 99), (100, 100), (250, 100),
        (float("nan"), 0), (float("inf"), 100), (float("-inf"), 0), ("abc", 0), (None, 0),
    ])
    def test_clamp(self, value, expected):
        assert clamp_percent(value) == expected


class TestCalculateStatus:
    def test_zero_is_not_started(self):
        assert calculate_status(0, None, NOW) is WatchStatus.NOT_STARTED

    @pytest.mark.parametrize("percent", [1, 50, 99])
    def test_partial_is_in_progress(self, percent):
        assert calculate_status(percent, None, NOW) is WatchStatus.IN_PROGRESS

    def test_full_without_enrolment_is_completed(self):
        assert calculate_status(100, None, NOW) is WatchStatus.COMPLETED

    def test_full_with_recent_enrolment_is_completed(self):
        assert calculate_status(100, NOW - timedelta(days=1), NOW) is WatchStatus.COMPLETED

    def test_overdue_takes_precedence_over_completed(self):
        assert calculate_status(100, NOW - timedelta(days=3), NOW) is WatchStatus.OVERDUE

    def test_overdue_even_when_not_started(self):
        assert calculate_status(0, NOW - timedelta(days=3), NOW) is WatchStatus.OVERDUE

    def test_exactly_two_days_is_not_overdue(self):
        assert calculate_status(50, NOW - timedelta(days=2), NOW) is WatchStatus.IN_PROGRESS

    def test_naive_enrolment_is_treated_as_utc(self):
        naive = (NOW - timedelta(days=3)).replace(tzinfo=None)
        assert calculate_status(10, naive, NOW) is WatchStatus.OVERDUE


class TestStatusLabel:
    def test_known_values(self):
        assert status_label(0) == "Not Started"
        assert status_label(1) == "In Progress"
        assert status_label(2) == "Completed"
        assert status_label(3) == "Overdue"

    def test_unknown_value(self):
        assert status_label(9) == "Unknown"


class TestReconcile:
    def test_scenario_a_first_sample_inserts_in_progress(self):
        enrolment = NOW - timedelta(days=1)
        result = reconcile(None, sample(45), NOW, lambda session_id: enrolment)

        assert result.action is ReconcileAction.INSERT
        assert result.status is WatchStatus.IN_PROGRESS
        assert result.percent == 45
        assert result.values["enrolment_date"] == enrolment
        assert result.values["assessment_taken"] is False
        assert result.values["video_id"] == "video-1"
        assert result.values["session_id"] == "12"
        assert result.values["last_watched"] == NOW

    def test_scenario_b_completion_after_window_is_overdue(self):
        existing = stored(90, WatchStatus.IN_PROGRESS)
        enrolment = NOW - timedelta(days=3)
        result = reconcile(existing, sample(100), NOW, lambda session_id: enrolment)

        assert result.action is ReconcileAction.UPDATE
        assert result.percent == 100
        assert result.status is WatchStatus.OVERDUE

    def test_scenario_c_regression_is_stale(self):
        existing = stored(50, WatchStatus.IN_PROGRESS)
        result = reconcile(existing, sample(30), NOW)

        assert result.action is ReconcileAction.STALE
        assert not result.applied
        assert result.values == {}

    def test_non_regression_keeps_stored_values(self):
        existing = stored(60, WatchStatus.IN_PROGRESS)
        after = apply(existing, reconcile(existing, sample(40), NOW))
        assert (after.percent, after.status) == (60, int(WatchStatus.IN_PROGRESS))

    def test_regression_is_written_when_status_changes(self):
        # La inscripción venció: el estatus cambia aunque el porcentaje baje
        existing = stored(60, WatchStatus.IN_PROGRESS, NOW - timedelta(days=5))
        result = reconcile(existing, sample(40), NOW)

        assert result.action is ReconcileAction.UPDATE
        assert result.status is WatchStatus.OVERDUE

    def test_same_sample_twice_is_idempotent(self):
        first = apply(None, reconcile(None, sample(45), NOW))
        second = apply(first, reconcile(first, sample(45), NOW))
        assert (second.percent, second.status) == (first.percent, first.status)

    def test_in_order_delivery_keeps_maximum(self):
        record = None
        for percent in (10, 25, 25, 60, 80):
            record = apply(record, reconcile(record, sample(percent), NOW))
        assert record.percent == 80

    def test_out_of_order_delivery_never_regresses(self):
        record = None
        for percent in (10, 60, 30, 45, 20):
            record = apply(record, reconcile(record, sample(percent), NOW))
        assert record.percent == 60

    def test_stored_enrolment_date_is_reused(self):
        enrolment = NOW - timedelta(hours=5)
        existing = stored(20, WatchStatus.IN_PROGRESS, enrolment)
        calls = []

        def resolver(session_id):
            calls.append(session_id)
            return NOW - timedelta(days=10)

        result = reconcile(existing, sample(30), NOW, resolver)

        assert calls == []
        assert result.enrolment_date == enrolment
        assert result.status is WatchStatus.IN_PROGRESS

    def test_resolver_failure_degrades_to_no_enrolment(self):
        def resolver(session_id):
            raise RuntimeError("content service down")

        result = reconcile(None, sample(100), NOW, resolver)

        assert result.enrolment_date is None
        assert result.status is WatchStatus.COMPLETED

    def test_percent_is_clamped_before_status(self):
        result = reconcile(None, sample(140), NOW)
        assert result.percent == 100
        assert result.status is WatchStatus.COMPLETED

    def test_missing_durations_default(self):
        result = reconcile(None, sample(5, current_duration="", full_duration=""), NOW)
        assert result.values["current_duration"] == "00:00:00"
        assert result.values["full_duration"] == "00:00:00"

    def test_key_fields_are_trimmed(self):
        padded = sample(10, session_id=" 12 ", video_id="\tvideo-1", session_name="Inducción  ")
        assert (padded.video_id, padded.session_id, padded.session_name) == ("video-1", "12", "Inducción")

    def test_assessment_flag_not_touched_on_update(self):
        existing = stored(10, WatchStatus.IN_PROGRESS)
        result = reconcile(existing, sample(20), NOW)
        assert "assessment_taken" not in result.values
