"""Unit tests for queue ordering and wait estimates."""

from datetime import UTC, datetime, timedelta

from src.dentacare.models.enums import BookingType, QueuePriority
from src.dentacare.models.queue import QueueEntry
from src.dentacare.services.queue_service import (
    average_wait_minutes,
    estimate_queue_waits,
    estimate_walk_in_wait,
    order_entries,
    priority_for_booking,
)


def _entry(entry_id: int, position: int, priority: QueuePriority, manual_order: int | None = None, override=None):
    return QueueEntry(
        id=entry_id,
        clinic_id=1,
        appointment_id=entry_id,
        position=position,
        priority=priority.value,
        status="waiting",
        manual_order=manual_order,
        treatment_duration_override=override,
    )


def test_priority_for_booking():
    assert priority_for_booking(BookingType.EMERGENCY.value) is QueuePriority.EMERGENCY
    assert priority_for_booking(BookingType.WALK_IN.value) is QueuePriority.WALK_IN
    assert priority_for_booking(BookingType.ONLINE.value) is QueuePriority.SCHEDULED
    assert priority_for_booking(BookingType.VIRTUAL.value) is QueuePriority.SCHEDULED


def test_priority_bands_come_first():
    entries = [
        _entry(1, 1, QueuePriority.WALK_IN),
        _entry(2, 2, QueuePriority.SCHEDULED),
        _entry(3, 3, QueuePriority.EMERGENCY),
    ]
    assert [e.id for e in order_entries(entries)] == [3, 2, 1]


def test_manual_order_beats_position_within_band():
    entries = [
        _entry(1, 1, QueuePriority.SCHEDULED),
        _entry(2, 2, QueuePriority.SCHEDULED, manual_order=1),
        _entry(3, 3, QueuePriority.SCHEDULED),
    ]
    assert [e.id for e in order_entries(entries)] == [2, 1, 3]


def test_manual_order_does_not_cross_priority_bands():
    entries = [
        _entry(1, 1, QueuePriority.EMERGENCY),
        _entry(2, 2, QueuePriority.WALK_IN, manual_order=1),
    ]
    assert [e.id for e in order_entries(entries)] == [1, 2]


def test_estimate_queue_waits_uses_overrides():
    entries = [
        _entry(1, 1, QueuePriority.SCHEDULED, override=60),
        _entry(2, 2, QueuePriority.SCHEDULED),
        _entry(3, 3, QueuePriority.SCHEDULED),
    ]
    assert estimate_queue_waits(entries, 30) == [0, 60, 90]


def test_estimate_queue_waits_empty():
    assert estimate_queue_waits([], 30) == []


def test_walk_in_estimates_by_urgency():
    assert estimate_walk_in_wait(3, "normal", 20) == 60
    assert estimate_walk_in_wait(3, "urgent", 20) == 18
    assert estimate_walk_in_wait(0, "urgent", 20) == 5
    assert estimate_walk_in_wait(10, "emergency", 20) == 0


def test_average_wait_ignores_uncalled_entries():
    start = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
    called = _entry(1, 1, QueuePriority.SCHEDULED)
    called.created_at = start
    called.called_at = start + timedelta(minutes=10)
    also_called = _entry(2, 2, QueuePriority.SCHEDULED)
    also_called.created_at = start
    also_called.called_at = start + timedelta(minutes=21)
    waiting = _entry(3, 3, QueuePriority.SCHEDULED)
    waiting.created_at = start

    assert average_wait_minutes([called, also_called, waiting]) == 15.5
    assert average_wait_minutes([waiting]) == 0.0
