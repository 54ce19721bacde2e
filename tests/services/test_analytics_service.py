"""Tests for dashboard aggregates."""

from datetime import UTC, date, datetime, timedelta

import pytest

from src.dentacare.services.analytics_service import AnalyticsService
from src.dentacare.services.appointment_service import AppointmentService
from src.dentacare.services.blob_storage_service import get_blob_storage_service
from src.dentacare.services.payment_service import PaymentService
from src.dentacare.services.queue_service import QueueService

DAY = date(2030, 5, 8)
NOON = datetime(2030, 5, 8, 12, 0, tzinfo=UTC)


async def _paid(db_session, clinic, patient, staff, amount, appointment_id=None, verified_at=NOON):
    payments = PaymentService(db_session, get_blob_storage_service())
    invoice = await payments.create_invoice(clinic.id, patient.id, amount, appointment_id=appointment_id)
    proof = await payments.submit_proof(invoice, patient.id, amount, "cash", "receipt.png", b"png-bytes")
    proof = await payments.verify_proof(proof, "approve", staff)
    proof.verified_at = verified_at
    await db_session.flush()
    return invoice


@pytest.mark.asyncio
async def test_dashboard_counts_today(db_session, clinic, patient, staff):
    booking = AppointmentService(db_session)
    queue = QueueService(db_session)
    first = await booking.book(clinic.id, patient.id, NOON)
    await booking.book(clinic.id, patient.id, NOON + timedelta(hours=1))
    await booking.book(clinic.id, patient.id, NOON + timedelta(days=1))

    entry = await queue.check_in(first, now=NOON)
    entry = await queue.call(entry)
    entry.called_at = NOON + timedelta(minutes=10)
    await queue.complete(entry)
    await _paid(db_session, clinic, patient, staff, 75.0)

    dashboard = await AnalyticsService(db_session).dashboard(clinic.id, day=DAY)

    assert dashboard["today_appointments"] == 2
    assert dashboard["completed_today"] == 1
    assert dashboard["checked_in"] == 0
    assert dashboard["queue_waiting"] == 0
    assert dashboard["revenue_today"] == 75.0
    assert dashboard["avg_wait_minutes"] == 10.0


@pytest.mark.asyncio
async def test_revenue_trend_is_zero_filled(db_session, clinic, patient, staff):
    await _paid(db_session, clinic, patient, staff, 50.0)
    await _paid(db_session, clinic, patient, staff, 20.0, verified_at=NOON - timedelta(days=2))

    trend = await AnalyticsService(db_session).revenue_trend(clinic.id, days=3, today=DAY)

    assert trend == [
        {"date": "2030-05-06", "revenue": 20.0},
        {"date": "2030-05-07", "revenue": 0.0},
        {"date": "2030-05-08", "revenue": 50.0},
    ]


@pytest.mark.asyncio
async def test_dentist_workload_covers_week(db_session, clinic, patient, dentist, staff):
    booking = AppointmentService(db_session)
    today = await booking.book(clinic.id, patient.id, NOON, dentist_id=dentist.id)
    await booking.book(clinic.id, patient.id, NOON - timedelta(days=1), dentist_id=dentist.id)
    await booking.book(clinic.id, patient.id, NOON + timedelta(days=7), dentist_id=dentist.id)
    await _paid(db_session, clinic, patient, staff, 90.0, appointment_id=today.id)

    workload = await AnalyticsService(db_session).dentist_workload(clinic.id, day=DAY)

    assert workload == [
        {
            "dentist_id": dentist.id,
            "dentist_name": "Dr. Rao",
            "today_count": 1,
            "week_count": 2,
            "completed_today": 0,
            "revenue": 90.0,
        }
    ]


@pytest.mark.asyncio
async def test_queue_heatmap_buckets_by_weekday_and_hour(db_session, clinic, patient):
    appointment = await AppointmentService(db_session).book(clinic.id, patient.id, NOON)
    await QueueService(db_session).check_in(appointment, now=NOON)

    heatmap = await AnalyticsService(db_session).queue_heatmap(clinic.id, days=7, today=DAY)

    assert heatmap["total_entries"] == 1
    assert heatmap["cells"][DAY.weekday()][12] == 1
    assert len(heatmap["cells"]) == 7
    assert all(len(row) == 24 for row in heatmap["cells"])


@pytest.mark.asyncio
async def test_multi_clinic_overview_lists_head_and_branches(db_session, clinic, branch, other_clinic, patient, staff):
    await AppointmentService(db_session).book(clinic.id, patient.id, NOON)
    await _paid(db_session, clinic, patient, staff, 40.0)

    overview = await AnalyticsService(db_session).multi_clinic_overview(clinic.id, today=DAY)

    rows = {row["clinic_id"]: row for row in overview}
    assert set(rows) == {clinic.id, branch.id}
    assert rows[clinic.id]["appointments_today"] == 1
    assert rows[clinic.id]["revenue_30d"] == 40.0
    assert rows[clinic.id]["patient_count"] == 1
    assert rows[branch.id]["is_branch"] is True
    assert rows[branch.id]["patient_count"] == 0


@pytest.mark.asyncio
async def test_branch_overview_covers_only_the_branch(db_session, clinic, branch, patient, staff):
    await AppointmentService(db_session).book(clinic.id, patient.id, NOON)

    overview = await AnalyticsService(db_session).multi_clinic_overview(branch.id, today=DAY)

    assert [row["clinic_id"] for row in overview] == [branch.id]
    assert overview[0]["appointments_today"] == 0
