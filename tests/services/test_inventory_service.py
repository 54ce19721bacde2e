"""Tests for stock movements, supply deduction and alerts."""

from datetime import UTC, datetime, timedelta

import pytest

from src.dentacare.core.exceptions import (
    BadRequestError,
    InsufficientStockError,
    InvalidStatusTransitionError,
    ResourceNotFoundError,
)
from src.dentacare.models.base import utc_now
from src.dentacare.models.enums import AppointmentStatus
from src.dentacare.services.appointment_service import AppointmentService
from src.dentacare.services.inventory_service import InventoryService

SLOT = datetime(2030, 5, 6, 11, 0, tzinfo=UTC)


async def _checked_in(db_session, clinic, patient):
    service = AppointmentService(db_session)
    appointment = await service.book(clinic.id, patient.id, SLOT)
    return await service.transition(appointment, AppointmentStatus.CHECKED_IN.value)


@pytest.mark.asyncio
async def test_opening_balance_is_recorded(db_session, clinic, clinic_admin):
    service = InventoryService(db_session)
    item = await service.create_item(clinic.id, "Nitrile gloves", clinic_admin, current_stock=200, unit_cost=0.25)

    transactions, total = await service.repo.list_transactions(item_id=item.id)
    assert total == 1
    assert transactions[0].transaction_type == "in"
    assert transactions[0].total_cost == 50.0


@pytest.mark.asyncio
async def test_empty_item_raises_out_of_stock_alert(db_session, clinic, clinic_admin):
    service = InventoryService(db_session)
    item = await service.create_item(clinic.id, "Composite resin", clinic_admin)

    alerts = await service.repo.list_alerts(clinic_ids=[clinic.id])
    assert [(a.item_id, a.alert_type) for a in alerts] == [(item.id, "out_of_stock")]


@pytest.mark.asyncio
async def test_category_must_belong_to_clinic(db_session, clinic, other_clinic, clinic_admin):
    service = InventoryService(db_session)
    foreign = await service.repo.create_category(other_clinic.id, "Disposables")
    with pytest.raises(ResourceNotFoundError):
        await service.create_item(clinic.id, "Masks", clinic_admin, category_id=foreign.id)


@pytest.mark.asyncio
async def test_restock_resolves_alerts(db_session, clinic, clinic_admin):
    service = InventoryService(db_session)
    item = await service.create_item(clinic.id, "Anaesthetic cartridges", clinic_admin, minimum_stock=10)

    await service.restock(item, 5, clinic_admin)
    open_types = [a.alert_type for a in await service.repo.list_alerts(clinic_ids=[clinic.id])]
    assert open_types == ["low_stock"]

    transaction = await service.restock(item, 20, clinic_admin, unit_cost=1.5, notes="Monthly order")
    assert item.current_stock == 25
    assert item.unit_cost == 1.5
    assert transaction.total_cost == 30.0
    assert await service.repo.list_alerts(clinic_ids=[clinic.id]) == []


@pytest.mark.asyncio
async def test_restock_rejects_non_positive_quantity(db_session, clinic, clinic_admin):
    service = InventoryService(db_session)
    item = await service.create_item(clinic.id, "Cotton rolls", clinic_admin, current_stock=10)
    with pytest.raises(BadRequestError):
        await service.restock(item, 0, clinic_admin)


@pytest.mark.asyncio
async def test_adjust_records_delta(db_session, clinic, clinic_admin):
    service = InventoryService(db_session)
    item = await service.create_item(clinic.id, "Suction tips", clinic_admin, current_stock=40, unit_cost=0.1)

    transaction = await service.adjust(item, 35, clinic_admin, notes="Stock take")
    assert transaction.transaction_type == "adjustment"
    assert transaction.quantity == -5
    assert item.current_stock == 35

    with pytest.raises(BadRequestError):
        await service.adjust(item, 35, clinic_admin)
    with pytest.raises(BadRequestError):
        await service.adjust(item, -1, clinic_admin)


@pytest.mark.asyncio
async def test_deduct_completes_appointment(db_session, clinic, patient, dentist):
    service = InventoryService(db_session)
    gloves = await service.create_item(clinic.id, "Nitrile gloves", dentist, current_stock=10, minimum_stock=2)
    bibs = await service.create_item(clinic.id, "Patient bibs", dentist, current_stock=5)
    appointment = await _checked_in(db_session, clinic, patient)

    transactions = await service.deduct_for_appointment(
        appointment, [(gloves.id, 2), (bibs.id, 1), (gloves.id, 1)], dentist
    )

    assert {t.item_id: t.quantity for t in transactions} == {gloves.id: -3, bibs.id: -1}
    assert all(t.reference_id == str(appointment.id) for t in transactions)
    assert gloves.current_stock == 7
    assert bibs.current_stock == 4
    assert appointment.status == AppointmentStatus.COMPLETED.value
    assert appointment.actual_end_time is not None


@pytest.mark.asyncio
async def test_deduct_is_all_or_nothing(db_session, clinic, patient, dentist):
    service = InventoryService(db_session)
    gloves = await service.create_item(clinic.id, "Nitrile gloves", dentist, current_stock=10)
    resin = await service.create_item(clinic.id, "Composite resin", dentist, current_stock=1)
    appointment = await _checked_in(db_session, clinic, patient)

    with pytest.raises(InsufficientStockError) as exc_info:
        await service.deduct_for_appointment(appointment, [(gloves.id, 2), (resin.id, 3)], dentist)

    shortages = exc_info.value.details["shortages"]
    assert shortages == [{"item_id": resin.id, "name": "Composite resin", "requested": 3, "available": 1}]
    assert gloves.current_stock == 10
    assert appointment.status == AppointmentStatus.CHECKED_IN.value


@pytest.mark.asyncio
async def test_deduct_requires_active_visit(db_session, clinic, patient, dentist):
    service = InventoryService(db_session)
    gloves = await service.create_item(clinic.id, "Nitrile gloves", dentist, current_stock=10)
    appointment = await AppointmentService(db_session).book(clinic.id, patient.id, SLOT)

    with pytest.raises(InvalidStatusTransitionError):
        await service.deduct_for_appointment(appointment, [(gloves.id, 1)], dentist)


@pytest.mark.asyncio
async def test_deduct_rejects_other_clinic_items(db_session, clinic, other_clinic, patient, dentist):
    service = InventoryService(db_session)
    foreign = await service.create_item(other_clinic.id, "Nitrile gloves", dentist, current_stock=10)
    appointment = await _checked_in(db_session, clinic, patient)

    with pytest.raises(BadRequestError) as exc_info:
        await service.deduct_for_appointment(appointment, [(foreign.id, 1)], dentist)
    assert exc_info.value.error_code == "ITEM_UNAVAILABLE"

    with pytest.raises(ResourceNotFoundError):
        await service.deduct_for_appointment(appointment, [(9999, 1)], dentist)
    with pytest.raises(BadRequestError):
        await service.deduct_for_appointment(appointment, [(foreign.id, 0)], dentist)


@pytest.mark.asyncio
async def test_deduct_to_zero_raises_out_of_stock(db_session, clinic, patient, dentist):
    service = InventoryService(db_session)
    item = await service.create_item(clinic.id, "Fluoride varnish", dentist, current_stock=1, minimum_stock=1)
    assert [a.alert_type for a in await service.repo.list_alerts(clinic_ids=[clinic.id])] == ["low_stock"]

    appointment = await _checked_in(db_session, clinic, patient)
    await service.deduct_for_appointment(appointment, [(item.id, 1)], dentist)

    assert [a.alert_type for a in await service.repo.list_alerts(clinic_ids=[clinic.id])] == ["out_of_stock"]
    resolved = await service.repo.list_alerts(clinic_ids=[clinic.id], include_resolved=True)
    assert len(resolved) == 2


@pytest.mark.asyncio
async def test_expiry_alerts_raised_once(db_session, clinic, clinic_admin):
    service = InventoryService(db_session)
    soon = await service.create_item(
        clinic.id, "Impression material", clinic_admin, current_stock=5,
        expiry_date=(utc_now() + timedelta(days=10)).date(),
    )
    await service.create_item(
        clinic.id, "Bonding agent", clinic_admin, current_stock=5,
        expiry_date=(utc_now() + timedelta(days=90)).date(),
    )

    assert [i.id for i in await service.expiring_items([clinic.id])] == [soon.id]
    created = await service.raise_expiry_alerts([clinic.id])
    assert [a.item_id for a in created] == [soon.id]
    assert await service.raise_expiry_alerts([clinic.id]) == []
