"""
Inventory Service.

Stock movements for clinic consumables:
- Restock and manual adjustment, each recorded in the ledger
- All-or-nothing deduction of supplies used during an appointment
- Low-stock / out-of-stock alerts and expiry listing
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    BadRequestError,
    InsufficientStockError,
    InvalidStatusTransitionError,
    ResourceNotFoundError,
)
from ..core.rbac import ensure_clinic_access
from ..models.appointment import Appointment
from ..models.base import utc_now
from ..models.enums import AppointmentStatus, InventoryAlertType, InventoryTransactionType
from ..models.inventory import InventoryAlert, InventoryItem, InventoryTransaction
from ..models.user import User
from ..repositories.audit_repository import AuditRepository
from ..repositories.inventory_repository import InventoryRepository
from .appointment_service import AppointmentService

logger = logging.getLogger(__name__)


def _merge_quantities(usages: Iterable[tuple[int, int]]) -> dict[int, int]:
    merged: dict[int, int] = {}
    for item_id, quantity in usages:
        if quantity <= 0:
            raise BadRequestError(
                message="Quantities must be positive",
                error_code="INVALID_QUANTITY",
                details={"item_id": item_id, "quantity": quantity},
            )
        merged[item_id] = merged.get(item_id, 0) + quantity
    return merged


class InventoryService:
    """Inventory stock operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = InventoryRepository(session)
        self.audit = AuditRepository(session)
        self.appointment_service = AppointmentService(session)

    async def get_item(self, user: User, item_id: int) -> InventoryItem:
        item = await self.repo.get_item(item_id)
        if item is None:
            raise ResourceNotFoundError("inventory_item", item_id)
        await ensure_clinic_access(user, item.clinic_id, self.session)
        return item

    async def create_item(self, clinic_id: int, name: str, user: User, **fields) -> InventoryItem:
        """Create an item; an opening balance is recorded as a stock-in."""
        category_id = fields.get("category_id")
        if category_id is not None:
            category = await self.repo.get_category(category_id)
            if category is None or category.clinic_id != clinic_id:
                raise ResourceNotFoundError("inventory_category", category_id)

        item = await self.repo.create_item(clinic_id, name, **fields)
        if item.current_stock > 0:
            await self.repo.add_transaction(
                clinic_id=clinic_id,
                item_id=item.id,
                transaction_type=InventoryTransactionType.IN.value,
                quantity=item.current_stock,
                unit_cost=item.unit_cost,
                total_cost=round(item.unit_cost * item.current_stock, 2),
                created_by=user.id,
                notes="Opening balance",
            )
        await self.sync_stock_alerts(item)
        return item

    # =========================================================================
    # Movements
    # =========================================================================

    async def restock(
        self,
        item: InventoryItem,
        quantity: int,
        user: User,
        unit_cost: float | None = None,
        notes: str | None = None,
    ) -> InventoryTransaction:
        if quantity <= 0:
            raise BadRequestError(message="Restock quantity must be positive", error_code="INVALID_QUANTITY")
        await self.repo.change_stock(item, quantity)
        if unit_cost is not None:
            item = await self.repo.update_item(item, unit_cost=unit_cost)
        cost = item.unit_cost
        transaction = await self.repo.add_transaction(
            clinic_id=item.clinic_id,
            item_id=item.id,
            transaction_type=InventoryTransactionType.IN.value,
            quantity=quantity,
            unit_cost=cost,
            total_cost=round(cost * quantity, 2),
            created_by=user.id,
            notes=notes,
        )
        await self.sync_stock_alerts(item)
        logger.info(f"Restocked item {item.id} by {quantity}; stock={item.current_stock}")
        return transaction

    async def adjust(self, item: InventoryItem, new_stock: int, user: User, notes: str | None = None) -> InventoryTransaction:
        """Set stock to a counted value, recording the delta."""
        if new_stock < 0:
            raise BadRequestError(message="Stock cannot be negative", error_code="INVALID_QUANTITY")
        delta = new_stock - item.current_stock
        if delta == 0:
            raise BadRequestError(message="Stock is already at this level", error_code="NO_STOCK_CHANGE")
        if not await self.repo.change_stock(item, delta):
            raise InsufficientStockError(
                [{"item_id": item.id, "name": item.name, "requested": -delta, "available": item.current_stock}]
            )
        transaction = await self.repo.add_transaction(
            clinic_id=item.clinic_id,
            item_id=item.id,
            transaction_type=InventoryTransactionType.ADJUSTMENT.value,
            quantity=delta,
            unit_cost=item.unit_cost,
            total_cost=round(item.unit_cost * abs(delta), 2),
            created_by=user.id,
            notes=notes,
        )
        await self.sync_stock_alerts(item)
        return transaction

    async def deduct_for_appointment(
        self,
        appointment: Appointment,
        usages: Sequence[tuple[int, int]],
        user: User,
        notes: str | None = None,
    ) -> list[InventoryTransaction]:
        """
        Book out supplies used in an appointment and complete it.

        Everything is validated before anything is written; a stock row that
        changed underneath us aborts the whole unit of work.

        Raises:
            InvalidStatusTransitionError: Appointment not checked_in/in_progress
            ResourceNotFoundError: Unknown item
            BadRequestError: Item of another clinic or inactive
            InsufficientStockError: Lists every item that cannot cover its quantity
        """
        if appointment.status not in (AppointmentStatus.CHECKED_IN.value, AppointmentStatus.IN_PROGRESS.value):
            raise InvalidStatusTransitionError("appointment", appointment.status, AppointmentStatus.COMPLETED.value)
        if not usages:
            raise BadRequestError(message="At least one item is required", error_code="NO_ITEMS")

        quantities = _merge_quantities(usages)
        items = {item.id: item for item in await self.repo.get_items(list(quantities), for_update=True)}

        missing = [item_id for item_id in quantities if item_id not in items]
        if missing:
            raise ResourceNotFoundError("inventory_item", missing[0])
        for item in items.values():
            if item.clinic_id != appointment.clinic_id or not item.is_active:
                raise BadRequestError(
                    message=f"Item '{item.name}' is not available in this clinic",
                    error_code="ITEM_UNAVAILABLE",
                    details={"item_id": item.id},
                )

        shortages = [
            {"item_id": item_id, "name": items[item_id].name, "requested": qty, "available": items[item_id].current_stock}
            for item_id, qty in quantities.items()
            if items[item_id].current_stock < qty
        ]
        if shortages:
            raise InsufficientStockError(shortages)

        transactions = []
        for item_id, qty in quantities.items():
            item = items[item_id]
            if not await self.repo.change_stock(item, -qty):
                await self.session.rollback()
                raise InsufficientStockError(
                    [{"item_id": item_id, "name": item.name, "requested": qty, "available": None}]
                )
            transactions.append(
                await self.repo.add_transaction(
                    clinic_id=item.clinic_id,
                    item_id=item.id,
                    transaction_type=InventoryTransactionType.USAGE.value,
                    quantity=-qty,
                    unit_cost=item.unit_cost,
                    total_cost=round(item.unit_cost * qty, 2),
                    reference_id=str(appointment.id),
                    created_by=user.id,
                    notes=notes,
                )
            )

        await self.appointment_service.complete_with_supplies(appointment)
        await self.audit.record(
            action_type="inventory_deducted",
            action_description=f"Supplies booked out for appointment {appointment.id}",
            clinic_id=appointment.clinic_id,
            user_id=user.id,
            patient_id=appointment.patient_id,
            entity_type="appointment",
            entity_id=appointment.id,
            new_values={"items": [{"item_id": i, "quantity": q} for i, q in quantities.items()]},
        )
        for item in items.values():
            await self.sync_stock_alerts(item)

        logger.info(f"Deducted {len(transactions)} item(s) for appointment {appointment.id}")
        return transactions

    # =========================================================================
    # Alerts
    # =========================================================================

    async def sync_stock_alerts(self, item: InventoryItem) -> InventoryAlert | None:
        """Open a low/out-of-stock alert when the threshold is crossed; resolve it when restocked."""
        alert_type = None
        if item.current_stock <= 0:
            alert_type = InventoryAlertType.OUT_OF_STOCK
        elif item.current_stock <= item.minimum_stock:
            alert_type = InventoryAlertType.LOW_STOCK

        for kind in (InventoryAlertType.LOW_STOCK, InventoryAlertType.OUT_OF_STOCK):
            if kind is alert_type:
                continue
            stale = await self.repo.get_open_alert(item.id, kind.value)
            if stale is not None:
                await self.repo.resolve_alert(stale)

        if alert_type is None or await self.repo.get_open_alert(item.id, alert_type.value):
            return None

        message = (
            f"{item.name} is out of stock"
            if alert_type is InventoryAlertType.OUT_OF_STOCK
            else f"{item.name} is low on stock ({item.current_stock} left, minimum {item.minimum_stock})"
        )
        return await self.repo.create_alert(item.clinic_id, item.id, alert_type.value, message)

    async def expiring_items(self, clinic_ids: Sequence[int] | None, days: int = 30) -> Sequence[InventoryItem]:
        before = (utc_now() + timedelta(days=days)).date()
        return await self.repo.list_expiring(clinic_ids, before)

    async def raise_expiry_alerts(self, clinic_ids: Sequence[int] | None, days: int = 30) -> list[InventoryAlert]:
        created = []
        for item in await self.expiring_items(clinic_ids, days):
            if await self.repo.get_open_alert(item.id, InventoryAlertType.EXPIRING.value):
                continue
            created.append(
                await self.repo.create_alert(
                    item.clinic_id,
                    item.id,
                    InventoryAlertType.EXPIRING.value,
                    f"{item.name} expires on {item.expiry_date.isoformat()}",
                )
            )
        return created
