"""
Inventory Repository.

Data access layer for inventory items, categories, stock ledger and alerts.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utc_now
from ..models.inventory import (
    InventoryAlert,
    InventoryCategory,
    InventoryItem,
    InventoryTransaction,
)

logger = logging.getLogger(__name__)


class InventoryRepository:
    """Repository for inventory entities."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ==========================================================================
    # Items
    # ==========================================================================

    async def get_item(self, item_id: int) -> InventoryItem | None:
        result = await self.session.execute(select(InventoryItem).where(InventoryItem.id == item_id))
        return result.scalar_one_or_none()

    async def get_items(self, item_ids: Sequence[int], for_update: bool = False) -> Sequence[InventoryItem]:
        """Fetch several items; row-locked when for_update (ignored by SQLite)."""
        query = select(InventoryItem).where(InventoryItem.id.in_(item_ids)).order_by(InventoryItem.id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_items(
        self,
        clinic_ids: Sequence[int] | None = None,
        category_id: int | None = None,
        low_stock_only: bool = False,
        active_only: bool = True,
        search: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[InventoryItem], int]:
        filters = []
        if clinic_ids is not None:
            filters.append(InventoryItem.clinic_id.in_(clinic_ids))
        if category_id is not None:
            filters.append(InventoryItem.category_id == category_id)
        if low_stock_only:
            filters.append(InventoryItem.current_stock <= InventoryItem.minimum_stock)
        if active_only:
            filters.append(InventoryItem.is_active.is_(True))
        if search:
            filters.append(func.lower(InventoryItem.name).like(f"%{search.strip().lower()}%"))

        total = (await self.session.execute(select(func.count(InventoryItem.id)).where(*filters))).scalar_one()
        result = await self.session.execute(
            select(InventoryItem).where(*filters).order_by(InventoryItem.name, InventoryItem.id).offset(skip).limit(limit)
        )
        return result.scalars().all(), total

    async def list_expiring(self, clinic_ids: Sequence[int] | None, before: date) -> Sequence[InventoryItem]:
        query = select(InventoryItem).where(
            InventoryItem.is_active.is_(True),
            InventoryItem.expiry_date.is_not(None),
            InventoryItem.expiry_date <= before,
        )
        if clinic_ids is not None:
            query = query.where(InventoryItem.clinic_id.in_(clinic_ids))
        result = await self.session.execute(query.order_by(InventoryItem.expiry_date))
        return result.scalars().all()

    async def create_item(self, clinic_id: int, name: str, **fields: object) -> InventoryItem:
        item = InventoryItem(clinic_id=clinic_id, name=name, **fields)
        self.session.add(item)
        await self.session.flush()
        await self.session.refresh(item)
        logger.info(f"Inventory item created: id={item.id}, name='{item.name}', stock={item.current_stock}")
        return item

    async def update_item(self, item: InventoryItem, **fields: object) -> InventoryItem:
        for key, value in fields.items():
            if value is not None and hasattr(item, key):
                setattr(item, key, value)
        await self.session.flush()
        await self.session.refresh(item)
        return item

    async def change_stock(self, item: InventoryItem, delta: int) -> bool:
        """Apply a stock delta; a negative delta only succeeds if stock covers it.

        Returns False (no change) when the guarded decrement matched no row.
        """
        stmt = update(InventoryItem).where(InventoryItem.id == item.id)
        if delta < 0:
            stmt = stmt.where(InventoryItem.current_stock >= -delta)
        result = await self.session.execute(
            stmt.values(current_stock=InventoryItem.current_stock + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self.session.refresh(item)
        return True

    # ==========================================================================
    # Categories
    # ==========================================================================

    async def get_category(self, category_id: int) -> InventoryCategory | None:
        result = await self.session.execute(select(InventoryCategory).where(InventoryCategory.id == category_id))
        return result.scalar_one_or_none()

    async def list_categories(self, clinic_ids: Sequence[int] | None = None) -> Sequence[InventoryCategory]:
        query = select(InventoryCategory)
        if clinic_ids is not None:
            query = query.where(InventoryCategory.clinic_id.in_(clinic_ids))
        result = await self.session.execute(query.order_by(InventoryCategory.name))
        return result.scalars().all()

    async def create_category(self, clinic_id: int, name: str, description: str | None = None) -> InventoryCategory:
        category = InventoryCategory(clinic_id=clinic_id, name=name, description=description)
        self.session.add(category)
        await self.session.flush()
        await self.session.refresh(category)
        return category

    async def update_category(self, category: InventoryCategory, **fields: object) -> InventoryCategory:
        for key, value in fields.items():
            if value is not None and hasattr(category, key):
                setattr(category, key, value)
        await self.session.flush()
        await self.session.refresh(category)
        return category

    # ==========================================================================
    # Ledger
    # ==========================================================================

    async def add_transaction(self, **fields: object) -> InventoryTransaction:
        transaction = InventoryTransaction(**fields)
        self.session.add(transaction)
        await self.session.flush()
        await self.session.refresh(transaction)
        return transaction

    async def list_transactions(
        self,
        clinic_ids: Sequence[int] | None = None,
        item_id: int | None = None,
        reference_id: str | None = None,
        transaction_type: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[InventoryTransaction], int]:
        filters = []
        if clinic_ids is not None:
            filters.append(InventoryTransaction.clinic_id.in_(clinic_ids))
        if item_id is not None:
            filters.append(InventoryTransaction.item_id == item_id)
        if reference_id is not None:
            filters.append(InventoryTransaction.reference_id == reference_id)
        if transaction_type:
            filters.append(InventoryTransaction.transaction_type == transaction_type)

        total = (
            await self.session.execute(select(func.count(InventoryTransaction.id)).where(*filters))
        ).scalar_one()
        result = await self.session.execute(
            select(InventoryTransaction).where(*filters).order_by(InventoryTransaction.id.desc()).offset(skip).limit(limit)
        )
        return result.scalars().all(), total

    # ==========================================================================
    # Alerts
    # ==========================================================================

    async def get_alert(self, alert_id: int) -> InventoryAlert | None:
        result = await self.session.execute(select(InventoryAlert).where(InventoryAlert.id == alert_id))
        return result.scalar_one_or_none()

    async def get_open_alert(self, item_id: int, alert_type: str) -> InventoryAlert | None:
        result = await self.session.execute(
            select(InventoryAlert).where(
                InventoryAlert.item_id == item_id,
                InventoryAlert.alert_type == alert_type,
                InventoryAlert.is_resolved.is_(False),
            )
        )
        return result.scalars().first()

    async def list_alerts(
        self,
        clinic_ids: Sequence[int] | None = None,
        include_resolved: bool = False,
    ) -> Sequence[InventoryAlert]:
        query = select(InventoryAlert)
        if clinic_ids is not None:
            query = query.where(InventoryAlert.clinic_id.in_(clinic_ids))
        if not include_resolved:
            query = query.where(InventoryAlert.is_resolved.is_(False))
        result = await self.session.execute(query.order_by(InventoryAlert.id.desc()))
        return result.scalars().all()

    async def create_alert(self, clinic_id: int, item_id: int, alert_type: str, message: str) -> InventoryAlert:
        alert = InventoryAlert(clinic_id=clinic_id, item_id=item_id, alert_type=alert_type, message=message)
        self.session.add(alert)
        await self.session.flush()
        await self.session.refresh(alert)
        logger.info(f"Inventory alert raised: item_id={item_id}, type={alert_type}")
        return alert

    async def resolve_alert(self, alert: InventoryAlert) -> InventoryAlert:
        alert.is_resolved = True
        alert.resolved_at = utc_now()
        await self.session.flush()
        await self.session.refresh(alert)
        return alert
