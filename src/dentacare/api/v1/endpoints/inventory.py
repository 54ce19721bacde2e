"""
Inventory API Endpoints.

Consumables catalogue, stock movements, supply deduction at the end of
an appointment, and stock/expiry alerts.
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from ....core.exceptions import ResourceNotFoundError
from ....core.rbac import ClinicAdminUser, StaffUser, ensure_clinic_access, resolve_clinic_id, visible_clinic_ids
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.enums import InventoryTransactionType
from ....schemas.inventory import (
    AdjustRequest,
    AlertResponse,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    DeductRequest,
    ItemCreate,
    ItemResponse,
    ItemUpdate,
    RestockRequest,
    TransactionResponse,
)
from ....services.appointment_service import AppointmentService
from ....services.inventory_service import InventoryService

router = APIRouter(prefix="/inventory", tags=["Inventory"])


# =============================================================================
# Categories
# =============================================================================

@router.get("/categories", response_model=GenericResponse[list[CategoryResponse]], summary="List categories")
async def list_categories(user: StaffUser, db: DbSession) -> GenericResponse[list[CategoryResponse]]:
    categories = await InventoryService(db).repo.list_categories(await visible_clinic_ids(user, db))
    return GenericResponse(message="Categories retrieved", data=[CategoryResponse.model_validate(c) for c in categories])


@router.post("/categories", response_model=GenericResponse[CategoryResponse], status_code=201, summary="Create category")
async def create_category(payload: CategoryCreate, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[CategoryResponse]:
    clinic_id = resolve_clinic_id(admin, payload.clinic_id)
    await ensure_clinic_access(admin, clinic_id, db)
    category = await InventoryService(db).repo.create_category(clinic_id, payload.name, payload.description)
    await db.commit()
    return GenericResponse(message="Category created", data=CategoryResponse.model_validate(category))


@router.patch("/categories/{category_id}", response_model=GenericResponse[CategoryResponse], summary="Update category")
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    admin: ClinicAdminUser,
    db: DbSession,
) -> GenericResponse[CategoryResponse]:
    repo = InventoryService(db).repo
    category = await repo.get_category(category_id)
    if category is None:
        raise ResourceNotFoundError("inventory_category", category_id)
    await ensure_clinic_access(admin, category.clinic_id, db)
    category = await repo.update_category(category, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return GenericResponse(message="Category updated", data=CategoryResponse.model_validate(category))


# =============================================================================
# Items
# =============================================================================

@router.get("/items", response_model=PaginatedResponse[ItemResponse], summary="List items")
async def list_items(
    user: StaffUser,
    db: DbSession,
    clinic_id: int | None = Query(None),
    category_id: int | None = Query(None),
    low_stock: bool = Query(False, description="Only items at or below their minimum"),
    include_inactive: bool = Query(False),
    q: str | None = Query(None, description="Name contains"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
) -> PaginatedResponse[ItemResponse]:
    clinic_ids = await visible_clinic_ids(user, db)
    if clinic_id is not None:
        await ensure_clinic_access(user, clinic_id, db)
        clinic_ids = [clinic_id]
    items, total = await InventoryService(db).repo.list_items(
        clinic_ids=clinic_ids,
        category_id=category_id,
        low_stock_only=low_stock,
        active_only=not include_inactive,
        search=q,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedResponse(
        message="Inventory retrieved",
        data=[ItemResponse.model_validate(i) for i in items],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.post("/items", response_model=GenericResponse[ItemResponse], status_code=201, summary="Create item")
async def create_item(payload: ItemCreate, admin: ClinicAdminUser, db: DbSession) -> GenericResponse[ItemResponse]:
    clinic_id = resolve_clinic_id(admin, payload.clinic_id)
    await ensure_clinic_access(admin, clinic_id, db)
    item = await InventoryService(db).create_item(
        clinic_id, payload.name, admin, **payload.model_dump(exclude={"clinic_id", "name"})
    )
    await db.commit()
    return GenericResponse(message="Item created", data=ItemResponse.model_validate(item))


@router.get("/items/expiring", response_model=GenericResponse[list[ItemResponse]], summary="Items expiring soon")
async def expiring_items(
    user: StaffUser,
    db: DbSession,
    days: int = Query(30, ge=1, le=365),
) -> GenericResponse[list[ItemResponse]]:
    items = await InventoryService(db).expiring_items(await visible_clinic_ids(user, db), days)
    return GenericResponse(message="Expiring items retrieved", data=[ItemResponse.model_validate(i) for i in items])


@router.get("/items/{item_id}", response_model=GenericResponse[ItemResponse], summary="Get item")
async def get_item(item_id: int, user: StaffUser, db: DbSession) -> GenericResponse[ItemResponse]:
    item = await InventoryService(db).get_item(user, item_id)
    return GenericResponse(message="Item retrieved", data=ItemResponse.model_validate(item))


@router.patch("/items/{item_id}", response_model=GenericResponse[ItemResponse], summary="Update item")
async def update_item(
    item_id: int,
    payload: ItemUpdate,
    admin: ClinicAdminUser,
    db: DbSession,
) -> GenericResponse[ItemResponse]:
    service = InventoryService(db)
    item = await service.get_item(admin, item_id)
    item = await service.repo.update_item(item, **payload.model_dump(exclude_unset=True))
    await service.sync_stock_alerts(item)
    await db.commit()
    return GenericResponse(message="Item updated", data=ItemResponse.model_validate(item))


@router.post("/items/{item_id}/restock", response_model=GenericResponse[TransactionResponse], summary="Receive stock")
async def restock_item(
    item_id: int,
    payload: RestockRequest,
    user: StaffUser,
    db: DbSession,
) -> GenericResponse[TransactionResponse]:
    service = InventoryService(db)
    item = await service.get_item(user, item_id)
    transaction = await service.restock(item, payload.quantity, user, unit_cost=payload.unit_cost, notes=payload.notes)
    await db.commit()
    return GenericResponse(message="Stock received", data=TransactionResponse.model_validate(transaction))


@router.post("/items/{item_id}/adjust", response_model=GenericResponse[TransactionResponse], summary="Correct stock count")
async def adjust_item(
    item_id: int,
    payload: AdjustRequest,
    admin: ClinicAdminUser,
    db: DbSession,
) -> GenericResponse[TransactionResponse]:
    service = InventoryService(db)
    item = await service.get_item(admin, item_id)
    transaction = await service.adjust(item, payload.new_stock, admin, notes=payload.notes)
    await db.commit()
    return GenericResponse(message="Stock adjusted", data=TransactionResponse.model_validate(transaction))


# =============================================================================
# Deduction and ledger
# =============================================================================

@router.post("/deduct", response_model=GenericResponse[list[TransactionResponse]], summary="Book out supplies for an appointment")
async def deduct_supplies(payload: DeductRequest, user: StaffUser, db: DbSession) -> GenericResponse[list[TransactionResponse]]:
    """
    Deduct every listed item and complete the appointment in one unit of work.

    Nothing is written when any item is short; the error lists every
    shortage.
    """
    service = InventoryService(db)
    appointment = await AppointmentService(db).get_visible(user, payload.appointment_id)
    transactions = await service.deduct_for_appointment(
        appointment,
        [(usage.item_id, usage.quantity) for usage in payload.items],
        user,
        notes=payload.notes,
    )
    await db.commit()
    return GenericResponse(
        message="Supplies deducted and appointment completed",
        data=[TransactionResponse.model_validate(t) for t in transactions],
    )


@router.get("/transactions", response_model=PaginatedResponse[TransactionResponse], summary="Stock ledger")
async def list_transactions(
    user: StaffUser,
    db: DbSession,
    item_id: int | None = Query(None),
    appointment_id: int | None = Query(None),
    transaction_type: InventoryTransactionType | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=500),
) -> PaginatedResponse[TransactionResponse]:
    transactions, total = await InventoryService(db).repo.list_transactions(
        clinic_ids=await visible_clinic_ids(user, db),
        item_id=item_id,
        reference_id=str(appointment_id) if appointment_id is not None else None,
        transaction_type=transaction_type.value if transaction_type else None,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedResponse(
        message="Transactions retrieved",
        data=[TransactionResponse.model_validate(t) for t in transactions],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


# =============================================================================
# Alerts
# =============================================================================

@router.get("/alerts", response_model=GenericResponse[list[AlertResponse]], summary="Stock and expiry alerts")
async def list_alerts(
    user: StaffUser,
    db: DbSession,
    include_resolved: bool = Query(False),
) -> GenericResponse[list[AlertResponse]]:
    alerts = await InventoryService(db).repo.list_alerts(await visible_clinic_ids(user, db), include_resolved)
    return GenericResponse(message="Alerts retrieved", data=[AlertResponse.model_validate(a) for a in alerts])


@router.post("/alerts/expiry-scan", response_model=GenericResponse[list[AlertResponse]], summary="Raise expiry alerts")
async def scan_expiry(
    admin: ClinicAdminUser,
    db: DbSession,
    days: int = Query(30, ge=1, le=365),
) -> GenericResponse[list[AlertResponse]]:
    alerts = await InventoryService(db).raise_expiry_alerts(await visible_clinic_ids(admin, db), days)
    await db.commit()
    return GenericResponse(message=f"{len(alerts)} expiry alert(s) raised", data=[AlertResponse.model_validate(a) for a in alerts])


@router.post("/alerts/{alert_id}/resolve", response_model=GenericResponse[AlertResponse], summary="Resolve alert")
async def resolve_alert(alert_id: int, user: StaffUser, db: DbSession) -> GenericResponse[AlertResponse]:
    repo = InventoryService(db).repo
    alert = await repo.get_alert(alert_id)
    if alert is None:
        raise ResourceNotFoundError("inventory_alert", alert_id)
    await ensure_clinic_access(user, alert.clinic_id, db)
    alert = await repo.resolve_alert(alert)
    await db.commit()
    return GenericResponse(message="Alert resolved", data=AlertResponse.model_validate(alert))
