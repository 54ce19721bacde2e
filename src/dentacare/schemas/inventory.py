"""Schemas for inventory items, stock movements and alerts."""
from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    clinic_id: int | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None


class CategoryResponse(BaseModel):
    id: int
    clinic_id: int
    name: str
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    clinic_id: int | None = None
    category_id: int | None = None
    sku: str | None = Field(None, max_length=100)
    description: str | None = None
    current_stock: int = Field(0, ge=0)
    minimum_stock: int = Field(0, ge=0)
    unit_cost: float = Field(0.0, ge=0)
    unit_type: str = Field("unit", max_length=30)
    supplier: str | None = Field(None, max_length=255)
    expiry_date: date | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Lidocaine 2% cartridge",
                "sku": "ANES-LID-2",
                "current_stock": 100,
                "minimum_stock": 20,
                "unit_cost": 0.85,
                "unit_type": "cartridge",
            }
        }
    )


class ItemUpdate(BaseModel):
    """Stock levels change only through restock, adjust and deduct."""

    name: str | None = Field(None, min_length=1, max_length=255)
    category_id: int | None = None
    sku: str | None = Field(None, max_length=100)
    description: str | None = None
    minimum_stock: int | None = Field(None, ge=0)
    unit_cost: float | None = Field(None, ge=0)
    unit_type: str | None = Field(None, max_length=30)
    supplier: str | None = Field(None, max_length=255)
    expiry_date: date | None = None
    is_active: bool | None = None


class ItemResponse(BaseModel):
    id: int
    clinic_id: int
    category_id: int | None = None
    name: str
    sku: str | None = None
    description: str | None = None
    current_stock: int
    minimum_stock: int
    unit_cost: float
    unit_type: str
    supplier: str | None = None
    expiry_date: date | None = None
    is_active: bool
    is_low_stock: bool

    model_config = ConfigDict(from_attributes=True)


class RestockRequest(BaseModel):
    quantity: int = Field(..., gt=0)
    unit_cost: float | None = Field(None, ge=0)
    notes: str | None = None


class AdjustRequest(BaseModel):
    new_stock: int = Field(..., ge=0, description="Counted stock level")
    notes: str | None = None


class ItemUsage(BaseModel):
    item_id: int
    quantity: int = Field(..., gt=0)


class DeductRequest(BaseModel):
    appointment_id: int
    items: list[ItemUsage] = Field(..., min_length=1)
    notes: str | None = None


class TransactionResponse(BaseModel):
    id: int
    clinic_id: int
    item_id: int
    transaction_type: str
    quantity: int
    unit_cost: float | None = None
    total_cost: float | None = None
    reference_id: str | None = None
    created_by: int | None = None
    notes: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AlertResponse(BaseModel):
    id: int
    clinic_id: int
    item_id: int
    alert_type: str
    message: str
    is_resolved: bool
    resolved_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
