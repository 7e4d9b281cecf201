"""Read-only snapshots the analytics engine folds over.

The record source converts ORM rows into these models, so the engine never
touches a session and can be exercised with plain objects in tests.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from fieldsales.models.order import REALIZED_STATUSES, OrderStatus
from fieldsales.models.visit import VisitStatus
from fieldsales.services.periods import to_local_naive

UNKNOWN_COMMERCIAL = "Nepoznato"
UNKNOWN_CLIENT = "Nepoznat klijent"
UNKNOWN_PRODUCT = "Nepoznat proizvod"
NO_BRAND = "Bez brenda"


class Snapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)


class CommercialSnapshot(Snapshot):
    id: int
    name: str = UNKNOWN_COMMERCIAL
    email: str | None = None


class OrderItemSnapshot(Snapshot):
    product_id: int | None = None
    product_name: str = UNKNOWN_PRODUCT
    brand_id: int | None = None
    brand_name: str | None = None
    quantity: int = Field(gt=0)
    unit_price: float = Field(default=0.0, ge=0)
    discount_percent: float | None = Field(default=None, ge=0, le=100)
    line_total: float | None = Field(default=None, ge=0, validate_default=True)

    @field_validator("line_total")
    @classmethod
    def fill_line_total(cls, value: float | None, info: ValidationInfo) -> float:
        if value is not None:
            return value
        quantity = info.data.get("quantity") or 0
        unit_price = info.data.get("unit_price") or 0.0
        discount = info.data.get("discount_percent") or 0.0
        return quantity * unit_price * (1 - discount / 100)


class OrderSnapshot(Snapshot):
    id: int
    order_number: str | None = None
    commercial_id: int
    commercial_name: str = UNKNOWN_COMMERCIAL
    client_id: int
    client_name: str = UNKNOWN_CLIENT
    created_at: datetime
    status: OrderStatus
    total_amount: float = Field(ge=0)
    items: list[OrderItemSnapshot] = Field(default_factory=list)

    @field_validator("created_at")
    @classmethod
    def localize(cls, value: datetime) -> datetime:
        return to_local_naive(value)

    @property
    def is_realized(self) -> bool:
        return self.status in REALIZED_STATUSES


class VisitSnapshot(Snapshot):
    id: int
    commercial_id: int
    commercial_name: str = UNKNOWN_COMMERCIAL
    client_id: int
    client_name: str = UNKNOWN_CLIENT
    scheduled_at: datetime
    status: VisitStatus
    note: str | None = None
    branch_ids: list[int] = Field(default_factory=list)

    @field_validator("scheduled_at")
    @classmethod
    def localize(cls, value: datetime) -> datetime:
        return to_local_naive(value)


class BranchSnapshot(Snapshot):
    id: int
    client_id: int
    name: str


class ClientSnapshot(Snapshot):
    id: int
    name: str = UNKNOWN_CLIENT
    branches: list[BranchSnapshot] = Field(default_factory=list)


class PlanProductTargetSnapshot(Snapshot):
    product_id: int
    product_name: str = UNKNOWN_PRODUCT
    quantity_target: int = Field(ge=0)


class PlanAssignmentSnapshot(Snapshot):
    commercial_id: int
    commercial_name: str = UNKNOWN_COMMERCIAL
    target: float = Field(ge=0)


class PlanSnapshot(Snapshot):
    id: int
    commercial_id: int | None = None
    commercial_name: str | None = None
    brand_id: int | None = None
    brand_name: str | None = None
    year: int
    month: int
    total_target: float | None = Field(default=None, ge=0)
    product_targets: list[PlanProductTargetSnapshot] = Field(default_factory=list)
    assignments: list[PlanAssignmentSnapshot] = Field(default_factory=list)


class MonthTotals(Snapshot):
    sales: float = 0.0
    orders: int = 0
    visits: int = 0
