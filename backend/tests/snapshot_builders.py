from datetime import datetime
from itertools import count

from fieldsales.models.order import OrderStatus
from fieldsales.models.visit import VisitStatus
from fieldsales.schemas.records import (
    BranchSnapshot,
    ClientSnapshot,
    OrderItemSnapshot,
    OrderSnapshot,
    PlanAssignmentSnapshot,
    PlanProductTargetSnapshot,
    PlanSnapshot,
    VisitSnapshot,
)

_ids = count(1)


def item(
    product_id: int | None = 1,
    quantity: int = 1,
    unit_price: float = 10.0,
    brand_id: int | None = None,
    brand_name: str | None = None,
    product_name: str = "Product",
    discount_percent: float | None = None,
    line_total: float | None = None,
) -> OrderItemSnapshot:
    return OrderItemSnapshot(
        product_id=product_id,
        product_name=product_name,
        brand_id=brand_id,
        brand_name=brand_name,
        quantity=quantity,
        unit_price=unit_price,
        discount_percent=discount_percent,
        line_total=line_total,
    )


def order(
    created_at: datetime,
    total_amount: float,
    commercial_id: int = 1,
    client_id: int = 1,
    status: OrderStatus = OrderStatus.APPROVED,
    items: list[OrderItemSnapshot] | None = None,
    order_id: int | None = None,
    commercial_name: str = "Ana",
    client_name: str = "Apoteka",
) -> OrderSnapshot:
    return OrderSnapshot(
        id=order_id or next(_ids),
        commercial_id=commercial_id,
        commercial_name=commercial_name,
        client_id=client_id,
        client_name=client_name,
        created_at=created_at,
        status=status,
        total_amount=total_amount,
        items=items or [],
    )


def visit(
    scheduled_at: datetime,
    commercial_id: int = 1,
    client_id: int = 1,
    status: VisitStatus = VisitStatus.DONE,
    note: str | None = None,
    branch_ids: list[int] | None = None,
    visit_id: int | None = None,
    commercial_name: str = "Ana",
) -> VisitSnapshot:
    return VisitSnapshot(
        id=visit_id or next(_ids),
        commercial_id=commercial_id,
        commercial_name=commercial_name,
        client_id=client_id,
        client_name="Apoteka",
        scheduled_at=scheduled_at,
        status=status,
        note=note,
        branch_ids=branch_ids or [],
    )


def client(client_id: int, name: str, branches: list[tuple[int, str]] = ()) -> ClientSnapshot:
    return ClientSnapshot(
        id=client_id,
        name=name,
        branches=[
            BranchSnapshot(id=branch_id, client_id=client_id, name=branch_name)
            for branch_id, branch_name in branches
        ],
    )


def plan(
    plan_id: int = 1,
    commercial_id: int | None = 1,
    brand_id: int | None = None,
    total_target: float | None = None,
    product_targets: list[tuple[int, int]] = (),
    assignments: list[tuple[int, float]] = (),
    year: int = 2024,
    month: int = 1,
) -> PlanSnapshot:
    return PlanSnapshot(
        id=plan_id,
        commercial_id=commercial_id,
        commercial_name="Ana" if commercial_id else None,
        brand_id=brand_id,
        year=year,
        month=month,
        total_target=total_target,
        product_targets=[
            PlanProductTargetSnapshot(product_id=product_id, quantity_target=target)
            for product_id, target in product_targets
        ],
        assignments=[
            PlanAssignmentSnapshot(
                commercial_id=assignee, commercial_name=f"Commercial {assignee}", target=target
            )
            for assignee, target in assignments
        ],
    )
