"""Record source for the analytics engine.

Reports read orders, visits, plans and reference data through the
``RecordSource`` interface. ``SqlRecordSource`` is the SQLAlchemy
implementation; it is the only place in the engine that performs I/O.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from contextlib import contextmanager
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from fieldsales.core.config import get_settings
from fieldsales.models.client import Client
from fieldsales.models.order import REALIZED_STATUSES, Order, OrderItem
from fieldsales.models.plan import Plan, PlanAssignment, PlanProductTarget
from fieldsales.models.product import Product
from fieldsales.models.user import User, UserRole
from fieldsales.models.visit import Visit, VisitStatus
from fieldsales.schemas.records import (
    UNKNOWN_CLIENT,
    UNKNOWN_COMMERCIAL,
    UNKNOWN_PRODUCT,
    ClientSnapshot,
    CommercialSnapshot,
    MonthTotals,
    OrderSnapshot,
    PlanSnapshot,
    VisitSnapshot,
)
from fieldsales.services.periods import Window

logger = logging.getLogger(__name__)

T = TypeVar("T")
SnapshotT = TypeVar("SnapshotT", bound=BaseModel)


class ReportError(Exception):
    """Base class for failures that abort a whole report."""


class RecordFetchError(ReportError):
    pass


class ReportTimeoutError(ReportError):
    pass


class RecordSource(Protocol):
    def fetch_orders(
        self, window: Window, commercial_id: int | None = None
    ) -> list[OrderSnapshot]: ...

    def fetch_visits(
        self, window: Window, commercial_id: int | None = None
    ) -> list[VisitSnapshot]: ...

    def fetch_order_history(self, commercial_id: int | None = None) -> list[OrderSnapshot]: ...

    def fetch_done_visits(self, commercial_id: int | None = None) -> list[VisitSnapshot]: ...

    def fetch_clients(self) -> list[ClientSnapshot]: ...

    def fetch_plans(self, year: int, month: int) -> list[PlanSnapshot]: ...

    def fetch_plan(self, plan_id: int) -> PlanSnapshot | None: ...

    def fetch_commercials(self) -> list[CommercialSnapshot]: ...

    def fetch_commercial(self, commercial_id: int) -> CommercialSnapshot | None: ...

    def fetch_month_totals(
        self, window: Window, commercial_id: int | None = None
    ) -> MonthTotals: ...


def validate_snapshots(
    model: type[SnapshotT], payloads: Iterable[dict[str, Any]]
) -> list[SnapshotT]:
    snapshots: list[SnapshotT] = []
    for payload in payloads:
        try:
            snapshots.append(model.model_validate(payload))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed %s id=%s: %s",
                model.__name__,
                payload.get("id"),
                exc.errors(include_url=False),
            )
    return snapshots


def _item_payload(item: OrderItem) -> dict[str, Any]:
    product = item.product
    brand = product.brand if product else None
    return {
        "product_id": item.product_id,
        "product_name": product.name if product else UNKNOWN_PRODUCT,
        "brand_id": product.brand_id if product else None,
        "brand_name": brand.name if brand else None,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "discount_percent": item.discount_percent,
        "line_total": item.line_total,
    }


def _order_payload(order: Order, with_items: bool = True) -> dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "commercial_id": order.commercial_id,
        "commercial_name": order.commercial.name if order.commercial else UNKNOWN_COMMERCIAL,
        "client_id": order.client_id,
        "client_name": order.client.name if order.client else UNKNOWN_CLIENT,
        "created_at": order.created_at,
        "status": order.status,
        "total_amount": order.total_amount,
        "items": [_item_payload(item) for item in order.items] if with_items else [],
    }


def _visit_payload(visit: Visit) -> dict[str, Any]:
    return {
        "id": visit.id,
        "commercial_id": visit.commercial_id,
        "commercial_name": visit.commercial.name if visit.commercial else UNKNOWN_COMMERCIAL,
        "client_id": visit.client_id,
        "client_name": visit.client.name if visit.client else UNKNOWN_CLIENT,
        "scheduled_at": visit.scheduled_at,
        "status": visit.status,
        "note": visit.note,
        "branch_ids": [branch.id for branch in visit.branches],
    }


def _plan_payload(plan: Plan) -> dict[str, Any]:
    return {
        "id": plan.id,
        "commercial_id": plan.commercial_id,
        "commercial_name": plan.commercial.name if plan.commercial else None,
        "brand_id": plan.brand_id,
        "brand_name": plan.brand.name if plan.brand else None,
        "year": plan.year,
        "month": plan.month,
        "total_target": plan.total_target,
        "product_targets": [
            {
                "product_id": target.product_id,
                "product_name": target.product.name if target.product else UNKNOWN_PRODUCT,
                "quantity_target": target.quantity_target,
            }
            for target in plan.product_targets
        ],
        "assignments": [
            {
                "commercial_id": assignment.commercial_id,
                "commercial_name": (
                    assignment.commercial.name if assignment.commercial else UNKNOWN_COMMERCIAL
                ),
                "target": assignment.target,
            }
            for assignment in plan.assignments
        ],
    }


class SqlRecordSource:
    """Reads snapshots from the relational store.

    Accepts either an open ``Session`` (shared by every fetch, so calls must
    stay sequential) or a session factory, in which case each fetch opens and
    closes its own session and fetches may run on worker threads.
    """

    def __init__(self, db: Session | Callable[[], Session], tz_name: str | None = None) -> None:
        self._db = db
        self._tz_name = tz_name or get_settings().report_timezone

    @property
    def thread_safe(self) -> bool:
        return not isinstance(self._db, Session)

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        owned = not isinstance(self._db, Session)
        db = self._db() if owned else self._db
        try:
            yield db
        except SQLAlchemyError as exc:
            logger.exception("Record fetch failed: %s", operation)
            raise RecordFetchError(f"{operation} failed") from exc
        finally:
            if owned:
                db.close()

    def _bounds(self, window: Window) -> tuple[Any, Any]:
        return window.as_aware(self._tz_name)

    def _order_query(self) -> Any:
        return select(Order).options(
            selectinload(Order.items)
            .selectinload(OrderItem.product)
            .selectinload(Product.brand),
            selectinload(Order.commercial),
            selectinload(Order.client),
        )

    def fetch_orders(
        self, window: Window, commercial_id: int | None = None
    ) -> list[OrderSnapshot]:
        start, end = self._bounds(window)
        query = self._order_query().where(
            Order.created_at >= start,
            Order.created_at <= end,
            Order.status.in_(REALIZED_STATUSES),
        )
        if commercial_id is not None:
            query = query.where(Order.commercial_id == commercial_id)
        with self._session("fetch_orders") as db:
            rows = db.scalars(query.order_by(Order.created_at, Order.id)).all()
            return validate_snapshots(OrderSnapshot, (_order_payload(row) for row in rows))

    def fetch_visits(
        self, window: Window, commercial_id: int | None = None
    ) -> list[VisitSnapshot]:
        start, end = self._bounds(window)
        query = (
            select(Visit)
            .options(
                selectinload(Visit.commercial),
                selectinload(Visit.client),
                selectinload(Visit.branches),
            )
            .where(Visit.scheduled_at >= start, Visit.scheduled_at <= end)
        )
        if commercial_id is not None:
            query = query.where(Visit.commercial_id == commercial_id)
        with self._session("fetch_visits") as db:
            rows = db.scalars(query.order_by(Visit.scheduled_at, Visit.id)).all()
            return validate_snapshots(VisitSnapshot, (_visit_payload(row) for row in rows))

    def fetch_order_history(self, commercial_id: int | None = None) -> list[OrderSnapshot]:
        query = (
            select(
                Order.id,
                Order.order_number,
                Order.commercial_id,
                Order.client_id,
                Client.name.label("client_name"),
                Order.created_at,
                Order.status,
                Order.total_amount,
            )
            .join(Client, Client.id == Order.client_id, isouter=True)
            .where(Order.status.in_(REALIZED_STATUSES))
        )
        if commercial_id is not None:
            query = query.where(Order.commercial_id == commercial_id)
        with self._session("fetch_order_history") as db:
            rows = db.execute(query.order_by(Order.created_at, Order.id)).all()
            payloads = (
                {
                    "id": row.id,
                    "order_number": row.order_number,
                    "commercial_id": row.commercial_id,
                    "client_id": row.client_id,
                    "client_name": row.client_name or UNKNOWN_CLIENT,
                    "created_at": row.created_at,
                    "status": row.status,
                    "total_amount": row.total_amount,
                }
                for row in rows
            )
            return validate_snapshots(OrderSnapshot, payloads)

    def fetch_done_visits(self, commercial_id: int | None = None) -> list[VisitSnapshot]:
        query = (
            select(Visit)
            .options(
                selectinload(Visit.commercial),
                selectinload(Visit.client),
                selectinload(Visit.branches),
            )
            .where(Visit.status == VisitStatus.DONE)
        )
        if commercial_id is not None:
            query = query.where(Visit.commercial_id == commercial_id)
        with self._session("fetch_done_visits") as db:
            rows = db.scalars(query.order_by(Visit.scheduled_at.desc(), Visit.id)).all()
            return validate_snapshots(VisitSnapshot, (_visit_payload(row) for row in rows))

    def fetch_clients(self) -> list[ClientSnapshot]:
        query = select(Client).options(selectinload(Client.branches)).order_by(Client.id)
        with self._session("fetch_clients") as db:
            rows = db.scalars(query).all()
            payloads = (
                {
                    "id": client.id,
                    "name": client.name,
                    "branches": [
                        {"id": branch.id, "client_id": client.id, "name": branch.name}
                        for branch in client.branches
                    ],
                }
                for client in rows
            )
            return validate_snapshots(ClientSnapshot, payloads)

    def _plan_query(self) -> Any:
        return select(Plan).options(
            selectinload(Plan.commercial),
            selectinload(Plan.brand),
            selectinload(Plan.product_targets).selectinload(PlanProductTarget.product),
            selectinload(Plan.assignments).selectinload(PlanAssignment.commercial),
        )

    def fetch_plans(self, year: int, month: int) -> list[PlanSnapshot]:
        query = (
            self._plan_query()
            .where(Plan.year == year, Plan.month == month)
            .order_by(Plan.commercial_id, Plan.created_at.desc(), Plan.id)
        )
        with self._session("fetch_plans") as db:
            rows = db.scalars(query).all()
            return validate_snapshots(PlanSnapshot, (_plan_payload(row) for row in rows))

    def fetch_plan(self, plan_id: int) -> PlanSnapshot | None:
        with self._session("fetch_plan") as db:
            plan = db.scalar(self._plan_query().where(Plan.id == plan_id))
            if plan is None:
                return None
            snapshots = validate_snapshots(PlanSnapshot, [_plan_payload(plan)])
            return snapshots[0] if snapshots else None

    def fetch_commercials(self) -> list[CommercialSnapshot]:
        query = select(User).where(User.role == UserRole.COMMERCIAL).order_by(User.id)
        with self._session("fetch_commercials") as db:
            return [CommercialSnapshot.model_validate(user) for user in db.scalars(query)]

    def fetch_commercial(self, commercial_id: int) -> CommercialSnapshot | None:
        with self._session("fetch_commercial") as db:
            user = db.get(User, commercial_id)
            if user is None or user.role != UserRole.COMMERCIAL:
                return None
            return CommercialSnapshot.model_validate(user)

    def fetch_month_totals(
        self, window: Window, commercial_id: int | None = None
    ) -> MonthTotals:
        start, end = self._bounds(window)
        order_conditions: list[Any] = [
            Order.created_at >= start,
            Order.created_at <= end,
            Order.status.in_(REALIZED_STATUSES),
        ]
        visit_conditions: list[Any] = [Visit.scheduled_at >= start, Visit.scheduled_at <= end]
        if commercial_id is not None:
            order_conditions.append(Order.commercial_id == commercial_id)
            visit_conditions.append(Visit.commercial_id == commercial_id)
        with self._session("fetch_month_totals") as db:
            sales, orders = db.execute(
                select(
                    func.coalesce(func.sum(Order.total_amount), 0.0),
                    func.count(Order.id),
                ).where(*order_conditions)
            ).one()
            visits = db.scalar(select(func.count(Visit.id)).where(*visit_conditions))
        return MonthTotals(
            sales=float(sales or 0.0), orders=int(orders or 0), visits=int(visits or 0)
        )


class FetchRunner:
    """Runs independent fetches under one report-wide deadline.

    Results always come back in submission order. With a single worker the
    calls run inline; otherwise they go to a thread pool.
    """

    def __init__(self, workers: int = 1, timeout: float | None = None) -> None:
        self.workers = max(1, workers)
        self._deadline = time.monotonic() + timeout if timeout else None

    def _remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def _check_deadline(self) -> None:
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise ReportTimeoutError("Report fetch deadline exceeded")

    def run(self, calls: Sequence[Callable[[], T]]) -> list[T]:
        if self.workers == 1 or len(calls) <= 1:
            results: list[T] = []
            for call in calls:
                self._check_deadline()
                results.append(call())
            self._check_deadline()
            return results

        executor = ThreadPoolExecutor(max_workers=min(self.workers, len(calls)))
        futures = [executor.submit(call) for call in calls]
        try:
            return [future.result(timeout=self._remaining()) for future in futures]
        except FutureTimeoutError as exc:
            raise ReportTimeoutError("Report fetch deadline exceeded") from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
