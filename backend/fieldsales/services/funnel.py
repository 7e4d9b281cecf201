"""Visit to order matching and the sales funnel.

Orders are not linked to visits for analytics purposes. A visit is considered
to have produced an order when a realized order for the same client was
created no earlier than the visit and within the follow-up horizon after it.
"""

from __future__ import annotations

from bisect import bisect_left
from collections.abc import Iterable, Sequence
from datetime import timedelta
from typing import Any

from fieldsales.models.order import OrderStatus
from fieldsales.models.visit import VisitStatus
from fieldsales.schemas.records import OrderSnapshot, VisitSnapshot
from fieldsales.services.periods import days_between
from fieldsales.services.ratios import safe_percent, safe_ratio

DEFAULT_MATCH_DAYS = 7


class ClientOrderIndex:
    """Realized orders grouped per client, each list sorted by creation time."""

    def __init__(self, orders: Iterable[OrderSnapshot]) -> None:
        grouped: dict[int, list[OrderSnapshot]] = {}
        for order in orders:
            if order.is_realized:
                grouped.setdefault(order.client_id, []).append(order)
        self._orders = {
            client_id: sorted(client_orders, key=lambda order: (order.created_at, order.id))
            for client_id, client_orders in grouped.items()
        }

    def orders_for(self, client_id: int) -> list[OrderSnapshot]:
        return self._orders.get(client_id, [])

    def __len__(self) -> int:
        return sum(len(client_orders) for client_orders in self._orders.values())


def index_orders_by_client(orders: Iterable[OrderSnapshot]) -> ClientOrderIndex:
    return ClientOrderIndex(orders)


def match_order(
    visit: VisitSnapshot,
    client_orders: Sequence[OrderSnapshot],
    days: int = DEFAULT_MATCH_DAYS,
) -> OrderSnapshot | None:
    """Earliest order with ``scheduled_at <= created_at <= scheduled_at + days``.

    ``client_orders`` must already be sorted by ``created_at``.
    """
    position = bisect_left(client_orders, visit.scheduled_at, key=lambda order: order.created_at)
    if position >= len(client_orders):
        return None
    candidate = client_orders[position]
    if candidate.created_at <= visit.scheduled_at + timedelta(days=days):
        return candidate
    return None


def matched_order(
    visit: VisitSnapshot, index: ClientOrderIndex, days: int = DEFAULT_MATCH_DAYS
) -> OrderSnapshot | None:
    return match_order(visit, index.orders_for(visit.client_id), days)


def annotate_commercial_conversion(
    rows: list[dict[str, Any]],
    visits: Iterable[VisitSnapshot],
    index: ClientOrderIndex,
    days: int = DEFAULT_MATCH_DAYS,
) -> list[dict[str, Any]]:
    """Fill ``visits_with_orders`` and ``avg_days_to_order`` on commercial buckets in place."""
    by_commercial = {row["commercial_id"]: row for row in rows}
    gaps: dict[int, list[float]] = {}
    for visit in visits:
        if visit.status != VisitStatus.DONE:
            continue
        row = by_commercial.get(visit.commercial_id)
        if row is None:
            continue
        order = matched_order(visit, index, days)
        if order is None:
            continue
        row["visits_with_orders"] = row.get("visits_with_orders", 0) + 1
        gaps.setdefault(visit.commercial_id, []).append(
            days_between(visit.scheduled_at, order.created_at)
        )

    for commercial_id, row in by_commercial.items():
        commercial_gaps = gaps.get(commercial_id, [])
        row["avg_days_to_order"] = safe_ratio(sum(commercial_gaps), len(commercial_gaps))
    return rows


def funnel(
    visits: Iterable[VisitSnapshot],
    orders: Iterable[OrderSnapshot],
    index: ClientOrderIndex,
    days: int = DEFAULT_MATCH_DAYS,
) -> dict[str, Any]:
    visits_total = 0
    planned_visits = 0
    done_visits = 0
    visits_with_orders = 0
    for visit in visits:
        visits_total += 1
        if visit.status == VisitStatus.PLANNED:
            planned_visits += 1
        if visit.status != VisitStatus.DONE:
            continue
        done_visits += 1
        if matched_order(visit, index, days) is not None:
            visits_with_orders += 1

    realized_orders = 0
    approved_orders = 0
    completed_orders = 0
    for order in orders:
        if not order.is_realized:
            continue
        realized_orders += 1
        if order.status == OrderStatus.APPROVED:
            approved_orders += 1
        elif order.status == OrderStatus.COMPLETED:
            completed_orders += 1

    return {
        "planned_visits": planned_visits,
        "done_visits": done_visits,
        "visits_with_orders": visits_with_orders,
        "approved_orders": approved_orders,
        "completed_orders": completed_orders,
        "conversion_rates": {
            "planned_to_done": safe_percent(done_visits, visits_total),
            "done_to_order": safe_percent(visits_with_orders, done_visits),
            "order_to_approved": safe_percent(approved_orders, realized_orders),
            "approved_to_completed": safe_percent(completed_orders, approved_orders),
        },
    }


def visits_without_orders(
    visits: Iterable[VisitSnapshot],
    index: ClientOrderIndex,
    days: int = DEFAULT_MATCH_DAYS,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    rows = [
        {
            "visit_id": visit.id,
            "client_id": visit.client_id,
            "client": visit.client_name,
            "commercial_id": visit.commercial_id,
            "commercial": visit.commercial_name,
            "scheduled_at": visit.scheduled_at,
            "note": visit.note,
        }
        for visit in visits
        if visit.status == VisitStatus.DONE and matched_order(visit, index, days) is None
    ]
    return rows[:limit] if limit is not None else rows
