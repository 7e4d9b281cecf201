"""Client cohorts, churn and coverage over the full order and visit history."""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any

from fieldsales.models.visit import VisitStatus
from fieldsales.schemas.records import ClientSnapshot, OrderSnapshot, VisitSnapshot
from fieldsales.services.notes import MarkerReasonParser, ReasonParser
from fieldsales.services.periods import Window, normalize_year_month
from fieldsales.services.ratios import safe_ratio

NEVER_VISITED_MONTHS = 999
MONTH_DAYS = 30


def months_before(moment: datetime, months: int) -> datetime:
    year, month = normalize_year_month(moment.year, moment.month - months)
    return datetime(year, month, 1)


def months_since(last: datetime, now: datetime) -> int:
    return max(0, math.floor((now - last) / timedelta(days=MONTH_DAYS)))


def first_order_dates(history: Iterable[OrderSnapshot]) -> dict[int, datetime]:
    first: dict[int, datetime] = {}
    for order in history:
        if not order.is_realized:
            continue
        current = first.get(order.client_id)
        if current is None or order.created_at < current:
            first[order.client_id] = order.created_at
    return first


def classify_cohorts(
    orders: Iterable[OrderSnapshot],
    history: Iterable[OrderSnapshot],
    window: Window,
) -> dict[str, Any]:
    """Split window orders by whether their client's first order ever falls in the window."""
    first_orders = first_order_dates(history)
    new_clients: set[int] = set()
    new_count = 0
    new_sales = 0.0
    existing_count = 0
    existing_sales = 0.0

    for order in orders:
        first = first_orders.get(order.client_id)
        if first is not None and window.contains(first):
            new_clients.add(order.client_id)
            new_count += 1
            new_sales += order.total_amount
        else:
            existing_count += 1
            existing_sales += order.total_amount

    return {
        "new_clients": len(new_clients),
        "new_clients_count": new_count,
        "new_clients_sales": new_sales,
        "existing_clients_count": existing_count,
        "existing_clients_sales": existing_sales,
    }


def _client_spans(history: Iterable[OrderSnapshot]) -> dict[int, dict[str, Any]]:
    spans: dict[int, dict[str, Any]] = {}
    for order in history:
        if not order.is_realized:
            continue
        span = spans.get(order.client_id)
        if span is None:
            span = {
                "client_id": order.client_id,
                "client": order.client_name,
                "first_order_date": order.created_at,
                "last_order_date": order.created_at,
                "orders": 0,
                "sales": 0.0,
            }
            spans[order.client_id] = span
        span["orders"] += 1
        span["sales"] += order.total_amount
        if order.created_at < span["first_order_date"]:
            span["first_order_date"] = order.created_at
        if order.created_at > span["last_order_date"]:
            span["last_order_date"] = order.created_at
    return spans


def churn_risk(
    history: Iterable[OrderSnapshot],
    month_start: datetime,
    now: datetime,
    months: int = 3,
    limit: int = 50,
) -> list[dict[str, Any]]:
    threshold = months_before(month_start, months)
    rows = [
        {
            "client_id": span["client_id"],
            "client": span["client"],
            "first_order_date": span["first_order_date"],
            "last_order_date": span["last_order_date"],
            "months_since_last_order": months_since(span["last_order_date"], now),
        }
        for span in _client_spans(history).values()
        if span["last_order_date"] < threshold
    ]
    rows.sort(key=lambda row: row["months_since_last_order"], reverse=True)
    return rows[:limit]


def customer_lifetime_value(
    history: Iterable[OrderSnapshot], limit: int = 20
) -> list[dict[str, Any]]:
    rows = [
        {
            "client_id": span["client_id"],
            "client": span["client"],
            "total_orders": span["orders"],
            "total_sales": span["sales"],
            "first_order_date": span["first_order_date"],
            "last_order_date": span["last_order_date"],
            "avg_order_value": safe_ratio(span["sales"], span["orders"]),
        }
        for span in _client_spans(history).values()
    ]
    rows.sort(key=lambda row: row["total_sales"], reverse=True)
    return rows[:limit]


def cancellation_reasons(
    visits: Iterable[VisitSnapshot], parser: ReasonParser | None = None
) -> list[dict[str, Any]]:
    parser = parser or MarkerReasonParser()
    counts: dict[str, int] = {}
    for visit in visits:
        if visit.status != VisitStatus.CANCELED or not visit.note:
            continue
        reason = parser.parse(visit.note)
        if reason:
            counts[reason] = counts.get(reason, 0) + 1
    rows = [{"reason": reason, "count": count} for reason, count in counts.items()]
    rows.sort(key=lambda row: row["count"], reverse=True)
    return rows


def _latest_visit_by_branch(done_visits: Iterable[VisitSnapshot]) -> dict[int, VisitSnapshot]:
    by_branch: dict[int, VisitSnapshot] = {}
    for visit in done_visits:
        if visit.status != VisitStatus.DONE:
            continue
        for branch_id in visit.branch_ids:
            latest = by_branch.get(branch_id)
            if latest is None or visit.scheduled_at > latest.scheduled_at:
                by_branch[branch_id] = visit
    return by_branch


def unvisited_locations(
    clients: Iterable[ClientSnapshot],
    done_visits: Iterable[VisitSnapshot],
    month_start: datetime,
    now: datetime,
    months: int = 3,
    limit: int = 100,
) -> list[dict[str, Any]]:
    """Branches whose latest linked DONE visit is missing or older than ``months``."""
    threshold = months_before(month_start, months)
    by_branch = _latest_visit_by_branch(done_visits)
    rows: list[dict[str, Any]] = []
    for client in clients:
        for branch in client.branches:
            last_visit = by_branch.get(branch.id)
            last_date = last_visit.scheduled_at if last_visit else None
            if last_date is not None and last_date >= threshold:
                continue
            rows.append(
                {
                    "branch_id": branch.id,
                    "branch": branch.name,
                    "client_id": client.id,
                    "client": client.name,
                    "last_visit_date": last_date,
                    "months_since_last_visit": (
                        months_since(last_date, now) if last_date else NEVER_VISITED_MONTHS
                    ),
                    "commercial_id": last_visit.commercial_id if last_visit else None,
                    "commercial": last_visit.commercial_name if last_visit else None,
                }
            )

    rows.sort(key=lambda row: row["months_since_last_visit"], reverse=True)
    return rows[:limit]
