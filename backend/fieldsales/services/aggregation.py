"""Single-pass aggregation of window orders and visits.

One loop over orders and one loop over visits fill every grouping dimension.
Buckets are created on first touch by either loop: identity fields keep the
value from the first write, numeric fields only accumulate.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from datetime import date
from typing import Any

from fieldsales.models.order import OrderStatus
from fieldsales.models.visit import VisitStatus
from fieldsales.schemas.records import (
    NO_BRAND,
    UNKNOWN_COMMERCIAL,
    CommercialSnapshot,
    OrderSnapshot,
    VisitSnapshot,
)
from fieldsales.services.ratios import safe_ratio


def _bucket(
    store: dict[Hashable, dict[str, Any]],
    key: Hashable,
    factory: Callable[[], dict[str, Any]],
) -> dict[str, Any]:
    bucket = store.get(key)
    if bucket is None:
        bucket = factory()
        store[key] = bucket
    return bucket


def _by_amount(rows: Iterable[dict[str, Any]], field: str = "amount") -> list[dict[str, Any]]:
    return sorted(rows, key=lambda row: row[field], reverse=True)


def _commercial_bucket(commercial_id: int, name: str) -> dict[str, Any]:
    return {
        "commercial_id": commercial_id,
        "commercial": name,
        "amount": 0.0,
        "orders_count": 0,
        "visits_count": 0,
        "visits_done": 0,
        "visits_with_orders": 0,
        "avg_order_value": 0.0,
        "avg_days_to_order": 0.0,
    }


def aggregate(
    orders: Iterable[OrderSnapshot],
    visits: Iterable[VisitSnapshot],
    no_brand_label: str = NO_BRAND,
) -> dict[str, Any]:
    sales_by_day: dict[date, float] = {}
    visits_by_day: dict[date, dict[str, Any]] = {}
    weekdays: dict[int, dict[str, Any]] = {}
    hours: dict[int, dict[str, Any]] = {}
    brands: dict[str, dict[str, Any]] = {}
    brand_orders: dict[str, set[int]] = {}
    products: dict[int | None, dict[str, Any]] = {}
    product_orders: dict[int | None, set[int]] = {}
    commercials: dict[int, dict[str, Any]] = {}
    clients: dict[int, dict[str, Any]] = {}

    total_sales = 0.0
    total_orders = 0
    approved_orders = 0
    completed_orders = 0

    for order in orders:
        if not order.is_realized:
            continue
        amount = order.total_amount
        created_at = order.created_at
        total_sales += amount
        total_orders += 1
        if order.status == OrderStatus.APPROVED:
            approved_orders += 1
        elif order.status == OrderStatus.COMPLETED:
            completed_orders += 1

        day = created_at.date()
        sales_by_day[day] = sales_by_day.get(day, 0.0) + amount

        weekday = _bucket(
            weekdays,
            created_at.weekday(),
            lambda: {"day": created_at.weekday(), "amount": 0.0, "orders": 0, "visits": 0},
        )
        weekday["amount"] += amount
        weekday["orders"] += 1

        hour = _bucket(
            hours,
            created_at.hour,
            lambda: {"hour": created_at.hour, "amount": 0.0, "orders": 0},
        )
        hour["amount"] += amount
        hour["orders"] += 1

        for item in order.items:
            line_total = item.line_total or 0.0
            brand_name = item.brand_name or no_brand_label
            brand = _bucket(
                brands, brand_name, lambda: {"brand": brand_name, "amount": 0.0, "orders": 0}
            )
            brand["amount"] += line_total
            seen = brand_orders.setdefault(brand_name, set())
            if order.id not in seen:
                seen.add(order.id)
                brand["orders"] += 1

            product = _bucket(
                products,
                item.product_id,
                lambda: {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "brand": brand_name,
                    "quantity": 0,
                    "amount": 0.0,
                    "orders": 0,
                },
            )
            product["quantity"] += item.quantity
            product["amount"] += line_total
            seen = product_orders.setdefault(item.product_id, set())
            if order.id not in seen:
                seen.add(order.id)
                product["orders"] += 1

        commercial = _bucket(
            commercials,
            order.commercial_id,
            lambda: _commercial_bucket(order.commercial_id, order.commercial_name),
        )
        commercial["amount"] += amount
        commercial["orders_count"] += 1

        client = _bucket(
            clients,
            order.client_id,
            lambda: {
                "client_id": order.client_id,
                "client": order.client_name,
                "amount": 0.0,
                "orders_count": 0,
            },
        )
        client["amount"] += amount
        client["orders_count"] += 1

    visits_total = 0
    visits_planned = 0
    visits_done = 0
    visits_canceled = 0

    for visit in visits:
        scheduled_at = visit.scheduled_at
        visits_total += 1
        if visit.status == VisitStatus.PLANNED:
            visits_planned += 1
        elif visit.status == VisitStatus.DONE:
            visits_done += 1
        elif visit.status == VisitStatus.CANCELED:
            visits_canceled += 1

        day_bucket = _bucket(
            visits_by_day,
            scheduled_at.date(),
            lambda: {"date": scheduled_at.date(), "planned": 0, "done": 0},
        )
        if visit.status == VisitStatus.PLANNED:
            day_bucket["planned"] += 1
        elif visit.status == VisitStatus.DONE:
            day_bucket["done"] += 1

        weekday = _bucket(
            weekdays,
            scheduled_at.weekday(),
            lambda: {"day": scheduled_at.weekday(), "amount": 0.0, "orders": 0, "visits": 0},
        )
        weekday["visits"] += 1

        commercial = _bucket(
            commercials,
            visit.commercial_id,
            lambda: _commercial_bucket(visit.commercial_id, visit.commercial_name),
        )
        commercial["visits_count"] += 1
        if visit.status == VisitStatus.DONE:
            commercial["visits_done"] += 1

    for commercial in commercials.values():
        commercial["avg_order_value"] = safe_ratio(
            commercial["amount"], commercial["orders_count"]
        )

    return {
        "totals": {
            "total_sales": total_sales,
            "total_orders": total_orders,
            "avg_order_value": safe_ratio(total_sales, total_orders),
            "approved_orders": approved_orders,
            "completed_orders": completed_orders,
            "visits_total": visits_total,
            "visits_planned": visits_planned,
            "visits_done": visits_done,
            "visits_canceled": visits_canceled,
        },
        "sales_by_day": [
            {"date": day, "amount": amount} for day, amount in sorted(sales_by_day.items())
        ],
        "visits_by_day": [visits_by_day[day] for day in sorted(visits_by_day)],
        "sales_by_weekday": [weekdays[day] for day in sorted(weekdays)],
        "sales_by_hour": [hours[hour] for hour in sorted(hours)],
        "sales_by_brand": _by_amount(brands.values()),
        "top_products": _by_amount(products.values()),
        "sales_by_commercial": _by_amount(commercials.values()),
        "sales_by_client": _by_amount(clients.values()),
    }


def activity_heatmap(
    orders: Iterable[OrderSnapshot],
    visits: Iterable[VisitSnapshot],
    commercials: Iterable[CommercialSnapshot] = (),
) -> list[dict[str, Any]]:
    """Daily visit and order counts per commercial, for calendar heatmaps."""
    names = {commercial.id: commercial.name for commercial in commercials}
    activity: dict[int, dict[date, dict[str, int]]] = {}

    for visit in visits:
        days = activity.setdefault(visit.commercial_id, {})
        counts = days.setdefault(visit.scheduled_at.date(), {"visits": 0, "orders": 0})
        counts["visits"] += 1

    for order in orders:
        days = activity.setdefault(order.commercial_id, {})
        counts = days.setdefault(order.created_at.date(), {"visits": 0, "orders": 0})
        counts["orders"] += 1

    return [
        {
            "commercial_id": commercial_id,
            "commercial": names.get(commercial_id, UNKNOWN_COMMERCIAL),
            "activity_by_date": [
                {
                    "date": day,
                    "visits": counts["visits"],
                    "orders": counts["orders"],
                    "total_activity": counts["visits"] + counts["orders"],
                }
                for day, counts in sorted(days.items())
            ],
        }
        for commercial_id, days in activity.items()
    ]
