from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from functools import partial
from typing import Any

from fieldsales.schemas.records import NO_BRAND, MonthTotals, OrderSnapshot
from fieldsales.services.periods import Window, month_window, trailing_months
from fieldsales.services.ratios import percent_change
from fieldsales.services.records import FetchRunner

logger = logging.getLogger(__name__)


def build_trend(
    fetch_month: Callable[[Window], MonthTotals],
    year: int,
    month: int,
    months: int = 6,
    runner: FetchRunner | None = None,
) -> list[dict[str, Any]]:
    """Sales, orders and visits for the trailing months, oldest first."""
    runner = runner or FetchRunner()
    pairs = trailing_months(year, month, months)
    calls = [
        partial(fetch_month, month_window(pair_year, pair_month)) for pair_year, pair_month in pairs
    ]
    totals = runner.run(calls)
    logger.debug("Trend built for %s months ending %s-%02d", len(pairs), year, month)
    return [
        {
            "year": pair_year,
            "month": pair_month,
            "sales": month_totals.sales,
            "orders": month_totals.orders,
            "visits": month_totals.visits,
        }
        for (pair_year, pair_month), month_totals in zip(pairs, totals)
    ]


def _product_amounts(
    orders: Iterable[OrderSnapshot], no_brand_label: str
) -> dict[int | None, dict[str, Any]]:
    products: dict[int | None, dict[str, Any]] = {}
    for order in orders:
        if not order.is_realized:
            continue
        for item in order.items:
            product = products.get(item.product_id)
            if product is None:
                product = {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "brand": item.brand_name or no_brand_label,
                    "amount": 0.0,
                }
                products[item.product_id] = product
            product["amount"] += item.line_total or 0.0
    return products


def product_trends(
    orders: Iterable[OrderSnapshot],
    previous_orders: Iterable[OrderSnapshot],
    limit: int = 10,
    no_brand_label: str = NO_BRAND,
) -> dict[str, list[dict[str, Any]]]:
    """Products whose line-total sales grew or fell against the previous month.

    A product with no sales in the previous month counts as 100 % growth; one
    that sold nothing this month counts as a 100 % decline.
    """
    current = _product_amounts(orders, no_brand_label)
    previous = _product_amounts(previous_orders, no_brand_label)

    rows = []
    for product_id in [*current, *(key for key in previous if key not in current)]:
        product = current.get(product_id) or previous[product_id]
        current_amount = current[product_id]["amount"] if product_id in current else 0.0
        previous_amount = previous[product_id]["amount"] if product_id in previous else 0.0
        change = current_amount - previous_amount
        if previous_amount > 0:
            change_percent = percent_change(current_amount, previous_amount)
        else:
            change_percent = 100.0 if current_amount > 0 else 0.0
        rows.append(
            {
                "product_id": product["product_id"],
                "product_name": product["product_name"],
                "brand": product["brand"],
                "current_amount": current_amount,
                "previous_amount": previous_amount,
                "change": change,
                "change_percent": change_percent,
            }
        )

    growing = sorted(
        (row for row in rows if row["change"] > 0),
        key=lambda row: row["change_percent"],
        reverse=True,
    )
    declining = sorted(
        (row for row in rows if row["change"] < 0), key=lambda row: row["change_percent"]
    )
    return {"growing": growing[:limit], "declining": declining[:limit]}
