"""Plan targets versus realized sales.

A plan with a brand filter is measured in line totals of that brand's items.
A plan without one is measured in whole order totals. Legacy per-commercial
assignments are always measured in whole order totals. Product targets compare
ordered quantity and are capped at 100 %, monetary percentages are not.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from fieldsales.schemas.records import (
    UNKNOWN_COMMERCIAL,
    OrderSnapshot,
    PlanAssignmentSnapshot,
    PlanSnapshot,
)
from fieldsales.services.ratios import safe_percent, safe_ratio

ALL_COMMERCIALS_LABEL = "Svi komercijalisti"


def _ledger_entry() -> dict[str, Any]:
    return {"total_amount": 0.0, "by_brand": {}, "by_product": {}}


def build_sales_ledger(orders: Iterable[OrderSnapshot]) -> dict[int | None, dict[str, Any]]:
    """Sales per commercial id, with the ``None`` key holding every commercial together."""
    ledger: dict[int | None, dict[str, Any]] = {None: _ledger_entry()}
    for order in orders:
        if not order.is_realized:
            continue
        entries = (ledger.setdefault(order.commercial_id, _ledger_entry()), ledger[None])
        for entry in entries:
            entry["total_amount"] += order.total_amount
            for item in order.items:
                by_brand = entry["by_brand"]
                line_total = item.line_total or 0.0
                by_brand[item.brand_id] = by_brand.get(item.brand_id, 0.0) + line_total
                if item.product_id is not None:
                    by_product = entry["by_product"]
                    by_product[item.product_id] = by_product.get(item.product_id, 0) + item.quantity
    return ledger


def _entry_for(
    ledger: dict[int | None, dict[str, Any]], commercial_id: int | None
) -> dict[str, Any]:
    return ledger.get(commercial_id) or _ledger_entry()


def plan_achieved(plan: PlanSnapshot, entry: dict[str, Any]) -> float:
    if plan.brand_id is not None:
        return entry["by_brand"].get(plan.brand_id, 0.0)
    return entry["total_amount"]


def product_target_achievement(plan: PlanSnapshot, entry: dict[str, Any]) -> list[dict[str, Any]]:
    rows = []
    for target in plan.product_targets:
        achieved = entry["by_product"].get(target.product_id, 0)
        percentage = (
            min(100.0, safe_percent(achieved, target.quantity_target))
            if target.quantity_target > 0
            else 0.0
        )
        rows.append(
            {
                "product_id": target.product_id,
                "product_name": target.product_name,
                "quantity_target": target.quantity_target,
                "quantity_achieved": achieved,
                "percentage": percentage,
            }
        )
    return rows


def plan_total_percentage(
    achieved: float, total_target: float | None, product_rows: list[dict[str, Any]]
) -> float:
    if total_target is not None and total_target > 0:
        return safe_percent(achieved, total_target)
    if product_rows:
        return safe_ratio(sum(row["percentage"] for row in product_rows), len(product_rows))
    return 0.0


def evaluate_plan(plan: PlanSnapshot, ledger: dict[int | None, dict[str, Any]]) -> dict[str, Any]:
    entry = _entry_for(ledger, plan.commercial_id)
    achieved = plan_achieved(plan, entry)
    product_rows = product_target_achievement(plan, entry)
    return {
        "plan_id": plan.id,
        "brand_id": plan.brand_id,
        "brand_name": plan.brand_name,
        "total_target": plan.total_target,
        "total_achieved": achieved,
        "total_percentage": plan_total_percentage(achieved, plan.total_target, product_rows),
        "product_targets": product_rows,
    }


def evaluate_assignment(
    plan: PlanSnapshot,
    assignment: PlanAssignmentSnapshot,
    ledger: dict[int | None, dict[str, Any]],
) -> dict[str, Any]:
    achieved = _entry_for(ledger, assignment.commercial_id)["total_amount"]
    return {
        "plan_id": plan.id,
        "brand_id": plan.brand_id,
        "brand_name": plan.brand_name,
        "total_target": assignment.target,
        "total_achieved": achieved,
        "total_percentage": safe_percent(achieved, assignment.target),
        "product_targets": [],
    }


def achievement_by_commercial(
    plans: Iterable[PlanSnapshot], ledger: dict[int | None, dict[str, Any]]
) -> dict[str, list[dict[str, Any]]]:
    """Group plan results per commercial and flatten them into one row per plan and commercial.

    Plans for all commercials are grouped under ``commercial_id = None``.
    """
    groups: dict[int | None, dict[str, Any]] = {}
    rows: list[dict[str, Any]] = []

    def record(commercial_id: int | None, name: str, result: dict[str, Any]) -> None:
        group = groups.get(commercial_id)
        if group is None:
            group = {
                "commercial_id": commercial_id,
                "commercial_name": name,
                "plans": [],
                "total_target": 0.0,
                "total_achieved": 0.0,
                "overall_percentage": 0.0,
            }
            groups[commercial_id] = group
        group["plans"].append(result)
        group["total_target"] += result["total_target"] or 0.0
        group["total_achieved"] += result["total_achieved"]
        rows.append(
            {
                "commercial_id": commercial_id,
                "commercial": name,
                "plan_id": result["plan_id"],
                "target": result["total_target"] or 0.0,
                "achieved": result["total_achieved"],
                "percentage": result["total_percentage"],
            }
        )

    for plan in plans:
        if plan.commercial_id is not None:
            name = plan.commercial_name or UNKNOWN_COMMERCIAL
            record(plan.commercial_id, name, evaluate_plan(plan, ledger))
        elif not plan.assignments:
            record(None, ALL_COMMERCIALS_LABEL, evaluate_plan(plan, ledger))
        for assignment in plan.assignments:
            record(
                assignment.commercial_id,
                assignment.commercial_name,
                evaluate_assignment(plan, assignment, ledger),
            )

    for group in groups.values():
        group["overall_percentage"] = safe_percent(group["total_achieved"], group["total_target"])

    return {"by_commercial": list(groups.values()), "rows": rows}


def single_plan_achievement(plan: PlanSnapshot, orders: Iterable[OrderSnapshot]) -> dict[str, Any]:
    ledger = build_sales_ledger(orders)
    result = evaluate_plan(plan, ledger)
    assignments = []
    for assignment in plan.assignments:
        progress = evaluate_assignment(plan, assignment, ledger)
        assignments.append(
            {
                "commercial_id": assignment.commercial_id,
                "commercial": assignment.commercial_name,
                "target": assignment.target,
                "achieved": progress["total_achieved"],
                "percentage": progress["total_percentage"],
            }
        )
    return {
        "plan_id": plan.id,
        "year": plan.year,
        "month": plan.month,
        "commercial_id": plan.commercial_id,
        "commercial_name": plan.commercial_name,
        "brand_id": plan.brand_id,
        "brand_name": plan.brand_name,
        "total_target": plan.total_target,
        "total_achieved": result["total_achieved"],
        "achievement_percentage": result["total_percentage"],
        "product_targets": result["product_targets"],
        "assignments": assignments,
    }


def kpi_dashboard(
    totals: dict[str, Any],
    achievement_rows: list[dict[str, Any]],
    conversion_rate: float,
    conversion_target: float = 50.0,
) -> dict[str, dict[str, float]]:
    sales_target = sum(row["target"] for row in achievement_rows)
    sales_achieved = sum(row["achieved"] for row in achievement_rows)
    visits_total = totals.get("visits_total", 0)
    visits_done = totals.get("visits_done", 0)
    return {
        "sales": {
            "current": totals.get("total_sales", 0.0),
            "target": sales_target,
            "achieved": sales_achieved,
            "percentage": safe_percent(sales_achieved, sales_target),
        },
        "orders": {
            "current": totals.get("total_orders", 0),
            "target": 0,
            "achieved": totals.get("total_orders", 0),
            "percentage": 0.0,
        },
        "visits": {
            "current": visits_done,
            "target": visits_total,
            "achieved": visits_done,
            "percentage": safe_percent(visits_done, visits_total),
        },
        "conversion": {
            "current": conversion_rate,
            "target": conversion_target,
            "achieved": conversion_rate,
            "percentage": safe_percent(conversion_rate, conversion_target),
        },
    }
