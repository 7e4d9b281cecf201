from datetime import datetime

import pytest

from fieldsales.models.order import OrderStatus
from fieldsales.services.plan_achievement import (
    ALL_COMMERCIALS_LABEL,
    achievement_by_commercial,
    build_sales_ledger,
    evaluate_plan,
    kpi_dashboard,
    single_plan_achievement,
)
from snapshot_builders import item, order, plan

DAY = datetime(2024, 1, 15, 10)


def _branded_order(commercial_id: int = 1, total: float = 250.0):
    return order(
        DAY,
        total,
        commercial_id=commercial_id,
        items=[
            item(product_id=1, quantity=4, unit_price=25.0, brand_id=7, brand_name="Alpha"),
            item(product_id=2, quantity=3, unit_price=50.0, brand_id=8, brand_name="Beta"),
        ],
    )


def test_unfiltered_plan_uses_order_totals() -> None:
    ledger = build_sales_ledger([order(DAY, 250.0)])

    result = evaluate_plan(plan(total_target=1000.0), ledger)

    assert result["total_achieved"] == 250.0
    assert result["total_percentage"] == 25.0


def test_zero_target_gives_zero_percentage() -> None:
    ledger = build_sales_ledger([order(DAY, 250.0)])

    assert evaluate_plan(plan(total_target=0.0), ledger)["total_percentage"] == 0.0


def test_brand_plan_uses_line_totals_of_that_brand() -> None:
    ledger = build_sales_ledger([_branded_order()])

    result = evaluate_plan(plan(brand_id=7, total_target=200.0), ledger)

    assert result["total_achieved"] == 100.0
    assert result["total_percentage"] == 50.0


def test_monetary_percentage_is_not_capped() -> None:
    ledger = build_sales_ledger([order(DAY, 300.0)])

    assert evaluate_plan(plan(total_target=100.0), ledger)["total_percentage"] == 300.0


def test_product_targets_compare_quantity_and_cap_at_hundred() -> None:
    ledger = build_sales_ledger([_branded_order()])

    result = evaluate_plan(plan(product_targets=[(1, 2), (2, 6), (3, 0)]), ledger)
    by_product = {row["product_id"]: row for row in result["product_targets"]}

    assert by_product[1]["quantity_achieved"] == 4
    assert by_product[1]["percentage"] == 100.0
    assert by_product[2]["percentage"] == 50.0
    assert by_product[3]["percentage"] == 0.0
    assert result["total_percentage"] == pytest.approx(50.0)


def test_ledger_ignores_unrealized_orders_and_other_commercials() -> None:
    ledger = build_sales_ledger(
        [
            order(DAY, 100.0, commercial_id=1),
            order(DAY, 900.0, commercial_id=1, status=OrderStatus.PENDING),
            order(DAY, 50.0, commercial_id=2),
        ]
    )

    assert ledger[1]["total_amount"] == 100.0
    assert ledger[None]["total_amount"] == 150.0
    assert evaluate_plan(plan(commercial_id=3, total_target=10.0), ledger)["total_achieved"] == 0.0


def test_grouping_by_commercial() -> None:
    ledger = build_sales_ledger(
        [order(DAY, 400.0, commercial_id=1), order(DAY, 100.0, commercial_id=2)]
    )
    plans = [
        plan(plan_id=1, commercial_id=1, total_target=800.0),
        plan(plan_id=2, commercial_id=None, total_target=1000.0),
        plan(plan_id=3, commercial_id=None, total_target=0.0, assignments=[(2, 200.0)]),
    ]

    result = achievement_by_commercial(plans, ledger)
    groups = {group["commercial_id"]: group for group in result["by_commercial"]}

    assert groups[1]["overall_percentage"] == 50.0
    assert groups[None]["commercial_name"] == ALL_COMMERCIALS_LABEL
    assert groups[None]["total_achieved"] == 500.0
    assert groups[2]["commercial_name"] == "Commercial 2"
    assert groups[2]["overall_percentage"] == 50.0
    assert [(row["commercial_id"], row["plan_id"]) for row in result["rows"]] == [
        (1, 1),
        (None, 2),
        (2, 3),
    ]


def test_assignment_uses_whole_order_totals_even_on_brand_plans() -> None:
    ledger = build_sales_ledger([_branded_order(commercial_id=5, total=250.0)])
    brand_plan = plan(commercial_id=None, brand_id=7, assignments=[(5, 500.0)])

    rows = achievement_by_commercial([brand_plan], ledger)["rows"]

    assert rows == [
        {
            "commercial_id": 5,
            "commercial": "Commercial 5",
            "plan_id": 1,
            "target": 500.0,
            "achieved": 250.0,
            "percentage": 50.0,
        }
    ]


def test_single_plan_achievement() -> None:
    orders = [
        _branded_order(commercial_id=1, total=250.0),
        order(DAY, 150.0, commercial_id=2),
    ]
    target_plan = plan(
        plan_id=9,
        commercial_id=1,
        brand_id=7,
        total_target=400.0,
        product_targets=[(1, 8)],
        assignments=[(2, 300.0)],
    )

    result = single_plan_achievement(target_plan, orders)

    assert result["plan_id"] == 9
    assert result["total_achieved"] == 100.0
    assert result["achievement_percentage"] == 25.0
    assert result["product_targets"][0]["percentage"] == 50.0
    assert result["assignments"] == [
        {
            "commercial_id": 2,
            "commercial": "Commercial 2",
            "target": 300.0,
            "achieved": 150.0,
            "percentage": 50.0,
        }
    ]


def test_kpi_dashboard() -> None:
    totals = {"total_sales": 500.0, "total_orders": 4, "visits_total": 10, "visits_done": 6}
    rows = [{"target": 1000.0, "achieved": 250.0}, {"target": 0.0, "achieved": 250.0}]

    kpi = kpi_dashboard(totals, rows, conversion_rate=25.0)

    assert kpi["sales"] == {
        "current": 500.0,
        "target": 1000.0,
        "achieved": 500.0,
        "percentage": 50.0,
    }
    assert kpi["visits"]["percentage"] == 60.0
    assert kpi["conversion"]["percentage"] == 50.0
    assert kpi["orders"]["current"] == 4
