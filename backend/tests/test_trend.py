from datetime import datetime

from fieldsales.schemas.records import MonthTotals
from fieldsales.services.records import FetchRunner
from fieldsales.services.trend import build_trend, product_trends
from snapshot_builders import item, order


def test_trend_is_oldest_first_and_crosses_year_boundary() -> None:
    requested = []

    def fetch_month(window) -> MonthTotals:
        requested.append(window.start)
        return MonthTotals(sales=window.start.month * 10.0, orders=window.start.month, visits=1)

    trend = build_trend(fetch_month, 2024, 2, months=4, runner=FetchRunner(workers=2, timeout=5))

    assert [(row["year"], row["month"]) for row in trend] == [
        (2023, 11),
        (2023, 12),
        (2024, 1),
        (2024, 2),
    ]
    assert trend[-1] == {"year": 2024, "month": 2, "sales": 20.0, "orders": 2, "visits": 1}
    assert sorted(requested) == [
        datetime(2023, 11, 1),
        datetime(2023, 12, 1),
        datetime(2024, 1, 1),
        datetime(2024, 2, 1),
    ]


def _sale(product_id: int, amount: float, when: datetime):
    return order(
        when,
        amount,
        items=[item(product_id=product_id, product_name=f"P{product_id}", line_total=amount)],
    )


def test_product_trends() -> None:
    january = datetime(2024, 1, 10)
    february = datetime(2024, 2, 10)
    previous = [_sale(1, 100.0, january), _sale(2, 200.0, january), _sale(3, 50.0, january)]
    current = [_sale(1, 150.0, february), _sale(2, 100.0, february), _sale(4, 30.0, february)]

    trends = product_trends(current, previous)
    growing = {row["product_id"]: row for row in trends["growing"]}
    declining = [row["product_id"] for row in trends["declining"]]

    assert [row["product_id"] for row in trends["growing"]] == [4, 1]
    assert growing[1]["change_percent"] == 50.0
    assert growing[4]["change_percent"] == 100.0
    assert growing[4]["previous_amount"] == 0.0
    assert declining == [3, 2]
    assert trends["declining"][0]["change_percent"] == -100.0
    assert trends["declining"][1]["change"] == -100.0


def test_product_trends_limit_and_unchanged_products() -> None:
    day = datetime(2024, 2, 1)
    current = [_sale(product_id, 10.0 * product_id, day) for product_id in range(1, 6)]
    previous = [_sale(5, 50.0, day)]

    trends = product_trends(current, previous, limit=2)

    assert len(trends["growing"]) == 2
    assert all(row["product_id"] != 5 for row in trends["growing"])
    assert trends["declining"] == []
