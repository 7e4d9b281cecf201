from datetime import datetime

from fieldsales.models.order import OrderStatus
from fieldsales.models.visit import VisitStatus
from fieldsales.services.periods import month_window
from fieldsales.services.retention import (
    NEVER_VISITED_MONTHS,
    cancellation_reasons,
    churn_risk,
    classify_cohorts,
    customer_lifetime_value,
    months_before,
    months_since,
    unvisited_locations,
)
from snapshot_builders import client, order, visit

MARKER = "--- RAZLOG OTKAZIVANJA ---"


def test_months_helpers() -> None:
    assert months_before(datetime(2024, 2, 1), 3) == datetime(2023, 11, 1)
    assert months_since(datetime(2023, 11, 15), datetime(2024, 3, 15)) == 4
    assert months_since(datetime(2024, 3, 20), datetime(2024, 3, 15)) == 0


def test_cohorts_partition_window_orders() -> None:
    history = [
        order(datetime(2023, 6, 1), 40.0, client_id=1),
        order(datetime(2024, 1, 4), 10.0, client_id=1),
        order(datetime(2024, 1, 5), 20.0, client_id=2),
        order(datetime(2024, 1, 9), 30.0, client_id=2),
    ]
    window = month_window(2024, 1)
    orders = [o for o in history if window.contains(o.created_at)]

    cohorts = classify_cohorts(orders, history, window)

    assert cohorts["new_clients"] == 1
    assert cohorts["new_clients_count"] == 2
    assert cohorts["new_clients_sales"] == 50.0
    assert cohorts["existing_clients_count"] == 1
    assert cohorts["existing_clients_sales"] == 10.0
    total = cohorts["new_clients_sales"] + cohorts["existing_clients_sales"]
    assert total == sum(o.total_amount for o in orders)


def test_canceled_history_does_not_make_a_client_existing() -> None:
    history = [
        order(datetime(2023, 6, 1), 40.0, client_id=1, status=OrderStatus.CANCELED),
        order(datetime(2024, 1, 4), 10.0, client_id=1),
    ]

    cohorts = classify_cohorts(history[1:], history, month_window(2024, 1))

    assert cohorts["new_clients"] == 1


def test_churn_is_monotonic_in_report_month() -> None:
    history = [
        order(datetime(2023, 5, 2), 10.0, client_id=1, client_name="Stara"),
        order(datetime(2023, 11, 15), 10.0, client_id=1, client_name="Stara"),
        order(datetime(2024, 1, 20), 10.0, client_id=2, client_name="Aktivna"),
    ]

    february = churn_risk(history, datetime(2024, 2, 1), datetime(2024, 2, 10))
    march = churn_risk(history, datetime(2024, 3, 1), datetime(2024, 3, 15))

    assert february == []
    assert [row["client_id"] for row in march] == [1]
    assert march[0]["first_order_date"] == datetime(2023, 5, 2)
    assert march[0]["months_since_last_order"] == 4


def test_churn_sorted_by_inactivity_and_limited() -> None:
    history = [
        order(datetime(2023, 9, 1), 10.0, client_id=1),
        order(datetime(2023, 3, 1), 10.0, client_id=2),
        order(datetime(2023, 6, 1), 10.0, client_id=3),
    ]

    rows = churn_risk(history, datetime(2024, 3, 1), datetime(2024, 3, 1), limit=2)

    assert [row["client_id"] for row in rows] == [2, 3]


def test_customer_lifetime_value() -> None:
    history = [
        order(datetime(2023, 1, 1), 100.0, client_id=1),
        order(datetime(2023, 5, 1), 300.0, client_id=1),
        order(datetime(2023, 2, 1), 250.0, client_id=2),
        order(datetime(2023, 3, 1), 999.0, client_id=2, status=OrderStatus.PENDING),
    ]

    rows = customer_lifetime_value(history)

    assert [row["client_id"] for row in rows] == [1, 2]
    assert rows[0]["total_orders"] == 2
    assert rows[0]["avg_order_value"] == 200.0
    assert rows[0]["last_order_date"] == datetime(2023, 5, 1)
    assert rows[1]["total_sales"] == 250.0


def test_cancellation_reasons_counted_from_canceled_notes() -> None:
    day = datetime(2024, 1, 3)
    visits = [
        visit(day, status=VisitStatus.CANCELED, note=f"Plan\n{MARKER}\nBolovanje\n\nOstalo"),
        visit(day, status=VisitStatus.CANCELED, note=f"{MARKER}\nBolovanje"),
        visit(day, status=VisitStatus.CANCELED, note=f"{MARKER}\nZatvoreno"),
        visit(day, status=VisitStatus.CANCELED, note="Bez razloga"),
        visit(day, status=VisitStatus.DONE, note=f"{MARKER}\nBolovanje"),
    ]

    assert cancellation_reasons(visits) == [
        {"reason": "Bolovanje", "count": 2},
        {"reason": "Zatvoreno", "count": 1},
    ]


def test_cancellation_reasons_accept_custom_parser() -> None:
    class FirstLine:
        def parse(self, note):
            return note.splitlines()[0] if note else None

    visits = [visit(datetime(2024, 1, 3), status=VisitStatus.CANCELED, note="Kisa\ndetalji")]

    assert cancellation_reasons(visits, FirstLine()) == [{"reason": "Kisa", "count": 1}]


def test_unvisited_locations() -> None:
    clients = [
        client(1, "Apoteka A", [(10, "A centar"), (11, "A jug")]),
        client(2, "Apoteka B"),
        client(3, "Apoteka C"),
        client(4, "Apoteka D", [(20, "D sjever")]),
    ]
    visits = [
        visit(datetime(2024, 2, 10), client_id=1, branch_ids=[10]),
        visit(datetime(2023, 10, 5), client_id=2, commercial_id=7, commercial_name="Marko"),
        visit(datetime(2024, 3, 1), client_id=3),
        visit(datetime(2024, 3, 2), client_id=4),
        visit(datetime(2024, 3, 3), client_id=2, status=VisitStatus.CANCELED),
    ]

    rows = unvisited_locations(clients, visits, datetime(2024, 4, 1), datetime(2024, 4, 15))

    assert [(row["client_id"], row["branch_id"]) for row in rows] == [(1, 11), (4, 20)]
    assert rows[0]["months_since_last_visit"] == NEVER_VISITED_MONTHS
    assert rows[0]["last_visit_date"] is None
    assert rows[0]["commercial"] is None


def test_unvisited_locations_lists_only_branches() -> None:
    clients = [client(client_id, f"Apoteka {client_id}") for client_id in range(1, 101)]
    clients.append(client(500, "Apoteka Sjever", [(9000, "Sjever 1")]))

    rows = unvisited_locations(clients, [], datetime(2024, 4, 1), datetime(2024, 4, 15))

    assert [(row["client_id"], row["branch_id"]) for row in rows] == [(500, 9000)]
    assert rows[0]["months_since_last_visit"] == NEVER_VISITED_MONTHS


def test_unvisited_locations_reports_months_since_stale_visit() -> None:
    clients = [client(1, "Apoteka A", [(10, "A centar")])]
    visits = [
        visit(
            datetime(2023, 10, 5),
            client_id=1,
            branch_ids=[10],
            commercial_id=7,
            commercial_name="Marko",
        ),
    ]

    rows = unvisited_locations(clients, visits, datetime(2024, 4, 1), datetime(2024, 4, 15))

    assert rows[0]["branch"] == "A centar"
    assert rows[0]["months_since_last_visit"] == 6
    assert rows[0]["commercial"] == "Marko"
