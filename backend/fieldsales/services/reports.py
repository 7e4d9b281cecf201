"""Report assembly for the manager, director and commercial dashboards.

Builders fetch everything a report needs through one ``FetchRunner`` so a
single deadline covers all reads, then hand the snapshots to the pure
aggregation modules. A failed or late fetch fails the whole report.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from functools import partial
from typing import Any

from fieldsales.core.config import Settings, get_settings
from fieldsales.schemas.records import (
    CommercialSnapshot,
    OrderSnapshot,
    PlanSnapshot,
    VisitSnapshot,
)
from fieldsales.services.aggregation import activity_heatmap, aggregate
from fieldsales.services.funnel import (
    ClientOrderIndex,
    annotate_commercial_conversion,
    funnel,
    index_orders_by_client,
    matched_order,
    visits_without_orders,
)
from fieldsales.services.notes import MarkerReasonParser
from fieldsales.services.periods import ReportPeriod, resolve_period, to_local_naive
from fieldsales.services.plan_achievement import (
    achievement_by_commercial,
    build_sales_ledger,
    kpi_dashboard,
    single_plan_achievement,
)
from fieldsales.services.ranking import (
    NORMALIZED_POLICY,
    RAW_POLICY,
    ScorePolicy,
    rank_commercials,
)
from fieldsales.services.ratios import percent_change, safe_percent
from fieldsales.services.records import FetchRunner, RecordSource
from fieldsales.services.retention import (
    cancellation_reasons,
    churn_risk,
    classify_cohorts,
    customer_lifetime_value,
    unvisited_locations,
)
from fieldsales.services.trend import build_trend, product_trends

logger = logging.getLogger(__name__)


def _runner(source: RecordSource, settings: Settings) -> FetchRunner:
    workers = settings.report_fetch_workers if getattr(source, "thread_safe", False) else 1
    return FetchRunner(workers=workers, timeout=settings.report_timeout_seconds)


def _now(settings: Settings) -> datetime:
    return to_local_naive(datetime.now().astimezone(), settings.report_timezone)


def _within(orders: list[OrderSnapshot], period: ReportPeriod) -> list[OrderSnapshot]:
    return [order for order in orders if period.current.contains(order.created_at)]


def _previous_period(current: dict[str, Any], previous: dict[str, Any]) -> dict[str, Any]:
    return {
        "total_sales": previous["total_sales"],
        "total_orders": previous["total_orders"],
        "avg_order_value": previous["avg_order_value"],
        "sales_change": percent_change(current["total_sales"], previous["total_sales"]),
        "orders_change": percent_change(current["total_orders"], previous["total_orders"]),
    }


def _summary(totals: dict[str, Any], commercial_rows: list[dict[str, Any]]) -> dict[str, Any]:
    visits_with_orders = sum(row.get("visits_with_orders", 0) for row in commercial_rows)
    return {
        **totals,
        "visits_with_orders": visits_with_orders,
        "conversion_rate": safe_percent(visits_with_orders, totals["visits_done"]),
    }


def _team_views(
    period: ReportPeriod,
    orders: list[OrderSnapshot],
    previous_orders: list[OrderSnapshot],
    visits: list[VisitSnapshot],
    index: ClientOrderIndex,
    plans: list[PlanSnapshot],
    policy: ScorePolicy,
    settings: Settings,
) -> dict[str, Any]:
    current = aggregate(orders, visits)
    previous = aggregate(previous_orders, ())
    commercial_rows = annotate_commercial_conversion(
        current["sales_by_commercial"], visits, index, settings.visit_order_match_days
    )
    summary = _summary(current["totals"], commercial_rows)
    achievement = achievement_by_commercial(plans, build_sales_ledger(orders))
    return {
        "year": period.year,
        "month": period.month,
        "commercial_id": period.commercial_id,
        "summary": summary,
        "previous_period": _previous_period(current["totals"], previous["totals"]),
        "sales_by_day": current["sales_by_day"],
        "visits_by_day": current["visits_by_day"],
        "sales_by_weekday": current["sales_by_weekday"],
        "sales_by_hour": current["sales_by_hour"],
        "sales_by_brand": current["sales_by_brand"],
        "top_products": current["top_products"][: settings.top_products_limit],
        "sales_by_commercial": commercial_rows,
        "performance_ranking": rank_commercials(commercial_rows, policy),
        "top_clients": current["sales_by_client"][: settings.top_clients_limit],
        "achievement_by_commercial": achievement["rows"],
        "kpi_dashboard": kpi_dashboard(
            summary,
            achievement["rows"],
            summary["conversion_rate"],
            settings.conversion_target_percent,
        ),
    }


def build_manager_report(
    source: RecordSource, period: ReportPeriod, settings: Settings | None = None
) -> dict[str, Any]:
    settings = settings or get_settings()
    started = time.perf_counter()
    commercial_id = period.commercial_id
    runner = _runner(source, settings)
    match_window = period.current.extended(settings.visit_order_match_days)
    matching_orders, previous_orders, visits, plans = runner.run(
        [
            partial(source.fetch_orders, match_window, commercial_id),
            partial(source.fetch_orders, period.previous, commercial_id),
            partial(source.fetch_visits, period.current, commercial_id),
            partial(source.fetch_plans, period.year, period.month),
        ]
    )
    report = _team_views(
        period,
        _within(matching_orders, period),
        previous_orders,
        visits,
        index_orders_by_client(matching_orders),
        plans,
        NORMALIZED_POLICY,
        settings,
    )
    logger.info(
        "Manager report %s-%02d commercial=%s built in %.3fs",
        period.year,
        period.month,
        commercial_id,
        time.perf_counter() - started,
    )
    return report


def build_director_report(
    source: RecordSource,
    period: ReportPeriod,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    settings = settings or get_settings()
    now = now or _now(settings)
    started = time.perf_counter()
    commercial_id = period.commercial_id
    runner = _runner(source, settings)
    match_window = period.current.extended(settings.visit_order_match_days)
    (
        matching_orders,
        previous_orders,
        visits,
        plans,
        history,
        done_visits,
        clients,
        commercials,
    ) = runner.run(
        [
            partial(source.fetch_orders, match_window, commercial_id),
            partial(source.fetch_orders, period.previous, commercial_id),
            partial(source.fetch_visits, period.current, commercial_id),
            partial(source.fetch_plans, period.year, period.month),
            partial(source.fetch_order_history, commercial_id),
            partial(source.fetch_done_visits, commercial_id),
            source.fetch_clients,
            source.fetch_commercials,
        ]
    )
    trend = build_trend(
        partial(source.fetch_month_totals, commercial_id=commercial_id),
        period.year,
        period.month,
        settings.trend_months,
        runner,
    )

    orders = _within(matching_orders, period)
    index = index_orders_by_client(matching_orders)
    match_days = settings.visit_order_match_days
    report = _team_views(
        period, orders, previous_orders, visits, index, plans, RAW_POLICY, settings
    )
    report.update(
        {
            "trend_analysis": trend,
            "new_vs_existing_clients": classify_cohorts(orders, history, period.current),
            "churned_clients": churn_risk(
                history,
                period.current.start,
                now,
                settings.churn_inactive_months,
                settings.churn_list_limit,
            ),
            "cancellation_reasons": cancellation_reasons(
                visits, MarkerReasonParser(settings.cancellation_reason_marker)
            ),
            "visits_without_orders": visits_without_orders(visits, index, match_days),
            "unvisited_branches": unvisited_locations(
                clients,
                done_visits,
                period.current.start,
                now,
                settings.churn_inactive_months,
                settings.unvisited_list_limit,
            ),
            "customer_lifetime_value": customer_lifetime_value(history, settings.clv_list_limit),
            "products_trending": product_trends(
                orders, previous_orders, settings.trending_products_limit
            ),
            "commercial_activity_heatmap": activity_heatmap(orders, visits, commercials),
            "funnel_analysis": funnel(visits, orders, index, match_days),
        }
    )
    logger.info(
        "Director report %s-%02d commercial=%s built in %.3fs",
        period.year,
        period.month,
        commercial_id,
        time.perf_counter() - started,
    )
    return report


def _plans_for_commercial(plans: list[PlanSnapshot], commercial_id: int) -> list[PlanSnapshot]:
    return [
        plan
        for plan in plans
        if plan.commercial_id == commercial_id
        or any(assignment.commercial_id == commercial_id for assignment in plan.assignments)
    ]


def build_commercial_report(
    source: RecordSource,
    period: ReportPeriod,
    commercial: CommercialSnapshot,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Self-scoped view of a single commercial's month."""
    settings = settings or get_settings()
    started = time.perf_counter()
    runner = _runner(source, settings)
    match_window = period.current.extended(settings.visit_order_match_days)
    matching_orders, visits, plans = runner.run(
        [
            partial(source.fetch_orders, match_window, commercial.id),
            partial(source.fetch_visits, period.current, commercial.id),
            partial(source.fetch_plans, period.year, period.month),
        ]
    )
    orders = _within(matching_orders, period)
    index = index_orders_by_client(matching_orders)
    match_days = settings.visit_order_match_days
    current = aggregate(orders, visits)
    commercial_rows = annotate_commercial_conversion(
        current["sales_by_commercial"], visits, index, match_days
    )
    summary = _summary(current["totals"], commercial_rows)

    achievement = achievement_by_commercial(
        _plans_for_commercial(plans, commercial.id), build_sales_ledger(orders)
    )
    own_plans = [
        group for group in achievement["by_commercial"] if group["commercial_id"] == commercial.id
    ]

    limit = settings.recent_items_limit
    recent_orders = sorted(orders, key=lambda order: order.created_at, reverse=True)[:limit]
    recent_visits = sorted(visits, key=lambda visit: visit.scheduled_at, reverse=True)[:limit]

    report = {
        "commercial": commercial.model_dump(),
        "year": period.year,
        "month": period.month,
        "summary": summary,
        "sales_by_day": current["sales_by_day"],
        "sales_by_brand": current["sales_by_brand"],
        "top_clients": current["sales_by_client"][: settings.top_clients_limit],
        "orders": [
            {
                "id": order.id,
                "order_number": order.order_number,
                "total_amount": order.total_amount,
                "created_at": order.created_at,
                "client": order.client_name,
                "status": order.status,
            }
            for order in recent_orders
        ],
        "visits": [
            {
                "id": visit.id,
                "scheduled_at": visit.scheduled_at,
                "status": visit.status,
                "client": visit.client_name,
                "has_order": matched_order(visit, index, match_days) is not None,
            }
            for visit in recent_visits
        ],
        "plan_achievement": own_plans[0] if own_plans else None,
    }
    logger.info(
        "Commercial report %s-%02d commercial=%s built in %.3fs",
        period.year,
        period.month,
        commercial.id,
        time.perf_counter() - started,
    )
    return report


def build_plan_achievement_report(
    source: RecordSource, year: int, month: int, settings: Settings | None = None
) -> dict[str, Any]:
    settings = settings or get_settings()
    period = resolve_period(year, month)
    runner = _runner(source, settings)
    plans, orders = runner.run(
        [
            partial(source.fetch_plans, period.year, period.month),
            partial(source.fetch_orders, period.current),
        ]
    )
    achievement = achievement_by_commercial(plans, build_sales_ledger(orders))
    logger.info(
        "Plan achievement %s-%02d: %s plans, %s orders",
        period.year,
        period.month,
        len(plans),
        len(orders),
    )
    return {
        "year": period.year,
        "month": period.month,
        "by_commercial": achievement["by_commercial"],
        "rows": achievement["rows"],
    }


def build_single_plan_report(
    source: RecordSource, plan: PlanSnapshot, settings: Settings | None = None
) -> dict[str, Any]:
    settings = settings or get_settings()
    period = resolve_period(plan.year, plan.month)
    (orders,) = _runner(source, settings).run([partial(source.fetch_orders, period.current)])
    report = single_plan_achievement(plan, orders)
    logger.info(
        "Plan %s achievement: %.2f of %s",
        plan.id,
        report["total_achieved"],
        plan.total_target,
    )
    return report

