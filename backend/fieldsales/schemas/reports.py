from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

from fieldsales.models.order import OrderStatus
from fieldsales.models.visit import VisitStatus


class ReportSummary(BaseModel):
    total_sales: float
    total_orders: int
    avg_order_value: float
    approved_orders: int
    completed_orders: int
    visits_total: int
    visits_planned: int
    visits_done: int
    visits_canceled: int
    visits_with_orders: int
    conversion_rate: float


class PreviousPeriod(BaseModel):
    total_sales: float
    total_orders: int
    avg_order_value: float
    sales_change: float
    orders_change: float


class DailySales(BaseModel):
    date: dt.date
    amount: float


class DailyVisits(BaseModel):
    date: dt.date
    planned: int
    done: int


class WeekdaySales(BaseModel):
    day: int = Field(ge=0, le=6)
    amount: float
    orders: int
    visits: int


class HourlySales(BaseModel):
    hour: int = Field(ge=0, le=23)
    amount: float
    orders: int


class BrandSales(BaseModel):
    brand: str
    amount: float
    orders: int


class ProductSales(BaseModel):
    product_id: int | None
    product_name: str
    brand: str
    quantity: int
    amount: float
    orders: int


class CommercialPerformance(BaseModel):
    commercial_id: int
    commercial: str
    amount: float
    orders_count: int
    visits_count: int
    visits_done: int
    visits_with_orders: int
    avg_order_value: float
    avg_days_to_order: float


class RankedCommercial(CommercialPerformance):
    conversion_rate: float
    visit_completion_rate: float
    score: float
    rank: int


class ClientSales(BaseModel):
    client_id: int
    client: str
    amount: float
    orders_count: int


class AchievementRow(BaseModel):
    commercial_id: int | None
    commercial: str
    plan_id: int
    target: float
    achieved: float
    percentage: float


class KpiValue(BaseModel):
    current: float
    target: float
    achieved: float
    percentage: float


class KpiDashboard(BaseModel):
    sales: KpiValue
    orders: KpiValue
    visits: KpiValue
    conversion: KpiValue


class TrendMonth(BaseModel):
    year: int
    month: int
    sales: float
    orders: int
    visits: int


class ClientCohorts(BaseModel):
    new_clients: int
    new_clients_count: int
    new_clients_sales: float
    existing_clients_count: int
    existing_clients_sales: float


class ChurnedClient(BaseModel):
    client_id: int
    client: str
    first_order_date: dt.datetime
    last_order_date: dt.datetime
    months_since_last_order: int


class CancellationReason(BaseModel):
    reason: str
    count: int


class VisitWithoutOrder(BaseModel):
    visit_id: int
    client_id: int
    client: str
    commercial_id: int
    commercial: str
    scheduled_at: dt.datetime
    note: str | None = None


class UnvisitedLocation(BaseModel):
    branch_id: int
    branch: str
    client_id: int
    client: str
    last_visit_date: dt.datetime | None
    months_since_last_visit: int
    commercial_id: int | None
    commercial: str | None


class ClientLifetimeValue(BaseModel):
    client_id: int
    client: str
    total_orders: int
    total_sales: float
    first_order_date: dt.datetime
    last_order_date: dt.datetime
    avg_order_value: float


class ProductTrend(BaseModel):
    product_id: int | None
    product_name: str
    brand: str
    current_amount: float
    previous_amount: float
    change: float
    change_percent: float


class ProductTrends(BaseModel):
    growing: list[ProductTrend]
    declining: list[ProductTrend]


class ActivityDay(BaseModel):
    date: dt.date
    visits: int
    orders: int
    total_activity: int


class CommercialActivity(BaseModel):
    commercial_id: int
    commercial: str
    activity_by_date: list[ActivityDay]


class FunnelRates(BaseModel):
    planned_to_done: float
    done_to_order: float
    order_to_approved: float
    approved_to_completed: float


class FunnelAnalysis(BaseModel):
    planned_visits: int
    done_visits: int
    visits_with_orders: int
    approved_orders: int
    completed_orders: int
    conversion_rates: FunnelRates


class ManagerReport(BaseModel):
    year: int
    month: int
    commercial_id: int | None = None
    summary: ReportSummary
    previous_period: PreviousPeriod
    sales_by_day: list[DailySales]
    visits_by_day: list[DailyVisits]
    sales_by_weekday: list[WeekdaySales]
    sales_by_hour: list[HourlySales]
    sales_by_brand: list[BrandSales]
    top_products: list[ProductSales]
    sales_by_commercial: list[CommercialPerformance]
    performance_ranking: list[RankedCommercial]
    top_clients: list[ClientSales]
    achievement_by_commercial: list[AchievementRow]
    kpi_dashboard: KpiDashboard


class DirectorReport(ManagerReport):
    trend_analysis: list[TrendMonth]
    new_vs_existing_clients: ClientCohorts
    churned_clients: list[ChurnedClient]
    cancellation_reasons: list[CancellationReason]
    visits_without_orders: list[VisitWithoutOrder]
    unvisited_branches: list[UnvisitedLocation]
    customer_lifetime_value: list[ClientLifetimeValue]
    products_trending: ProductTrends
    commercial_activity_heatmap: list[CommercialActivity]
    funnel_analysis: FunnelAnalysis


class ProductTargetAchievement(BaseModel):
    product_id: int
    product_name: str
    quantity_target: int
    quantity_achieved: int
    percentage: float


class PlanResult(BaseModel):
    plan_id: int
    brand_id: int | None = None
    brand_name: str | None = None
    total_target: float | None = None
    total_achieved: float
    total_percentage: float
    product_targets: list[ProductTargetAchievement] = Field(default_factory=list)


class CommercialPlans(BaseModel):
    commercial_id: int | None
    commercial_name: str
    plans: list[PlanResult]
    total_target: float
    total_achieved: float
    overall_percentage: float


class PlanAchievementReport(BaseModel):
    year: int
    month: int
    by_commercial: list[CommercialPlans]
    rows: list[AchievementRow]


class AssignmentProgress(BaseModel):
    commercial_id: int
    commercial: str
    target: float
    achieved: float
    percentage: float


class SinglePlanReport(BaseModel):
    plan_id: int
    year: int
    month: int
    commercial_id: int | None = None
    commercial_name: str | None = None
    brand_id: int | None = None
    brand_name: str | None = None
    total_target: float | None = None
    total_achieved: float
    achievement_percentage: float
    product_targets: list[ProductTargetAchievement]
    assignments: list[AssignmentProgress]


class CommercialInfo(BaseModel):
    id: int
    name: str
    email: str | None = None


class RecentOrder(BaseModel):
    id: int
    order_number: str | None = None
    total_amount: float
    created_at: dt.datetime
    client: str
    status: OrderStatus


class RecentVisit(BaseModel):
    id: int
    scheduled_at: dt.datetime
    status: VisitStatus
    client: str
    has_order: bool


class CommercialReport(BaseModel):
    commercial: CommercialInfo
    year: int
    month: int
    summary: ReportSummary
    sales_by_day: list[DailySales]
    sales_by_brand: list[BrandSales]
    top_clients: list[ClientSales]
    orders: list[RecentOrder]
    visits: list[RecentVisit]
    plan_achievement: CommercialPlans | None = None
