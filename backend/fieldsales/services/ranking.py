"""Commercial performance scoring.

Manager and director reports weight the same four signals differently, so the
formula is a ``ScorePolicy`` chosen by the caller rather than a module constant.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from fieldsales.services.ratios import safe_percent, safe_ratio


class ScorePolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    amount_weight: float
    orders_weight: float
    conversion_weight: float
    completion_weight: float
    amount_divisor: float = 1.0

    def score(self, row: dict[str, Any]) -> float:
        return (
            safe_ratio(row.get("amount", 0.0), self.amount_divisor) * self.amount_weight
            + row.get("orders_count", 0) * self.orders_weight
            + row.get("conversion_rate", 0.0) * self.conversion_weight
            + row.get("visit_completion_rate", 0.0) * self.completion_weight
        )


# amount counted in thousands
NORMALIZED_POLICY = ScorePolicy(
    name="normalized",
    amount_weight=0.4,
    orders_weight=10 * 0.2,
    conversion_weight=0.2,
    completion_weight=0.2,
    amount_divisor=1000.0,
)

RAW_POLICY = ScorePolicy(
    name="raw",
    amount_weight=0.4,
    orders_weight=10.0,
    conversion_weight=5.0,
    completion_weight=2.0,
)


def with_rates(row: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a commercial bucket with its derived rates filled in."""
    enriched = dict(row)
    orders_count = enriched.get("orders_count", 0)
    visits_count = enriched.get("visits_count", 0)
    visits_done = enriched.get("visits_done", 0)
    enriched["conversion_rate"] = safe_percent(enriched.get("visits_with_orders", 0), visits_done)
    enriched["visit_completion_rate"] = safe_percent(visits_done, visits_count)
    enriched["avg_order_value"] = safe_ratio(enriched.get("amount", 0.0), orders_count)
    return enriched


def rank_commercials(
    rows: list[dict[str, Any]], policy: ScorePolicy
) -> list[dict[str, Any]]:
    scored = []
    for row in rows:
        enriched = with_rates(row)
        enriched["score"] = policy.score(enriched)
        scored.append(enriched)
    ranked = sorted(scored, key=lambda row: row["score"], reverse=True)
    for position, row in enumerate(ranked, start=1):
        row["rank"] = position
    return ranked
