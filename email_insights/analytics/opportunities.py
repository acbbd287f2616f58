"""Roll annualized opportunity estimates up into categories and totals."""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

import polars as pl

from .expressions import scope_filter_expr, window_filter_expr
from .metrics import totals_from_frame
from .models import (
    DataScope,
    OpportunityCategory,
    OpportunityCategoryKind,
    OpportunityItem,
    OpportunitySummary,
    OpportunityTotals,
    RevenueOpportunityCategory,
    SavingsOpportunityCategory,
)
from .windows import resolve_window

BASELINE_RANGE = "365d"

CATEGORY_LABELS = {
    OpportunityCategoryKind.CAMPAIGNS: "Campaigns",
    OpportunityCategoryKind.FLOWS: "Flows",
    OpportunityCategoryKind.AUDIENCE: "Audience",
}


@dataclass(frozen=True)
class OpportunityInput:
    """Annualized estimate produced by one analysis module."""

    module: str
    scope: str
    label: str
    amount_annual: float


@dataclass(frozen=True)
class AudiencePricing:
    """Monthly plan price before and after an audience cleanup."""

    plan_price_before: float
    plan_price_after: float


def _sanitize(amount: float) -> float:
    """Negative, NaN or infinite estimates contribute nothing."""
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def _pct(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def revenue_baselines(
    events: pl.DataFrame, reference: datetime
) -> dict[OpportunityCategoryKind, float]:
    """Trailing 365-day revenue for campaigns and flows."""
    window = resolve_window(BASELINE_RANGE, reference)
    in_window = events.filter(window_filter_expr(window.start, window.end))
    return {
        OpportunityCategoryKind.CAMPAIGNS: totals_from_frame(
            in_window.filter(scope_filter_expr(DataScope.CAMPAIGNS))
        ).revenue,
        OpportunityCategoryKind.FLOWS: totals_from_frame(
            in_window.filter(scope_filter_expr(DataScope.FLOWS))
        ).revenue,
    }


def summarize(
    items_by_category: Mapping[OpportunityCategoryKind | str, Sequence[OpportunityInput]],
    range_token: str,
    events: pl.DataFrame,
    reference: datetime,
    *,
    earliest: datetime | None = None,
    audience_pricing: AudiencePricing | None = None,
) -> OpportunitySummary:
    """Build opportunity categories with baselines and grand totals.

    Baselines always come from the trailing 365 days, whatever range is
    selected; the range only drives totals.range_amount.

    Args:
        items_by_category: Opportunity estimates keyed by category
        range_token: Selected range, used to prorate the annual total
        events: Merged event frame
        reference: Anchor date (latest send)
        earliest: Earliest send, needed for the "all" range
        audience_pricing: Plan prices for the audience savings category

    Returns:
        OpportunitySummary with categories in campaigns, flows, audience order.
    """
    grouped = {
        OpportunityCategoryKind(kind): [
            (item, _sanitize(item.amount_annual)) for item in items
        ]
        for kind, items in items_by_category.items()
    }
    category_totals = {
        kind: sum(amount for _, amount in grouped.get(kind, []))
        for kind in OpportunityCategoryKind
    }
    grand_total = sum(category_totals.values())

    revenue_base = revenue_baselines(events, reference)
    audience_base = audience_pricing.plan_price_before * 12 if audience_pricing else 0.0

    categories: list[OpportunityCategory] = []
    for kind in OpportunityCategoryKind:
        total = category_totals[kind]
        items = tuple(
            OpportunityItem(
                module=item.module,
                scope=item.scope,
                label=item.label,
                amount_annual=amount,
                percent_of_category=_pct(amount, total),
                percent_of_overall=_pct(amount, grand_total),
            )
            for item, amount in grouped.get(kind, [])
        )

        baseline = audience_base if kind is OpportunityCategoryKind.AUDIENCE else revenue_base[kind]
        shared = dict(
            kind=kind,
            label=CATEGORY_LABELS[kind],
            items=items,
            total_annual=total,
            baseline_annual=baseline,
            baseline_monthly=baseline / 12,
            baseline_weekly=baseline / 52,
            percent_of_overall=_pct(total, grand_total),
        )

        if kind is OpportunityCategoryKind.AUDIENCE:
            categories.append(
                SavingsOpportunityCategory(
                    **shared,
                    plan_price_before=audience_pricing.plan_price_before if audience_pricing else None,
                    plan_price_after=audience_pricing.plan_price_after if audience_pricing else None,
                )
            )
        else:
            categories.append(
                RevenueOpportunityCategory(**shared, lift_percent=_pct(total, baseline))
            )

    range_days = resolve_window(range_token, reference, earliest).days
    totals = OpportunityTotals(
        annual=grand_total,
        monthly=grand_total / 12,
        weekly=grand_total / 52,
        range_days=range_days,
        range_amount=grand_total * range_days / 365,
        baseline_annual=sum(revenue_base.values()),
    )

    return OpportunitySummary(categories=tuple(categories), totals=totals)
