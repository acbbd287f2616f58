"""Reusable Polars expressions for email event aggregation."""

from datetime import datetime

import polars as pl

from .models import DataScope

SUM_COLUMNS = [
    "emails_sent",
    "unique_opens",
    "unique_clicks",
    "total_orders",
    "revenue",
    "unsubscribes_count",
    "spam_complaints_count",
    "bounces_count",
]


# =============================================================================
# AGGREGATIONS
# =============================================================================


def event_totals_expr() -> list[pl.Expr]:
    """Expressions summing every count column plus revenue.

    Ratios are never aggregated directly; they are recomputed from
    these sums so empty groups come out as zero rather than NaN.
    """
    return [pl.col(c).sum().alias(c) for c in SUM_COLUMNS]


def per_event_rate_expr(numerator: str, denominator: str = "emails_sent") -> pl.Expr:
    """Row-level percentage guarded against zero denominators."""
    return (
        pl.when(pl.col(denominator) > 0)
        .then(pl.col(numerator) / pl.col(denominator) * 100)
        .otherwise(0.0)
    )


# =============================================================================
# FILTERS
# =============================================================================


def window_filter_expr(start: datetime, end: datetime, col: str = "sent_at") -> pl.Expr:
    """Inclusive [start, end] filter on the send timestamp."""
    return pl.col(col).is_between(start, end, closed="both")


def scope_filter_expr(scope: DataScope) -> pl.Expr:
    """Restrict an event frame to campaigns, flows or both."""
    if scope is DataScope.CAMPAIGNS:
        return pl.col("source") == "campaign"
    if scope is DataScope.FLOWS:
        return pl.col("source") == "flow"
    return pl.lit(True)


def flow_name_filter_expr(flow_name: str) -> pl.Expr:
    return (pl.col("source") == "flow") & (pl.col("flow_name") == flow_name)


def live_flow_step_expr(flow_name: str, sequence_position: int) -> pl.Expr:
    """Live sends of a single flow step."""
    return (
        flow_name_filter_expr(flow_name)
        & (pl.col("status") == "live")
        & (pl.col("sequence_position") == sequence_position)
    )
