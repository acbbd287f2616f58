"""Period-over-period change for a single metric."""

import math
from dataclasses import dataclass
from datetime import datetime

import polars as pl
import structlog

from .expressions import flow_name_filter_expr, scope_filter_expr, window_filter_expr
from .metrics import LOWER_IS_BETTER, MetricKey, MetricTotals, compute_metric, totals_from_frame
from .models import CompareMode, DataScope, PeriodDelta
from .windows import (
    RangeKind,
    available_compare_window,
    parse_range_token,
    resolve_compare_window,
    resolve_window,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BaselineFloor:
    """Minimum previous-window volume for a trustworthy comparison.

    A baseline with some activity but below all three floors is flagged
    as low_baseline on the result.
    """

    min_emails: int = 20
    min_revenue: float = 50.0
    min_orders: int = 3

    def is_low(self, totals: MetricTotals) -> bool:
        if totals.is_empty:
            return False
        return (
            totals.emails_sent < self.min_emails
            and totals.revenue < self.min_revenue
            and totals.total_orders < self.min_orders
        )


def change_percent(current: float, previous: float) -> float:
    """Relative change in percent against |previous|.

    0 when both are zero; +/-100 when only the previous value is zero.
    """
    if previous == 0:
        if current == 0:
            return 0.0
        return math.copysign(100.0, current)
    return (current - previous) / abs(previous) * 100


def is_positive_change(metric: MetricKey, change: float) -> bool:
    """A decrease is good news for unsubscribe, spam and bounce rates."""
    if metric in LOWER_IS_BETTER:
        return change <= 0
    return change >= 0


def scoped_events(
    events: pl.DataFrame,
    scope: DataScope = DataScope.ALL,
    flow_name: str | None = None,
) -> pl.DataFrame:
    """Restrict events to a record type and optionally one flow."""
    scoped = events.filter(scope_filter_expr(DataScope(scope)))
    if flow_name and flow_name != "all":
        scoped = scoped.filter(flow_name_filter_expr(flow_name))
    return scoped


def period_over_period(
    metric: MetricKey | str,
    range_token: str,
    events: pl.DataFrame,
    reference: datetime,
    *,
    flow_name: str | None = None,
    compare_mode: CompareMode = CompareMode.PREV_PERIOD,
    scope: DataScope = DataScope.ALL,
    baseline_floor: BaselineFloor | None = None,
) -> PeriodDelta:
    """Compare a metric between the current window and its compare window.

    Args:
        metric: Metric key
        range_token: Range token for the current window
        events: Merged event frame (see ingestion.frames.events_frame)
        reference: Anchor date for relative ranges
        flow_name: Restrict to a single flow ("all" or None for no filter)
        compare_mode: prev-period or prev-year
        scope: Which record types to include
        baseline_floor: Volume floors for the low_baseline flag

    Returns:
        PeriodDelta. For the all-time range, compare mode "none" or a compare
        window not covered by the scoped data, change_percent is 0 and
        comparison_available is False.

    Raises:
        UnknownMetricError: If metric is not a supported key
    """
    key = MetricKey.parse(metric)
    compare_mode = CompareMode(compare_mode)
    floor = baseline_floor or BaselineFloor()
    spec = parse_range_token(range_token)

    if spec.kind is RangeKind.ALL:
        return PeriodDelta(
            change_percent=0.0,
            is_positive=True,
            previous_value=0.0,
            previous_window=None,
        )

    subset = scoped_events(events, scope, flow_name)
    earliest = subset["sent_at"].min() if not subset.is_empty() else None

    window = resolve_window(spec, reference, earliest)
    current_totals = totals_from_frame(
        subset.filter(window_filter_expr(window.start, window.end))
    )
    current_value = compute_metric(key, current_totals)

    previous_window = available_compare_window(window, compare_mode, earliest)
    if previous_window is None:
        logger.debug(
            "comparison_unavailable",
            metric=key.value,
            range_token=range_token,
            compare_mode=compare_mode.value,
        )
        return PeriodDelta(
            change_percent=0.0,
            is_positive=True,
            previous_value=0.0,
            previous_window=resolve_compare_window(window, compare_mode),
            current_value=current_value,
            current_window=window,
        )

    previous_totals = totals_from_frame(
        subset.filter(window_filter_expr(previous_window.start, previous_window.end))
    )
    previous_value = compute_metric(key, previous_totals)
    change = change_percent(current_value, previous_value)

    return PeriodDelta(
        change_percent=change,
        is_positive=is_positive_change(key, change),
        previous_value=previous_value,
        previous_window=previous_window,
        current_value=current_value,
        current_window=window,
        comparison_available=True,
        low_baseline=floor.is_low(previous_totals),
    )
