"""Bucket email events into gap-free metric time series."""

from collections.abc import Sequence
from datetime import date, datetime, time, timedelta

import polars as pl

from ..ingestion.frames import TRUNCATE_EVERY, add_bucket_start, events_frame
from ..models.records import Campaign, FlowEmail
from .expressions import (
    SUM_COLUMNS,
    event_totals_expr,
    live_flow_step_expr,
    window_filter_expr,
)
from .metrics import MetricKey, MetricTotals, compute_metric
from .models import (
    CompareMode,
    DateWindow,
    Granularity,
    MetricBucket,
    MetricSeries,
    SeriesComparison,
)
from .windows import available_compare_window, earliest_event


# =============================================================================
# BUCKET BOUNDARIES
# =============================================================================


def bucket_floor(moment: datetime, granularity: Granularity) -> datetime:
    """Start of the day, ISO week (Monday) or calendar month holding `moment`."""
    day = moment.date()
    if granularity is Granularity.WEEKLY:
        day = day - timedelta(days=day.weekday())
    elif granularity is Granularity.MONTHLY:
        day = day.replace(day=1)
    return datetime.combine(day, time.min)


def next_bucket(start: datetime, granularity: Granularity) -> datetime:
    if granularity is Granularity.DAILY:
        return start + timedelta(days=1)
    if granularity is Granularity.WEEKLY:
        return start + timedelta(weeks=1)
    year, month = (start.year + 1, 1) if start.month == 12 else (start.year, start.month + 1)
    return datetime.combine(date(year, month, 1), time.min)


def bucket_boundaries(window: DateWindow, granularity: Granularity) -> list[datetime]:
    """Ordered bucket starts covering the whole window.

    The first bucket starts at the floor of window.start, so weekly and
    monthly buckets may begin before the window itself.
    """
    granularity = Granularity(granularity)
    start = bucket_floor(window.start, granularity)
    return pl.datetime_range(
        start,
        window.end,
        interval=TRUNCATE_EVERY[granularity.value],
        time_unit="us",
        eager=True,
    ).to_list()


# =============================================================================
# SERIES
# =============================================================================


def bucket_totals(
    events: pl.DataFrame, window: DateWindow, granularity: Granularity
) -> list[tuple[datetime, MetricTotals]]:
    """Summed totals per bucket; empty buckets are zero-filled, never dropped."""
    granularity = Granularity(granularity)
    boundaries = pl.DataFrame(
        {"bucket_start": bucket_boundaries(window, granularity)},
        schema={"bucket_start": pl.Datetime("us")},
    )

    in_window = events.filter(window_filter_expr(window.start, window.end))
    grouped = (
        add_bucket_start(in_window, granularity.value)
        .group_by("bucket_start")
        .agg(event_totals_expr())
    )

    joined = (
        boundaries.join(grouped, on="bucket_start", how="left")
        .with_columns(pl.col(SUM_COLUMNS).fill_null(0))
        .sort("bucket_start")
    )
    return [(row["bucket_start"], MetricTotals.from_row(row)) for row in joined.to_dicts()]


def series_from_frame(
    events: pl.DataFrame,
    metric: MetricKey | str,
    window: DateWindow,
    granularity: Granularity,
) -> MetricSeries:
    """Build a metric series from an already merged event frame."""
    key = MetricKey.parse(metric)
    granularity = Granularity(granularity)
    buckets = tuple(
        MetricBucket(bucket_start=start, value=compute_metric(key, totals))
        for start, totals in bucket_totals(events, window, granularity)
    )
    return MetricSeries(
        metric=key.value, granularity=granularity, window=window, buckets=buckets
    )


def build_series(
    campaigns: Sequence[Campaign],
    flows: Sequence[FlowEmail],
    metric: MetricKey | str,
    window: DateWindow,
    granularity: Granularity,
) -> MetricSeries:
    """Merge campaigns and flows and bucket one metric over `window`.

    Args:
        campaigns: Campaign sends
        flows: Flow-step sends
        metric: Metric key (e.g. "revenue", "openRate")
        window: Inclusive window to cover
        granularity: daily, weekly or monthly buckets

    Returns:
        MetricSeries with one bucket per boundary, in chronological order.

    Raises:
        UnknownMetricError: If metric is not a supported key
    """
    return series_from_frame(events_frame(campaigns, flows), metric, window, granularity)


def align_to(compare: MetricSeries, primary: MetricSeries) -> MetricSeries:
    """Re-index `compare` onto the primary's bucket count.

    Bucket i of the result lines up with bucket i of the primary. Extra
    leading buckets are dropped; missing trailing buckets are zero-filled.
    """
    target = len(primary)
    buckets = list(compare.buckets)

    if len(buckets) > target:
        buckets = buckets[len(buckets) - target:]

    while len(buckets) < target:
        start = (
            next_bucket(buckets[-1].bucket_start, compare.granularity)
            if buckets
            else bucket_floor(compare.window.start, compare.granularity)
        )
        buckets.append(MetricBucket(bucket_start=start, value=0.0))

    return MetricSeries(
        metric=compare.metric,
        granularity=compare.granularity,
        window=compare.window,
        buckets=tuple(buckets),
    )


def series_with_compare_from_frame(
    events: pl.DataFrame,
    metric: MetricKey | str,
    window: DateWindow,
    granularity: Granularity,
    compare_mode: CompareMode = CompareMode.NONE,
    *,
    earliest: datetime | None = None,
    is_all_time: bool = False,
) -> SeriesComparison:
    """Primary series plus an aligned compare series when one is available."""
    compare_mode = CompareMode(compare_mode)
    primary = series_from_frame(events, metric, window, granularity)

    if is_all_time or compare_mode is CompareMode.NONE:
        return SeriesComparison(primary=primary, compare_mode=compare_mode)

    compare_window = available_compare_window(window, compare_mode, earliest)
    if compare_window is None:
        return SeriesComparison(primary=primary, compare_mode=compare_mode)

    compare = series_from_frame(events, metric, compare_window, granularity)
    return SeriesComparison(
        primary=primary, compare=align_to(compare, primary), compare_mode=compare_mode
    )


def build_series_with_compare(
    campaigns: Sequence[Campaign],
    flows: Sequence[FlowEmail],
    metric: MetricKey | str,
    window: DateWindow,
    granularity: Granularity,
    compare_mode: CompareMode = CompareMode.NONE,
    *,
    earliest: datetime | None = None,
    range_token: str | None = None,
) -> SeriesComparison:
    """Build the primary series and, when available, an overlay series.

    The compare series is omitted for the all-time range, for compare mode
    "none", and when the compare window starts before the earliest event.
    The primary series is identical whatever the compare mode.

    Args:
        earliest: Earliest event of the dataset; derived from the inputs
            when omitted
        range_token: Token the window was resolved from
    """
    if earliest is None:
        earliest = earliest_event(campaigns, flows)
    return series_with_compare_from_frame(
        events_frame(campaigns, flows),
        metric,
        window,
        granularity,
        compare_mode,
        earliest=earliest,
        is_all_time=(range_token or "").strip().lower() == "all",
    )


def build_flow_step_series(
    flows: Sequence[FlowEmail],
    flow_name: str,
    sequence_position: int,
    metric: MetricKey | str,
    window: DateWindow,
    granularity: Granularity,
) -> MetricSeries:
    """Series for a single live flow step."""
    events = events_frame((), flows).filter(
        live_flow_step_expr(flow_name, sequence_position)
    )
    return series_from_frame(events, metric, window, granularity)
