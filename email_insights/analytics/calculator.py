"""Analytical Engine - main calculator over one account's email dataset."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from .expressions import live_flow_step_expr, window_filter_expr
from .metrics import MetricKey, compute_all, totals_from_frame
from .models import (
    CompareMode,
    DataScope,
    DateWindow,
    Granularity,
    MetricSeries,
    OpportunityCategoryKind,
    OpportunitySummary,
    PeriodDelta,
    SendVolumeGuidanceResult,
    SeriesComparison,
)
from .opportunities import AudiencePricing, OpportunityInput, summarize
from .period import BaselineFloor, period_over_period, scoped_events
from .send_volume import SendVolumeGuidanceEngine, SendVolumeThresholds
from .timeseries import series_from_frame, series_with_compare_from_frame
from .windows import (
    RangeKind,
    allowed_granularities,
    is_compare_window_available,
    parse_range_token,
    resolve_window,
    suggest_granularity,
)

if TYPE_CHECKING:
    from ..services.dataset_store import Dataset


@dataclass
class AnalyticalEngine:
    """Main analytics calculator for email campaign and flow data.

    All methods are pure functions - they never mutate the dataset.

    Attributes:
        dataset: Immutable account dataset from the DatasetStore
        send_volume_thresholds: Heuristics for send-volume guidance
        baseline_floor: Volume floors for low-baseline comparisons
    """

    dataset: Dataset
    send_volume_thresholds: SendVolumeThresholds = field(
        default_factory=SendVolumeThresholds
    )
    baseline_floor: BaselineFloor = field(default_factory=BaselineFloor)

    # =========================================================================
    # WINDOWS
    # =========================================================================

    def window(self, range_token: str) -> DateWindow:
        """Resolve a range token against this dataset."""
        return resolve_window(
            range_token, self.dataset.reference_date, self.dataset.earliest_event
        )

    def scoped_earliest(
        self, scope: DataScope = DataScope.ALL, flow_name: str | None = None
    ) -> datetime | None:
        """Earliest send among the records a scoped view draws on."""
        events = scoped_events(self.dataset.events, scope, flow_name)
        return None if events.is_empty() else events["sent_at"].min()

    def compare_window_available(
        self,
        range_token: str,
        compare_mode: CompareMode,
        scope: DataScope = DataScope.ALL,
    ) -> bool:
        """Whether the scoped data fully covers the compare window."""
        earliest = self.scoped_earliest(scope)
        if earliest is None:
            return False
        return is_compare_window_available(
            range_token, compare_mode, self.dataset.reference_date, earliest
        )

    def granularity_options(
        self, range_token: str
    ) -> tuple[Granularity, tuple[Granularity, ...]]:
        """Suggested granularity and the granularities a chart should offer."""
        window = self.window(range_token)
        return suggest_granularity(window), allowed_granularities(window)

    # =========================================================================
    # AGGREGATES
    # =========================================================================

    def aggregate(
        self,
        range_token: str,
        scope: DataScope = DataScope.ALL,
        flow_name: str | None = None,
    ) -> dict[MetricKey, float]:
        """All twelve metrics over the resolved window.

        Returns:
            Mapping of metric key to value; zeros for an empty window.
        """
        window = self.window(range_token)
        events = scoped_events(self.dataset.events, scope, flow_name).filter(
            window_filter_expr(window.start, window.end)
        )
        return compute_all(totals_from_frame(events))

    # =========================================================================
    # TIME SERIES
    # =========================================================================

    def series(
        self,
        metric: MetricKey | str,
        range_token: str,
        granularity: Granularity | None = None,
        compare_mode: CompareMode = CompareMode.NONE,
        scope: DataScope = DataScope.ALL,
    ) -> SeriesComparison:
        """Metric series over the window plus an optional overlay series.

        Args:
            metric: Metric key
            range_token: Range token
            granularity: Bucket width; suggested from the window when None
            compare_mode: none, prev-period or prev-year
            scope: Which record types to include

        Returns:
            SeriesComparison; compare is None when unavailable.
        """
        window = self.window(range_token)
        granularity = Granularity(granularity) if granularity else suggest_granularity(window)
        events = scoped_events(self.dataset.events, scope)

        return series_with_compare_from_frame(
            events,
            metric,
            window,
            granularity,
            compare_mode,
            earliest=self.scoped_earliest(scope),
            is_all_time=parse_range_token(range_token).kind is RangeKind.ALL,
        )

    def flow_step_series(
        self,
        flow_name: str,
        sequence_position: int,
        metric: MetricKey | str,
        range_token: str,
        granularity: Granularity | None = None,
    ) -> MetricSeries:
        """Series for one live flow step."""
        window = self.window(range_token)
        granularity = Granularity(granularity) if granularity else suggest_granularity(window)
        events = self.dataset.events.filter(
            live_flow_step_expr(flow_name, sequence_position)
        )
        return series_from_frame(events, metric, window, granularity)

    # =========================================================================
    # PERIOD OVER PERIOD
    # =========================================================================

    def period_over_period(
        self,
        metric: MetricKey | str,
        range_token: str,
        compare_mode: CompareMode = CompareMode.PREV_PERIOD,
        scope: DataScope = DataScope.ALL,
        flow_name: str | None = None,
    ) -> PeriodDelta:
        return period_over_period(
            metric,
            range_token,
            self.dataset.events,
            self.dataset.reference_date,
            flow_name=flow_name,
            compare_mode=compare_mode,
            scope=scope,
            baseline_floor=self.baseline_floor,
        )

    # =========================================================================
    # READ MODELS
    # =========================================================================

    def opportunity_summary(
        self,
        items_by_category: Mapping[OpportunityCategoryKind | str, Sequence[OpportunityInput]],
        range_token: str,
        audience_pricing: AudiencePricing | None = None,
    ) -> OpportunitySummary:
        return summarize(
            items_by_category,
            range_token,
            self.dataset.events,
            self.dataset.reference_date,
            earliest=self.dataset.earliest_event,
            audience_pricing=audience_pricing,
        )

    def send_volume_guidance(self, range_token: str) -> SendVolumeGuidanceResult:
        """Send-volume recommendation from campaigns in the range."""
        engine = SendVolumeGuidanceEngine(self.send_volume_thresholds)
        return engine.evaluate(
            self.dataset.campaigns,
            range_token,
            reference=self.dataset.reference_date,
            earliest=self.dataset.earliest_event,
        )
