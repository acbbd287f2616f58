"""Analytics module for email campaign and flow data."""

from .calculator import AnalyticalEngine
from .metrics import (
    LOWER_IS_BETTER,
    METRIC_DEFINITIONS,
    MetricKey,
    MetricTotals,
    compute_all,
    compute_metric,
)
from .models import (
    CompareMode,
    DataScope,
    DateWindow,
    Granularity,
    MetricBucket,
    MetricSeries,
    OpportunityCategory,
    OpportunityCategoryKind,
    OpportunityItem,
    OpportunitySummary,
    OpportunityTotals,
    PeriodDelta,
    RevenueOpportunityCategory,
    SavingsOpportunityCategory,
    SendVolumeDataContext,
    SendVolumeGuidanceResult,
    SendVolumeStatus,
    SeriesComparison,
)
from .opportunities import AudiencePricing, OpportunityInput, summarize
from .period import BaselineFloor, period_over_period
from .send_volume import SendVolumeGuidanceEngine, SendVolumeThresholds
from .timeseries import build_flow_step_series, build_series, build_series_with_compare
from .windows import (
    is_compare_window_available,
    reference_date,
    resolve_compare_window,
    resolve_window,
)

__all__ = [
    "AnalyticalEngine",
    "AudiencePricing",
    "BaselineFloor",
    "CompareMode",
    "DataScope",
    "DateWindow",
    "Granularity",
    "LOWER_IS_BETTER",
    "METRIC_DEFINITIONS",
    "MetricBucket",
    "MetricKey",
    "MetricSeries",
    "MetricTotals",
    "OpportunityCategory",
    "OpportunityCategoryKind",
    "OpportunityInput",
    "OpportunityItem",
    "OpportunitySummary",
    "OpportunityTotals",
    "PeriodDelta",
    "RevenueOpportunityCategory",
    "SavingsOpportunityCategory",
    "SendVolumeDataContext",
    "SendVolumeGuidanceEngine",
    "SendVolumeGuidanceResult",
    "SendVolumeStatus",
    "SendVolumeThresholds",
    "SeriesComparison",
    "build_flow_step_series",
    "build_series",
    "build_series_with_compare",
    "compute_all",
    "compute_metric",
    "is_compare_window_available",
    "period_over_period",
    "reference_date",
    "resolve_compare_window",
    "resolve_window",
    "summarize",
]
