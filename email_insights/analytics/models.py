"""Output models for analytics calculations."""

from dataclasses import dataclass, fields, is_dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Iterator


class Granularity(str, Enum):
    """Bucket width for a time series."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class CompareMode(str, Enum):
    """How a comparison window is derived from the current window."""

    NONE = "none"
    PREV_PERIOD = "prev-period"
    PREV_YEAR = "prev-year"


class DataScope(str, Enum):
    """Which record types feed an aggregation."""

    ALL = "all"
    CAMPAIGNS = "campaigns"
    FLOWS = "flows"


def to_plain(value: Any) -> Any:
    """Recursively convert results into JSON-serializable structures."""
    if isinstance(value, _Plain):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return _fields_to_plain(value)
    if isinstance(value, dict):
        return {str(to_plain(k)): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


def _fields_to_plain(value: Any) -> dict[str, Any]:
    return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}


class _Plain:
    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return _fields_to_plain(self)


# =============================================================================
# DATE WINDOWS
# =============================================================================


@dataclass(frozen=True)
class DateWindow(_Plain):
    """Inclusive [start, end] window; end is end-of-day."""

    start: datetime
    end: datetime

    @property
    def days(self) -> int:
        """Number of calendar days covered (inclusive)."""
        return (self.end.date() - self.start.date()).days + 1

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @classmethod
    def from_dates(cls, start: date, end: date) -> "DateWindow":
        """Window from the start of `start` to the end of `end`."""
        return cls(
            start=datetime.combine(start, time.min),
            end=datetime.combine(end, time.max),
        )


# =============================================================================
# TIME SERIES
# =============================================================================


@dataclass(frozen=True)
class MetricBucket(_Plain):
    """Metric value for one granularity step."""

    bucket_start: datetime
    value: float


@dataclass(frozen=True)
class MetricSeries(_Plain):
    """Ordered, gap-free sequence of buckets spanning a window."""

    metric: str
    granularity: Granularity
    window: DateWindow
    buckets: tuple[MetricBucket, ...]

    def __len__(self) -> int:
        return len(self.buckets)

    def __iter__(self) -> Iterator[MetricBucket]:
        return iter(self.buckets)

    def __getitem__(self, index: int) -> MetricBucket:
        return self.buckets[index]

    @property
    def values(self) -> list[float]:
        return [b.value for b in self.buckets]


@dataclass(frozen=True)
class SeriesComparison(_Plain):
    """Primary series plus an index-aligned comparison series."""

    primary: MetricSeries
    compare: MetricSeries | None = None
    compare_mode: CompareMode = CompareMode.NONE


# =============================================================================
# PERIOD OVER PERIOD
# =============================================================================


@dataclass(frozen=True)
class PeriodDelta(_Plain):
    """Change of one metric between the current and comparison window."""

    change_percent: float
    is_positive: bool
    previous_value: float
    previous_window: DateWindow | None
    current_value: float = 0.0
    current_window: DateWindow | None = None
    comparison_available: bool = False
    low_baseline: bool = False  # baseline has activity but below volume floor


# =============================================================================
# OPPORTUNITIES
# =============================================================================


class OpportunityCategoryKind(str, Enum):
    """Opportunity categories; audience is a cost-avoidance category."""

    CAMPAIGNS = "campaigns"
    FLOWS = "flows"
    AUDIENCE = "audience"


@dataclass(frozen=True)
class OpportunityItem(_Plain):
    """One annualized opportunity line item."""

    module: str
    scope: str
    label: str
    amount_annual: float
    percent_of_category: float
    percent_of_overall: float


@dataclass(frozen=True)
class OpportunityCategory(_Plain):
    """Fields shared by every opportunity category.

    total_annual is always the sum of the items' amount_annual.
    """

    kind: OpportunityCategoryKind
    label: str
    items: tuple[OpportunityItem, ...]
    total_annual: float
    baseline_annual: float
    baseline_monthly: float
    baseline_weekly: float
    percent_of_overall: float

    @property
    def key(self) -> str:
        return self.kind.value

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict, led by the category key."""
        return {"key": self.key, **super().to_dict()}


@dataclass(frozen=True)
class RevenueOpportunityCategory(OpportunityCategory):
    """Revenue-lift category (campaigns, flows)."""

    lift_percent: float = 0.0  # total_annual / baseline_annual


@dataclass(frozen=True)
class SavingsOpportunityCategory(OpportunityCategory):
    """Cost-avoidance category (audience plan savings)."""

    plan_price_before: float | None = None  # monthly
    plan_price_after: float | None = None


@dataclass(frozen=True)
class OpportunityTotals(_Plain):
    """Grand totals across categories.

    baseline_annual uses the trailing 365 days regardless of range_days.
    """

    annual: float
    monthly: float
    weekly: float
    range_days: int
    range_amount: float
    baseline_annual: float


@dataclass(frozen=True)
class OpportunitySummary(_Plain):
    """Opportunity categories plus grand totals."""

    categories: tuple[OpportunityCategory, ...]
    totals: OpportunityTotals

    def category(self, kind: OpportunityCategoryKind) -> OpportunityCategory | None:
        return next((c for c in self.categories if c.kind is kind), None)


# =============================================================================
# SEND VOLUME GUIDANCE
# =============================================================================


class SendVolumeStatus(str, Enum):
    """Send-volume recommendation."""

    SEND_MORE = "send-more"
    SEND_LESS = "send-less"
    OPTIMIZE = "optimize"
    INSUFFICIENT = "insufficient"


@dataclass(frozen=True)
class SendVolumeDataContext(_Plain):
    """Data coverage behind a send-volume recommendation."""

    lookback_days: int
    has_variance: bool
    variance_percent: float  # coefficient of variation of emails_sent
    min_campaigns_required: int


@dataclass(frozen=True)
class SendVolumeGuidanceResult(_Plain):
    """Send-volume recommendation with correlation evidence."""

    status: SendVolumeStatus
    correlation_coefficient: float | None
    sample_size: int
    avg_spam_rate: float
    avg_bounce_rate: float
    high_risk: bool
    message: str
    data_context: SendVolumeDataContext
    projected_monthly_gain: float | None = None
    risk_correlations: dict[str, float | None] | None = None
