"""Send-volume guidance from the volume/revenue correlation of campaigns."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

import polars as pl
import structlog

from ..ingestion.frames import events_frame
from ..models.records import Campaign
from .expressions import per_event_rate_expr, window_filter_expr
from .metrics import totals_from_frame
from .models import (
    DateWindow,
    SendVolumeDataContext,
    SendVolumeGuidanceResult,
    SendVolumeStatus,
)
from .stats import coefficient_of_variation, pearson_correlation
from .windows import earliest_event, reference_date, resolve_window

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SendVolumeThresholds:
    """Configurable thresholds for send-volume guidance.

    Rates are in percent (0.2 = 0.2%), except volume_increase and the
    efficiency factors which are fractions.
    """

    # Qualifying campaign: at least this many recipients
    min_emails_sent: int = 500

    # ...and sent at least this long before the reference date
    settle_hours: int = 72

    # Minimum sample
    min_campaigns: int = 12
    min_lookback_days: int = 90

    # Coefficient of variation of emails_sent, in percent
    min_variance_pct: float = 5.0

    # Correlation cut-offs
    send_more_r: float = 0.2
    send_less_r: float = -0.2

    # Deliverability risk: spam >= X% or bounce > Y%
    spam_risk_pct: float = 0.2
    bounce_risk_pct: float = 3.0

    # Projection models a volume increase of this fraction
    volume_increase: float = 0.20

    # (min |r|, efficiency) pairs, checked from strongest to weakest
    efficiency_tiers: tuple[tuple[float, float], ...] = (
        (0.4, 0.85),
        (0.3, 0.80),
        (0.2, 0.70),
    )

    def efficiency_for(self, r: float) -> float | None:
        """Efficiency factor for a correlation, None below the lowest tier."""
        for min_r, efficiency in sorted(self.efficiency_tiers, reverse=True):
            if abs(r) >= min_r:
                return efficiency
        return None


STATUS_MESSAGES = {
    SendVolumeStatus.SEND_MORE: (
        "Revenue rises with send volume in your history. There is room to "
        "scale sends before hitting diminishing returns."
    ),
    SendVolumeStatus.SEND_LESS: (
        "Higher-volume sends have brought in less revenue. Scaling back "
        "could improve revenue per email and protect deliverability."
    ),
    SendVolumeStatus.OPTIMIZE: (
        "There is no consistent relationship between send volume and revenue. "
        "Content and offer timing matter more than how many emails you send."
    ),
    SendVolumeStatus.INSUFFICIENT: (
        "Not enough settled campaign history to model send volume. At least "
        "{min_campaigns} campaigns with {min_emails_sent}+ recipients over "
        "{min_lookback_days} days are needed."
    ),
}

LOW_VARIANCE_MESSAGE = (
    "Send volume is too consistent to model. Vary volume between sends "
    "to learn how revenue responds."
)

FLAT_REVENUE_MESSAGE = (
    "Campaign revenue does not vary, so its relationship to send volume "
    "cannot be measured."
)

HIGH_RISK_SUFFIX = (
    " Proceed with caution: spam or bounce rates are at warning levels."
)

RISK_RATE_COLUMNS = {
    "unsubscribeRate": "unsubscribes_count",
    "spamRate": "spam_complaints_count",
    "bounceRate": "bounces_count",
}


class SendVolumeGuidanceEngine:
    """Correlate campaign send volume with revenue.

    Usage:
        engine = SendVolumeGuidanceEngine()
        result = engine.evaluate(campaigns, "365d")
    """

    def __init__(self, thresholds: SendVolumeThresholds | None = None):
        self.thresholds = thresholds or SendVolumeThresholds()

    def qualifying(
        self, campaigns: pl.DataFrame, window: DateWindow, reference: datetime
    ) -> pl.DataFrame:
        """Campaigns inside the window that are large and settled enough."""
        t = self.thresholds
        settled_before = reference - timedelta(hours=t.settle_hours)
        return campaigns.filter(
            window_filter_expr(window.start, window.end)
            & (pl.col("emails_sent") >= t.min_emails_sent)
            & (pl.col("sent_at") < settled_before)
        )

    def lookback_days(self, window: DateWindow, earliest: datetime | None) -> int:
        """Inclusive days from the first qualifying send to the window end."""
        if earliest is None or earliest > window.end:
            return 0
        start = max(window.start, earliest)
        return (window.end.date() - start.date()).days + 1

    def evaluate(
        self,
        campaigns: Sequence[Campaign],
        range_token: str,
        reference: datetime | None = None,
        earliest: datetime | None = None,
    ) -> SendVolumeGuidanceResult:
        """Recommend sending more, less or optimizing content.

        Args:
            campaigns: Campaign sends
            range_token: Range token restricting the analysis window
            reference: Anchor date; defaults to the latest campaign
            earliest: Earliest event; defaults to the earliest campaign

        Returns:
            SendVolumeGuidanceResult. Small or short samples yield status
            "insufficient" with no correlation coefficient.
        """
        t = self.thresholds
        if reference is None:
            reference = reference_date(campaigns)
        if earliest is None:
            earliest = earliest_event(campaigns)

        window = resolve_window(range_token, reference, earliest)
        frame = events_frame(campaigns, ())
        qualified = self.qualifying(frame, window, reference)

        sample_size = len(qualified)
        lookback = self.lookback_days(
            window, qualified["sent_at"].min() if sample_size else None
        )

        totals = totals_from_frame(qualified)
        avg_spam_rate = _pct(totals.spam, totals.emails_sent)
        avg_bounce_rate = _pct(totals.bounces, totals.emails_sent)
        high_risk = (
            avg_spam_rate >= t.spam_risk_pct or avg_bounce_rate > t.bounce_risk_pct
        )

        variance_pct = coefficient_of_variation(qualified["emails_sent"].to_numpy())
        has_variance = variance_pct >= t.min_variance_pct
        context = SendVolumeDataContext(
            lookback_days=lookback,
            has_variance=has_variance,
            variance_percent=variance_pct,
            min_campaigns_required=t.min_campaigns,
        )

        if sample_size < t.min_campaigns or lookback < t.min_lookback_days:
            logger.info(
                "send_volume_insufficient",
                sample_size=sample_size,
                lookback_days=lookback,
            )
            return SendVolumeGuidanceResult(
                status=SendVolumeStatus.INSUFFICIENT,
                correlation_coefficient=None,
                sample_size=sample_size,
                avg_spam_rate=avg_spam_rate,
                avg_bounce_rate=avg_bounce_rate,
                high_risk=high_risk,
                message=STATUS_MESSAGES[SendVolumeStatus.INSUFFICIENT].format(
                    min_campaigns=t.min_campaigns,
                    min_emails_sent=t.min_emails_sent,
                    min_lookback_days=t.min_lookback_days,
                ),
                data_context=context,
            )

        r = pearson_correlation(
            qualified, "emails_sent", "revenue", min_samples=t.min_campaigns
        )
        status = self._classify(r, has_variance)

        if not has_variance:
            message = LOW_VARIANCE_MESSAGE
        elif status is SendVolumeStatus.INSUFFICIENT:
            message = FLAT_REVENUE_MESSAGE
        else:
            message = STATUS_MESSAGES[status]
        if high_risk:
            message += HIGH_RISK_SUFFIX

        projected = None
        if status is SendVolumeStatus.SEND_MORE:
            projected = self._project_monthly_gain(r, totals.revenue, lookback)

        logger.info(
            "send_volume_evaluated",
            status=status.value,
            sample_size=sample_size,
            correlation=r,
            variance_pct=round(variance_pct, 2),
            high_risk=high_risk,
        )

        return SendVolumeGuidanceResult(
            status=status,
            correlation_coefficient=r,
            sample_size=sample_size,
            avg_spam_rate=avg_spam_rate,
            avg_bounce_rate=avg_bounce_rate,
            high_risk=high_risk,
            message=message,
            data_context=context,
            projected_monthly_gain=projected,
            risk_correlations=self._risk_correlations(qualified),
        )

    def _classify(self, r: float | None, has_variance: bool) -> SendVolumeStatus:
        t = self.thresholds
        if r is None:
            return SendVolumeStatus.INSUFFICIENT
        if not has_variance:
            return SendVolumeStatus.OPTIMIZE
        if r >= t.send_more_r:
            return SendVolumeStatus.SEND_MORE
        if r <= t.send_less_r:
            return SendVolumeStatus.SEND_LESS
        return SendVolumeStatus.OPTIMIZE

    def _project_monthly_gain(
        self, r: float, revenue: float, lookback_days: int
    ) -> float | None:
        """Monthly revenue lift from the modeled volume increase."""
        efficiency = self.thresholds.efficiency_for(r)
        if efficiency is None or lookback_days <= 0:
            return None
        monthly_run_rate = revenue / lookback_days * 30
        return monthly_run_rate * self.thresholds.volume_increase * efficiency

    def _risk_correlations(self, qualified: pl.DataFrame) -> dict[str, float | None]:
        """Correlation of volume with per-campaign deliverability rates."""
        rates = qualified.select(
            pl.col("emails_sent"),
            *[
                per_event_rate_expr(column).alias(metric)
                for metric, column in RISK_RATE_COLUMNS.items()
            ],
        )
        return {
            metric: pearson_correlation(
                rates, "emails_sent", metric, min_samples=self.thresholds.min_campaigns
            )
            for metric in RISK_RATE_COLUMNS
        }


def _pct(part: float, whole: float) -> float:
    return part * 100 / whole if whole else 0.0
