"""Metric formulas computed from aggregated send totals."""

from dataclasses import dataclass
from enum import Enum

import polars as pl

from ..exceptions import UnknownMetricError
from .expressions import event_totals_expr


class MetricKey(str, Enum):
    """The twelve supported dashboard metrics."""

    REVENUE = "revenue"
    AVG_ORDER_VALUE = "avgOrderValue"
    REVENUE_PER_EMAIL = "revenuePerEmail"
    OPEN_RATE = "openRate"
    CLICK_RATE = "clickRate"
    CLICK_TO_OPEN_RATE = "clickToOpenRate"
    EMAILS_SENT = "emailsSent"
    TOTAL_ORDERS = "totalOrders"
    CONVERSION_RATE = "conversionRate"
    UNSUBSCRIBE_RATE = "unsubscribeRate"
    SPAM_RATE = "spamRate"
    BOUNCE_RATE = "bounceRate"

    @classmethod
    def parse(cls, metric: "str | MetricKey") -> "MetricKey":
        """Resolve a metric key from its wire name.

        Raises:
            UnknownMetricError: If the name is not a supported metric
        """
        if isinstance(metric, MetricKey):
            return metric
        try:
            return cls(metric)
        except ValueError:
            raise UnknownMetricError(str(metric), [m.value for m in cls]) from None


LOWER_IS_BETTER = frozenset(
    {MetricKey.UNSUBSCRIBE_RATE, MetricKey.SPAM_RATE, MetricKey.BOUNCE_RATE}
)

METRIC_DEFINITIONS: dict[MetricKey, str] = {
    MetricKey.REVENUE: "Total revenue attributed to emails in the period.",
    MetricKey.AVG_ORDER_VALUE: "Average revenue per order (revenue / orders).",
    MetricKey.REVENUE_PER_EMAIL: "Revenue earned per email sent (revenue / emails sent).",
    MetricKey.OPEN_RATE: "Unique opens as a percentage of emails sent.",
    MetricKey.CLICK_RATE: "Unique clicks as a percentage of emails sent.",
    MetricKey.CLICK_TO_OPEN_RATE: "Unique clicks as a percentage of unique opens.",
    MetricKey.EMAILS_SENT: "Total number of emails sent.",
    MetricKey.TOTAL_ORDERS: "Total number of orders attributed to emails.",
    MetricKey.CONVERSION_RATE: "Orders as a percentage of unique clicks.",
    MetricKey.UNSUBSCRIBE_RATE: "Unsubscribes as a percentage of emails sent. Lower is better.",
    MetricKey.SPAM_RATE: "Spam complaints as a percentage of emails sent. Lower is better.",
    MetricKey.BOUNCE_RATE: "Bounces as a percentage of emails sent. Lower is better.",
}


@dataclass(frozen=True)
class MetricTotals:
    """Summed counts for a set of sends."""

    revenue: float = 0.0
    emails_sent: int = 0
    total_orders: int = 0
    unique_opens: int = 0
    unique_clicks: int = 0
    unsubscribes: int = 0
    spam: int = 0
    bounces: int = 0

    @classmethod
    def from_row(cls, row: dict) -> "MetricTotals":
        """Build totals from an aggregated frame row (nulls count as 0)."""
        return cls(
            revenue=float(row.get("revenue") or 0.0),
            emails_sent=int(row.get("emails_sent") or 0),
            total_orders=int(row.get("total_orders") or 0),
            unique_opens=int(row.get("unique_opens") or 0),
            unique_clicks=int(row.get("unique_clicks") or 0),
            unsubscribes=int(row.get("unsubscribes_count") or 0),
            spam=int(row.get("spam_complaints_count") or 0),
            bounces=int(row.get("bounces_count") or 0),
        )

    @property
    def is_empty(self) -> bool:
        return (
            self.emails_sent == 0 and self.revenue == 0 and self.total_orders == 0
        )


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator * scale


def compute_metric(metric: "MetricKey | str", totals: MetricTotals) -> float:
    """Apply one metric formula to aggregated totals.

    Every denominator is zero-guarded to 0. Percentages are not clamped,
    so upstream double counting can push a rate above 100.

    Raises:
        UnknownMetricError: If metric is not a supported key
    """
    key = MetricKey.parse(metric)
    t = totals

    if key is MetricKey.REVENUE:
        return float(t.revenue)
    if key is MetricKey.AVG_ORDER_VALUE:
        return _ratio(t.revenue, t.total_orders)
    if key is MetricKey.REVENUE_PER_EMAIL:
        return _ratio(t.revenue, t.emails_sent)
    if key is MetricKey.OPEN_RATE:
        return _ratio(t.unique_opens, t.emails_sent, 100)
    if key is MetricKey.CLICK_RATE:
        return _ratio(t.unique_clicks, t.emails_sent, 100)
    if key is MetricKey.CLICK_TO_OPEN_RATE:
        return _ratio(t.unique_clicks, t.unique_opens, 100)
    if key is MetricKey.EMAILS_SENT:
        return float(t.emails_sent)
    if key is MetricKey.TOTAL_ORDERS:
        return float(t.total_orders)
    if key is MetricKey.CONVERSION_RATE:
        return _ratio(t.total_orders, t.unique_clicks, 100)
    if key is MetricKey.UNSUBSCRIBE_RATE:
        return _ratio(t.unsubscribes, t.emails_sent, 100)
    if key is MetricKey.SPAM_RATE:
        return _ratio(t.spam, t.emails_sent, 100)
    return _ratio(t.bounces, t.emails_sent, 100)


def compute_all(totals: MetricTotals) -> dict[MetricKey, float]:
    """All twelve metrics for one set of totals."""
    return {key: compute_metric(key, totals) for key in MetricKey}


def totals_from_frame(df: pl.DataFrame) -> MetricTotals:
    """Aggregate an event frame into MetricTotals (empty frame -> zeros)."""
    if df.is_empty():
        return MetricTotals()
    return MetricTotals.from_row(df.select(event_totals_expr()).row(0, named=True))
