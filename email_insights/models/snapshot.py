"""DashboardSnapshot - consolidated engine output for rendering or export."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..analytics.models import (
    CompareMode,
    DateWindow,
    Granularity,
    OpportunitySummary,
    PeriodDelta,
    SendVolumeGuidanceResult,
    SeriesComparison,
)


@dataclass
class MetricCard:
    """Headline value of one metric with its period-over-period delta."""

    metric: str
    value: float
    definition: str
    delta: PeriodDelta


@dataclass
class DashboardSnapshot:
    """Consolidated dashboard output for one account and range.

    All data is pre-computed and JSON-serializable.
    """

    # Metadata
    generated_at: datetime
    account_id: str
    dataset_version: int
    range_token: str
    window: DateWindow
    granularity: Granularity
    compare_mode: CompareMode
    compare_available: bool

    # Dataset coverage
    campaign_count: int
    flow_email_count: int
    flow_names: list[str]

    # Metrics
    metric_cards: list[MetricCard]
    series: dict[str, SeriesComparison]

    # Read models
    send_volume: SendVolumeGuidanceResult
    opportunities: OpportunitySummary | None = None
    allowed_granularities: list[Granularity] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "meta": {
                "generated_at": self.generated_at.isoformat(),
                "account_id": self.account_id,
                "dataset_version": self.dataset_version,
                "range": {
                    "token": self.range_token,
                    "start": self.window.start.isoformat(),
                    "end": self.window.end.isoformat(),
                    "days": self.window.days,
                },
                "granularity": self.granularity.value,
                "allowed_granularities": [g.value for g in self.allowed_granularities],
                "compare_mode": self.compare_mode.value,
                "compare_available": self.compare_available,
            },
            "coverage": {
                "campaigns": self.campaign_count,
                "flow_emails": self.flow_email_count,
                "flows": self.flow_names,
            },
            "metrics": [
                {
                    "metric": card.metric,
                    "value": round(card.value, 4),
                    "definition": card.definition,
                    "change_percent": round(card.delta.change_percent, 2),
                    "is_positive": card.delta.is_positive,
                    "previous_value": round(card.delta.previous_value, 4),
                    "comparison_available": card.delta.comparison_available,
                    "low_baseline": card.delta.low_baseline,
                }
                for card in self.metric_cards
            ],
            "series": {
                metric: {
                    "primary": [
                        {"date": b.bucket_start.isoformat(), "value": b.value}
                        for b in comparison.primary
                    ],
                    "compare": (
                        [
                            {"date": b.bucket_start.isoformat(), "value": b.value}
                            for b in comparison.compare
                        ]
                        if comparison.compare is not None
                        else None
                    ),
                }
                for metric, comparison in self.series.items()
            },
            "send_volume": self.send_volume.to_dict(),
            "opportunities": (
                self.opportunities.to_dict() if self.opportunities is not None else None
            ),
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def get_headline(self) -> dict[str, Any]:
        """Condensed summary: metric values keyed by metric name."""
        return {card.metric: round(card.value, 2) for card in self.metric_cards}
