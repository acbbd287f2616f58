"""Dashboard service - orchestrates ingestion, the dataset store and analytics."""

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

from ..analytics import (
    METRIC_DEFINITIONS,
    AnalyticalEngine,
    AudiencePricing,
    CompareMode,
    DataScope,
    Granularity,
    MetricKey,
    OpportunityCategoryKind,
    OpportunityInput,
)
from ..analytics.windows import DEFAULT_RANGE
from ..ingestion import validate_campaigns, validate_flow_emails
from ..models.records import Campaign, FlowEmail
from ..models.snapshot import DashboardSnapshot, MetricCard
from ..settings import load_settings
from .dataset_store import Dataset, DatasetStore

logger = structlog.get_logger(__name__)

DEFAULT_SERIES_METRICS = (MetricKey.REVENUE, MetricKey.OPEN_RATE, MetricKey.CLICK_RATE)


class DashboardService:
    """Service for producing dashboard snapshots from parsed exports.

    Orchestrates:
    1. Validation of parsed campaign and flow rows
    2. Atomic replacement of the account's dataset
    3. Running metric cards, series and read models
    4. Returning a consolidated DashboardSnapshot

    Usage:
        service = DashboardService()
        service.load_dataset("acct-1", campaign_rows, flow_rows)
        snapshot = service.build_snapshot("acct-1", range_token="90d")
    """

    def __init__(self, store: DatasetStore | None = None, config_path: Path | None = None):
        """Initialize service with threshold configuration.

        Args:
            store: Dataset store; a private one is created when omitted
            config_path: Path to thresholds.yaml. Defaults to bundled config.
        """
        self.store = store or DatasetStore()
        self.settings = load_settings(config_path)

    def load_dataset(
        self,
        account_id: str,
        campaign_rows: Iterable[Mapping[str, Any] | Campaign],
        flow_rows: Iterable[Mapping[str, Any] | FlowEmail] = (),
        now: datetime | None = None,
    ) -> Dataset:
        """Validate rows and replace the account's dataset.

        Raises:
            DataValidationError: If any row fails validation; the previously
                loaded dataset stays in place
        """
        campaigns = validate_campaigns(campaign_rows)
        flows = validate_flow_emails(flow_rows)
        return self.store.replace(account_id, campaigns, flows, now=now)

    def engine_for(self, account_id: str) -> AnalyticalEngine:
        """Analytics engine bound to the account's current dataset.

        Raises:
            DatasetNotFoundError: If no dataset was loaded for the account
        """
        return AnalyticalEngine(
            dataset=self.store.get(account_id),
            send_volume_thresholds=self.settings.send_volume,
            baseline_floor=self.settings.baseline_floor,
        )

    def build_snapshot(
        self,
        account_id: str,
        range_token: str = DEFAULT_RANGE,
        compare_mode: CompareMode = CompareMode.PREV_PERIOD,
        granularity: Granularity | None = None,
        scope: DataScope = DataScope.ALL,
        card_metrics: Sequence[MetricKey | str] | None = None,
        series_metrics: Sequence[MetricKey | str] = DEFAULT_SERIES_METRICS,
        opportunities: Mapping[OpportunityCategoryKind | str, Sequence[OpportunityInput]] | None = None,
        audience_pricing: AudiencePricing | None = None,
        generated_at: datetime | None = None,
    ) -> DashboardSnapshot:
        """Generate the full dashboard for one account.

        Args:
            account_id: Account whose dataset to use
            range_token: Selected range
            compare_mode: Comparison semantics for cards and overlays
            granularity: Chart bucket width; suggested from the range when None
            scope: Which record types feed cards and charts
            card_metrics: Metrics for the KPI cards (all twelve by default)
            series_metrics: Metrics to chart
            opportunities: Opportunity estimates to roll up, if any
            audience_pricing: Plan prices for the audience category
            generated_at: Timestamp for the snapshot metadata

        Returns:
            DashboardSnapshot with cards, series and read models

        Raises:
            DatasetNotFoundError: If no dataset was loaded for the account
            UnknownMetricError: If a requested metric is not supported
        """
        engine = self.engine_for(account_id)
        dataset = engine.dataset
        compare_mode = CompareMode(compare_mode)

        window = engine.window(range_token)
        suggested, allowed = engine.granularity_options(range_token)
        granularity = Granularity(granularity) if granularity else suggested

        card_keys = [MetricKey.parse(m) for m in (card_metrics or list(MetricKey))]
        values = engine.aggregate(range_token, scope=scope)
        cards = [
            MetricCard(
                metric=key.value,
                value=values[key],
                definition=METRIC_DEFINITIONS[key],
                delta=engine.period_over_period(
                    key, range_token, compare_mode=compare_mode, scope=scope
                ),
            )
            for key in card_keys
        ]

        series = {
            MetricKey.parse(m).value: engine.series(
                m, range_token, granularity, compare_mode=compare_mode, scope=scope
            )
            for m in series_metrics
        }

        summary = None
        if opportunities is not None:
            summary = engine.opportunity_summary(
                opportunities, range_token, audience_pricing=audience_pricing
            )

        logger.info(
            "snapshot_built",
            account_id=account_id,
            dataset_version=dataset.version,
            range_token=range_token,
            cards=len(cards),
            series=len(series),
        )

        return DashboardSnapshot(
            generated_at=generated_at or datetime.now(),
            account_id=account_id,
            dataset_version=dataset.version,
            range_token=range_token,
            window=window,
            granularity=granularity,
            compare_mode=compare_mode,
            compare_available=engine.compare_window_available(
                range_token, compare_mode, scope=scope
            ),
            campaign_count=len(dataset.campaigns),
            flow_email_count=len(dataset.flows),
            flow_names=dataset.flow_names(),
            metric_cards=cards,
            series=series,
            send_volume=engine.send_volume_guidance(range_token),
            opportunities=summary,
            allowed_granularities=list(allowed),
        )
