"""Tests for the send-volume correlation engine."""

from datetime import date, datetime, timedelta

import numpy as np
import pytest

from email_insights.analytics.models import SendVolumeStatus
from email_insights.analytics.send_volume import (
    HIGH_RISK_SUFFIX,
    SendVolumeGuidanceEngine,
    SendVolumeThresholds,
)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def engine() -> SendVolumeGuidanceEngine:
    return SendVolumeGuidanceEngine()


@pytest.fixture
def spread_campaigns(make_campaign):
    """Factory: campaigns every `step` days from 2024-01-01."""

    def _make(sent: list[int], revenue: list[float], step: int = 3, **fields):
        start = date(2024, 1, 1)
        return [
            make_campaign(
                start + timedelta(days=i * step),
                emails_sent=int(s),
                revenue=float(r),
                **fields,
            )
            for i, (s, r) in enumerate(zip(sent, revenue))
        ]

    return _make


@pytest.fixture
def correlated_campaigns(spread_campaigns):
    """40 campaigns over 120 days, revenue strongly tracking volume."""
    rng = np.random.default_rng(7)
    sent = rng.integers(500, 50_001, size=40)
    revenue = np.clip(sent * 0.05 + rng.normal(0, 600, size=40), 0, None)
    return spread_campaigns(sent.tolist(), revenue.tolist())


# =============================================================================
# UNIT TESTS
# =============================================================================


class TestGuards:
    """Sample-size and lookback guards."""

    def test_fewer_than_twelve_is_insufficient(self, engine, spread_campaigns) -> None:
        """Eleven qualifying campaigns never produce a recommendation."""
        campaigns = spread_campaigns([1000 * (i + 1) for i in range(11)], [1e6] * 11, step=20)
        result = engine.evaluate(campaigns, "365d")
        assert result.status is SendVolumeStatus.INSUFFICIENT
        assert result.correlation_coefficient is None
        assert result.projected_monthly_gain is None

    def test_two_campaigns_ten_days_apart(self, engine, spread_campaigns) -> None:
        campaigns = spread_campaigns([1000, 2000], [100.0, 200.0], step=10)
        result = engine.evaluate(campaigns, "90d")
        assert result.status is SendVolumeStatus.INSUFFICIENT
        assert result.sample_size == 1  # latest send has not settled
        assert result.data_context.lookback_days == 11

    def test_small_sends_do_not_qualify(self, engine, spread_campaigns) -> None:
        campaigns = spread_campaigns([499] * 40, list(range(40)))
        result = engine.evaluate(campaigns, "365d")
        assert result.status is SendVolumeStatus.INSUFFICIENT
        assert result.sample_size == 0

    def test_short_lookback(self, engine, spread_campaigns) -> None:
        campaigns = spread_campaigns(
            [1000 + 500 * i for i in range(30)], [10.0 * i for i in range(30)], step=2
        )
        result = engine.evaluate(campaigns, "365d")
        assert result.status is SendVolumeStatus.INSUFFICIENT
        assert result.data_context.lookback_days == 59

    def test_unsettled_sends_excluded(self, engine, make_campaign) -> None:
        ref = datetime(2024, 6, 1, 12, 0)
        campaigns = [make_campaign(ref - timedelta(hours=h)) for h in (0, 24, 71, 72, 100)]
        result = engine.evaluate(campaigns, "30d", reference=ref)
        assert result.sample_size == 1  # exactly 72h old has not settled

    def test_lookback_ignores_non_qualifying_sends(self, engine, make_campaign) -> None:
        """A tiny old send does not stretch the history of a burst of sends."""
        burst_start = datetime(2024, 7, 18)
        campaigns = [make_campaign(date(2024, 1, 1), emails_sent=10, revenue=5.0)] + [
            make_campaign(
                burst_start + timedelta(hours=6 * i),
                emails_sent=1000 * (i + 1),
                revenue=100.0 * (i + 1),
            )
            for i in range(12)
        ]
        result = engine.evaluate(campaigns, "365d", reference=datetime(2024, 7, 30))

        assert result.sample_size == 12
        assert result.data_context.lookback_days == 13
        assert result.status is SendVolumeStatus.INSUFFICIENT
        assert result.projected_monthly_gain is None


class TestClassification:
    """Status classification from the correlation coefficient."""

    def test_correlated_scenario_sends_more(self, engine, correlated_campaigns) -> None:
        result = engine.evaluate(correlated_campaigns, "365d")

        assert result.status is SendVolumeStatus.SEND_MORE
        assert result.correlation_coefficient > 0.4
        assert result.data_context.has_variance is True
        assert result.sample_size == 39
        assert result.data_context.lookback_days == 118

        qualifying_revenue = sum(c.revenue for c in correlated_campaigns[:-1])
        expected = qualifying_revenue / 118 * 30 * 0.20 * 0.85
        assert result.projected_monthly_gain == pytest.approx(expected)

    def test_inverse_relationship_sends_less(self, engine, spread_campaigns) -> None:
        sent = [1000 + 1000 * i for i in range(40)]
        revenue = [3000.0 - 0.05 * s for s in sent]
        result = engine.evaluate(spread_campaigns(sent, revenue), "365d")
        assert result.status is SendVolumeStatus.SEND_LESS
        assert result.correlation_coefficient == pytest.approx(-1.0)
        assert result.projected_monthly_gain is None

    def test_no_relationship_optimizes(self, engine, spread_campaigns) -> None:
        sent = [1000 + 1000 * i for i in range(40)]
        revenue = [500.0 if i % 2 else 100.0 for i in range(40)]
        result = engine.evaluate(spread_campaigns(sent, revenue), "365d")
        assert result.status is SendVolumeStatus.OPTIMIZE
        assert -0.2 < result.correlation_coefficient < 0.2

    def test_low_variance_is_not_directional(self, engine, spread_campaigns) -> None:
        """Near-constant volume still reports r but recommends optimizing."""
        sent = [1000 + 10 * (i % 3) for i in range(40)]
        revenue = [float(s) for s in sent]
        result = engine.evaluate(spread_campaigns(sent, revenue), "365d")
        assert result.data_context.has_variance is False
        assert result.data_context.variance_percent < 5.0
        assert result.correlation_coefficient is not None
        assert result.status is SendVolumeStatus.OPTIMIZE
        assert result.projected_monthly_gain is None

    def test_constant_revenue_is_insufficient(self, engine, spread_campaigns) -> None:
        sent = [1000 + 1000 * i for i in range(40)]
        result = engine.evaluate(spread_campaigns(sent, [250.0] * 40), "365d")
        assert result.status is SendVolumeStatus.INSUFFICIENT
        assert result.correlation_coefficient is None


class TestRisk:
    """Deliverability risk flags."""

    def test_high_spam_rate_flags_risk(self, engine, spread_campaigns) -> None:
        sent = [10_000] * 20
        campaigns = spread_campaigns(sent, [100.0] * 20, step=7, spam_complaints_count=25)
        result = engine.evaluate(campaigns, "365d")
        assert result.avg_spam_rate == pytest.approx(0.25)
        assert result.high_risk is True

    def test_bounce_threshold_is_exclusive(self, engine, spread_campaigns) -> None:
        campaigns = spread_campaigns([1000] * 5, [10.0] * 5, bounces_count=30)
        result = engine.evaluate(campaigns, "365d")
        assert result.avg_bounce_rate == pytest.approx(3.0)
        assert result.high_risk is False

    def test_caution_appended_to_message(self, engine, spread_campaigns) -> None:
        sent = [1000 + 1000 * i for i in range(40)]
        revenue = [0.1 * s for s in sent]
        campaigns = spread_campaigns(sent, revenue, spam_complaints_count=100)
        result = engine.evaluate(campaigns, "365d")
        assert result.status is SendVolumeStatus.SEND_MORE
        assert result.high_risk is True
        assert result.message.endswith(HIGH_RISK_SUFFIX)

    def test_risk_correlations_reported(self, engine, spread_campaigns) -> None:
        sent = [1000 + 1000 * i for i in range(40)]
        campaigns = spread_campaigns(sent, [0.1 * s for s in sent], unsubscribes_count=5)
        result = engine.evaluate(campaigns, "365d")
        # fixed count over growing volume: rate falls as volume rises
        assert result.risk_correlations["unsubscribeRate"] < 0
        assert result.risk_correlations["spamRate"] is None


class TestThresholds:
    """Tests for SendVolumeThresholds."""

    @pytest.mark.parametrize(
        "r,expected",
        [(0.45, 0.85), (0.4, 0.85), (0.35, 0.80), (0.25, 0.70), (-0.45, 0.85), (0.1, None)],
    )
    def test_efficiency_tiers(self, r, expected) -> None:
        assert SendVolumeThresholds().efficiency_for(r) == expected

    def test_custom_thresholds(self, spread_campaigns) -> None:
        engine = SendVolumeGuidanceEngine(
            SendVolumeThresholds(min_campaigns=3, min_lookback_days=10)
        )
        sent = [1000, 2000, 3000, 4000, 5000]
        campaigns = spread_campaigns(sent, [0.1 * s for s in sent], step=5)
        result = engine.evaluate(campaigns, "90d")
        assert result.status is SendVolumeStatus.SEND_MORE
        assert result.data_context.min_campaigns_required == 3
