"""Shared fixtures for engine tests."""

from collections.abc import Callable
from datetime import date, datetime, time, timedelta

import pytest

from email_insights.models.records import Campaign, FlowEmail, FlowStatus


def _at(day: date | datetime) -> datetime:
    return day if isinstance(day, datetime) else datetime.combine(day, time.min)


@pytest.fixture
def make_campaign() -> Callable[..., Campaign]:
    """Factory for Campaign records sent at midnight of `day`."""

    def _make(day: date | datetime, **fields) -> Campaign:
        defaults = {"emails_sent": 1000, "campaign_name": "Campaign"}
        defaults.update(fields)
        return Campaign(sent_at=_at(day), **defaults)

    return _make


@pytest.fixture
def make_flow_email() -> Callable[..., FlowEmail]:
    """Factory for FlowEmail records sent at midnight of `day`."""

    def _make(day: date | datetime, flow_name: str = "Welcome", **fields) -> FlowEmail:
        defaults = {
            "emails_sent": 100,
            "sequence_position": 1,
            "status": FlowStatus.LIVE,
        }
        defaults.update(fields)
        return FlowEmail(sent_at=_at(day), flow_name=flow_name, **defaults)

    return _make


@pytest.fixture
def daily_revenue_campaigns(make_campaign) -> Callable[..., list[Campaign]]:
    """Factory: one campaign per day from `start` with constant revenue."""

    def _make(start: date, days: int, revenue: float = 100.0, **fields) -> list[Campaign]:
        return [
            make_campaign(start + timedelta(days=i), revenue=revenue, **fields)
            for i in range(days)
        ]

    return _make
