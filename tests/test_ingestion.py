"""Tests for record validation and event frame construction."""

from datetime import date, datetime, timezone

import polars as pl
import pytest

from email_insights.exceptions import DataValidationError
from email_insights.ingestion import (
    EVENT_SCHEMA,
    add_bucket_start,
    events_frame,
    validate_campaigns,
    validate_flow_emails,
)
from email_insights.models.records import Campaign, FlowEmail, FlowStatus


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def camel_campaign_row() -> dict:
    return {
        "sentAt": datetime(2024, 3, 1, 10, 0),
        "emailsSent": 1200,
        "uniqueOpens": 480,
        "uniqueClicks": 60,
        "totalOrders": 6,
        "revenue": 540.5,
        "unsubscribesCount": 3,
        "spamComplaintsCount": 1,
        "bouncesCount": 12,
        "subject": "Spring sale",
        "campaignName": "Spring 2024",
        "listId": "ignored",
    }


@pytest.fixture
def snake_flow_row() -> dict:
    return {
        "sent_at": datetime(2024, 3, 2),
        "emails_sent": 80,
        "revenue": 120,
        "flow_name": "Welcome",
        "sequence_position": 2,
        "status": "Live",
        "email_name": "Welcome #2",
    }


# =============================================================================
# UNIT TESTS
# =============================================================================


class TestValidateCampaigns:
    """Tests for validate_campaigns."""

    def test_camel_case_row(self, camel_campaign_row) -> None:
        [campaign] = validate_campaigns([camel_campaign_row])

        assert isinstance(campaign, Campaign)
        assert campaign.emails_sent == 1200
        assert campaign.revenue == 540.5
        assert campaign.spam_complaints_count == 1
        assert campaign.campaign_name == "Spring 2024"

    def test_records_pass_through_in_order(self, camel_campaign_row, make_campaign) -> None:
        existing = make_campaign(date(2024, 1, 1))
        result = validate_campaigns([existing, camel_campaign_row, existing])

        assert result[0] is existing
        assert result[1].subject == "Spring sale"
        assert result[2] is existing

    def test_negative_count_rejected(self, camel_campaign_row) -> None:
        bad = {**camel_campaign_row, "bouncesCount": -1}
        with pytest.raises(DataValidationError) as exc_info:
            validate_campaigns([camel_campaign_row, bad])

        assert exc_info.value.row_count == 2
        assert [e["row"] for e in exc_info.value.errors] == [1]

    def test_missing_emails_sent_rejected(self, camel_campaign_row) -> None:
        bad = {k: v for k, v in camel_campaign_row.items() if k != "emailsSent"}
        with pytest.raises(DataValidationError, match="1 of 1 rows"):
            validate_campaigns([bad])

    def test_string_counts_rejected(self, camel_campaign_row) -> None:
        with pytest.raises(DataValidationError):
            validate_campaigns([{**camel_campaign_row, "emailsSent": "1200"}])


class TestValidateFlowEmails:
    """Tests for validate_flow_emails."""

    def test_snake_case_row(self, snake_flow_row) -> None:
        [flow] = validate_flow_emails([snake_flow_row])

        assert isinstance(flow, FlowEmail)
        assert flow.status is FlowStatus.LIVE
        assert flow.is_live
        assert flow.revenue == 120.0
        assert flow.sequence_position == 2

    def test_unknown_status_maps_to_other(self, snake_flow_row) -> None:
        [flow] = validate_flow_emails([{**snake_flow_row, "status": "paused"}])
        assert flow.status is FlowStatus.OTHER
        assert not flow.is_live

    def test_sequence_position_starts_at_one(self, snake_flow_row) -> None:
        with pytest.raises(DataValidationError):
            validate_flow_emails([{**snake_flow_row, "sequence_position": 0}])

    def test_flow_name_required(self, snake_flow_row) -> None:
        row = {k: v for k, v in snake_flow_row.items() if k != "flow_name"}
        with pytest.raises(DataValidationError):
            validate_flow_emails([row])


class TestEventsFrame:
    """Tests for events_frame and add_bucket_start."""

    def test_empty_frame_has_schema(self) -> None:
        df = events_frame()
        assert df.is_empty()
        assert df.schema == pl.Schema(EVENT_SCHEMA)

    def test_merges_sources(self, make_campaign, make_flow_email) -> None:
        df = events_frame(
            [make_campaign(date(2024, 3, 1), revenue=10.0)],
            [make_flow_email(date(2024, 3, 2), "Welcome", status=FlowStatus.DRAFT)],
        )

        assert df["source"].to_list() == ["campaign", "flow"]
        assert df["flow_name"].to_list() == [None, "Welcome"]
        assert df["status"].to_list() == [None, "draft"]
        assert df["revenue"].sum() == pytest.approx(10.0)

    def test_timezone_dropped(self, make_campaign) -> None:
        aware = make_campaign(datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc))
        df = events_frame([aware])
        assert df["sent_at"][0] == datetime(2024, 3, 1, 8, 0)

    @pytest.mark.parametrize(
        "granularity,expected",
        [
            ("daily", datetime(2024, 3, 7)),
            ("weekly", datetime(2024, 3, 4)),  # Monday
            ("monthly", datetime(2024, 3, 1)),
        ],
    )
    def test_bucket_start(self, make_campaign, granularity, expected) -> None:
        df = events_frame([make_campaign(datetime(2024, 3, 7, 15, 45))])
        bucketed = add_bucket_start(df, granularity)
        assert bucketed["bucket_start"][0] == expected
