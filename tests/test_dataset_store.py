"""Tests for the per-account dataset store."""

from datetime import date, datetime

import polars as pl
import pytest

from email_insights.exceptions import DatasetNotFoundError
from email_insights.ingestion.frames import EVENT_SCHEMA
from email_insights.models.records import FlowStatus
from email_insights.services.dataset_store import DatasetStore


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def store() -> DatasetStore:
    return DatasetStore()


@pytest.fixture
def campaigns(make_campaign):
    return [
        make_campaign(date(2024, 3, 1), revenue=100.0),
        make_campaign(date(2024, 3, 20), revenue=200.0),
    ]


@pytest.fixture
def flows(make_flow_email):
    return [
        make_flow_email(date(2024, 2, 15), "Welcome", sequence_position=2, email_name="Day 3"),
        make_flow_email(date(2024, 2, 16), "Welcome", sequence_position=1, email_name="Hi"),
        make_flow_email(date(2024, 3, 25), "Abandoned Cart"),
        make_flow_email(date(2024, 3, 5), "Winback", status=FlowStatus.DRAFT),
    ]


# =============================================================================
# UNIT TESTS
# =============================================================================


class TestDatasetStore:
    """Versioning and lookup."""

    def test_replace_increments_version(self, store, campaigns) -> None:
        first = store.replace("acct-1", campaigns, [])
        second = store.replace("acct-2", campaigns, [])
        third = store.replace("acct-1", campaigns[:1], [])

        assert [first.version, second.version, third.version] == [1, 2, 3]
        assert store.version == 3

    def test_get_returns_latest(self, store, campaigns) -> None:
        store.replace("acct-1", campaigns, [])
        latest = store.replace("acct-1", campaigns[:1], [])
        assert store.get("acct-1") is latest
        assert "acct-1" in store

    def test_get_unknown_account(self, store) -> None:
        with pytest.raises(DatasetNotFoundError, match="acct-9"):
            store.get("acct-9")

    def test_previous_snapshot_is_untouched(self, store, campaigns, flows) -> None:
        old = store.replace("acct-1", campaigns, flows)
        store.replace("acct-1", [], [])

        assert len(old.campaigns) == 2
        assert len(old.flows) == 4
        assert len(old.events) == 6

    def test_clear(self, store, campaigns) -> None:
        store.replace("acct-1", campaigns, [])
        store.clear("acct-1")

        assert "acct-1" not in store
        assert store.version == 2

    def test_clear_missing_is_noop(self, store) -> None:
        store.clear("acct-1")
        assert store.version == 0


class TestDataset:
    """Derived properties of a dataset snapshot."""

    def test_reference_and_earliest(self, store, campaigns, flows) -> None:
        dataset = store.replace("acct-1", campaigns, flows)
        assert dataset.reference_date == datetime(2024, 3, 25)
        assert dataset.earliest_event == datetime(2024, 2, 15)

    def test_empty_dataset_anchors_to_now(self, store) -> None:
        now = datetime(2024, 5, 1, 9, 30)
        dataset = store.replace("acct-1", [], [], now=now)

        assert dataset.is_empty
        assert dataset.reference_date == now
        assert dataset.earliest_event is None
        assert dataset.events.is_empty()
        assert dataset.events.schema == pl.Schema(EVENT_SCHEMA)

    def test_events_frame_is_cached(self, store, campaigns, flows) -> None:
        dataset = store.replace("acct-1", campaigns, flows)
        assert dataset.events is dataset.events
        assert dataset.events["source"].value_counts().sort("source").rows() == [
            ("campaign", 2),
            ("flow", 4),
        ]

    def test_flow_names_are_live_and_sorted(self, store, flows) -> None:
        dataset = store.replace("acct-1", [], flows)
        assert dataset.flow_names() == ["Abandoned Cart", "Welcome"]

    def test_flow_steps_ordered(self, store, flows) -> None:
        dataset = store.replace("acct-1", [], flows)
        steps = dataset.flow_steps("Welcome")

        assert [s.sequence_position for s in steps] == [1, 2]
        assert [s.email_name for s in steps] == ["Hi", "Day 3"]
        assert dataset.flow_steps("Winback") == []
