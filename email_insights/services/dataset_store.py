"""In-memory dataset cache keyed by account."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from functools import cached_property

import polars as pl
import structlog

from ..analytics.windows import earliest_event, reference_date
from ..exceptions import DatasetNotFoundError
from ..ingestion.frames import events_frame
from ..models.records import Campaign, FlowEmail

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FlowStepInfo:
    """One step of a live flow as seen in the data."""

    sequence_position: int
    email_name: str
    flow_message_id: str


@dataclass(frozen=True)
class Dataset:
    """Immutable snapshot of one account's records.

    Campaigns and flows always come from the same load; `version` is the
    store version at the time the snapshot was published.
    """

    account_id: str
    campaigns: tuple[Campaign, ...]
    flows: tuple[FlowEmail, ...]
    version: int
    reference_date: datetime
    earliest_event: datetime | None

    @classmethod
    def build(
        cls,
        account_id: str,
        campaigns: Iterable[Campaign],
        flows: Iterable[FlowEmail],
        version: int,
        now: datetime | None = None,
    ) -> "Dataset":
        campaigns = tuple(campaigns)
        flows = tuple(flows)
        return cls(
            account_id=account_id,
            campaigns=campaigns,
            flows=flows,
            version=version,
            reference_date=reference_date(campaigns, flows, now=now),
            earliest_event=earliest_event(campaigns, flows),
        )

    @cached_property
    def events(self) -> pl.DataFrame:
        """Merged campaign + flow event frame."""
        return events_frame(self.campaigns, self.flows)

    @property
    def is_empty(self) -> bool:
        return not self.campaigns and not self.flows

    def flow_names(self) -> list[str]:
        """Sorted names of flows with at least one live send."""
        return sorted({f.flow_name for f in self.flows if f.is_live})

    def flow_steps(self, flow_name: str) -> list[FlowStepInfo]:
        """Live steps of a flow ordered by sequence position."""
        steps: dict[int, FlowStepInfo] = {}
        for f in self.flows:
            if f.is_live and f.flow_name == flow_name and f.sequence_position not in steps:
                steps[f.sequence_position] = FlowStepInfo(
                    sequence_position=f.sequence_position,
                    email_name=f.email_name,
                    flow_message_id=f.flow_message_id,
                )
        return [steps[pos] for pos in sorted(steps)]


class DatasetStore:
    """Per-account dataset cache with a monotonic version counter.

    Usage:
        store = DatasetStore()
        store.replace("acct-1", campaigns, flows)
        dataset = store.get("acct-1")
    """

    def __init__(self) -> None:
        self._datasets: dict[str, Dataset] = {}
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._datasets

    def replace(
        self,
        account_id: str,
        campaigns: Iterable[Campaign],
        flows: Iterable[FlowEmail],
        now: datetime | None = None,
    ) -> Dataset:
        """Swap in a complete new dataset for an account.

        The new Dataset is fully built before it is published, so readers
        never see campaigns and flows from different loads.
        """
        dataset = Dataset.build(
            account_id, campaigns, flows, version=self._version + 1, now=now
        )
        self._datasets[account_id] = dataset
        self._version = dataset.version
        logger.info(
            "dataset_replaced",
            account_id=account_id,
            campaigns=len(dataset.campaigns),
            flows=len(dataset.flows),
            version=dataset.version,
        )
        return dataset

    def get(self, account_id: str) -> Dataset:
        """Return the current dataset for an account.

        Raises:
            DatasetNotFoundError: If nothing was loaded for the account
        """
        try:
            return self._datasets[account_id]
        except KeyError:
            raise DatasetNotFoundError(account_id) from None

    def clear(self, account_id: str) -> None:
        """Drop an account's dataset (no-op when absent)."""
        if self._datasets.pop(account_id, None) is not None:
            self._version += 1
            logger.info("dataset_cleared", account_id=account_id, version=self._version)
