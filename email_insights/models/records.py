"""Immutable record types for campaign and flow sends."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class FlowStatus(str, Enum):
    """Lifecycle status of a flow message."""

    LIVE = "live"
    DRAFT = "draft"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: "str | FlowStatus | None") -> "FlowStatus":
        """Map a raw export status onto a known status (unknown -> OTHER)."""
        if isinstance(raw, FlowStatus):
            return raw
        value = (raw or "").strip().lower()
        for status in cls:
            if status.value == value:
                return status
        return cls.OTHER


@dataclass(frozen=True)
class EmailEvent:
    """Shared shape of a single email send.

    Counts are taken as exported; unique_clicks > emails_sent is tolerated.
    """

    sent_at: datetime
    emails_sent: int = 0
    unique_opens: int = 0
    unique_clicks: int = 0
    total_orders: int = 0
    revenue: float = 0.0
    unsubscribes_count: int = 0
    spam_complaints_count: int = 0
    bounces_count: int = 0


@dataclass(frozen=True)
class Campaign(EmailEvent):
    """A one-off campaign send."""

    subject: str = ""
    campaign_name: str = ""


@dataclass(frozen=True)
class FlowEmail(EmailEvent):
    """A single step of an automated flow, aggregated per send day."""

    flow_name: str = ""
    sequence_position: int = 1
    status: FlowStatus = FlowStatus.LIVE
    flow_id: str = ""
    flow_message_id: str = ""
    email_name: str = ""

    @property
    def is_live(self) -> bool:
        return self.status is FlowStatus.LIVE
