"""Pydantic models for validating parsed campaign and flow rows."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EmailEventRow(BaseModel):
    """Fields shared by every parsed send row.

    Accepts snake_case or camelCase keys (sent_at / sentAt).
    Revenue is a plain float in account currency, counts are non-negative.
    """

    model_config = ConfigDict(
        strict=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    sent_at: datetime
    emails_sent: int = Field(ge=0)
    unique_opens: int = Field(default=0, ge=0)
    unique_clicks: int = Field(default=0, ge=0)
    total_orders: int = Field(default=0, ge=0)
    revenue: float = Field(default=0.0, ge=0)
    unsubscribes_count: int = Field(default=0, ge=0)
    spam_complaints_count: int = Field(default=0, ge=0)
    bounces_count: int = Field(default=0, ge=0)


class CampaignRow(EmailEventRow):
    """Single campaign row after CSV parsing."""

    subject: str = ""
    campaign_name: str = ""


class FlowEmailRow(EmailEventRow):
    """Single flow-step row after CSV parsing."""

    flow_name: str
    sequence_position: int = Field(ge=1)
    status: str = "live"
    flow_id: str = ""
    flow_message_id: str = ""
    email_name: str = ""
