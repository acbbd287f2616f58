"""Convert record collections into Polars event frames."""

from collections.abc import Sequence
from datetime import datetime

import polars as pl

from ..models.records import Campaign, FlowEmail

EVENT_SCHEMA: dict[str, pl.DataType] = {
    "sent_at": pl.Datetime("us"),
    "source": pl.Utf8,
    "flow_name": pl.Utf8,
    "sequence_position": pl.Int64,
    "status": pl.Utf8,
    "emails_sent": pl.Int64,
    "unique_opens": pl.Int64,
    "unique_clicks": pl.Int64,
    "total_orders": pl.Int64,
    "revenue": pl.Float64,
    "unsubscribes_count": pl.Int64,
    "spam_complaints_count": pl.Int64,
    "bounces_count": pl.Int64,
}

COUNT_COLUMNS = [
    "emails_sent",
    "unique_opens",
    "unique_clicks",
    "total_orders",
    "unsubscribes_count",
    "spam_complaints_count",
    "bounces_count",
]

TRUNCATE_EVERY = {
    "daily": "1d",
    "weekly": "1w",  # ISO weeks, Monday start
    "monthly": "1mo",
}


def _naive(dt: datetime) -> datetime:
    """Drop tzinfo so all instants compare on the same wall clock."""
    return dt.replace(tzinfo=None) if dt.tzinfo is not None else dt


def events_frame(
    campaigns: Sequence[Campaign] = (),
    flows: Sequence[FlowEmail] = (),
) -> pl.DataFrame:
    """Merge campaign and flow records into one event frame.

    Campaign rows carry null flow columns. An empty input still yields a
    frame with the full schema.
    """
    columns: dict[str, list] = {name: [] for name in EVENT_SCHEMA}

    for c in campaigns:
        columns["sent_at"].append(_naive(c.sent_at))
        columns["source"].append("campaign")
        columns["flow_name"].append(None)
        columns["sequence_position"].append(None)
        columns["status"].append(None)
        for col in COUNT_COLUMNS:
            columns[col].append(getattr(c, col))
        columns["revenue"].append(float(c.revenue))

    for f in flows:
        columns["sent_at"].append(_naive(f.sent_at))
        columns["source"].append("flow")
        columns["flow_name"].append(f.flow_name)
        columns["sequence_position"].append(f.sequence_position)
        columns["status"].append(f.status.value)
        for col in COUNT_COLUMNS:
            columns[col].append(getattr(f, col))
        columns["revenue"].append(float(f.revenue))

    return pl.DataFrame(columns, schema=EVENT_SCHEMA)


def add_bucket_start(
    df: pl.DataFrame, granularity: str, date_col: str = "sent_at"
) -> pl.DataFrame:
    """Add bucket_start column (start of the day, ISO week or month)."""
    every = TRUNCATE_EVERY[granularity]
    return df.with_columns(pl.col(date_col).dt.truncate(every).alias("bucket_start"))
