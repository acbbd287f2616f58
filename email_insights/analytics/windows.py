"""Resolve range tokens into concrete date windows anchored to the data."""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

import structlog

from ..models.records import EmailEvent
from .models import CompareMode, DateWindow, Granularity

logger = structlog.get_logger(__name__)

DEFAULT_RANGE = "90d"
MAX_RANGE_DAYS = 730
PREV_YEAR_SHIFT = timedelta(days=365)

_PRESET_RE = re.compile(r"^(\d+)d$")
_CUSTOM_RE = re.compile(r"^custom:(\d{4}-\d{2}-\d{2}):(\d{4}-\d{2}-\d{2})$")


class RangeKind(str, Enum):
    PRESET = "preset"
    ALL = "all"
    CUSTOM = "custom"


@dataclass(frozen=True)
class RangeSpec:
    """Parsed range token."""

    kind: RangeKind
    days: int | None = None
    custom_start: date | None = None
    custom_end: date | None = None


def parse_range_token(token: str | None) -> RangeSpec:
    """Classify a range token as preset, all-time or custom.

    Unparsable tokens (including custom tokens with invalid dates) fall
    back to the default preset instead of raising.
    """
    raw = (token or "").strip().lower()

    if raw == "all":
        return RangeSpec(RangeKind.ALL)

    preset = _PRESET_RE.match(raw)
    if preset and int(preset.group(1)) > 0:
        return RangeSpec(RangeKind.PRESET, days=min(int(preset.group(1)), MAX_RANGE_DAYS))

    custom = _CUSTOM_RE.match(raw)
    if custom:
        try:
            start = date.fromisoformat(custom.group(1))
            end = date.fromisoformat(custom.group(2))
        except ValueError:
            pass
        else:
            if start > end:
                start, end = end, start
            return RangeSpec(RangeKind.CUSTOM, custom_start=start, custom_end=end)

    logger.debug("range_token_fallback", token=token, fallback=DEFAULT_RANGE)
    return parse_range_token(DEFAULT_RANGE)


def _sent_times(*collections: Iterable[EmailEvent]) -> list[datetime]:
    return [
        e.sent_at.replace(tzinfo=None) if e.sent_at.tzinfo else e.sent_at
        for events in collections
        for e in events
    ]


def reference_date(
    campaigns: Iterable[EmailEvent] = (),
    flows: Iterable[EmailEvent] = (),
    now: datetime | None = None,
) -> datetime:
    """Latest send across all records, or `now` for an empty dataset."""
    times = _sent_times(campaigns, flows)
    if times:
        return max(times)
    return now or datetime.now()


def earliest_event(
    campaigns: Iterable[EmailEvent] = (),
    flows: Iterable[EmailEvent] = (),
) -> datetime | None:
    """Earliest send across all records (None when empty)."""
    times = _sent_times(campaigns, flows)
    return min(times) if times else None


def _trailing_window(days: int, reference: datetime) -> DateWindow:
    end = reference.date()
    return DateWindow.from_dates(end - timedelta(days=days - 1), end)


def resolve_window(
    token: str | RangeSpec | None,
    reference: datetime,
    earliest: datetime | None = None,
) -> DateWindow:
    """Resolve a range token into an inclusive window.

    Args:
        token: Range token ("30d", "all", "custom:YYYY-MM-DD:YYYY-MM-DD")
        reference: Anchor date, normally the latest send in the dataset
        earliest: Earliest send, only needed for "all"

    Returns:
        Window starting at 00:00 and ending at end-of-day.
    """
    spec = token if isinstance(token, RangeSpec) else parse_range_token(token)

    if spec.kind is RangeKind.CUSTOM:
        return DateWindow.from_dates(spec.custom_start, spec.custom_end)

    if spec.kind is RangeKind.ALL:
        if earliest is None:
            days = MAX_RANGE_DAYS
        else:
            span = (reference.date() - earliest.date()).days + 1
            days = max(1, min(MAX_RANGE_DAYS, span))
        return _trailing_window(days, reference)

    return _trailing_window(spec.days, reference)


def resolve_compare_window(window: DateWindow, mode: CompareMode) -> DateWindow | None:
    """Derive the comparison window for the current window.

    prev-period is the contiguous window of the same length ending the day
    before `window` starts; prev-year shifts both endpoints back 365 days.
    """
    mode = CompareMode(mode)
    if mode is CompareMode.NONE:
        return None

    if mode is CompareMode.PREV_YEAR:
        return DateWindow(
            start=window.start - PREV_YEAR_SHIFT, end=window.end - PREV_YEAR_SHIFT
        )

    prev_end = window.start.date() - timedelta(days=1)
    prev_start = prev_end - timedelta(days=window.days - 1)
    return DateWindow.from_dates(prev_start, prev_end)


def is_compare_window_available(
    token: str | None,
    mode: CompareMode,
    reference: datetime | None,
    earliest: datetime | None,
) -> bool:
    """Whether the compare window is fully covered by data.

    Partial coverage is suppressed rather than compared against an
    understated baseline.
    """
    spec = parse_range_token(token)
    if spec.kind is RangeKind.ALL or reference is None:
        return False
    window = resolve_window(spec, reference, earliest)
    return available_compare_window(window, mode, earliest) is not None


def available_compare_window(
    window: DateWindow, mode: CompareMode, earliest: datetime | None
) -> DateWindow | None:
    """Compare window for `window`, or None when no data covers its start."""
    compare = resolve_compare_window(window, mode)
    if compare is None or earliest is None or compare.start < earliest:
        return None
    return compare


def suggest_granularity(window: DateWindow) -> Granularity:
    """Default bucket width for a window length."""
    if window.days <= 60:
        return Granularity.DAILY
    if window.days <= 365:
        return Granularity.WEEKLY
    return Granularity.MONTHLY


def allowed_granularities(window: DateWindow) -> tuple[Granularity, ...]:
    """Granularities a chart should offer for this window.

    Daily is disabled beyond a year, monthly at 60 days or less.
    """
    allowed = []
    if window.days <= 365:
        allowed.append(Granularity.DAILY)
    allowed.append(Granularity.WEEKLY)
    if window.days > 60:
        allowed.append(Granularity.MONTHLY)
    return tuple(allowed)
