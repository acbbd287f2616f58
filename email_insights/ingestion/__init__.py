from .frames import EVENT_SCHEMA, add_bucket_start, events_frame
from .validator import validate_campaigns, validate_flow_emails

__all__ = [
    "EVENT_SCHEMA",
    "add_bucket_start",
    "events_frame",
    "validate_campaigns",
    "validate_flow_emails",
]
