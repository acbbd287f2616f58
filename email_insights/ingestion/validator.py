"""Validation utilities for records handed over by the CSV parser."""

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from ..exceptions import DataValidationError
from ..models.records import Campaign, FlowEmail, FlowStatus
from ..models.rows import CampaignRow, FlowEmailRow

logger = structlog.get_logger(__name__)

RowT = TypeVar("RowT", bound=BaseModel)


def _validate_rows(
    rows: list[Mapping[str, Any]], model: type[RowT]
) -> list[RowT]:
    """Validate each row against Pydantic model.

    Collects all errors before raising, for better debugging.
    """
    errors: list[dict[str, Any]] = []
    validated: list[RowT] = []

    for i, row in enumerate(rows):
        try:
            validated.append(model.model_validate(row))
        except ValidationError as e:
            errors.append({"row": i, "errors": e.errors()})

    if errors:
        logger.warning(
            "row_validation_failed",
            model=model.__name__,
            failed=len(errors),
            total=len(rows),
        )
        raise DataValidationError(errors, len(rows))

    return validated


def validate_campaigns(rows: Iterable[Mapping[str, Any] | Campaign]) -> list[Campaign]:
    """Validate parsed campaign rows and convert them to Campaign records.

    Rows that are already Campaign instances are passed through; input
    order is preserved.

    Raises:
        DataValidationError: If any rows fail validation
    """
    rows = list(rows)
    raw = [r for r in rows if not isinstance(r, Campaign)]
    converted = iter(
        [Campaign(**row.model_dump()) for row in _validate_rows(raw, CampaignRow)]
    )
    return [r if isinstance(r, Campaign) else next(converted) for r in rows]


def validate_flow_emails(
    rows: Iterable[Mapping[str, Any] | FlowEmail],
) -> list[FlowEmail]:
    """Validate parsed flow rows and convert them to FlowEmail records.

    Raw status strings are mapped onto FlowStatus (unknown -> "other").

    Raises:
        DataValidationError: If any rows fail validation
    """
    rows = list(rows)
    raw = [r for r in rows if not isinstance(r, FlowEmail)]

    records: list[FlowEmail] = []
    for row in _validate_rows(raw, FlowEmailRow):
        data = row.model_dump()
        data["status"] = FlowStatus.parse(data["status"])
        records.append(FlowEmail(**data))

    converted = iter(records)
    return [r if isinstance(r, FlowEmail) else next(converted) for r in rows]
