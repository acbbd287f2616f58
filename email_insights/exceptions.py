"""Custom exceptions for the analytics engine."""

from typing import Any


class EngineError(Exception):
    """Base exception for analytics engine errors."""

    pass


class ConfigLoadError(EngineError):
    """Failed to load threshold configuration."""

    pass


class DataValidationError(EngineError):
    """Record validation failed against Pydantic model."""

    def __init__(self, errors: list[dict[str, Any]], row_count: int):
        self.errors = errors
        self.row_count = row_count
        super().__init__(
            f"Validation failed for {len(errors)} of {row_count} rows. "
            f"First error: {errors[0] if errors else 'N/A'}"
        )


class UnknownMetricError(EngineError):
    """Requested metric is not one of the supported metric keys."""

    def __init__(self, metric: str, available: list[str]):
        self.metric = metric
        self.available = available
        super().__init__(f"Unknown metric: {metric!r}. Available: {available}")


class DatasetNotFoundError(EngineError):
    """No dataset has been loaded for the requested account."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"No dataset loaded for account: {account_id!r}")
