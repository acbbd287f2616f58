"""Threshold configuration loaded from the bundled YAML file."""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import structlog
import yaml

from .analytics.period import BaselineFloor
from .analytics.send_volume import SendVolumeThresholds
from .exceptions import ConfigLoadError

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config" / "thresholds.yaml"


@dataclass(frozen=True)
class EngineSettings:
    """All tunable heuristics of the engine."""

    send_volume: SendVolumeThresholds = field(default_factory=SendVolumeThresholds)
    baseline_floor: BaselineFloor = field(default_factory=BaselineFloor)


def _build(section: str, cls: type, raw: Any) -> Any:
    """Instantiate a threshold dataclass from a YAML mapping."""
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigLoadError(f"Section {section!r} must be a mapping")

    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise ConfigLoadError(f"Unknown keys in {section!r}: {sorted(unknown)}")

    values = dict(raw)
    if "efficiency_tiers" in values:
        try:
            values["efficiency_tiers"] = tuple(
                (float(min_r), float(eff)) for min_r, eff in values["efficiency_tiers"]
            )
        except (TypeError, ValueError) as e:
            raise ConfigLoadError(
                f"efficiency_tiers must be a list of [min_r, efficiency] pairs: {e}"
            ) from e
    return cls(**values)


def load_settings(path: Path | None = None) -> EngineSettings:
    """Load engine settings from YAML.

    Args:
        path: YAML file. Defaults to the bundled thresholds.yaml.

    Raises:
        ConfigLoadError: If the file cannot be read or has an invalid shape
    """
    path = path or DEFAULT_CONFIG_PATH
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigLoadError(f"Failed to load thresholds from {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigLoadError(f"Top level of {path} must be a mapping")

    settings = EngineSettings(
        send_volume=_build("send_volume", SendVolumeThresholds, raw.get("send_volume")),
        baseline_floor=_build("baseline_floor", BaselineFloor, raw.get("baseline_floor")),
    )
    logger.debug("settings_loaded", path=str(path))
    return settings
