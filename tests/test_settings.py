"""Tests for threshold configuration loading."""

import pytest

from email_insights.analytics.period import BaselineFloor
from email_insights.analytics.send_volume import SendVolumeThresholds
from email_insights.exceptions import ConfigLoadError
from email_insights.settings import load_settings


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def write_yaml(tmp_path):
    """Factory: write YAML text to a temp file and return its path."""

    def _write(text: str):
        path = tmp_path / "thresholds.yaml"
        path.write_text(text)
        return path

    return _write


# =============================================================================
# UNIT TESTS
# =============================================================================


class TestLoadSettings:
    """Tests for load_settings."""

    def test_bundled_defaults_match_dataclasses(self) -> None:
        settings = load_settings()
        assert settings.send_volume == SendVolumeThresholds()
        assert settings.baseline_floor == BaselineFloor()

    def test_partial_override(self, write_yaml) -> None:
        path = write_yaml(
            "send_volume:\n"
            "  min_campaigns: 8\n"
            "  efficiency_tiers:\n"
            "    - [0.5, 0.9]\n"
            "baseline_floor:\n"
            "  min_orders: 1\n"
        )
        settings = load_settings(path)

        assert settings.send_volume.min_campaigns == 8
        assert settings.send_volume.min_emails_sent == 500
        assert settings.send_volume.efficiency_tiers == ((0.5, 0.9),)
        assert settings.baseline_floor.min_orders == 1

    def test_empty_file_uses_defaults(self, write_yaml) -> None:
        settings = load_settings(write_yaml(""))
        assert settings.send_volume == SendVolumeThresholds()

    def test_unknown_key(self, write_yaml) -> None:
        with pytest.raises(ConfigLoadError, match="min_campaignz"):
            load_settings(write_yaml("send_volume:\n  min_campaignz: 3\n"))

    def test_section_must_be_mapping(self, write_yaml) -> None:
        with pytest.raises(ConfigLoadError, match="must be a mapping"):
            load_settings(write_yaml("baseline_floor: 3\n"))

    def test_bad_efficiency_tiers(self, write_yaml) -> None:
        with pytest.raises(ConfigLoadError, match="efficiency_tiers"):
            load_settings(write_yaml("send_volume:\n  efficiency_tiers: [1, 2]\n"))

    def test_invalid_yaml(self, write_yaml) -> None:
        with pytest.raises(ConfigLoadError, match="Failed to load"):
            load_settings(write_yaml("send_volume: [unclosed\n"))

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigLoadError):
            load_settings(tmp_path / "nope.yaml")
