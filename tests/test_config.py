"""
Tests for YAML configuration loading.
"""

import pytest

from medschedule import config as config_module
from medschedule.config import AppConfig, DefaultsConfig, MedicationProfile
from medschedule.domain.models import DEFAULT_TIMEZONE, TimingPlan


VALID_CONFIG = """\
timezone: America/New_York
defaults:
  doses_per_day: 2
  timing_plan: plan2
  treatment_days: 5
  preview_days: 2
medications:
  - name: 感冒藥
    doses_per_day: 3
    treatment_days: 3
  - name: 降血壓藥
    doses_per_day: 2
    timing_plan: custom
    custom_times: ["07:30", "19:30"]
"""


class TestAppConfig:
    """Tests for AppConfig."""

    def test_load_from_yaml(self, tmp_path):
        """Test loading a complete config file."""
        path = tmp_path / "config.yaml"
        path.write_text(VALID_CONFIG, encoding="utf-8")

        config = AppConfig.load_from_yaml(path)

        assert config.timezone == "America/New_York"
        assert config.defaults.doses_per_day == 2
        assert config.defaults.timing_plan is TimingPlan.PLAN2
        assert [m.name for m in config.medications] == ["感冒藥", "降血壓藥"]
        assert config.medications[1].custom_times == ["07:30", "19:30"]

    def test_defaults_when_empty(self, tmp_path):
        """Test that an empty file yields the defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        config = AppConfig.load_from_yaml(path)

        assert config.timezone == DEFAULT_TIMEZONE
        assert config.defaults == DefaultsConfig()
        assert config.medications == []

    def test_missing_file(self, tmp_path):
        """Test that a missing explicit file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "missing.yaml")

        with pytest.raises(FileNotFoundError):
            AppConfig.load_or_default(tmp_path / "missing.yaml")

    def test_load_or_default_without_file(self, tmp_path, monkeypatch):
        """Test the fallback to built-in defaults."""
        monkeypatch.setattr(config_module, "get_default_config_path", lambda: tmp_path / "config.yaml")

        config = AppConfig.load_or_default()

        assert config.timezone == DEFAULT_TIMEZONE

    def test_load_or_default_uses_default_path(self, tmp_path, monkeypatch):
        """Test that the default path is read when it exists."""
        path = tmp_path / "config.yaml"
        path.write_text(VALID_CONFIG, encoding="utf-8")
        monkeypatch.setattr(config_module, "get_default_config_path", lambda: path)

        assert AppConfig.load_or_default().timezone == "America/New_York"

    @pytest.mark.parametrize(
        "content",
        [
            "timezone: [unclosed",
            "- just\n- a list\n",
            "timezone: Mars/Olympus\n",
            "defaults:\n  doses_per_day: 0\n",
            "defaults:\n  timing_plan: plan9\n",
        ],
    )
    def test_invalid_config(self, tmp_path, content):
        """Test that invalid content raises ValueError."""
        path = tmp_path / "config.yaml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ValueError):
            AppConfig.load_from_yaml(path)

    def test_duplicate_medication_names(self):
        """Test that medication names must be unique, ignoring case."""
        with pytest.raises(ValueError, match="Duplicate"):
            AppConfig(
                medications=[
                    {"name": "Aspirin", "doses_per_day": 2},
                    {"name": "aspirin", "doses_per_day": 3},
                ]
            )

    def test_resolve_medication(self):
        """Test case-insensitive lookup and unknown names."""
        config = AppConfig(medications=[{"name": "Aspirin", "doses_per_day": 2}])

        assert config.resolve_medication("ASPIRIN").doses_per_day == 2
        assert config.find_medication_by_name("ibuprofen") is None

        with pytest.raises(ValueError, match="Unknown medication"):
            config.resolve_medication("ibuprofen")


class TestMedicationProfile:
    """Tests for MedicationProfile validation."""

    def test_custom_plan_requires_times(self):
        """Test that the custom plan needs custom times."""
        with pytest.raises(ValueError, match="custom_times"):
            MedicationProfile(name="x", doses_per_day=2, timing_plan="custom")

    def test_named_plan_rejects_times(self):
        """Test that custom times only go with the custom plan."""
        with pytest.raises(ValueError, match="custom_times"):
            MedicationProfile(name="x", doses_per_day=2, timing_plan="plan1", custom_times=["08:00", "20:00"])
