"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.exceptions import InvalidRequestError
from .domain.models import DEFAULT_TIMEZONE, TimingPlan, ensure_timezone


class DefaultsConfig(BaseModel):
    """Default plan parameters used when the caller omits them."""
    doses_per_day: int = 3
    timing_plan: TimingPlan = TimingPlan.PLAN1
    treatment_days: int = 3
    preview_days: int = 3

    @field_validator("doses_per_day", "treatment_days", "preview_days")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure counts are positive."""
        if value < 1:
            raise ValueError(f"Value must be at least 1, got {value}")
        return value


class MedicationProfile(BaseModel):
    """A saved medication with its own dosing plan."""
    name: str
    doses_per_day: int
    timing_plan: TimingPlan = TimingPlan.PLAN1
    custom_times: Optional[List[str]] = None
    treatment_days: Optional[int] = None

    @field_validator("doses_per_day")
    @classmethod
    def validate_doses(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"doses_per_day must be at least 1, got {value}")
        return value

    @model_validator(mode="after")
    def validate_custom_times(self) -> "MedicationProfile":
        """Custom times belong to the custom plan and only to it."""
        if self.timing_plan is TimingPlan.CUSTOM and not self.custom_times:
            raise ValueError(f"Medication '{self.name}' uses the custom plan but has no custom_times")
        if self.timing_plan is not TimingPlan.CUSTOM and self.custom_times:
            raise ValueError(
                f"Medication '{self.name}' sets custom_times with plan '{self.timing_plan.value}'"
            )
        return self


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = DEFAULT_TIMEZONE
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    medications: List[MedicationProfile] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA zone."""
        try:
            return ensure_timezone(value)
        except InvalidRequestError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("medications")
    @classmethod
    def validate_medications(cls, value: List[MedicationProfile]) -> List[MedicationProfile]:
        """Ensure medication names are unique."""
        seen_names: set[str] = set()
        for medication in value:
            name_key = medication.name.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate medication name detected: {medication.name}")
            seen_names.add(name_key)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    @classmethod
    def load_or_default(cls, config_path: Optional[Path] = None) -> "AppConfig":
        """
        Load the config file if present, otherwise fall back to defaults.

        An explicitly given path must exist.
        """
        if config_path is not None:
            return cls.load_from_yaml(config_path)

        default_path = get_default_config_path()
        if default_path.exists():
            return cls.load_from_yaml(default_path)
        return cls()

    def find_medication_by_name(self, name: str) -> MedicationProfile | None:
        """Find a medication profile by name (case-insensitive)."""
        for medication in self.medications:
            if medication.name.lower() == name.lower():
                return medication
        return None

    def resolve_medication(self, name: str) -> MedicationProfile:
        """
        Raises:
            ValueError: If no profile with that name is configured
        """
        medication = self.find_medication_by_name(name)
        if medication is None:
            known = ", ".join(m.name for m in self.medications) or "none"
            raise ValueError(f"Unknown medication '{name}'. Configured medications: {known}")
        return medication


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
