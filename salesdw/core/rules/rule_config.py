"""
Conformance rule configuration.

The code-to-label tables and the fixed constants used by the cleansing,
versioning and derivation steps. Built-in defaults reproduce the CRM/ERP
source conventions; a YAML file can override any of them.
"""

from datetime import date
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from salesdw.core.errors import ConfigurationError


class ConformanceRules(BaseModel):
    """
    Lookup tables and constants for conformance.

    Attributes:
        marital_status: Customer master marital status codes -> labels
        gender: Customer master gender codes -> labels
        supplementary_gender: ERP gender free text -> labels
        country: Country codes/abbreviations -> full country names
        product_line: Product line codes -> labels
        unknown_label: Sentinel for unmapped or blank codes
        customer_id_prefix: Non-numeric prefix stripped from ERP customer ids
        category_prefix_length: Length of the category prefix in raw product keys
        min_date_key: Lowest accepted YYYYMMDD sales date (inclusive)
        max_date_key: Highest accepted YYYYMMDD sales date (inclusive)
        min_birthdate: Earliest plausible customer birthdate for quality checks
    """

    marital_status: dict[str, str] = Field(
        default_factory=lambda: {"S": "Single", "M": "Married"}
    )
    gender: dict[str, str] = Field(
        default_factory=lambda: {"F": "Female", "M": "Male"}
    )
    supplementary_gender: dict[str, str] = Field(
        default_factory=lambda: {
            "F": "Female",
            "FEMALE": "Female",
            "M": "Male",
            "MALE": "Male",
        }
    )
    country: dict[str, str] = Field(
        default_factory=lambda: {
            "DE": "Germany",
            "US": "United States",
            "USA": "United States",
        }
    )
    product_line: dict[str, str] = Field(
        default_factory=lambda: {
            "M": "Mountain",
            "R": "Road",
            "S": "Other Sales",
            "T": "Touring",
        }
    )
    unknown_label: str = Field("n/a", min_length=1)
    customer_id_prefix: str = "NAS"
    category_prefix_length: int = Field(5, ge=1)
    min_date_key: int = 19000101
    max_date_key: int = 20500101
    min_birthdate: date = date(1924, 1, 1)

    @field_validator(
        "marital_status", "gender", "supplementary_gender", "country", "product_line"
    )
    @classmethod
    def normalize_codes(cls, v: dict[str, str]) -> dict[str, str]:
        """Lookup keys are matched against trimmed, upper-cased input."""
        return {str(code).strip().upper(): label for code, label in v.items()}

    @model_validator(mode="after")
    def check_date_bounds(self) -> "ConformanceRules":
        for bound in (self.min_date_key, self.max_date_key):
            if len(str(bound)) != 8:
                raise ValueError(f"date bound {bound} is not an 8-digit YYYYMMDD value")
        if self.min_date_key > self.max_date_key:
            raise ValueError(
                f"min_date_key {self.min_date_key} is after max_date_key {self.max_date_key}"
            )
        return self

    def labels(self, table: str) -> set[str]:
        """All labels a standardized column may hold, including the sentinel."""
        return set(getattr(self, table).values()) | {self.unknown_label}


class RuleConfigLoader:
    """
    Loads conformance rules from a YAML configuration file.

    Expected YAML format:
    ```yaml
    rules:
      marital_status:
        S: Single
        M: Married
      product_line:
        M: Mountain
        R: Road
      customer_id_prefix: NAS
      max_date_key: 20500101
    ```

    Omitted entries keep their built-in defaults.
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the rule config loader.

        Args:
            config_path: Path to the YAML configuration file

        Raises:
            ConfigurationError: If the file does not exist
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise ConfigurationError(f"Rule configuration file not found: {config_path}")

    def load_rules(self) -> ConformanceRules:
        """
        Load and validate conformance rules.

        Returns:
            ConformanceRules with YAML overrides applied

        Raises:
            ConfigurationError: If YAML is invalid or a rule fails validation
        """
        with open(self.config_path) as f:
            try:
                config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not config or "rules" not in config:
            raise ConfigurationError("Configuration file must contain 'rules' section")

        overrides = config["rules"] or {}
        if not isinstance(overrides, dict):
            raise ConfigurationError("'rules' section must be a mapping")

        unknown = set(overrides) - set(ConformanceRules.model_fields)
        if unknown:
            raise ConfigurationError(f"Unknown rule(s): {', '.join(sorted(unknown))}")

        return self._build(overrides)

    def _build(self, overrides: dict[str, Any]) -> ConformanceRules:
        try:
            return ConformanceRules(**overrides)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid rule configuration in {self.config_path}: {e}") from e


def load_rules(config_path: str | Path | None = None) -> ConformanceRules:
    """
    Load rules from a YAML file, or the built-in defaults when no path is given.

    Args:
        config_path: Optional path to a rules YAML file

    Returns:
        ConformanceRules instance
    """
    if config_path is None:
        return ConformanceRules()
    return RuleConfigLoader(config_path).load_rules()
