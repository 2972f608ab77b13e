"""Configuration loader and validation for reconciliation settings."""

from decimal import Decimal
from pathlib import Path
from typing import Any, Literal, Optional
import logging

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .utils.exceptions import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)


def _default_column_aliases() -> dict[str, list[str]]:
    return {
        "reference": [
            "transaction_reference",
            "reference",
            "ref",
            "txn_ref",
            "transaction_id",
            "id",
        ],
        "amount": ["amount", "internal_amount", "provider_amount"],
        "currency": ["currency", "internal_currency", "provider_currency"],
        "status": ["status", "internal_status", "provider_status"],
        "timestamp": [
            "timestamp",
            "internal_timestamp",
            "provider_timestamp",
            "date",
            "datetime",
            "transaction_date",
            "created_at",
        ],
        "description": ["description", "internal_description", "provider_description"],
        "counterparty_id": [
            "counterparty_id",
            "customer_id",
            "internal_customer_id",
            "provider_id",
        ],
        "fees": ["fees", "fee", "internal_fees", "provider_fees"],
    }


class InputConfig(BaseModel):
    """Configuration for input file parsing."""

    encoding: str = "utf-8"
    delimiter: str = ","
    max_file_size_mb: float = 10.0
    default_currency: str = "UNKNOWN"
    default_status: str = "unknown"
    # Canonical field -> accepted (normalized) header names, in priority order
    column_aliases: dict[str, list[str]] = Field(default_factory=_default_column_aliases)


class MatchingConfig(BaseModel):
    """Configuration for the matching engine and discrepancy classifier."""

    model_config = ConfigDict(validate_assignment=True)

    pairing_strategy: Literal["positional", "best_amount"] = "positional"
    timestamp_tolerance_minutes: float = Field(default=5.0, ge=0)
    major_amount_percentage: Decimal = Field(default=Decimal("5"), ge=0)


class DuplicatesConfig(BaseModel):
    """Member-count thresholds for duplicate risk levels."""

    medium_risk_min_count: int = Field(default=3, ge=2)
    high_risk_min_count: int = Field(default=4, ge=2)


class ExcelOutputConfig(BaseModel):
    """Configuration for Excel output."""

    filename_template: str = "reconciliation_report_{date}_{time}.xlsx"


class CsvOutputConfig(BaseModel):
    """Configuration for CSV exports."""

    delimiter: str = ","
    encoding: str = "utf-8"


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    matched: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Matched Transactions"))
    discrepancies: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Discrepancies")
    )
    internal_only: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Internal Only"))
    provider_only: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Provider Only"))
    duplicates: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Duplicates"))


class OutputConfig(BaseModel):
    """Configuration for output."""

    excel: ExcelOutputConfig = Field(default_factory=ExcelOutputConfig)
    csv: CsvOutputConfig = Field(default_factory=CsvOutputConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    duplicates: DuplicatesConfig = Field(default_factory=DuplicatesConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a plain dictionary."""
    return ReconConfig().model_dump(mode="json", exclude={"config_file_path"})


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or holds invalid values
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(
                f"Configuration file {config_path} must contain a mapping at the top level"
            )

        # Deep merge user config into defaults
        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def apply_matching_overrides(
    config: ReconConfig,
    pairing_strategy: Optional[str] = None,
    timestamp_tolerance_minutes: Optional[float] = None,
) -> ReconConfig:
    """
    Apply command-line overrides to the matching settings in place.

    Values go through the same field constraints as the YAML file.

    Raises:
        ValidationError: If an override is out of range or unknown
    """
    overrides = {
        "pairing_strategy": pairing_strategy,
        "timestamp_tolerance_minutes": timestamp_tolerance_minutes,
    }
    for name, value in overrides.items():
        if value is None:
            continue
        try:
            setattr(config.matching, name, value)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid override for {name}: {value!r}") from e
        logger.debug(f"Matching override: {name}={value!r}")

    return config


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    yaml_content = """# Internal vs. provider transaction reconciliation configuration
# Generated configuration file - customize as needed

"""
    yaml_content += yaml.dump(get_default_config(), default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
