"""
Configuration management.

All configuration keys are defined here; no other module should invent
config keys. Values come from a YAML file, with environment variables
taking precedence for the paths and the default account.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import yaml


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class DuplicateConfig:
    """Duplicate detection tolerances."""

    # Date window for "same transaction" checks (hours, each direction)
    transaction_tolerance_hours: int = 24
    # Amount window for similar-transaction search
    similar_amount_tolerance: Decimal = Decimal("0.01")
    # Date window for similar-transaction search (days, each direction)
    similar_date_tolerance_days: int = 3

    @property
    def transaction_tolerance(self) -> timedelta:
        return timedelta(hours=self.transaction_tolerance_hours)

    @property
    def similar_date_tolerance(self) -> timedelta:
        return timedelta(days=self.similar_date_tolerance_days)


@dataclass
class BackupConfig:
    """Backup file settings."""

    directory: Path = field(default_factory=lambda: Path("backups"))
    file_extension: str = ".bsbackup"


@dataclass
class OCRConfig:
    """Text recognition settings."""

    # Recognized text is read from <image><sidecar_suffix>
    sidecar_suffix: str = ".txt"


@dataclass
class Config:
    """Application configuration."""

    duplicates: DuplicateConfig = field(default_factory=DuplicateConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    state_db_path: Path = field(default_factory=lambda: Path("data/budgetsnap.db"))
    # Account used by `import` when --account is not given
    default_account: Optional[str] = None

    def validate(self) -> list[str]:
        """Validate configuration consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if self.duplicates.transaction_tolerance_hours < 0:
            errors.append("duplicates.transaction_tolerance_hours must be >= 0")
        if self.duplicates.similar_amount_tolerance < 0:
            errors.append("duplicates.similar_amount_tolerance must be >= 0")
        if self.duplicates.similar_date_tolerance_days < 0:
            errors.append("duplicates.similar_date_tolerance_days must be >= 0")

        if not self.backup.file_extension.startswith("."):
            errors.append("backup.file_extension must start with '.'")
        if not self.ocr.sidecar_suffix:
            errors.append("ocr.sidecar_suffix must not be empty")

        return errors


def _decimal(value: object, key: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ConfigValidationError(f"{key} must be a number, got: {value!r}") from e


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    A missing file yields the defaults. Environment variables can override
    config values:
    - BUDGETSNAP_DB_PATH
    - BUDGETSNAP_BACKUP_DIR
    - BUDGETSNAP_ACCOUNT

    Raises:
        ConfigValidationError: The file is not valid YAML or holds bad values
    """
    if config_path.exists():
        with open(config_path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigValidationError(f"Invalid YAML in {config_path}: {e}") from e
    else:
        data = {}

    if not isinstance(data, dict):
        raise ConfigValidationError(f"{config_path} must contain a mapping")

    # Duplicate detection
    dup_data = data.get("duplicates") or {}
    duplicates = DuplicateConfig(
        transaction_tolerance_hours=int(dup_data.get("transaction_tolerance_hours", 24)),
        similar_amount_tolerance=_decimal(
            dup_data.get("similar_amount_tolerance", "0.01"),
            "duplicates.similar_amount_tolerance",
        ),
        similar_date_tolerance_days=int(dup_data.get("similar_date_tolerance_days", 3)),
    )

    # Backup
    backup_data = data.get("backup") or {}
    backup = BackupConfig(
        directory=Path(
            os.environ.get("BUDGETSNAP_BACKUP_DIR", backup_data.get("directory", "backups"))
        ),
        file_extension=backup_data.get("file_extension", ".bsbackup"),
    )

    # OCR
    ocr_data = data.get("ocr") or {}
    ocr = OCRConfig(sidecar_suffix=ocr_data.get("sidecar_suffix", ".txt"))

    # State DB
    state_db = os.environ.get("BUDGETSNAP_DB_PATH", data.get("state_db_path", "data/budgetsnap.db"))

    config = Config(
        duplicates=duplicates,
        backup=backup,
        ocr=ocr,
        state_db_path=Path(state_db),
        default_account=os.environ.get("BUDGETSNAP_ACCOUNT", data.get("default_account")),
    )

    errors = config.validate()
    if errors:
        raise ConfigValidationError("; ".join(errors))

    return config


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# BudgetSnap Configuration
#
# Environment overrides:
#   BUDGETSNAP_DB_PATH, BUDGETSNAP_BACKUP_DIR, BUDGETSNAP_ACCOUNT

# State database path
state_db_path: "data/budgetsnap.db"

# Account used by `budgetsnap import` when --account is not given
default_account: null

# Duplicate detection
duplicates:
  transaction_tolerance_hours: 24         # Same amount + merchant within this window = duplicate
  similar_amount_tolerance: "0.01"         # Similar-transaction amount window
  similar_date_tolerance_days: 3           # Similar-transaction date window

# Encrypted backups
backup:
  directory: "backups"
  file_extension: ".bsbackup"

# Text recognition
ocr:
  sidecar_suffix: ".txt"                   # statement.png -> statement.png.txt
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
