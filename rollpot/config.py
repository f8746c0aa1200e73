"""Configuration for rollpot.

Settings live in ``~/.config/rollpot/config.toml``. A missing file or
missing keys fall back to the defaults below.
"""

from decimal import Decimal
from pathlib import Path
from typing import Optional

import toml
import pytz
from pydantic import BaseModel, Field, ValidationError, field_validator

from rollpot.engine.rules import LedgerRules
from rollpot.engine.transition import AllocationBase

CONFIG_DIR = Path.home() / ".config" / "rollpot"
CONFIG_PATH = CONFIG_DIR / "config.toml"
DEFAULT_DB_PATH = CONFIG_DIR / "rollpot.db"


class ConfigError(Exception):
    """The configuration file could not be read or is invalid."""


class Settings(BaseModel):
    """Resolved configuration."""

    starting_roll_pot: Decimal = Field(default=Decimal("0"), description="Roll Pot before trade #1")
    starting_bank: Decimal = Field(default=Decimal("3000"), ge=0, description="Bank before trade #1")
    target_goal: Decimal = Field(default=Decimal("20000"), gt=0, description="Wealth goal")
    roll_retention: Decimal = Field(default=Decimal("0.7"), ge=0, le=1, description="Roll Pot share of a win")
    allocation_base: AllocationBase = Field(default="total_return", description="Allocation policy")
    mini_goal_hours: int = Field(default=4, ge=1, le=24, description="Mini-goal block length")
    mini_compound_rate: Decimal = Field(default=Decimal("0.02"), ge=0, description="Growth per block")
    timezone: str = Field(default="America/Chicago", description="Display timezone")
    db_path: Path = Field(default=DEFAULT_DB_PATH, description="SQLite database file")

    model_config = {"frozen": True}

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @property
    def rules(self) -> LedgerRules:
        """Ledger rules derived from these settings."""
        return LedgerRules(
            starting_roll_pot=self.starting_roll_pot,
            starting_bank=self.starting_bank,
            roll_retention=self.roll_retention,
            allocation_base=self.allocation_base,
        )


def _flatten(config: dict) -> dict:
    ledger = config.get("ledger", {})
    goals = config.get("goals", {})
    display = config.get("display", {})
    storage = config.get("storage", {})

    values = {}
    for key in ("starting_roll_pot", "starting_bank", "target_goal", "roll_retention", "allocation_base"):
        if key in ledger:
            values[key] = ledger[key]
    for key in ("mini_goal_hours", "mini_compound_rate"):
        if key in goals:
            values[key] = goals[key]
    if "timezone" in display:
        values["timezone"] = display["timezone"]
    if "db_path" in storage:
        values["db_path"] = Path(storage["db_path"]).expanduser()

    # toml floats would lose precision as Decimal
    for key, value in values.items():
        if isinstance(value, float):
            values[key] = str(value)
    return values


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load settings from a TOML file.

    Args:
        config_path: File to read. Defaults to ~/.config/rollpot/config.toml.

    Returns:
        Settings, with defaults for anything not configured.

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values.
    """
    config_path = config_path or CONFIG_PATH
    if not config_path.exists():
        return Settings()

    try:
        config = toml.load(config_path)
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e

    try:
        return Settings(**_flatten(config))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e


def create_template_config(config_path: Optional[Path] = None) -> Path:
    """Write a template configuration file.

    Returns:
        Path of the written file.
    """
    config_path = config_path or CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)

    template = {
        "ledger": {
            "starting_roll_pot": "0",
            "starting_bank": "3000",
            "target_goal": "20000",
            "roll_retention": "0.7",
            "allocation_base": "total_return",  # total_return or profit
        },
        "goals": {
            "mini_goal_hours": 4,
            "mini_compound_rate": "0.02",
        },
        "display": {
            "timezone": "America/Chicago",
        },
        "storage": {
            "db_path": str(config_path.parent / "rollpot.db"),
        },
    }

    with open(config_path, "w") as f:
        toml.dump(template, f)

    return config_path
