"""Configuration management for Rapport.

Loads configuration from environment variables and .env file.
Provides validation and sensible defaults.

Scoring constants (weights, thresholds, override ratios) are NOT here:
they live in rapport.engine.rules so the pure functions can take them
as arguments. This module only covers where things are stored and a
few operator defaults.

Usage:
    from rapport.core.config import get_config, validate_config

    config = get_config()
    issues = validate_config(config)
    if issues:
        for issue in issues:
            print(f"Config issue: {issue}")
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rapport.core.exceptions import ConfigurationError

# Default paths (defined once, used by both Config and load_config)
DEFAULT_HOME = Path.home() / ".rapport"
DEFAULT_DB_PATH = DEFAULT_HOME / "rapport.db"
DEFAULT_LOG_PATH = DEFAULT_HOME / "logs"
DEFAULT_EXPORT_PATH = DEFAULT_HOME / "exports"
DEFAULT_FREQUENCY_DAYS = 30


@dataclass
class Config:
    """Application configuration.

    Attributes:
        db_path: Path to SQLite database file
        log_path: Directory for log files
        export_path: Directory for CSV/JSON/XLSX exports
        default_frequency_days: Contact cadence given to new contacts
            that do not specify one
        debug: Enable debug logging on the console
    """

    db_path: Path = field(default_factory=lambda: DEFAULT_DB_PATH)
    log_path: Path = field(default_factory=lambda: DEFAULT_LOG_PATH)
    export_path: Path = field(default_factory=lambda: DEFAULT_EXPORT_PATH)
    default_frequency_days: int = DEFAULT_FREQUENCY_DAYS
    debug: bool = False


def load_env_file(path: Path) -> dict[str, str]:
    """Parse .env file.

    Handles:
        - KEY=VALUE format
        - Comments (lines starting with #)
        - Blank lines
        - Quoted values

    Args:
        path: Path to .env file

    Returns:
        Dictionary of environment variables
    """
    env_vars: dict[str, str] = {}

    if not path.exists():
        return env_vars

    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()

                if value and value[0] in ('"', "'") and value[-1] == value[0]:
                    value = value[1:-1]

                if key:
                    env_vars[key] = value

    return env_vars


def _get_path(key: str, default: Path, env_vars: dict[str, str]) -> Path:
    """Get path from environment, expanding ~ and resolving."""
    value = os.environ.get(key) or env_vars.get(key)
    if value:
        return Path(value).expanduser().resolve()
    return default


def _get_int(key: str, default: int, env_vars: dict[str, str]) -> int:
    """Get integer from environment.

    Raises:
        ConfigurationError: If the value is set but not an integer
    """
    value = os.environ.get(key) or env_vars.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


def _get_bool(key: str, default: bool, env_vars: dict[str, str]) -> bool:
    """Get boolean from environment."""
    value = os.environ.get(key) or env_vars.get(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def load_config(env_file: Optional[Path] = None) -> Config:
    """Load configuration from environment and .env file.

    Priority:
        1. Environment variables (highest)
        2. .env file
        3. Default values (lowest)

    Args:
        env_file: Path to .env file. Defaults to .env in current directory.

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If a numeric setting cannot be parsed
    """
    if env_file is None:
        env_file = Path.cwd() / ".env"

    env_vars = load_env_file(Path(env_file))

    return Config(
        db_path=_get_path("RAPPORT_DB_PATH", DEFAULT_DB_PATH, env_vars),
        log_path=_get_path("RAPPORT_LOG_PATH", DEFAULT_LOG_PATH, env_vars),
        export_path=_get_path("RAPPORT_EXPORT_PATH", DEFAULT_EXPORT_PATH, env_vars),
        default_frequency_days=_get_int(
            "RAPPORT_DEFAULT_FREQUENCY_DAYS", DEFAULT_FREQUENCY_DAYS, env_vars
        ),
        debug=_get_bool("RAPPORT_DEBUG", False, env_vars),
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration.

    Checks:
        - Database, log and export directories exist or can be created
        - Directories are writable
        - Default contact frequency is at least one day

    Args:
        config: Configuration to validate

    Returns:
        List of issues (empty if valid)
    """
    issues: list[str] = []

    directories = {
        "Database": config.db_path.parent,
        "Log": config.log_path,
        "Export": config.export_path,
    }
    for label, directory in directories.items():
        try:
            directory.mkdir(parents=True, exist_ok=True)
            if not os.access(directory, os.W_OK):
                issues.append(f"{label} directory not writable: {directory}")
        except OSError as e:
            issues.append(f"Cannot create {label.lower()} directory {directory}: {e}")

    if config.default_frequency_days < 1:
        issues.append(
            f"RAPPORT_DEFAULT_FREQUENCY_DAYS must be at least 1, "
            f"got {config.default_frequency_days}"
        )

    return issues


# Singleton config
_config: Optional[Config] = None


def get_config() -> Config:
    """Return cached configuration singleton.

    Loads configuration on first call, returns cached version thereafter.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset cached configuration.

    Used primarily for testing.
    """
    global _config
    _config = None
