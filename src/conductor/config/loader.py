"""Configuration loading and management for Conductor.

Functions:
    load_config: Load configuration from ~/.conductor/config.yaml
    create_default_config: Write the default configuration file
    ensure_config_dir: Ensure ~/.conductor/ exists
    apply_env_overrides: Apply CONDUCTOR_* environment variables
"""

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError
import yaml

# Load .env file from current directory and ~/.conductor/
load_dotenv()
load_dotenv(Path.home() / ".conductor" / ".env")

from conductor.config.models import (  # noqa: E402
    ConductorConfig,
    get_config_dir,
    get_default_config,
)
from conductor.core.errors import ConfigError  # noqa: E402

ENV_STRATEGY = "CONDUCTOR_STRATEGY"
ENV_LOG_LEVEL = "CONDUCTOR_LOG_LEVEL"


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Ensure the configuration directory and its data/logs subdirectories exist."""
    config_dir = config_dir or get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "data").mkdir(exist_ok=True)
    (config_dir / "logs").mkdir(exist_ok=True)
    return config_dir


def _format_validation_errors(error: PydanticValidationError) -> str:
    lines = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        lines.append(f"  - {loc}: {item['msg']}")
    return "\n".join(lines)


def create_default_config(
    config_dir: Path | None = None,
    *,
    overwrite: bool = False,
) -> Path:
    """Write config.yaml with default values.

    Args:
        config_dir: Directory to create the file in. Defaults to ~/.conductor/
        overwrite: Replace an existing file.

    Returns:
        Path of the written config file.

    Raises:
        ConfigError: If the file exists and overwrite is False.
    """
    config_dir = ensure_config_dir(config_dir)
    config_path = config_dir / "config.yaml"

    if config_path.exists() and not overwrite:
        raise ConfigError(
            f"Configuration file already exists: {config_path}",
            config_file=str(config_path),
        )

    config_dict: dict[str, Any] = get_default_config().model_dump(mode="json")
    with config_path.open("w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    return config_path


def load_config(config_path: Path | None = None) -> ConductorConfig:
    """Load and validate configuration from YAML.

    Args:
        config_path: Path to config file. Defaults to ~/.conductor/config.yaml.

    Raises:
        ConfigError: If the file is missing, malformed, or fails validation.
    """
    if config_path is None:
        config_path = get_config_dir() / "config.yaml"

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}. "
            "Run `conductor config init` to create default configuration.",
            config_file=str(config_path),
        )

    try:
        with config_path.open() as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse configuration file: {e}",
            config_file=str(config_path),
            details={"yaml_error": str(e)},
        ) from e

    if config_dict is None:
        config_dict = {}
    if not isinstance(config_dict, dict):
        raise ConfigError(
            "Configuration file must contain a mapping at the top level",
            config_file=str(config_path),
        )

    try:
        return ConductorConfig.model_validate(config_dict)
    except PydanticValidationError as e:
        raise ConfigError(
            "Configuration validation failed:\n" + _format_validation_errors(e),
            config_file=str(config_path),
            details={"validation_errors": e.errors()},
        ) from e


def load_config_or_default(config_path: Path | None = None) -> ConductorConfig:
    """Load configuration, falling back to defaults when no file exists.

    A file that exists but is invalid still raises ConfigError.
    """
    path = config_path or get_config_dir() / "config.yaml"
    if not path.exists():
        return get_default_config()
    return load_config(path)


def apply_env_overrides(config: ConductorConfig) -> ConductorConfig:
    """Return ``config`` with CONDUCTOR_STRATEGY and CONDUCTOR_LOG_LEVEL applied.

    Environment variables win over the file (.env files are loaded at import).

    Raises:
        ConfigError: If an override holds an invalid value.
    """
    data = config.model_dump()
    strategy = os.environ.get(ENV_STRATEGY, "").strip()
    if strategy:
        data["orchestrator"]["strategy"] = strategy.lower()
    level = os.environ.get(ENV_LOG_LEVEL, "").strip()
    if level:
        data["logging"]["level"] = level.lower()

    try:
        return ConductorConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError(
            "Invalid environment override:\n" + _format_validation_errors(e),
            details={"validation_errors": e.errors()},
        ) from e


def config_exists(config_dir: Path | None = None) -> bool:
    """Check whether config.yaml exists."""
    return ((config_dir or get_config_dir()) / "config.yaml").exists()


__all__ = [
    "ENV_LOG_LEVEL",
    "ENV_STRATEGY",
    "apply_env_overrides",
    "config_exists",
    "create_default_config",
    "ensure_config_dir",
    "load_config",
    "load_config_or_default",
]
