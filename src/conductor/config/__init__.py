"""Configuration module for Conductor.

Configuration is stored in ~/.conductor/config.yaml.

Usage:
    from conductor.config import load_config_or_default

    config = load_config_or_default()
    strategy = config.orchestrator.strategy
"""

from conductor.config.loader import (
    apply_env_overrides,
    config_exists,
    create_default_config,
    ensure_config_dir,
    load_config,
    load_config_or_default,
)
from conductor.config.models import (
    ConductorConfig,
    LoggingConfig,
    OrchestratorConfig,
    PersistenceConfig,
    WorkflowConfig,
    get_config_dir,
    get_default_config,
)

__all__ = [
    # Models
    "ConductorConfig",
    "OrchestratorConfig",
    "WorkflowConfig",
    "PersistenceConfig",
    "LoggingConfig",
    "get_default_config",
    "get_config_dir",
    # Loader
    "load_config",
    "load_config_or_default",
    "create_default_config",
    "ensure_config_dir",
    "config_exists",
    "apply_env_overrides",
]
