"""Pydantic models for Conductor configuration.

Classes:
    OrchestratorConfig: Agent selection and task retry policy
    WorkflowConfig: Workflow engine defaults
    PersistenceConfig: Event store location and background write retries
    LoggingConfig: Log level, output mode and file logging
    ConductorConfig: Top-level configuration combining all sections
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from conductor.core.types import LoadBalancingStrategy, SuccessRateMode
from conductor.observability.logging import LoggingConfig as RuntimeLoggingConfig
from conductor.observability.logging import LogMode


class OrchestratorConfig(BaseModel, frozen=True):
    """Agent orchestrator configuration.

    Attributes:
        strategy: Load-balancing strategy used by assign_task
        max_task_retries: Attempts per task before it fails terminally
        success_rate_mode: How failures update an agent's success rate
        register_default_agents: Register the built-in roster at startup
    """

    strategy: LoadBalancingStrategy = LoadBalancingStrategy.CAPABILITY_BASED
    max_task_retries: int = Field(default=3, ge=1)
    success_rate_mode: SuccessRateMode = SuccessRateMode.COUNTED
    register_default_agents: bool = False


class WorkflowConfig(BaseModel, frozen=True):
    """Workflow engine configuration.

    Attributes:
        default_step_max_retries: Retry budget for steps that declare none
        prioritize_ready_steps: Promote higher-priority steps first
    """

    default_step_max_retries: int = Field(default=3, ge=0)
    prioritize_ready_steps: bool = True


class PersistenceConfig(BaseModel, frozen=True):
    """Persistence configuration.

    Attributes:
        enabled: Whether state snapshots and events are written
        database_path: Path to SQLite database (relative to config dir)
        retry_attempts: Background write attempts before giving up
        retry_wait_initial: First backoff delay in seconds
        retry_wait_max: Largest backoff delay in seconds
    """

    enabled: bool = True
    database_path: str = "data/conductor.db"
    retry_attempts: int = Field(default=3, ge=1, le=10)
    retry_wait_initial: float = Field(default=0.1, gt=0)
    retry_wait_max: float = Field(default=2.0, gt=0)

    @field_validator("retry_wait_max")
    @classmethod
    def validate_wait_max(cls, v: float, info: object) -> float:
        """Validate that retry_wait_max >= retry_wait_initial."""
        data = getattr(info, "data", {})
        initial = data.get("retry_wait_initial", 0.1)
        if v < initial:
            msg = f"retry_wait_max ({v}) must be >= retry_wait_initial ({initial})"
            raise ValueError(msg)
        return v

    def database_file(self, config_dir: Path) -> Path:
        """Database path, resolved against ``config_dir`` when relative."""
        path = Path(self.database_path).expanduser()
        if not path.is_absolute():
            path = config_dir / path
        return path

    def database_url(self, config_dir: Path) -> str:
        """Async SQLAlchemy URL for the configured database."""
        return f"sqlite+aiosqlite:///{self.database_file(config_dir)}"


class LoggingConfig(BaseModel, frozen=True):
    """Logging configuration.

    Attributes:
        level: Log level (debug, info, warning, error)
        mode: dev for console rendering, prod for JSON lines
        file_logging: Also write to a daily rotated file under log_dir
        log_dir: Log directory (relative to config dir)
        max_log_days: Rotated files to keep
    """

    level: Literal["debug", "info", "warning", "error"] = "info"
    mode: LogMode = LogMode.DEV
    file_logging: bool = False
    log_dir: str = "logs"
    max_log_days: int = Field(default=7, ge=1, le=365)

    def to_runtime(self, config_dir: Path) -> RuntimeLoggingConfig:
        """Translate into the structlog configuration model."""
        log_dir = Path(self.log_dir).expanduser()
        if not log_dir.is_absolute():
            log_dir = config_dir / log_dir
        return RuntimeLoggingConfig(
            mode=self.mode,
            log_level=self.level.upper(),
            log_dir=log_dir,
            max_log_days=self.max_log_days,
            enable_file_logging=self.file_logging,
        )


class ConductorConfig(BaseModel, frozen=True):
    """Top-level Conductor configuration, validated against ~/.conductor/config.yaml.

    Attributes:
        orchestrator: Agent orchestrator configuration
        workflow: Workflow engine configuration
        persistence: Storage configuration
        logging: Logging configuration
    """

    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_default_config() -> ConductorConfig:
    """Get the default Conductor configuration."""
    return ConductorConfig()


def get_config_dir() -> Path:
    """Get the Conductor configuration directory path (~/.conductor/)."""
    return Path.home() / ".conductor"


__all__ = [
    "ConductorConfig",
    "LoggingConfig",
    "OrchestratorConfig",
    "PersistenceConfig",
    "WorkflowConfig",
    "get_config_dir",
    "get_default_config",
]
