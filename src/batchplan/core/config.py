# src/batchplan/core/config.py
"""
Configuration schema and loading for batchplan.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class LoggingSettings(BaseModel):
    """Logging output configuration.

    Example YAML:
        logging:
          level: DEBUG
          json_output: true
    """

    model_config = {"frozen": True, "extra": "forbid"}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level",
    )
    json_output: bool = Field(
        default=False,
        description="Emit JSON lines instead of console output",
    )


class PlannerSettings(BaseModel):
    """Top-level settings for compiling and running job graphs.

    Passed to JobPrototype.get_job() (compile-time options) and to
    JobControl (scheduler options).

    Example YAML:
        poll_interval_seconds: 5
        max_running_jobs: 3
        log_job_progress: true
        create_input_dirs: true
        preserved_extensions: [".avro", ".parquet"]
    """

    model_config = {"frozen": True, "extra": "forbid"}

    poll_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Seconds the scheduler sleeps between polls of running jobs",
    )
    max_running_jobs: int = Field(
        default=5,
        ge=1,
        description="Maximum number of jobs submitted to the engine at once",
    )
    log_job_progress: bool = Field(
        default=False,
        description="Log map/reduce progress of running jobs when it changes",
    )
    create_input_dirs: bool = Field(
        default=False,
        description="Create missing input directories before a job is submitted",
    )
    reconcile_failed_jobs: bool = Field(
        default=False,
        description="Relocate partial outputs of jobs that did not succeed",
    )
    preserved_extensions: tuple[str, ...] = Field(
        default=(".avro",),
        description="File extensions kept on relocated output files",
    )
    default_reduce_tasks: int = Field(
        default=1,
        ge=1,
        description="Reduce tasks for grouped jobs whose grouping stage sets no partition count",
    )
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("preserved_extensions")
    @classmethod
    def validate_extensions(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Extensions must start with a dot, e.g. '.avro'."""
        for ext in v:
            if not ext.startswith(".") or len(ext) < 2:
                raise ValueError(f"extension must look like '.ext', got {ext!r}")
        return v


def load_settings(config_path: Path) -> PlannerSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (BATCHPLAN_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: BATCHPLAN_LOGGING__LEVEL for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated PlannerSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="BATCHPLAN",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    if isinstance(raw_config.get("logging"), dict):
        raw_config["logging"] = {k.lower(): v for k, v in raw_config["logging"].items()}

    return PlannerSettings(**raw_config)


def resolve_config(settings: PlannerSettings) -> dict[str, Any]:
    """Convert validated settings to a JSON-ready dict.

    The result is embedded in each compiled JobDefinition so workers and
    operators see the exact options a job was built with.
    """
    return settings.model_dump(mode="json")
