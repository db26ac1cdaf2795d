# src/batchplan/core/__init__.py
"""Core infrastructure: logging, configuration, canonical JSON, job graph."""

from batchplan.core.canonical import canonical_json, stable_hash
from batchplan.core.config import LoggingSettings, PlannerSettings, load_settings, resolve_config
from batchplan.core.dag import GraphValidationError, JobGraph
from batchplan.core.logging import configure_logging, job_log_context, pipeline_log_context

__all__ = [
    "GraphValidationError",
    "JobGraph",
    "LoggingSettings",
    "PlannerSettings",
    "canonical_json",
    "configure_logging",
    "job_log_context",
    "load_settings",
    "pipeline_log_context",
    "resolve_config",
    "stable_hash",
]
