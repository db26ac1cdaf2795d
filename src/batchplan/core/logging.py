# src/batchplan/core/logging.py
"""Structured logging configuration for batchplan.

Job lifecycle events (compiled, submitted, finished, relocated) go through
structlog; plain diagnostics use stdlib logging. configure_logging() routes
stdlib records through the same processor chain via ProcessorFormatter, so
both kinds come out in one format (JSON or console).

The scheduler binds the pipeline name for the length of a run and each
controller binds its job id and name while it is being advanced. Both end
up on every record logged in between, including stdlib records from the
reconciler and third-party code:

    with pipeline_log_context("wc"):
        with job_log_context(1, "wc: text(/in)+..."):
            logger.warning("Could not relocate ...")  # carries pipeline, job_id, job_name
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# Dynaconf logs every settings lookup at DEBUG.
_NOISY_LOGGERS: tuple[str, ...] = ("dynaconf",)


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Drop the ``_record``/``_from_structlog`` bookkeeping ProcessorFormatter adds."""
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
) -> None:
    """Configure structlog and stdlib logging for batchplan.

    Args:
        json_output: If True, one JSON object per line. If False, console output.
        level: Root log level (DEBUG, INFO, WARNING, ERROR).
    """
    log_level = getattr(logging, level.upper())

    # Pipeline and job context first so every renderer sees it
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        final_processors: list[Any] = [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [
            _remove_internal_fields,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Tests reconfigure logging between cases
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            processors=final_processors,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(log_level)

    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


@contextmanager
def pipeline_log_context(pipeline: str) -> Iterator[None]:
    """Bind ``pipeline`` to every record logged inside the block."""
    with structlog.contextvars.bound_contextvars(pipeline=pipeline):
        yield


@contextmanager
def job_log_context(job_id: int, job_name: str) -> Iterator[None]:
    """Bind ``job_id`` and ``job_name`` inside the block.

    Nests: a controller checking its dependencies rebinds them for the
    dependency and restores its own on the way out.
    """
    with structlog.contextvars.bound_contextvars(job_id=job_id, job_name=job_name):
        yield
