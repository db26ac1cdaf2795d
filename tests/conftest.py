# tests/conftest.py
"""Shared test fixtures.

Fixtures build the in-memory collaborators from batchplan.testing so unit
tests, property tests and end-to-end scenarios run without a real engine
or filesystem.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

from __future__ import annotations

import os

import pytest
from hypothesis import Phase, Verbosity, settings

from batchplan.core.config import PlannerSettings
from batchplan.engine.clock import MockClock
from batchplan.plan.prototype import RuntimeContext
from batchplan.testing import MemoryStorage, ScriptedEngine

# =============================================================================
# Collaborator Fixtures
# =============================================================================


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def engine(storage: MemoryStorage) -> ScriptedEngine:
    return ScriptedEngine(storage)


@pytest.fixture
def runtime(storage: MemoryStorage, engine: ScriptedEngine) -> RuntimeContext:
    return RuntimeContext(engine=engine, storage=storage, bundle="test-bundle")


@pytest.fixture
def planner_settings() -> PlannerSettings:
    """Settings with a short poll interval (sleeps are mocked anyway)."""
    return PlannerSettings(poll_interval_seconds=0.5, max_running_jobs=5)


@pytest.fixture
def clock() -> MockClock:
    return MockClock(start=0.0)


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
