# src/batchplan/contracts/types.py
"""Semantic type aliases for compile-time type safety.

NewType creates distinct types that mypy treats as incompatible,
preventing accidental misuse of semantically different values.
"""

from typing import NewType

StageID = NewType("StageID", str)
"""Identity of a logical stage (e.g., 'word_count'). Arena key during compilation."""

JobID = NewType("JobID", int)
"""Identity of a physical job; matches the JobPrototype that built it."""

OutputName = NewType("OutputName", str)
"""Multiplexed output name inside one job (e.g., 'partition-0')."""
