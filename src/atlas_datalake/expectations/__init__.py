"""Constraints, expectations e o validador pós-escrita."""

from .base import Constraint, Expectation, ExpectationScope, ExpectationSeverity
from .builtin import (
    AggregateExpectation,
    AvgCountPerPartitionExpectation,
    CountExpectation,
    FractionExpectation,
)
from .conditions import ValidationCondition
from .validator import ExpectationValidator

__all__ = [
    "Constraint",
    "Expectation",
    "ExpectationScope",
    "ExpectationSeverity",
    "AggregateExpectation",
    "FractionExpectation",
    "CountExpectation",
    "AvgCountPerPartitionExpectation",
    "ValidationCondition",
    "ExpectationValidator",
]
