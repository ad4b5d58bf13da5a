"""Exception hierarchy for the solar financial model."""

from __future__ import annotations

from typing import Any, Optional


class SolarFinanceError(Exception):
    """Base class for all errors raised by solar_finance."""


class InvalidInputError(SolarFinanceError, ValueError):
    """
    An input value was rejected before entering the pipeline.

    Attributes:
        field: Name of the offending field.
        value: The rejected value.
    """

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"{field}={value!r}: {reason}")


class AssumptionError(InvalidInputError):
    """A financial assumption is unknown, unparseable or out of range."""


class SimulationError(SolarFinanceError):
    """
    A single simulation failed.

    The design that was being evaluated is attached so callers can report
    which configuration broke. No partial SimulationRun accompanies this error.
    """

    def __init__(self, design: Any, message: str) -> None:
        self.design = design
        super().__init__(f"Simulation failed for {design}: {message}")


class SweepError(SolarFinanceError):
    """A sweep candidate failed with an error other than validation."""

    def __init__(self, candidate: Any, message: str, index: Optional[int] = None) -> None:
        self.candidate = candidate
        self.index = index
        where = f"candidate #{index} " if index is not None else "candidate "
        super().__init__(f"Sweep {where}{candidate} failed: {message}")
