# tmspy/errors.py
"""Exception types and non-fatal diagnostics raised while finding TMS pulses."""
from __future__ import annotations
from dataclasses import dataclass


class InvalidConfig(ValueError):
    """Malformed or contradictory pulse-finding options."""


class InsufficientData(RuntimeError):
    """Trace too short to compute the statistics a threshold needs."""


@dataclass(frozen=True)
class CountMismatch:
    """A repetitive train closed with a pulse count other than ``pulse_num``.

    Not an exception: the train is still annotated, and the caller decides
    whether to re-run with a different threshold.
    """
    start_index: int
    observed: int
    expected: int

    def __str__(self) -> str:
        return (f"train starting at sample {self.start_index} has "
                f"{self.observed} pulses (expected {self.expected})")
