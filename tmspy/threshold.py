# tmspy/threshold.py
from __future__ import annotations
import math
from dataclasses import dataclass
from numbers import Real
from typing import Optional, Tuple, Union

import numpy as np

from .errors import InvalidConfig, InsufficientData

THRESHOLD_KINDS = ("dynamic", "median", "manual")
PERCENTILE = 99.9
MIN_SAMPLES = 10


@dataclass(frozen=True)
class ThresholdSpec:
    """How the artifact threshold is set.

    Attributes
    ----------
    kind : str
        'dynamic' uses the 99.9th percentile in each direction, 'median' the
        median of the samples beyond that percentile, 'manual' a fixed value.
    value : float | None
        Threshold magnitude for 'manual' (trace units, µV by default).
    """
    kind: str = "dynamic"
    value: Optional[float] = None

    def __post_init__(self):
        if self.kind not in THRESHOLD_KINDS:
            raise InvalidConfig(f"Unknown threshold type {self.kind!r}; use one of {THRESHOLD_KINDS}")
        if self.kind == "manual":
            if isinstance(self.value, bool) or not isinstance(self.value, Real) \
                    or not math.isfinite(self.value):
                raise InvalidConfig(f"Manual threshold must be a finite number, got {self.value!r}")

    @classmethod
    def parse(cls, thrshtype: Union[str, float, "ThresholdSpec"]) -> "ThresholdSpec":
        """Accept 'dynamic' | 'median' | a number, as the thrshtype option does."""
        if isinstance(thrshtype, ThresholdSpec):
            return thrshtype
        if isinstance(thrshtype, str):
            key = thrshtype.strip().lower()
            if key in ("dynamic", "median"):
                return cls(kind=key)
            try:
                value = float(key)
            except ValueError:
                raise InvalidConfig(
                    f"thrshtype must be 'dynamic', 'median' or a number, got {thrshtype!r}") from None
            return cls(kind="manual", value=value)
        return cls(kind="manual", value=thrshtype)


def compute_thresholds(trace: np.ndarray, spec: ThresholdSpec) -> Tuple[float, float]:
    """Return (upper, lower) thresholds in the trace's amplitude units."""
    if spec.kind == "manual":
        mag = abs(float(spec.value))
        return mag, -mag

    x = np.asarray(trace, dtype=float)
    x = x[np.isfinite(x)]
    if x.size < MIN_SAMPLES:
        raise InsufficientData(
            f"Need at least {MIN_SAMPLES} finite samples for a {spec.kind} threshold, got {x.size}")

    hi_cut, lo_cut = np.percentile(x, [PERCENTILE, 100.0 - PERCENTILE])
    if spec.kind == "dynamic":
        return float(hi_cut), float(lo_cut)

    # median of the points beyond each cutoff; never empty since the cutoff
    # is itself a sample or an interpolation between samples beyond it
    upper = float(np.median(x[x >= hi_cut]))
    lower = float(np.median(x[x <= lo_cut]))
    return upper, lower
