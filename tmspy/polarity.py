# tmspy/polarity.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import InvalidConfig

POLARITY_MODES = ("pos", "neg", "gui")
_ALIASES = {
    "pos": "pos", "positive": "pos",
    "neg": "neg", "negative": "neg",
    "gui": "gui", "interactive": "gui",
}

BoundaryFn = Callable[[np.ndarray], np.ndarray]


def normalise_polarity(mode: str) -> str:
    try:
        return _ALIASES[str(mode).strip().lower()]
    except KeyError:
        raise InvalidConfig(f"Unknown peak polarity {mode!r}; use one of {POLARITY_MODES}") from None


@dataclass(frozen=True)
class BendBoundary:
    """Operator-drawn boundary around the artifact range.

    ``upper`` and ``lower`` map sample indices to threshold values. Either may
    be None, in which case only the other side defines pulses.
    """
    upper: Optional[BoundaryFn] = None
    lower: Optional[BoundaryFn] = None

    @classmethod
    def from_points(cls,
                    upper: Optional[Sequence[Tuple[float, float]]] = None,
                    lower: Optional[Sequence[Tuple[float, float]]] = None) -> "BendBoundary":
        """Piecewise-linear boundary through (sample_index, value) bend points.

        A single point gives a horizontal line; beyond the outermost points
        the boundary stays flat.
        """
        return cls(upper=_piecewise(upper), lower=_piecewise(lower))


def _piecewise(points) -> Optional[BoundaryFn]:
    if points is None:
        return None
    pts = sorted((float(i), float(v)) for i, v in points)
    if not pts:
        raise InvalidConfig("A boundary needs at least one bend point")
    xp = np.array([p[0] for p in pts])
    fp = np.array([p[1] for p in pts])
    if not np.all(np.isfinite(fp)) or np.any(np.diff(xp) == 0):
        raise InvalidConfig("Bend points must have finite values and distinct sample indices")
    return lambda idx: np.interp(np.asarray(idx, dtype=float), xp, fp)


class PulseSelector:
    """Membership test deciding which samples belong to a pulse.

    Calling the selector with ``(sample_index, amplitude)`` answers for one
    sample; ``mask`` and ``score`` answer for a whole trace at once. Within a
    run of member samples the Peak Detector keeps the sample with the
    highest score.
    """

    def __init__(self, mode: str, upper: Optional[float] = None, lower: Optional[float] = None,
                 boundary: Optional[BendBoundary] = None):
        self.mode = mode
        self.upper = upper
        self.lower = lower
        self.boundary = boundary

    def __repr__(self):
        return f"PulseSelector(mode={self.mode!r}, upper={self.upper!r}, lower={self.lower!r})"

    def __call__(self, sample_index: int, amplitude: float) -> bool:
        idx = np.array([sample_index])
        return bool(self.mask(np.array([amplitude], dtype=float), idx)[0])

    def bounds(self, idx: np.ndarray):
        """Upper and lower membership lines at sample indices ``idx`` (None where unused)."""
        if self.mode == "pos":
            return np.full(idx.shape, self.upper, dtype=float), None
        if self.mode == "neg":
            return None, np.full(idx.shape, self.lower, dtype=float)
        hi = evaluate_boundary(self.boundary.upper, idx)
        lo = evaluate_boundary(self.boundary.lower, idx)
        return hi, lo

    def mask(self, trace: np.ndarray, idx: Optional[np.ndarray] = None) -> np.ndarray:
        x = np.asarray(trace, dtype=float)
        if idx is None:
            idx = np.arange(x.size)
        hi, lo = self.bounds(idx)
        out = np.zeros(x.shape, dtype=bool)
        if hi is not None:
            out |= x >= hi
        if lo is not None:
            out |= x <= lo
        out &= np.isfinite(x)
        return out

    def score(self, trace: np.ndarray, idx: Optional[np.ndarray] = None) -> np.ndarray:
        x = np.asarray(trace, dtype=float)
        if self.mode == "pos":
            return x
        if self.mode == "neg":
            return -x
        if idx is None:
            idx = np.arange(x.size)
        hi, lo = self.bounds(idx)
        out = np.full(x.shape, -np.inf)
        if hi is not None:
            out = np.maximum(out, x - hi)
        if lo is not None:
            out = np.maximum(out, lo - x)
        return out


def evaluate_boundary(fn: Optional[BoundaryFn], idx: np.ndarray) -> Optional[np.ndarray]:
    """Evaluate one boundary line at sample indices; a constant result is broadcast."""
    if fn is None:
        return None
    return np.broadcast_to(np.asarray(fn(idx), dtype=float), idx.shape)


def make_selector(mode: str, upper: float, lower: float,
                  boundary: Union[BendBoundary, BoundaryFn, None] = None) -> PulseSelector:
    """Build the membership test for 'pos', 'neg' or 'gui' (interactive boundary) peaks."""
    mode = normalise_polarity(mode)
    if mode != "gui":
        return PulseSelector(mode, upper=upper, lower=lower)

    if boundary is None:
        raise InvalidConfig("Interactive peak selection needs a boundary (bend points or function)")
    if not isinstance(boundary, BendBoundary):
        if not callable(boundary):
            raise InvalidConfig(f"Boundary must be a BendBoundary or a callable, got {type(boundary)!r}")
        boundary = BendBoundary(upper=boundary)
    if boundary.upper is None and boundary.lower is None:
        raise InvalidConfig("Interactive boundary has neither an upper nor a lower line")
    return PulseSelector(mode, upper=upper, lower=lower, boundary=boundary)
