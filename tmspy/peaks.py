# tmspy/peaks.py
from __future__ import annotations
from typing import Iterator, NamedTuple

import numpy as np

from .polarity import PulseSelector


class Candidate(NamedTuple):
    """A detected, not yet labelled, pulse peak."""
    index: int
    amplitude: float


class CandidateSequence:
    """Lazy, restartable sequence of one Candidate per supra-threshold run.

    A TMS discharge spans several samples and often rings, so every
    contiguous run of member samples collapses into a single candidate at the
    run's extremum. Indices are strictly increasing.
    """

    def __init__(self, trace: np.ndarray, selector: PulseSelector):
        self._trace = np.asarray(trace, dtype=float)
        self._selector = selector

    def _runs(self):
        mask = self._selector.mask(self._trace)
        edges = np.diff(np.concatenate(([0], mask.astype(np.int8), [0])))
        return zip(np.flatnonzero(edges == 1), np.flatnonzero(edges == -1))

    def __iter__(self) -> Iterator[Candidate]:
        x = self._trace
        for start, stop in self._runs():
            score = self._selector.score(x[start:stop], np.arange(start, stop))
            k = int(start + np.argmax(score))
            yield Candidate(k, float(x[k]))

    def __len__(self) -> int:
        return sum(1 for _ in self._runs())

    def __bool__(self) -> bool:
        return bool(self._selector.mask(self._trace).any())

    def __repr__(self):
        return f"CandidateSequence(n={len(self)}, selector={self._selector!r})"

    def indices(self) -> np.ndarray:
        return np.array([c.index for c in self], dtype=int)

    def amplitudes(self) -> np.ndarray:
        return np.array([c.amplitude for c in self], dtype=float)


def detect_candidates(trace: np.ndarray, selector: PulseSelector) -> CandidateSequence:
    """Scan a detrended trace and return its pulse candidates in sample order."""
    return CandidateSequence(trace, selector)
