# tmspy/grouping.py
"""
Classify pulse candidates as single, paired (conditioning + test) or
repetitive-train stimuli.

All three groupers return a GroupingResult whose ``events`` are
(label, sample_index) pairs ordered by sample index.
"""
from __future__ import annotations
import logging
import math
import numbers
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import CountMismatch, InvalidConfig
from .peaks import Candidate

DEFAULT_PAIR_LABEL = "TMSpair"
_EPS = 1e-9


@dataclass
class PulseGroup:
    """Pulses sharing one label.

    ``members`` holds sample indices for single pulses and trains, and
    (conditioning_index, test_index) tuples for paired pulses.
    """
    label: str
    kind: str
    members: List[Union[int, Tuple[int, int]]] = field(default_factory=list)


@dataclass
class GroupingResult:
    mode: str
    events: List[Tuple[str, int]] = field(default_factory=list)
    groups: List[PulseGroup] = field(default_factory=list)
    diagnostics: List[CountMismatch] = field(default_factory=list)


def _indices(candidates: Iterable[Union[Candidate, int]]) -> np.ndarray:
    return np.array([int(c.index) if isinstance(c, Candidate) else int(c) for c in candidates],
                    dtype=int)


def check_sfreq(sfreq: float) -> float:
    """Return ``sfreq`` as a float; raise InvalidConfig unless it is a positive finite rate."""
    if isinstance(sfreq, bool) or not (isinstance(sfreq, numbers.Real) and math.isfinite(sfreq) and sfreq > 0):
        raise InvalidConfig(f"Sampling rate must be a positive number, got {sfreq!r}")
    return float(sfreq)


def resolve_pair_labels(isi: Sequence[float], pair_label: Sequence[str]) -> List[str]:
    """Return one label per ISI, applying the single-ISI default."""
    if not len(isi):
        raise InvalidConfig("Paired detection needs at least one ISI (ms)")
    for v in isi:
        if not (math.isfinite(v) and v > 0):
            raise InvalidConfig(f"ISIs must be positive numbers of ms, got {list(isi)}")
    labels = list(pair_label) or ([DEFAULT_PAIR_LABEL] if len(isi) == 1 else [])
    if len(labels) != len(isi):
        raise InvalidConfig(
            f"Number of pair labels ({len(labels)}) must equal number of ISIs ({len(isi)})")
    if not all(isinstance(lab, str) and lab for lab in labels):
        raise InvalidConfig(f"Pair labels must be non-empty strings, got {labels}")
    return labels


def group_single(candidates, tms_label: str = "TMS") -> GroupingResult:
    idx = _indices(candidates)
    group = PulseGroup(tms_label, "single", [int(i) for i in idx])
    return GroupingResult("single", events=[(tms_label, int(i)) for i in idx], groups=[group])


def group_paired(candidates, sfreq: float, isi: Sequence[float],
                 pair_label: Sequence[str] = (), tms_label: str = "TMS",
                 tolerance_ms: float = 1.0) -> GroupingResult:
    """Pair conditioning and test pulses separated by one of the configured ISIs.

    Each unconsumed candidate is tried as a conditioning pulse; the nearest
    later unconsumed candidate whose gap is within ``tolerance_ms`` of an ISI
    becomes its test pulse. If the gap fits several ISIs, the smallest
    difference wins, then the earliest configured ISI. The tolerance is never
    narrower than half a sample period. Leftover candidates are single pulses.
    """
    sfreq = check_sfreq(sfreq)
    isi = [float(v) for v in isi]
    labels = resolve_pair_labels(isi, pair_label)
    tol = max(float(tolerance_ms), 500.0 / sfreq)
    max_gap = max(isi) + tol

    idx = _indices(candidates)
    consumed = np.zeros(idx.size, dtype=bool)
    pairs = {lab: PulseGroup(lab, "paired") for lab in labels}
    singles = PulseGroup(tms_label, "single")
    events: List[Tuple[str, int]] = []

    for i in range(idx.size):
        if consumed[i]:
            continue
        consumed[i] = True
        match: Optional[Tuple[int, int]] = None
        for j in range(i + 1, idx.size):
            gap_ms = (idx[j] - idx[i]) * 1000.0 / sfreq
            if gap_ms > max_gap + _EPS:
                break
            if consumed[j]:
                continue
            diffs = [abs(gap_ms - v) for v in isi]
            k = min(range(len(isi)), key=lambda n: (diffs[n], n))
            if diffs[k] <= tol + _EPS:
                match = (j, k)
                break

        if match is None:
            singles.members.append(int(idx[i]))
            events.append((tms_label, int(idx[i])))
            continue
        j, k = match
        consumed[j] = True
        lab = labels[k]
        pairs[lab].members.append((int(idx[i]), int(idx[j])))
        events.extend([(lab, int(idx[i])), (lab, int(idx[j]))])

    events.sort(key=lambda e: e[1])
    groups = [g for g in pairs.values() if g.members]
    if singles.members:
        groups.append(singles)
    n_pairs = sum(len(g.members) for g in groups if g.kind == "paired")
    logging.info(f"Paired grouping: {n_pairs} pairs, {len(singles.members)} unpaired pulses")
    return GroupingResult("paired", events=events, groups=groups)


def group_repetitive(candidates, sfreq: float, iti: float, pulse_num: int,
                     tms_label: str = "TMS") -> GroupingResult:
    """Split candidates into trains separated by gaps longer than ``iti`` ms.

    A train also closes once it holds ``pulse_num`` pulses. Trains with any
    other count are kept and reported as CountMismatch diagnostics.
    """
    sfreq = check_sfreq(sfreq)
    if not (math.isfinite(iti) and iti > 0):
        raise InvalidConfig(f"ITI must be a positive number of ms, got {iti!r}")
    if isinstance(pulse_num, bool) or int(pulse_num) != pulse_num or pulse_num < 1:
        raise InvalidConfig(f"pulseNum must be a positive integer, got {pulse_num!r}")
    pulse_num = int(pulse_num)
    iti_samples = iti * sfreq / 1000.0

    result = GroupingResult("repetitive")

    def close(train: List[int]) -> None:
        result.groups.append(PulseGroup(tms_label, "train", train))
        result.events.extend((tms_label, i) for i in train)
        if len(train) != pulse_num:
            mismatch = CountMismatch(start_index=train[0], observed=len(train), expected=pulse_num)
            result.diagnostics.append(mismatch)
            logging.warning(f"Pulse count mismatch: {mismatch}")

    train: List[int] = []
    for i in _indices(candidates):
        if train and (i - train[-1]) > iti_samples:
            close(train)
            train = []
        train.append(int(i))
        if len(train) == pulse_num:
            close(train)
            train = []
    if train:
        close(train)

    logging.info(f"Repetitive grouping: {len(result.groups)} trains, "
                 f"{len(result.diagnostics)} with unexpected pulse counts")
    return result


def group_pulses(candidates, sfreq: float, cfg) -> GroupingResult:
    """Dispatch to single, paired or repetitive grouping from a FindPulseConfig."""
    if cfg.paired and cfg.repetitive:
        raise InvalidConfig("cannot search for both paired and repetitive stimuli")
    if cfg.paired:
        return group_paired(candidates, sfreq, cfg.isi, cfg.pair_label,
                            tms_label=cfg.tms_label, tolerance_ms=cfg.isi_tolerance_ms)
    if cfg.repetitive:
        if cfg.iti is None or cfg.pulse_num is None:
            raise InvalidConfig("Repetitive detection needs both ITI and pulseNum")
        return group_repetitive(candidates, sfreq, cfg.iti, cfg.pulse_num, tms_label=cfg.tms_label)
    return group_single(candidates, tms_label=cfg.tms_label)
