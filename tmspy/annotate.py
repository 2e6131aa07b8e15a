# tmspy/annotate.py
from __future__ import annotations
from typing import Dict, Iterable, List, NamedTuple, Tuple

import numpy as np
import mne

from .errors import InvalidConfig


class EventRecord(NamedTuple):
    type: str
    latency: int


def to_event_records(pairs: Iterable[Tuple[str, int]], n_samples: int) -> List[EventRecord]:
    """Turn (label, sample_index) pairs into EventRecords, checking latencies."""
    records = []
    for label, latency in pairs:
        latency = int(latency)
        if not 0 <= latency < n_samples:
            raise InvalidConfig(f"Event latency {latency} outside trace of {n_samples} samples")
        records.append(EventRecord(str(label), latency))
    return records


def annotate_raw(raw: mne.io.BaseRaw, records: Iterable[EventRecord]) -> mne.io.BaseRaw:
    """Append one zero-duration annotation per event to ``raw`` (in place) and return it."""
    records = list(records)
    if not records:
        return raw
    sf = float(raw.info["sfreq"])
    lat = np.array([r.latency for r in records], dtype=float)
    bad = (lat < 0) | (lat >= raw.n_times)
    if bad.any():
        raise InvalidConfig(f"Event latency outside recording of {raw.n_times} samples")

    onsets = lat / sf
    orig_time = raw.annotations.orig_time
    if orig_time is not None:
        # annotations with a measurement date count from it, not from the first sample
        onsets = onsets + raw.first_time
    new = mne.Annotations(onset=onsets, duration=np.zeros_like(onsets),
                          description=[r.type for r in records], orig_time=orig_time)
    raw.set_annotations(raw.annotations + new)
    return raw


def records_to_events(records: Iterable[EventRecord],
                      first_samp: int = 0) -> Tuple[np.ndarray, Dict[str, int]]:
    """MNE events array (n, 3) and event_id mapping, labels numbered in order of appearance."""
    event_id: Dict[str, int] = {}
    rows = []
    for r in records:
        code = event_id.setdefault(r.type, len(event_id) + 1)
        rows.append((r.latency + first_samp, 0, code))
    events = np.array(rows, dtype=int).reshape(-1, 3)
    return events, event_id
