# tmspy/findpulse.py
"""
Find TMS pulses from the large artifact peaks on one EEG channel.

    detrend -> threshold + polarity -> peak candidates -> grouping -> events

``find_pulses_in_trace`` is the pure core working on a numpy trace;
``find_pulse_peaks`` pulls the channel out of an MNE recording, runs the core
and writes the events into the recording's annotations. Every error is raised
before anything is written, so a failed run leaves the recording untouched.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import mne

from ._configuration_handler import FindPulseConfig
from .annotate import EventRecord, annotate_raw, to_event_records
from .detrend import detrend_trace
from .errors import CountMismatch, InsufficientData, InvalidConfig
from .grouping import GroupingResult, check_sfreq, group_pulses
from .peaks import Candidate, detect_candidates
from .polarity import make_selector
from .threshold import compute_thresholds

DEFAULT_CHANNEL = "Cz"


@dataclass
class FindPulseResult:
    """Everything one run produced; ``events`` is what ends up in the recording."""
    events: List[EventRecord]
    candidates: List[Candidate]
    thresholds: Tuple[float, float]
    grouping: GroupingResult
    detrended: np.ndarray
    sfreq: float
    config: FindPulseConfig
    channel: Optional[str] = None
    selector: Optional[object] = field(default=None, repr=False)

    @property
    def diagnostics(self) -> List[CountMismatch]:
        return self.grouping.diagnostics

    @property
    def groups(self):
        return self.grouping.groups


def _resolve_config(cfg: Optional[FindPulseConfig], overrides: dict) -> FindPulseConfig:
    cfg = cfg if cfg is not None else FindPulseConfig()
    if overrides:
        cfg = cfg.replace(**overrides)
    return cfg.validate()


def find_pulses_in_trace(trace: np.ndarray, sfreq: float,
                         cfg: Optional[FindPulseConfig] = None,
                         boundary=None, **overrides) -> FindPulseResult:
    """Detect and label TMS pulses in one channel's samples.

    Parameters
    ----------
    trace : np.ndarray
        1-D samples, in the units the thresholds are expressed in.
    sfreq : float
        Sampling rate in Hz, used to convert ISI/ITI from ms to samples.
    cfg : FindPulseConfig, optional
        Defaults to FindPulseConfig(); keyword overrides (original option
        names accepted) are applied on top.
    boundary : BendBoundary | callable, optional
        Operator boundary for wpeaks='gui'.
    """
    cfg = _resolve_config(cfg, overrides)
    sfreq = check_sfreq(sfreq)
    x = np.asarray(trace, dtype=float)
    if x.ndim != 1:
        raise InvalidConfig(f"Expected a 1-D trace, got shape {x.shape}")
    if x.size == 0:
        raise InsufficientData("Data is empty")

    detrended = detrend_trace(x, cfg.dtrend, cfg.poly_order)
    upper, lower = compute_thresholds(detrended, cfg.threshold)
    selector = make_selector(cfg.polarity, upper, lower, boundary)
    candidates = list(detect_candidates(detrended, selector))
    grouping = group_pulses(candidates, sfreq, cfg)
    events = to_event_records(grouping.events, x.size)

    logging.info(f"Found {len(candidates)} pulse peaks "
                 f"(thresholds {upper:.3g}/{lower:.3g}); {len(events)} events ({grouping.mode})")
    return FindPulseResult(events=events, candidates=candidates, thresholds=(upper, lower),
                           grouping=grouping, detrended=detrended, sfreq=sfreq,
                           config=cfg, selector=selector)


def _pick_channel(raw: mne.io.BaseRaw, preferred: Optional[str]) -> str:
    if preferred:
        if preferred in raw.ch_names:
            return preferred
        for ch in raw.ch_names:
            if ch.lower() == preferred.lower():
                return ch
        raise InvalidConfig(f"Channel {preferred!r} not found in recording")
    for ch in raw.ch_names:
        if ch.lower() == DEFAULT_CHANNEL.lower():
            return ch
    return raw.ch_names[0]


def _recording_name(raw: mne.io.BaseRaw) -> str:
    fnames = [f for f in (getattr(raw, "filenames", None) or ()) if f]
    return Path(str(fnames[0])).stem if fnames else "recording"


def find_pulse_peaks(raw: mne.io.BaseRaw, elec: Optional[str] = None,
                     cfg: Optional[FindPulseConfig] = None,
                     boundary=None, base: Optional[str] = None,
                     **overrides) -> Tuple[mne.io.BaseRaw, FindPulseResult]:
    """Find TMS pulses on channel ``elec`` and add them to ``raw.annotations``.

    The channel defaults to cfg.elec, then Cz, then the first channel. Data
    is read in cfg.units (µV by default) so manual thresholds match the
    values shown in EEG viewers. ``base`` names the recording in verbose
    output and the QC plot file; it defaults to the recording's file stem.
    """
    cfg = _resolve_config(cfg, overrides)
    if raw.n_times == 0 or not raw.ch_names:
        raise InsufficientData("Data is empty")
    name = _pick_channel(raw, elec or cfg.elec)
    trace = raw.get_data(picks=[name], units=cfg.units)[0]

    result = find_pulses_in_trace(trace, float(raw.info["sfreq"]), cfg, boundary=boundary)
    result.channel = name
    annotate_raw(raw, result.events)

    base = base or _recording_name(raw)
    if cfg.verbose:
        print(f"[{base}] {name}: {len(result.candidates)} peaks, {len(result.events)} events"
              + (f", {len(result.diagnostics)} train count mismatches" if result.diagnostics else ""))
    if cfg.plots:
        from .qc import save_pulse_qc_plot
        save_pulse_qc_plot(result, cfg.qc_dir / f"{base}_pulse_qc.png", title_suffix=f"({base})")
    return raw, result
