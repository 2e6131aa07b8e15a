# tmspy/qc.py
from __future__ import annotations
from pathlib import Path

import numpy as np
import pandas as pd
from matplotlib import pyplot as plt


def save_pulse_qc_plot(result, save_path: Path, title_suffix: str = "") -> None:
    """Save a sanity-check plot of the detrended channel with detected pulses.

    Black = every detected peak, pink = peaks used for events. Threshold
    lines (or the operator boundary) are drawn in grey.
    """
    try:
        x = result.detrended
        t = np.arange(x.size) / result.sfreq
        fig, ax = plt.subplots(figsize=(12, 5))
        ax.plot(t, x, 'b-', linewidth=0.6, label='Detrended')

        sel = result.selector
        if sel is not None and sel.mode == "gui":
            for line in sel.bounds(np.arange(x.size)):
                if line is not None:
                    ax.plot(t, line, color='0.4', lw=0.8)
        else:
            upper, lower = result.thresholds
            if result.config.polarity == "pos":
                ax.axhline(upper, color='0.4', lw=0.8, ls='--', label='Threshold')
            else:
                ax.axhline(lower, color='0.4', lw=0.8, ls='--', label='Threshold')

        if result.candidates:
            ci = np.array([c.index for c in result.candidates])
            ax.plot(ci / result.sfreq, x[ci], 'ko', markersize=6, label='Detected')
        if result.events:
            ei = np.array([e.latency for e in result.events])
            ax.plot(ei / result.sfreq, x[ei], 'o', color='hotpink', markersize=3, label='Labelled')

        ax.set_xlabel('Time (s)')
        ax.set_ylabel(f"Amplitude ({result.config.units or 'V'})")
        chan = f" {result.channel}" if result.channel else ""
        ax.set_title(f'TMS pulses{chan} {title_suffix}'.rstrip())
        ax.legend(loc='upper right')
        ax.grid(True, alpha=0.3)

        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(str(save_path), dpi=150, bbox_inches='tight')
        plt.close(fig)
    except (OSError, ValueError) as err:
        print(f"[tmspy] Pulse QC plot failed: {err}")


def events_frame(result) -> pd.DataFrame:
    """Events of one run as a table: type, latency, onset_s, kind, group."""
    owner = {}
    for gi, g in enumerate(result.groups):
        for m in g.members:
            for i in (m if isinstance(m, tuple) else (m,)):
                owner[int(i)] = (g.kind, gi)
    rows = []
    for e in result.events:
        kind, gi = owner.get(e.latency, ("", -1))
        rows.append({
            "type": e.type,
            "latency": e.latency,
            "onset_s": e.latency / result.sfreq,
            "kind": kind,
            "group": gi,
        })
    return pd.DataFrame(rows, columns=["type", "latency", "onset_s", "kind", "group"])


def summary_row(result) -> dict:
    """One-line numeric summary of a run, e.g. for a batch review table."""
    upper, lower = result.thresholds
    lat = np.array([e.latency for e in result.events], dtype=float)
    return {
        "channel": result.channel,
        "mode": result.grouping.mode,
        "upper_threshold": upper,
        "lower_threshold": lower,
        "n_candidates": len(result.candidates),
        "n_events": len(result.events),
        "n_groups": len(result.groups),
        "n_count_mismatch": len(result.diagnostics),
        "median_interval_ms": float(np.median(np.diff(lat)) * 1000.0 / result.sfreq)
        if lat.size >= 2 else np.nan,
        "labels": ";".join(sorted({e.type for e in result.events})),
    }
