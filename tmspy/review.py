# tmspy/review.py
from __future__ import annotations
from pathlib import Path
from typing import Mapping, Optional
import json
import re
import traceback
from datetime import datetime
import platform

import pandas as pd
import numpy as np
import mne

from ._configuration_handler import FindPulseConfig
from .findpulse import find_pulse_peaks
from .qc import events_frame, summary_row


# ------------------------
# Internal logging helpers
# ------------------------

def _ensure_logs_dir(root: Path) -> Path:
    d = root / "logs"
    d.mkdir(parents=True, exist_ok=True)
    return d

def _next_error_id(logs_dir: Path) -> int:
    max_id = 0
    for p in logs_dir.glob("error_*_log.txt"):
        m = re.match(r"error_(\d+)_log\.txt$", p.name)
        if m:
            max_id = max(max_id, int(m.group(1)))
    return max_id + 1

def _write_error_log(
    logs_dir: Path,
    error_id: int,
    base: str,
    cfg: FindPulseConfig,
    exc: Exception,
) -> Path:
    log_path = logs_dir / f"error_{error_id:03d}_log.txt"
    cfg_info = {
        "elec": cfg.elec,
        "dtrend": cfg.dtrend,
        "thrshtype": cfg.thrshtype,
        "wpeaks": cfg.wpeaks,
        "tms_label": cfg.tms_label,
        "isi": list(cfg.isi),
        "pair_label": list(cfg.pair_label),
        "iti": cfg.iti,
        "pulse_num": cfg.pulse_num,
    }
    meta = {
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "python": platform.python_version(),
        "platform": platform.platform(),
        "mne_version": getattr(mne, "__version__", "unknown"),
        "numpy_version": np.__version__,
        "recording": base,
        "exception_type": type(exc).__name__,
        "exception_str": repr(exc),
    }
    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    with open(log_path, "w", encoding="utf-8") as f:
        f.write("=== tmspy Error Log ===\n")
        for k, v in meta.items():
            f.write(f"{k}: {v}\n")
        f.write("\n--- Config ---\n")
        f.write(json.dumps(cfg_info, indent=2, default=str))
        f.write("\n\n--- Traceback ---\n")
        f.write(tb_str)
        f.write("\n")
    return log_path


# ------------------------
# Public API
# ------------------------

def review_recordings(recordings: Mapping[str, mne.io.BaseRaw],
                      cfg: Optional[FindPulseConfig] = None,
                      output_root: Optional[Path] = None,
                      progress_cb=None) -> pd.DataFrame:
    """
    Run pulse finding over several already-loaded recordings, one at a time.

    Each recording is annotated in place. Returns one summary row per
    recording. A recording that fails (too short, missing channel, unwritable
    output, ...) gets an error row and, when ``output_root`` is given, a full
    traceback in output_root/logs/error_###_log.txt; the batch carries on. With
    ``output_root`` the summary and per-recording event tables are also
    written as CSV.
    """
    cfg = (cfg if cfg is not None else FindPulseConfig()).validate()
    if output_root is not None:
        output_root = Path(output_root)
        output_root.mkdir(parents=True, exist_ok=True)
        if cfg.plots and not cfg.qc_dir.is_absolute():
            cfg = cfg.replace(qc_dir=output_root / cfg.qc_dir.name)

    rows = []
    total = len(recordings)
    for done, (base, raw) in enumerate(recordings.items(), start=1):
        try:
            _, result = find_pulse_peaks(raw, cfg=cfg, base=base)
            row = {"base": base, "action": "annotated", **summary_row(result), "error_log": ""}
            if output_root is not None:
                events_path = output_root / f"{base}_pulses.csv"
                events_frame(result).to_csv(events_path, index=False)
                row["events_csv"] = str(events_path)
        except Exception as e:
            log_path = ""
            if output_root is not None:
                logs_dir = _ensure_logs_dir(output_root)
                log_path = str(_write_error_log(logs_dir, _next_error_id(logs_dir), base, cfg, e))
            if cfg.verbose:
                print(f"[{base}] ERROR: {e}")
            row = {"base": base, "action": "error", "error": str(e), "error_log": log_path}
        rows.append(row)
        if callable(progress_cb):
            progress_cb(done, total, base)

    df = pd.DataFrame(rows)
    if output_root is not None:
        df.to_csv(output_root / "pulse_summary.csv", index=False)
    return df
