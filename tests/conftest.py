from __future__ import annotations

import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)


def spike_trace(n: int, spikes, amplitude: float = 2000.0) -> np.ndarray:
    """Zero trace with a one-sample spike at every index in ``spikes``."""
    x = np.zeros(n)
    x[np.asarray(list(spikes), dtype=int)] = amplitude
    return x


@pytest.fixture
def make_spike_trace():
    return spike_trace


@pytest.fixture
def make_raw():
    import mne

    def _make(traces_uv: dict, sfreq: float = 1000.0, **kwargs):
        names = list(traces_uv)
        data = np.vstack([np.asarray(traces_uv[ch], dtype=float) for ch in names]) * 1e-6
        info = mne.create_info(names, sfreq, ch_types="eeg")
        return mne.io.RawArray(data, info, verbose=False, **kwargs)

    return _make
