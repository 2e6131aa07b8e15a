# tmspy/detrend.py
from __future__ import annotations
import numpy as np
import neurokit2 as nk

from .errors import InvalidConfig, InsufficientData

DETREND_MODES = ("poly", "linear", "off")


def detrend_trace(trace: np.ndarray, mode: str = "poly", poly_order: int = 6) -> np.ndarray:
    """Remove slow drift from a single-channel trace before thresholding.

    Parameters
    ----------
    trace : np.ndarray
        Samples of the reference channel. Never modified.
    mode : str
        'poly' subtracts a low-order polynomial baseline, 'linear' the
        best-fit line, 'off' returns a copy.
    poly_order : int
        Polynomial order for 'poly'. Kept low so a narrow TMS pulse is not
        absorbed into the baseline.

    Returns
    -------
    np.ndarray
        Detrended copy with the same length as ``trace``. Non-finite input
        samples come back as NaN.
    """
    if mode not in DETREND_MODES:
        raise InvalidConfig(f"Unknown detrend mode {mode!r}; use one of {DETREND_MODES}")
    x = np.asarray(trace, dtype=float)
    if x.ndim != 1:
        raise InvalidConfig(f"Expected a 1-D trace, got shape {x.shape}")
    if x.size == 0:
        raise InsufficientData("Cannot detrend an empty trace")

    if mode == "off":
        return x.copy()

    # Non-finite samples (dropouts) stay NaN and are left out of the fit
    finite = np.isfinite(x)
    n_finite = int(finite.sum())
    if n_finite == 0:
        raise InsufficientData("Cannot detrend a trace with no finite samples")
    if n_finite < 2:
        return np.where(finite, x - x[finite].mean(), np.nan)

    deg = 1 if mode == "linear" or n_finite <= poly_order + 1 else poly_order
    if deg == 1 and n_finite == x.size:
        return np.asarray(nk.signal_detrend(x, method="polynomial", order=1), dtype=float)

    # Polynomial.fit maps sample indices onto [-1, 1], so high powers stay
    # well conditioned on long recordings
    t = np.arange(x.size, dtype=float)
    baseline = np.polynomial.Polynomial.fit(t[finite], x[finite], deg=deg)(t)
    return np.where(finite, x - baseline, np.nan)
