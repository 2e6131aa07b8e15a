import numpy as np
import pytest

from tmspy.detrend import detrend_trace
from tmspy.errors import InvalidConfig, InsufficientData


def test_linear_detrend_removes_slope_and_offset():
    t = np.arange(1000, dtype=float)
    out = detrend_trace(0.5 * t + 3.0, "linear")
    assert out.shape == t.shape
    np.testing.assert_allclose(out, 0.0, atol=1e-6)


def test_linear_detrend_is_idempotent():
    rng = np.random.default_rng(0)
    x = rng.normal(size=5000) + np.linspace(-20, 40, 5000)
    once = detrend_trace(x, "linear")
    twice = detrend_trace(once, "linear")
    assert np.max(np.abs(twice - once)) < 1e-8


def test_poly_detrend_removes_drift_but_keeps_pulse():
    n = 10000
    t = np.arange(n)
    drift = 50.0 * np.sin(2 * np.pi * t / n)
    x = drift.copy()
    x[5000] += 2000.0
    out = detrend_trace(x, "poly")
    assert out[5000] > 1900.0
    rest = np.delete(out, 5000)
    assert np.max(np.abs(rest)) < 100.0


def test_off_returns_an_unmodified_copy():
    x = np.array([1.0, 2.0, 3.0])
    out = detrend_trace(x, "off")
    np.testing.assert_array_equal(out, x)
    out[0] = 99.0
    assert x[0] == 1.0


def test_short_trace_poly_falls_back_to_linear():
    x = np.array([0.0, 1.0, 2.0, 3.0])
    np.testing.assert_allclose(detrend_trace(x, "poly"), 0.0, atol=1e-9)


def test_unknown_mode_is_rejected():
    with pytest.raises(InvalidConfig):
        detrend_trace(np.zeros(100), "cubic")


def test_empty_trace_is_rejected():
    with pytest.raises(InsufficientData):
        detrend_trace(np.array([]), "linear")


@pytest.mark.parametrize("mode", ["poly", "linear"])
def test_non_finite_samples_are_left_out_of_the_fit(mode):
    t = np.arange(2000, dtype=float)
    x = 0.25 * t + 10.0
    x[[10, 1500]] = [np.nan, np.inf]
    out = detrend_trace(x, mode)
    assert np.isnan(out[10]) and np.isnan(out[1500])
    finite = np.isfinite(out)
    assert finite.sum() == 1998
    np.testing.assert_allclose(out[finite], 0.0, atol=1e-6)


def test_trace_without_finite_samples():
    with pytest.raises(InsufficientData):
        detrend_trace(np.full(100, np.nan), "poly")
