import dataclasses
import math
import sys
import types
from pathlib import Path

import pytest

from tmspy import FindPulseConfig, load_config, load_from_config_module
from tmspy.errors import InvalidConfig
from tmspy.threshold import ThresholdSpec


def test_defaults_are_valid():
    cfg = FindPulseConfig().validate()
    assert (cfg.dtrend, cfg.thrshtype, cfg.wpeaks, cfg.tms_label) == ("poly", "dynamic", "pos", "TMS")
    assert not cfg.paired and not cfg.repetitive


def test_original_option_names_are_accepted():
    cfg = FindPulseConfig.from_options(tmsLabel="pulse", ISI=[2, 100], pairLabel="SICI, LICI")
    assert cfg.tms_label == "pulse"
    assert cfg.isi == (2.0, 100.0)
    assert cfg.pair_label == ("SICI", "LICI")
    assert cfg.paired
    cfg.validate()


def test_scalar_isi_and_repetitive_options():
    cfg = FindPulseConfig.from_options(ISI=20)
    assert cfg.isi == (20.0,)
    cfg = FindPulseConfig.from_options(ITI=2600, pulseNum=40.0)
    assert cfg.iti == 2600.0 and cfg.pulse_num == 40
    assert cfg.repetitive
    cfg.validate()


def test_config_is_immutable():
    cfg = FindPulseConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.tms_label = "other"
    changed = cfg.replace(tmsLabel="other", qc_dir="plots")
    assert changed.tms_label == "other" and changed.qc_dir == Path("plots")
    assert cfg.tms_label == "TMS"


def test_threshold_property():
    assert FindPulseConfig(thrshtype=1000).threshold == ThresholdSpec("manual", 1000)


@pytest.mark.parametrize("options", [
    {"dtrend": "cubic"},
    {"thrshtype": "mean"},
    {"thrshtype": math.nan},
    {"wpeaks": "up"},
    {"tms_label": ""},
    {"poly_order": -1},
    {"isi": (20.0, 100.0), "pair_label": ("SICI",)},
    {"isi": (20.0,), "iti": 2600.0, "pulse_num": 40},
    {"iti": 2600.0},
    {"iti": 2600.0, "pulse_num": 0},
    {"iti": -1.0, "pulse_num": 40},
])
def test_validate_rejects(options):
    with pytest.raises(InvalidConfig):
        FindPulseConfig(**options).validate()


def test_unknown_option():
    with pytest.raises(InvalidConfig):
        FindPulseConfig.from_options(threshold=1000)


def test_load_from_config_module(monkeypatch):
    mod = types.ModuleType("tms_test_config")
    mod.thrshtype = 1500
    mod.ISI = [3]
    mod.pairLabel = ["SICI"]
    mod.unrelated = "ignored"
    monkeypatch.setitem(sys.modules, "tms_test_config", mod)
    cfg = load_from_config_module("tms_test_config")
    assert cfg.thrshtype == 1500
    assert cfg.isi == (3.0,) and cfg.pair_label == ("SICI",)


def test_load_from_missing_module():
    with pytest.raises(RuntimeError):
        load_from_config_module("no_such_tms_config_module")


def test_load_config_merges_in_order(monkeypatch):
    local = types.ModuleType("config_local")
    local.elec = "FCz"
    monkeypatch.setitem(sys.modules, "config_local", local)
    cfg = load_config()
    # example values, then the local override
    assert cfg.verbose is True
    assert cfg.elec == "FCz"
    cfg.validate()
