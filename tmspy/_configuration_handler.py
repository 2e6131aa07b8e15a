# _configuration_handler.py
"""
Centralized configuration for TMS pulse finding.

One immutable FindPulseConfig is built per invocation, either directly,
from keyword options (the original tool's camelCase names are accepted),
or by merging plain Python config modules in order:
 - config_base (optional)
 - example_config (optional)
 - config_local (optional, gitignored by convention)

Provides:
 - FindPulseConfig dataclass (frozen)
 - load_config(module_names=None) -> FindPulseConfig
 - load_from_config_module(module_name) -> FindPulseConfig
"""
from __future__ import annotations
import importlib
import math
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional, Tuple, Union, List, Dict, Any

from .detrend import DETREND_MODES
from .errors import InvalidConfig
from .grouping import resolve_pair_labels
from .polarity import normalise_polarity
from .threshold import ThresholdSpec

# original option names -> field names
OPTION_ALIASES = {
    "tmsLabel": "tms_label",
    "ISI": "isi",
    "pairLabel": "pair_label",
    "ITI": "iti",
    "pulseNum": "pulse_num",
    "dtrnd": "dtrend",
}


@dataclass(frozen=True)
class FindPulseConfig:
    # Channel
    elec: Optional[str] = None
    units: str = "uV"

    # Detection
    dtrend: str = "poly"
    poly_order: int = 6
    thrshtype: Union[str, float] = "dynamic"
    wpeaks: str = "pos"
    tms_label: str = "TMS"

    # Paired pulses
    isi: Tuple[float, ...] = ()
    pair_label: Tuple[str, ...] = ()
    isi_tolerance_ms: float = 1.0

    # Repetitive trains
    iti: Optional[float] = None
    pulse_num: Optional[int] = None

    # QC
    plots: bool = False
    qc_dir: Path = Path("./output/qc_plots")

    # Logging
    verbose: bool = False

    @classmethod
    def from_options(cls, **options: Any) -> "FindPulseConfig":
        """Build a config from keyword options, accepting original option names."""
        return cls(**_coerce(options))

    def replace(self, **options: Any) -> "FindPulseConfig":
        """Return a copy with some options changed."""
        return replace(self, **_coerce(options))

    @property
    def paired(self) -> bool:
        return bool(self.isi) or bool(self.pair_label)

    @property
    def repetitive(self) -> bool:
        return self.iti is not None or self.pulse_num is not None

    @property
    def threshold(self) -> ThresholdSpec:
        return ThresholdSpec.parse(self.thrshtype)

    @property
    def polarity(self) -> str:
        return normalise_polarity(self.wpeaks)

    def validate(self) -> "FindPulseConfig":
        """Check every option; raise InvalidConfig on the first problem."""
        if self.dtrend not in DETREND_MODES:
            raise InvalidConfig(f"dtrend must be one of {DETREND_MODES}, got {self.dtrend!r}")
        if not isinstance(self.poly_order, int) or self.poly_order < 0:
            raise InvalidConfig(f"poly_order must be a non-negative integer, got {self.poly_order!r}")
        ThresholdSpec.parse(self.thrshtype)
        normalise_polarity(self.wpeaks)
        if not isinstance(self.tms_label, str) or not self.tms_label:
            raise InvalidConfig("tms_label must be a non-empty string")

        if self.paired and self.repetitive:
            raise InvalidConfig(
                "cannot search for both paired and repetitive stimuli within the same "
                "recording; choose one")
        if self.paired:
            resolve_pair_labels(self.isi, self.pair_label)
            if not (math.isfinite(self.isi_tolerance_ms) and self.isi_tolerance_ms >= 0):
                raise InvalidConfig(f"isi_tolerance_ms must be >= 0, got {self.isi_tolerance_ms!r}")
        if self.repetitive:
            if self.iti is None or self.pulse_num is None:
                raise InvalidConfig("repetitive detection needs both iti and pulse_num")
            if not (isinstance(self.iti, (int, float)) and math.isfinite(self.iti) and self.iti > 0):
                raise InvalidConfig(f"iti must be a positive number of ms, got {self.iti!r}")
            if isinstance(self.pulse_num, bool) or not isinstance(self.pulse_num, int) or self.pulse_num < 1:
                raise InvalidConfig(f"pulse_num must be a positive integer, got {self.pulse_num!r}")
        return self


def _coerce(options: Dict[str, Any]) -> Dict[str, Any]:
    cfg = {OPTION_ALIASES.get(k, k): v for k, v in options.items()}
    allowed = {f.name for f in fields(FindPulseConfig)}
    unknown = set(cfg) - allowed
    if unknown:
        raise InvalidConfig(f"unknown option(s): {sorted(unknown)}")

    # Scalars are allowed where the original took vectors/cell arrays
    if "isi" in cfg:
        isi = cfg["isi"]
        if isi is None:
            isi = ()
        elif isinstance(isi, (int, float)):
            isi = (isi,)
        try:
            cfg["isi"] = tuple(float(v) for v in isi)
        except (TypeError, ValueError) as e:
            raise InvalidConfig(f"ISI must be numbers in ms, got {isi!r}") from e
    if "pair_label" in cfg:
        labels = cfg["pair_label"]
        if labels is None:
            labels = ()
        elif isinstance(labels, str):
            labels = tuple(s.strip() for s in labels.split(",") if s.strip())
        cfg["pair_label"] = tuple(labels)
    if isinstance(cfg.get("iti"), int):
        cfg["iti"] = float(cfg["iti"])
    if isinstance(cfg.get("pulse_num"), float) and cfg["pulse_num"].is_integer():
        cfg["pulse_num"] = int(cfg["pulse_num"])
    if "qc_dir" in cfg:
        cfg["qc_dir"] = Path(cfg["qc_dir"])
    return cfg


def _collect_module_values(module_name: str) -> Dict[str, Any]:
    """Import a module by name and return dict of public, non-callable attributes."""
    try:
        mod = importlib.import_module(module_name)
    except ImportError:
        return {}

    vals = {
        k: getattr(mod, k)
        for k in dir(mod)
        if not k.startswith("_")
        and k != "Path"
        and not callable(getattr(mod, k))
        and not isinstance(getattr(mod, k), type(importlib))
    }
    return vals


def _known_values(vals: Dict[str, Any]) -> Dict[str, Any]:
    allowed = {f.name for f in fields(FindPulseConfig)}
    renamed = {OPTION_ALIASES.get(k, k): v for k, v in vals.items()}
    return {k: v for k, v in renamed.items() if k in allowed}


def load_config(module_names: Optional[List[str]] = None) -> FindPulseConfig:
    """Load and merge configuration modules into a FindPulseConfig.

    module_names: list of module names to search in order (later override earlier).
    If None, defaults to ['config_base', 'tmspy.example_config', 'config_local'].
    """
    if module_names is None:
        module_names = ["config_base", "tmspy.example_config", "config_local"]

    merged: Dict[str, Any] = {}
    for name in module_names:
        vals = _collect_module_values(name)
        if vals:
            merged.update(_known_values(vals))

    return FindPulseConfig.from_options(**merged)


def load_from_config_module(module_name: str) -> FindPulseConfig:
    """Load config from a single module; fail if it is missing or sets nothing we know."""
    cfg = _known_values(_collect_module_values(module_name))
    if not cfg:
        raise RuntimeError(f"Failed to load config: module {module_name} not found or empty")
    return FindPulseConfig.from_options(**cfg)
