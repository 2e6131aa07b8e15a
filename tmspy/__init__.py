# tmspy package initialization
from ._configuration_handler import FindPulseConfig, load_config, load_from_config_module
from .errors import InvalidConfig, InsufficientData, CountMismatch
from .detrend import detrend_trace
from .threshold import ThresholdSpec, compute_thresholds
from .polarity import BendBoundary, PulseSelector, make_selector, evaluate_boundary
from .peaks import Candidate, CandidateSequence, detect_candidates
from .grouping import (PulseGroup, GroupingResult, group_pulses,
                       group_single, group_paired, group_repetitive)
from .annotate import EventRecord, to_event_records, annotate_raw, records_to_events
from .findpulse import FindPulseResult, find_pulses_in_trace, find_pulse_peaks
from .qc import save_pulse_qc_plot, events_frame, summary_row
from .review import review_recordings

__version__ = "0.1.0"
__all__ = [
    "FindPulseConfig", "load_config", "load_from_config_module",
    "InvalidConfig", "InsufficientData", "CountMismatch",
    "detrend_trace", "ThresholdSpec", "compute_thresholds",
    "BendBoundary", "PulseSelector", "make_selector", "evaluate_boundary",
    "Candidate", "CandidateSequence", "detect_candidates",
    "PulseGroup", "GroupingResult", "group_pulses",
    "group_single", "group_paired", "group_repetitive",
    "EventRecord", "to_event_records", "annotate_raw", "records_to_events",
    "FindPulseResult", "find_pulses_in_trace", "find_pulse_peaks",
    "save_pulse_qc_plot", "events_frame", "summary_row",
    "review_recordings",
]
