import logging
from types import SimpleNamespace

import numpy as np
import pytest

from tmspy import FindPulseConfig
from tmspy.errors import CountMismatch, InvalidConfig
from tmspy.grouping import group_paired, group_pulses, group_repetitive, group_single
from tmspy.peaks import Candidate

SF = 1000.0


def _cands(indices):
    return [Candidate(int(i), 2000.0) for i in indices]


def _train(start, n, step):
    return [start + k * step for k in range(n)]


def test_single_labels_every_candidate():
    res = group_single(_cands([10, 50, 90]), tms_label="single")
    assert res.events == [("single", 10), ("single", 50), ("single", 90)]
    assert res.groups[0].members == [10, 50, 90]


def test_paired_groups_exact_isis():
    res = group_paired(_cands([100, 120, 500, 900, 903]), SF,
                       isi=[20, 3], pair_label=["ICF", "SICI"])
    assert res.events == [("ICF", 100), ("ICF", 120), ("TMS", 500), ("SICI", 900), ("SICI", 903)]
    by_label = {g.label: g for g in res.groups}
    assert by_label["ICF"].members == [(100, 120)]
    assert by_label["SICI"].members == [(900, 903)]
    assert by_label["TMS"].members == [500]
    n_pairs = sum(len(g.members) for g in res.groups if g.kind == "paired")
    assert len(res.events) == 2 * n_pairs + len(by_label["TMS"].members)


def test_paired_pulses_are_not_reused():
    res = group_paired(_cands([0, 20, 40]), SF, isi=[20])
    assert res.events == [("TMSpair", 0), ("TMSpair", 20), ("TMS", 40)]


def test_paired_tolerance_window():
    res = group_paired(_cands([0, 21, 1000, 1023]), SF, isi=[20], pair_label=["SICI"],
                       tolerance_ms=1.0)
    assert [lab for lab, _ in res.events] == ["SICI", "SICI", "TMS", "TMS"]


def test_paired_prefers_smallest_difference():
    res = group_paired(_cands([0, 11]), SF, isi=[10, 11], pair_label=["A", "B"])
    assert [lab for lab, _ in res.events] == ["B", "B"]


def test_paired_tie_goes_to_earliest_isi():
    res = group_paired(_cands([0, 11]), SF, isi=[10, 12], pair_label=["A", "B"])
    assert [lab for lab, _ in res.events] == ["A", "A"]


def test_paired_takes_nearest_test_pulse():
    res = group_paired(_cands([0, 10, 20]), SF, isi=[20, 10], pair_label=["LONG", "SHORT"])
    assert res.events == [("SHORT", 0), ("SHORT", 10), ("TMS", 20)]


@pytest.mark.parametrize("isi, labels", [
    ([20, 100], ["SICI"]),
    ([20], ["SICI", "LICI"]),
    ([], []),
    ([-3], ["SICI"]),
])
def test_paired_label_validation(isi, labels):
    with pytest.raises(InvalidConfig):
        group_paired(_cands([0, 20]), SF, isi=isi, pair_label=labels)


def test_repetitive_single_train_without_mismatch():
    res = group_repetitive(_cands(_train(1000, 10, 100)), SF, iti=2600, pulse_num=10)
    assert len(res.groups) == 1
    assert res.diagnostics == []
    assert res.groups[0].members == _train(1000, 10, 100)


def test_repetitive_two_trains_separated_by_iti():
    idx = _train(1000, 40, 25) + _train(6000, 40, 25)
    res = group_repetitive(_cands(idx), SF, iti=2600, pulse_num=40)
    assert [g.members[0] for g in res.groups] == [1000, 6000]
    assert res.diagnostics == []
    assert len(res.events) == 80
    assert {lab for lab, _ in res.events} == {"TMS"}


def test_repetitive_count_mismatch_is_reported_not_fatal(caplog):
    idx = _train(1000, 38, 25) + _train(6000, 40, 25)
    with caplog.at_level(logging.WARNING):
        res = group_repetitive(_cands(idx), SF, iti=2600, pulse_num=40)
    assert len(res.events) == 78
    assert res.diagnostics == [CountMismatch(start_index=1000, observed=38, expected=40)]
    assert "38 pulses" in caplog.text


def test_repetitive_train_closes_at_pulse_num():
    res = group_repetitive(_cands(_train(0, 6, 100)), SF, iti=2600, pulse_num=3)
    assert [g.members for g in res.groups] == [[0, 100, 200], [300, 400, 500]]
    assert res.diagnostics == []


@pytest.mark.parametrize("iti, pulse_num", [(0, 40), (2600, 0), (2600, 2.5)])
def test_repetitive_validation(iti, pulse_num):
    with pytest.raises(InvalidConfig):
        group_repetitive(_cands([0]), SF, iti=iti, pulse_num=pulse_num)


def test_group_pulses_rejects_paired_and_repetitive():
    cfg = FindPulseConfig(isi=(20.0,), iti=2600.0, pulse_num=40)
    with pytest.raises(InvalidConfig, match="both paired and repetitive"):
        group_pulses(_cands([0, 20]), SF, cfg)


def test_group_pulses_dispatch():
    cfg = SimpleNamespace(paired=False, repetitive=False, tms_label="TMS")
    assert group_pulses(_cands([5]), SF, cfg).mode == "single"
    cfg = FindPulseConfig(isi=(20.0,), pair_label=("SICI",))
    assert group_pulses(_cands([0, 20]), SF, cfg).mode == "paired"
