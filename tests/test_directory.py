from __future__ import annotations

import pytest

from cypherpunk.errors import DirectoryError, UnknownRemailer
from cypherpunk.remailer import Capability, RemailerDirectory

from fakes import BOTH, FINAL_ONLY, MIDDLE_ONLY, make_record


def test_lookup_is_case_insensitive(mixed_directory) -> None:
    record = mixed_directory.lookup("DiZuM")
    assert record.name == "dizum"
    assert "DIZUM" in mixed_directory
    assert "nobody" not in mixed_directory


def test_lookup_unknown_name() -> None:
    directory = RemailerDirectory([make_record("dizum")])
    with pytest.raises(UnknownRemailer) as info:
        directory.lookup("unknownname")
    assert info.value.name == "unknownname"


def test_eligible_filters_and_is_name_ordered(mixed_directory) -> None:
    middle = [r.name for r in mixed_directory.eligible(Capability.MIDDLE)]
    final = [r.name for r in mixed_directory.eligible(Capability.FINAL)]
    assert middle == ["austria", "banana", "cthulhu"]
    assert final == ["banana", "cthulhu", "dizum"]


def test_duplicate_names_rejected() -> None:
    with pytest.raises(DirectoryError):
        RemailerDirectory([make_record("dizum"), make_record("Dizum")])


def test_record_capabilities_normalised() -> None:
    record = make_record("x", [Capability.MIDDLE, Capability.MIDDLE])
    assert record.capabilities == MIDDLE_ONLY
    assert record.supports(Capability.MIDDLE)
    assert not record.supports(Capability.FINAL)
    assert str(record) == "x"


def test_filtered_by_uptime_and_latency() -> None:
    directory = RemailerDirectory([
        make_record("fast", BOTH, latency=60, uptime=99.9),
        make_record("slow", BOTH, latency=7200, uptime=99.9),
        make_record("flaky", FINAL_ONLY, latency=60, uptime=40.0),
    ])

    healthy = directory.filtered(min_uptime=90.0, max_latency=3600)
    assert healthy.names() == ["fast"]

    assert directory.filtered(min_uptime=90.0).names() == ["fast", "slow"]
    assert len(directory.filtered()) == 3
    # the original is untouched
    assert len(directory) == 3


def test_iteration_and_repr(mixed_directory) -> None:
    assert [r.name for r in mixed_directory] == mixed_directory.names()
    assert len(mixed_directory) == 4
    assert "austria" in repr(mixed_directory)
