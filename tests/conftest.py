from __future__ import annotations

import pytest

from cypherpunk.remailer import RemailerDirectory

from fakes import BOTH, FINAL_ONLY, MIDDLE_ONLY, RecordingBackend, make_record


@pytest.fixture
def scenario_directory() -> RemailerDirectory:
    return RemailerDirectory([
        make_record("paranoia", BOTH),
        make_record("dizum", BOTH),
    ])


@pytest.fixture
def mixed_directory() -> RemailerDirectory:
    return RemailerDirectory([
        make_record("austria", MIDDLE_ONLY),
        make_record("banana", BOTH),
        make_record("cthulhu", BOTH),
        make_record("dizum", FINAL_ONLY),
    ])


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()
