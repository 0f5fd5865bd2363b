"""Test configuration for ensuring local packages are importable."""

from __future__ import annotations

import pathlib
import random
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.settings import CorsiConfig, DigitSpanConfig, NBackConfig  # noqa: E402
from game.state_machine import TrialRunner  # noqa: E402
from game.tasks import CorsiStrategy, DigitSpanStrategy, NBackStrategy  # noqa: E402


class ScriptedCorsi(CorsiStrategy):
    """Corsi with fixed sequences, one per trial."""

    def __init__(self, sequences, config=CorsiConfig()):
        super().__init__(config)
        self.sequences = sequences

    def next_stimulus(self, state, rng):
        return list(self.sequences[state.trial_index])


class ScriptedDigitSpan(DigitSpanStrategy):
    """Digit span with fixed digit sequences, one per trial."""

    def __init__(self, sequences, config=DigitSpanConfig()):
        super().__init__(config)
        self.sequences = sequences

    def next_stimulus(self, state, rng):
        return list(self.sequences[state.trial_index])


class ScriptedNBack(NBackStrategy):
    """N-back over a fixed digit sequence."""

    def __init__(self, sequence, config=None):
        super().__init__(config or NBackConfig(total_trials=len(sequence)))
        self.sequence = sequence

    def start(self, state, rng):
        state.sequence = list(self.sequence)


@pytest.fixture
def corsi_runner():
    def _make(sequences, config=CorsiConfig()):
        return TrialRunner(ScriptedCorsi(sequences, config), random.Random(0))
    return _make


@pytest.fixture
def nback_runner():
    def _make(sequence, config=None):
        return TrialRunner(ScriptedNBack(sequence, config), random.Random(0))
    return _make


@pytest.fixture
def digit_runner():
    def _make(sequences, config=DigitSpanConfig()):
        return TrialRunner(ScriptedDigitSpan(sequences, config), random.Random(0))
    return _make
