import random
from typing import Any, Dict, List, Optional, Tuple

from config.settings import NBackConfig
from data.models import SessionState, TrialResult
from game.session_metrics import count_signal_outcomes
from game.tasks.base import TaskStrategy
from game.trial_generator import generate_nback_sequence

RESPONSE_KEY = "SPACE"


class NBackStrategy(TaskStrategy):
    task_id = "nback"
    show_during_response = True

    def __init__(self, config: NBackConfig = NBackConfig()) -> None:
        super().__init__(config)

    @property
    def budget(self) -> int:
        return self.config.total_trials

    def start(self, state: SessionState, rng: random.Random) -> None:
        state.sequence = generate_nback_sequence(
            rng,
            total_trials=self.config.total_trials,
            n=self.config.n,
            target_probability=self.config.target_probability,
            symbols=self.config.symbols,
        )

    def next_stimulus(self, state: SessionState, rng: random.Random) -> List[int]:
        return [state.sequence[state.trial_index]]

    def is_target(self, state: SessionState) -> bool:
        i = state.trial_index
        n = self.config.n
        return i >= n and state.sequence[i] == state.sequence[i - n]

    def prompt(self, state: SessionState) -> Dict[str, Any]:
        return {"n": self.config.n}

    def accept_response(self, state: SessionState, response: Any) -> bool:
        # засчитываем только первое нажатие в окне
        if state.responded:
            return False
        state.responded = True
        return True

    def classify_trial(self, state: SessionState) -> Tuple[bool, Optional[str]]:
        target = self.is_target(state)
        correct = state.responded if target else not state.responded
        return correct, "target" if target else "non-target"

    def describe_stimulus(self, state: SessionState) -> str:
        i = state.trial_index
        n = self.config.n
        back = state.sequence[i - n] if i >= n else "N/A"
        return f"{state.sequence[i]} ({back})"

    def describe_response(self, state: SessionState) -> Optional[str]:
        return RESPONSE_KEY if state.responded else None

    def is_session_complete(self, state: SessionState, results: List[TrialResult]) -> bool:
        return len(results) >= self.config.total_trials

    def score(self, state: SessionState, results: List[TrialResult]) -> int:
        return sum(1 for r in results if r.correct)

    def details(self, state: SessionState, results: List[TrialResult]) -> Dict[str, Any]:
        details: Dict[str, Any] = {
            "n": self.config.n,
            "target_probability": self.config.target_probability,
        }
        details.update(count_signal_outcomes(results))
        return details
