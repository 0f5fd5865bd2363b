import random
from typing import Any, Dict, List, Optional, Tuple

from config.settings import CorsiConfig
from data.models import SessionState, TrialResult
from game.tasks.span import SpanTaskStrategy
from game.trial_generator import generate_span_sequence


class CorsiStrategy(SpanTaskStrategy):
    task_id = "corsi"

    def __init__(self, config: CorsiConfig = CorsiConfig()) -> None:
        super().__init__(config)

    @property
    def span_ceiling(self) -> int:
        # на полной сетке длиннее последовательность не бывает
        return self.config.grid_size

    def next_stimulus(self, state: SessionState, rng: random.Random) -> List[int]:
        return generate_span_sequence(rng, state.span, self.config.grid_size)

    def prompt(self, state: SessionState) -> Dict[str, Any]:
        return {"grid_size": self.config.grid_size}

    def accept_response(self, state: SessionState, response: Any) -> bool:
        if isinstance(response, bool) or not isinstance(response, int):
            return False
        if not 0 <= response < self.config.grid_size:
            return False
        state.entered.append(response)
        return True

    def response_complete(self, state: SessionState) -> bool:
        return len(state.entered) >= len(state.stimulus)

    def classify_trial(self, state: SessionState) -> Tuple[bool, Optional[str]]:
        return state.entered == state.stimulus, None

    def describe_response(self, state: SessionState) -> Optional[str]:
        if not state.entered:
            return None
        return ",".join(str(cell) for cell in state.entered)

    def details(self, state: SessionState, results: List[TrialResult]) -> Dict[str, Any]:
        details = super().details(state, results)
        details["grid_size"] = self.config.grid_size
        return details
