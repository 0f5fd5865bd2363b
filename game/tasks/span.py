import random
from typing import Any, Dict, List

from data.models import SessionState, TrialResult
from game.session_metrics import max_completed_span
from game.tasks.base import TaskStrategy


class SpanTaskStrategy(TaskStrategy):
    """
    Общая лестница для span-задач (corsi, digit span).

    - после верного trial-а длина сразу растёт на 1 (до span_ceiling)
    - max_consecutive_failures ошибок подряд заканчивают сессию
    - score: лучшая верно пройденная длина, но не меньше span - 1
    """

    @property
    def budget(self) -> int:
        return self.config.max_trials

    @property
    def span_ceiling(self) -> int:
        raise NotImplementedError

    def start(self, state: SessionState, rng: random.Random) -> None:
        state.span = self.config.start_span
        state.consecutive_failures = 0

    def trial_span(self, state: SessionState) -> int:
        return state.span

    def apply_outcome(self, state: SessionState, result: TrialResult) -> None:
        if result.correct:
            state.consecutive_failures = 0
            # первая же удача на этом уровне, длина растёт
            if state.span < self.span_ceiling:
                state.span += 1
        else:
            state.consecutive_failures += 1

    def is_session_complete(self, state: SessionState, results: List[TrialResult]) -> bool:
        if state.consecutive_failures >= self.config.max_consecutive_failures:
            return True
        if len(results) >= self.config.max_trials:
            return True
        # выше потолка усложнять уже некуда
        last = results[-1] if results else None
        return last is not None and last.correct and last.span == self.span_ceiling

    def score(self, state: SessionState, results: List[TrialResult]) -> int:
        return max_completed_span(results, state.span)

    def details(self, state: SessionState, results: List[TrialResult]) -> Dict[str, Any]:
        return {
            "max_span": self.score(state, results),
            "final_span": state.span,
            "consecutive_failures": state.consecutive_failures,
        }
