from __future__ import annotations

import random
from typing import Any, Dict, List, Optional, Tuple

from data.models import SessionState, TrialResult


class TaskStrategy:
    """
    Правила конкретной задачи, которые подключаются к общему TrialRunner.

    Тайминги и фазы ведёт runner; стратегия решает только, что показать,
    как прочитать ответ и как его оценить.
    """

    task_id: str = "BASE"
    # n-back держит стимул на экране всё окно ответа
    show_during_response: bool = False

    def __init__(self, config) -> None:
        self.config = config
        self.timing = config.timing

    @property
    def budget(self) -> int:
        raise NotImplementedError

    def validate(self) -> None:
        self.config.validate()

    def start(self, state: SessionState, rng: random.Random) -> None:
        pass

    def next_stimulus(self, state: SessionState, rng: random.Random) -> List[int]:
        raise NotImplementedError

    def prompt(self, state: SessionState) -> Dict[str, Any]:
        """Что ещё сообщить вместе с awaiting_response (параметры задачи, не ответ)."""
        return {}

    def accept_response(self, state: SessionState, response: Any) -> bool:
        raise NotImplementedError

    def response_complete(self, state: SessionState) -> bool:
        return False

    def classify_trial(self, state: SessionState) -> Tuple[bool, Optional[str]]:
        raise NotImplementedError

    def describe_stimulus(self, state: SessionState) -> str:
        return ",".join(str(item) for item in state.stimulus)

    def describe_response(self, state: SessionState) -> Optional[str]:
        raise NotImplementedError

    def trial_span(self, state: SessionState) -> Optional[int]:
        return None

    def apply_outcome(self, state: SessionState, result: TrialResult) -> None:
        pass

    def is_session_complete(self, state: SessionState, results: List[TrialResult]) -> bool:
        raise NotImplementedError

    def score(self, state: SessionState, results: List[TrialResult]) -> int:
        raise NotImplementedError

    def details(self, state: SessionState, results: List[TrialResult]) -> Dict[str, Any]:
        return {}
