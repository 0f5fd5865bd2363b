import random
from typing import Any, Dict, List, Optional, Tuple

from config.settings import DigitSpanConfig
from data.models import SessionState, TrialResult
from game.tasks.span import SpanTaskStrategy
from game.trial_generator import generate_digit_sequence


class DigitSpanStrategy(SpanTaskStrategy):
    """
    Digit span: цифры показываются по одной, потом игрок вводит их строкой.

    forward: в том же порядке, backward: в обратном.
    Ответ приходит целиком (как submit формы): "352" или [3, 5, 2].
    """

    task_id = "digit_span"

    def __init__(self, config: DigitSpanConfig = DigitSpanConfig()) -> None:
        super().__init__(config)
        # forward и backward пишутся в результаты как разные задачи
        self.task_id = config.task_id

    @property
    def span_ceiling(self) -> int:
        return self.config.max_span

    @property
    def backward(self) -> bool:
        return self.config.mode == "backward"

    def next_stimulus(self, state: SessionState, rng: random.Random) -> List[int]:
        return generate_digit_sequence(rng, state.span)

    def prompt(self, state: SessionState) -> Dict[str, Any]:
        return {"mode": self.config.mode}

    def expected(self, state: SessionState) -> List[int]:
        return list(reversed(state.stimulus)) if self.backward else list(state.stimulus)

    def accept_response(self, state: SessionState, response: Any) -> bool:
        if state.responded:
            return False
        if isinstance(response, str):
            # всё, что не цифра, выкидываем; длиннее span не принимаем
            digits = [int(ch) for ch in response if ch in "0123456789"]
        elif isinstance(response, (list, tuple)) and all(
            isinstance(d, int) and not isinstance(d, bool) and 0 <= d <= 9 for d in response
        ):
            digits = list(response)
        else:
            return False
        state.entered = digits[: len(state.stimulus)]
        state.responded = True
        return True

    def response_complete(self, state: SessionState) -> bool:
        return state.responded

    def classify_trial(self, state: SessionState) -> Tuple[bool, Optional[str]]:
        return state.responded and state.entered == self.expected(state), None

    def describe_stimulus(self, state: SessionState) -> str:
        return "".join(str(d) for d in state.stimulus)

    def describe_response(self, state: SessionState) -> Optional[str]:
        if not state.responded:
            return None
        return "".join(str(d) for d in state.entered)

    def details(self, state: SessionState, results: List[TrialResult]) -> Dict[str, Any]:
        details = super().details(state, results)
        details["mode"] = self.config.mode
        return details
