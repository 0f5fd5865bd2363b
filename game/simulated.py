import random
from dataclasses import dataclass, field
from typing import Any, List, Tuple

from data.models import PhaseEvent, SessionState
from game.trial_generator import nback_targets


@dataclass
class SimulatedParticipant:
    """
    Бот-игрок для headless-прогона и тестов.

    - accuracy: вероятность правильного решения на trial
    - rt: нормальное распределение вокруг mean_rt_ms
    - параметры задачи (n, размер сетки, режим) берёт из awaiting_response,
      так что играет по тому конфигу, с которым запущена сессия
    """
    task_id: str
    accuracy: float = 0.8
    mean_rt_ms: float = 550.0
    rt_sd_ms: float = 120.0
    max_rt_ms: int = 1200       # успеваем в окно n-back
    tap_interval_ms: int = 400  # пауза между кликами в corsi
    seed: int = 7
    rng: random.Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.rng = random.Random(self.seed)

    def __call__(self, event: PhaseEvent, state: SessionState) -> List[Tuple[int, Any]]:
        if self.task_id == "corsi":
            return self._corsi(event, state)
        if self.task_id == "nback":
            return self._nback(event, state)
        if self.task_id.startswith("digit_span_"):
            return self._digit_span(event, state)
        raise ValueError(f"Unsupported task_id: {self.task_id}")

    def _rt(self) -> int:
        return min(self.max_rt_ms, max(150, int(self.rng.gauss(self.mean_rt_ms, self.rt_sd_ms))))

    def _slip(self) -> bool:
        return self.rng.random() >= self.accuracy

    def _corsi(self, event: PhaseEvent, state: SessionState) -> List[Tuple[int, Any]]:
        grid_size = event.payload["grid_size"]
        taps = list(state.stimulus)
        if self._slip():
            # ошибка: одну клетку путаем с другой
            pos = self.rng.randrange(len(taps))
            taps[pos] = self.rng.choice([c for c in range(grid_size) if c != taps[pos]])
        start = self._rt()
        return [(start + i * self.tap_interval_ms, cell) for i, cell in enumerate(taps)]

    def _nback(self, event: PhaseEvent, state: SessionState) -> List[Tuple[int, Any]]:
        targets = nback_targets(state.sequence, event.payload["n"])
        is_target = targets[state.trial_index]
        press = is_target if not self._slip() else not is_target
        if not press:
            return []
        return [(self._rt(), "SPACE")]

    def _digit_span(self, event: PhaseEvent, state: SessionState) -> List[Tuple[int, Any]]:
        digits = list(state.stimulus)
        if event.payload["mode"] == "backward":
            digits.reverse()
        if self._slip():
            pos = self.rng.randrange(len(digits))
            digits[pos] = (digits[pos] + 1 + self.rng.randrange(9)) % 10
        # набор строки занимает время: по tap_interval_ms на цифру
        typing_ms = self._rt() + len(digits) * self.tap_interval_ms
        return [(typing_ms, "".join(str(d) for d in digits))]
