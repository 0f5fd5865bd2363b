from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


# Фазы trial-а храним строками (так проще логировать)
PHASE_PRESENTING = "presenting"  # показываем стимул / проигрываем последовательность
PHASE_RESPONDING = "responding"  # ждём ответ в ограниченном окне
PHASE_SCORED = "scored"          # ответ оценён, пауза перед следующим trial-ом
PHASE_TERMINAL = "terminal"      # сессия закончилась, итог посчитан
PHASE_EXITED = "exited"          # игрок вышел раньше времени

EVENT_STIMULUS_ON = "stimulus_on"
EVENT_STIMULUS_OFF = "stimulus_off"
EVENT_AWAITING_RESPONSE = "awaiting_response"
EVENT_TRIAL_SCORED = "trial_scored"
EVENT_SESSION_COMPLETE = "session_complete"


@dataclass(frozen=True)
class TrialResult:
    """
    Результат одного trial-а. После записи не меняется.
    """
    trial_index: int
    stimulus: str                    # "3,5" или "4 (N/A)"
    response: Optional[str]          # None если ответа не было
    correct: bool
    reaction_time_ms: float          # 0 если ответа не было
    trial_type: Optional[str] = None  # "target" / "non-target" для n-back
    span: Optional[int] = None       # длина последовательности для corsi

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SessionSummary:
    score: int
    accuracy: float          # 0..100
    reaction_time_ms: float  # среднее по trial-ам с ответом
    total_trials: int
    correct_trials: int
    error_count: int
    error_rate: float        # 0..100
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SessionState:
    """
    Изменяемое состояние одной сессии. Им владеет только TrialRunner.
    """
    task_id: str
    phase: str = PHASE_PRESENTING
    trial_index: int = 0
    span: int = 0
    consecutive_failures: int = 0

    # весь n-back ряд генерируется заранее
    sequence: List[int] = field(default_factory=list)

    # стимул текущего trial-а (клетки для corsi, одна цифра для n-back)
    stimulus: List[int] = field(default_factory=list)
    present_index: int = 0
    trial_onset_ms: int = 0

    entered: List[int] = field(default_factory=list)
    responded: bool = False
    response_ms: Optional[int] = None


@dataclass(frozen=True)
class PhaseEvent:
    kind: str
    trial_index: int
    at_ms: int
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "trial_index": self.trial_index,
            "at_ms": self.at_ms,
            "payload": self.payload,
        }


@dataclass(frozen=True)
class GameResult:
    """
    Одна сохранённая запись на завершённую сессию.
    """
    id: str
    user_id: str
    game_id: str
    score: float
    accuracy: float
    reaction_time: float
    error_count: Optional[int]
    error_rate: Optional[float]
    details: Optional[Dict[str, Any]]
    completed_at: int  # мс от эпохи

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "GameResult":
        error_count = payload.get("error_count")
        error_rate = payload.get("error_rate")
        details = payload.get("details")
        return cls(
            id=str(payload["id"]),
            user_id=str(payload["user_id"]),
            game_id=str(payload["game_id"]),
            score=float(payload["score"]),
            accuracy=float(payload["accuracy"]),
            reaction_time=float(payload["reaction_time"]),
            error_count=int(error_count) if error_count is not None else None,
            error_rate=float(error_rate) if error_rate is not None else None,
            details=details if isinstance(details, dict) else None,
            completed_at=int(payload["completed_at"]),
        )
