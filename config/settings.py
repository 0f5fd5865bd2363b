from dataclasses import dataclass


class ConfigError(ValueError):
    """Кривой конфиг задачи; отклоняется до старта сессии."""


@dataclass(frozen=True)
class SpanTiming:
    stimulus_ms: int = 700         # сколько горит одна клетка
    gap_ms: int = 300              # пауза между клетками
    response_delay_ms: int = 500   # пауза перед воспроизведением
    response_window_ms: int = 30000
    feedback_ms: int = 1000


@dataclass(frozen=True)
class NBackTiming:
    response_window_ms: int = 1500  # цифра видна всё окно ответа
    feedback_ms: int = 500


@dataclass(frozen=True)
class CorsiConfig:
    grid_size: int = 9
    start_span: int = 2
    max_trials: int = 24
    max_consecutive_failures: int = 2
    timing: SpanTiming = SpanTiming()

    task_id = "corsi"

    def validate(self) -> None:
        if self.grid_size < 1:
            raise ConfigError(f"grid_size must be positive, got {self.grid_size}")
        if self.start_span < 1:
            raise ConfigError(f"start_span must be positive, got {self.start_span}")
        if self.start_span > self.grid_size:
            raise ConfigError(
                f"start_span {self.start_span} does not fit a grid of {self.grid_size} cells"
            )
        if self.max_trials < 1:
            raise ConfigError(f"max_trials must be positive, got {self.max_trials}")
        if self.max_consecutive_failures < 1:
            raise ConfigError(
                f"max_consecutive_failures must be positive, got {self.max_consecutive_failures}"
            )
        _check_timing(self.timing)


@dataclass(frozen=True)
class NBackConfig:
    total_trials: int = 30
    n: int = 2
    target_probability: float = 0.33
    symbols: tuple = (1, 2, 3, 4, 5, 6, 7, 8, 9)
    timing: NBackTiming = NBackTiming()

    task_id = "nback"

    def validate(self) -> None:
        if self.total_trials < 1:
            raise ConfigError(f"total_trials must be positive, got {self.total_trials}")
        if self.n < 1:
            raise ConfigError(f"n must be positive, got {self.n}")
        if not 0.0 <= self.target_probability <= 1.0:
            raise ConfigError(
                f"target_probability must be within [0, 1], got {self.target_probability}"
            )
        if len(set(self.symbols)) < 2:
            raise ConfigError("n-back needs at least two distinct symbols")
        _check_timing(self.timing)


DIGIT_SPAN_MODES = ("forward", "backward")


@dataclass(frozen=True)
class DigitSpanConfig:
    mode: str = "forward"         # backward: повторить цифры в обратном порядке
    start_span: int = 2
    max_span: int = 9
    max_trials: int = 24
    max_consecutive_failures: int = 2
    timing: SpanTiming = SpanTiming(stimulus_ms=1000, gap_ms=0, response_delay_ms=500)

    @property
    def task_id(self) -> str:
        return f"digit_span_{self.mode}"

    def validate(self) -> None:
        if self.mode not in DIGIT_SPAN_MODES:
            raise ConfigError(f"mode must be one of {DIGIT_SPAN_MODES}, got {self.mode!r}")
        if self.start_span < 1:
            raise ConfigError(f"start_span must be positive, got {self.start_span}")
        if self.start_span > self.max_span:
            raise ConfigError(f"start_span {self.start_span} exceeds max_span {self.max_span}")
        if self.max_trials < 1:
            raise ConfigError(f"max_trials must be positive, got {self.max_trials}")
        if self.max_consecutive_failures < 1:
            raise ConfigError(
                f"max_consecutive_failures must be positive, got {self.max_consecutive_failures}"
            )
        _check_timing(self.timing)


def _check_timing(timing) -> None:
    for name, value in vars(timing).items():
        if value < 0:
            raise ConfigError(f"{name} must not be negative, got {value}")
    if timing.response_window_ms <= 0:
        raise ConfigError(
            f"response_window_ms must be positive, got {timing.response_window_ms}"
        )
