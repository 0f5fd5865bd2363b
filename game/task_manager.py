from typing import Optional

from config.settings import ConfigError, CorsiConfig, DigitSpanConfig, NBackConfig
from game.tasks import CorsiStrategy, DigitSpanStrategy, NBackStrategy
from game.tasks.base import TaskStrategy

# task_id -> (стратегия, класс конфига, параметры конфига по умолчанию)
TASKS = {
    CorsiStrategy.task_id: (CorsiStrategy, CorsiConfig, {}),
    NBackStrategy.task_id: (NBackStrategy, NBackConfig, {}),
    "digit_span_forward": (DigitSpanStrategy, DigitSpanConfig, {"mode": "forward"}),
    "digit_span_backward": (DigitSpanStrategy, DigitSpanConfig, {"mode": "backward"}),
}


def _lookup(task_id: str):
    if task_id not in TASKS:
        raise ConfigError(f"Unsupported task_id: {task_id}")
    return TASKS[task_id]


def create_strategy(task_id: str, config: Optional[object] = None) -> TaskStrategy:
    strategy_cls, config_cls, defaults = _lookup(task_id)
    if config is None:
        config = config_cls(**defaults)
    if not isinstance(config, config_cls):
        raise ConfigError(f"{task_id} expects {config_cls.__name__}, got {type(config).__name__}")
    if config.task_id != task_id:
        raise ConfigError(f"config is for {config.task_id}, not {task_id}")
    return strategy_cls(config)


def default_config(task_id: str):
    _, config_cls, defaults = _lookup(task_id)
    return config_cls(**defaults)
