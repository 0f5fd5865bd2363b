import random
from typing import Sequence

from config.settings import ConfigError


def generate_span_sequence(rng: random.Random, length: int, grid_size: int = 9) -> list[int]:
    """
    Последовательность клеток для corsi.

    - length разных клеток из range(grid_size)
    - повторов внутри одной последовательности нет
    """
    if not 1 <= length <= grid_size:
        raise ConfigError(f"span {length} does not fit a grid of {grid_size} cells")
    return rng.sample(range(grid_size), length)


def generate_nback_sequence(
    rng: random.Random,
    total_trials: int,
    n: int,
    target_probability: float,
    symbols: Sequence[int] = tuple(range(1, 10)),
) -> list[int]:
    """
    Весь ряд для n-back на одну сессию.

    - с позиции n: с вероятностью target_probability повторяем символ n шагов назад (target)
    - иначе берём любой символ, кроме символа n шагов назад,
      чтобы случайные совпадения не размывали долю target-ов
    - первые n позиций: просто случайные символы
    """
    pool = list(dict.fromkeys(symbols))
    if total_trials < 1:
        raise ConfigError(f"total_trials must be positive, got {total_trials}")
    if n < 1:
        raise ConfigError(f"n must be positive, got {n}")
    if len(pool) < 2:
        raise ConfigError("n-back needs at least two distinct symbols")

    seq: list[int] = []
    for i in range(total_trials):
        if i < n:
            seq.append(rng.choice(pool))
            continue

        back = seq[i - n]
        if rng.random() < target_probability:
            seq.append(back)
        else:
            seq.append(rng.choice([s for s in pool if s != back]))

    return seq


def nback_targets(sequence: Sequence[int], n: int) -> list[bool]:
    """target-позиция: символ совпадает с символом n шагов назад."""
    return [i >= n and sequence[i] == sequence[i - n] for i in range(len(sequence))]


def generate_digit_sequence(rng: random.Random, length: int) -> list[int]:
    """Цифры 0-9 для digit span; повторы разрешены."""
    if length < 1:
        raise ConfigError(f"span must be positive, got {length}")
    return [rng.randrange(10) for _ in range(length)]
