import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "MINDPLAY_"


@dataclass(frozen=True)
class Settings:
    api_key: str
    db_path: Path
    # сколько результатов принимаем за один POST
    max_batch: int = 500


def _env(name: str, default: str = "") -> str:
    return os.getenv(ENV_PREFIX + name, default).strip()


def load_settings() -> Settings:
    """Настройки backend из переменных окружения MINDPLAY_*."""
    root_dir = Path(__file__).resolve().parents[2]
    db_default = root_dir / "backend" / "data" / "results.db"
    db_path = Path(_env("DB_PATH") or str(db_default)).expanduser()
    try:
        max_batch = int(_env("MAX_BATCH", "500"))
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}MAX_BATCH must be an integer") from None
    return Settings(api_key=_env("API_KEY"), db_path=db_path, max_batch=max(1, max_batch))
