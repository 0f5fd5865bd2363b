from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from data.results_client import ResultsClient

ENV_URL = "MINDPLAY_RESULTS_URL"
ENV_KEY = "MINDPLAY_API_KEY"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientSettings:
    endpoint_url: str = ""
    api_key: str = ""

    @property
    def upload_enabled(self) -> bool:
        return bool(self.endpoint_url and self.api_key)

    def make_client(self, **kwargs) -> ResultsClient:
        return ResultsClient(endpoint_url=self.endpoint_url, api_key=self.api_key, **kwargs)


def _checked_url(url: str, source: str) -> str:
    # кривой адрес лучше выключить сразу, чем копить очередь, которая никуда не уйдёт
    url = url.strip()
    if url and not ResultsClient.is_valid_endpoint(url):
        logger.warning("ignoring results endpoint %r from %s: not an http(s) URL", url, source)
        return ""
    return url


def load_client_settings(
    settings_path: Path,
    default_url: str = "",
    default_key: str = "",
) -> ClientSettings:
    """
    Настройки отправки результатов.

    Порядок: переменные окружения, потом файл, потом значения по умолчанию.
    Если файла нет, он создаётся с тем, что получилось.
    """
    env_url = _checked_url(os.getenv(ENV_URL, ""), ENV_URL)
    env_key = os.getenv(ENV_KEY, "").strip()

    fallback = ClientSettings(
        endpoint_url=env_url or _checked_url(default_url, "defaults"),
        api_key=env_key or default_key.strip(),
    )

    if not settings_path.exists():
        save_client_settings(settings_path, fallback)
        return fallback

    try:
        payload = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.warning("client settings at %s are unreadable, using defaults", settings_path)
        return fallback
    if not isinstance(payload, dict):
        return fallback

    file_url = _checked_url(str(payload.get("endpoint_url", "")), str(settings_path))
    file_key = str(payload.get("api_key", "")).strip()
    return ClientSettings(
        endpoint_url=env_url or file_url or fallback.endpoint_url,
        api_key=env_key or file_key or fallback.api_key,
    )


def save_client_settings(settings_path: Path, settings: ClientSettings) -> None:
    payload = {
        "endpoint_url": settings.endpoint_url.strip(),
        "api_key": settings.api_key.strip(),
    }
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    settings_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
