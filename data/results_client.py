import json
import logging
import secrets
import time
from pathlib import Path
from typing import Any, Callable, Optional
from urllib import error, request
from urllib.parse import urlparse

from data.models import GameResult, SessionSummary, TrialResult

logger = logging.getLogger(__name__)


def new_result_id() -> str:
    return f"result_{secrets.token_hex(16)}"


def build_game_result(
    user_id: str,
    game_id: str,
    results: list[TrialResult],
    summary: SessionSummary,
    completed_at: Optional[int] = None,
    result_id: Optional[str] = None,
) -> GameResult:
    details: dict[str, Any] = {"trials": [r.to_dict() for r in results]}
    details.update(summary.details)
    return GameResult(
        id=result_id or new_result_id(),
        user_id=user_id,
        game_id=game_id,
        score=float(summary.score),
        accuracy=round(summary.accuracy, 2),
        reaction_time=round(summary.reaction_time_ms, 1),
        error_count=summary.error_count,
        error_rate=round(summary.error_rate, 2),
        details=details,
        completed_at=completed_at if completed_at is not None else int(time.time() * 1000),
    )


# исход одной попытки отправки
SENT = "sent"
RETRY = "retry"
REJECTED = "rejected"

# эти коды имеет смысл повторить позже, остальные 4xx сервер не примет никогда
RETRYABLE_HTTP = (408, 429)


class ResultsClient:
    """
    Отправляет готовые результаты игр на backend.

    Результат сначала пишется в очередь на диске. Если сервер недоступен
    (нет сети, 5xx, 408/429), он остаётся в очереди до следующего flush.
    Если сервер его отверг (остальные 4xx), он уходит в rejected-файл,
    чтобы не блокировать очередь. В работающую сессию отсюда ничего не летит.
    """

    def __init__(
        self,
        endpoint_url: str,
        api_key: str,
        client_version: str = "mindplay-dev",
        queue_path: str = "data/results_queue.jsonl",
        rejected_path: Optional[str] = None,
        max_batch_size: int = 50,
        timeout_sec: float = 2.5,
    ) -> None:
        self.endpoint_url = endpoint_url.strip()
        self.api_key = api_key.strip()
        self.client_version = client_version
        self.max_batch_size = max(1, max_batch_size)
        self.timeout_sec = max(0.5, timeout_sec)
        self.enabled = bool(self.endpoint_url and self.api_key)
        self.queue_path = Path(queue_path)
        self.queue_path.parent.mkdir(parents=True, exist_ok=True)
        if rejected_path is None:
            self.rejected_path = self.queue_path.with_name(self.queue_path.stem + "_rejected.jsonl")
        else:
            self.rejected_path = Path(rejected_path)
        self.queue: list[dict[str, Any]] = self._load_queue()
        self.last_error: str = ""
        self.last_success_ts: float = 0.0

    def submit(self, result: GameResult) -> bool:
        self.queue.append(result.to_dict())
        self._save_queue()
        return self.flush()

    def flush(self) -> bool:
        """
        Пытаемся отправить всю очередь.

        True, если всё отправлено и ничего не отвергнуто.
        """
        if not self.queue:
            return True
        if not self.enabled:
            self.last_error = "disabled"
            return False

        rejected_any = False
        batch_size = self.max_batch_size
        while self.queue:
            batch = self.queue[:batch_size]
            outcome = self._post_batch(batch)
            if outcome == RETRY:
                return False
            if outcome == REJECTED and len(batch) > 1:
                # пачка принимается целиком или никак: до конца flush шлём по одному
                batch_size = 1
                continue
            if outcome == REJECTED:
                self._reject(batch[0])
                rejected_any = True
            self.queue = self.queue[len(batch) :]
            self._save_queue()

        if not rejected_any:
            self.last_error = ""
            self.last_success_ts = time.time()
        return not rejected_any

    def _post_batch(self, batch: list[dict[str, Any]]) -> str:
        body = {
            "api_key": self.api_key,
            "client_version": self.client_version,
            "results": batch,
        }
        payload = json.dumps(body, ensure_ascii=False).encode("utf-8")
        req = request.Request(
            self.endpoint_url,
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with request.urlopen(req, timeout=self.timeout_sec) as resp:
                raw = resp.read().decode("utf-8") or "{}"
                data = json.loads(raw)
        except error.HTTPError as exc:
            self.last_error = f"http_{exc.code}"
            if 400 <= exc.code < 500 and exc.code not in RETRYABLE_HTTP:
                logger.warning("results batch of %d rejected with HTTP %s", len(batch), exc.code)
                return REJECTED
            logger.warning("results upload failed with HTTP %s, will retry", exc.code)
            return RETRY
        except (error.URLError, TimeoutError, OSError, json.JSONDecodeError) as exc:
            self.last_error = "connection_error"
            logger.warning("results upload failed: %s", exc)
            return RETRY

        if not isinstance(data, dict) or data.get("ok") is not True:
            self.last_error = "invalid_server_response"
            logger.warning("results upload got unexpected response: %r", data)
            return RETRY
        return SENT

    def _reject(self, item: dict[str, Any]) -> None:
        logger.error(
            "result %s rejected by server (%s), moved to %s",
            item.get("id"),
            self.last_error,
            self.rejected_path,
        )
        record = {"error": self.last_error, "rejected_at": int(time.time() * 1000), "result": item}
        self.rejected_path.parent.mkdir(parents=True, exist_ok=True)
        with self.rejected_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")

    def rejected(self) -> list[dict[str, Any]]:
        if not self.rejected_path.exists():
            return []
        with self.rejected_path.open("r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    @staticmethod
    def is_valid_endpoint(url: str) -> bool:
        parsed = urlparse((url or "").strip())
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)

    def queue_size(self) -> int:
        return len(self.queue)

    def _load_queue(self) -> list[dict[str, Any]]:
        if not self.queue_path.exists():
            return []
        items: list[dict[str, Any]] = []
        try:
            with self.queue_path.open("r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    rec = json.loads(line)
                    if isinstance(rec, dict):
                        items.append(rec)
        except (OSError, json.JSONDecodeError):
            logger.warning("results queue at %s is unreadable, starting empty", self.queue_path)
            return []
        return items

    def _save_queue(self) -> None:
        if not self.queue:
            self.queue_path.unlink(missing_ok=True)
            return
        tmp = self.queue_path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            for item in self.queue:
                f.write(json.dumps(item, ensure_ascii=False) + "\n")
        tmp.replace(self.queue_path)


def completion_handler(
    client: ResultsClient,
    user_id: str,
    game_id: str,
) -> Callable[[list[TrialResult], SessionSummary], None]:
    """Callback для Session.on_complete: собирает один GameResult и отправляет его."""

    def _handle(results: list[TrialResult], summary: SessionSummary) -> None:
        result = build_game_result(user_id, game_id, results, summary)
        if not client.submit(result):
            logger.info("result %s not delivered yet (%s)", result.id, client.last_error)

    return _handle
