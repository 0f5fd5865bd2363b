from __future__ import annotations

import heapq
import logging
import random
import uuid
from collections import deque
from typing import Any, Callable, Iterator, Optional

from config.settings import CorsiConfig, DigitSpanConfig, NBackConfig
from data.logger import JsonlLogger
from data.models import (
    EVENT_AWAITING_RESPONSE,
    PHASE_EXITED,
    PhaseEvent,
    SessionState,
    SessionSummary,
    TrialResult,
)
from game.state_machine import TrialRunner
from game.task_manager import create_strategy

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[list[TrialResult], SessionSummary], None]
# responder(event, state) -> [(задержка после события в мс, ответ), ...]
Responder = Callable[[PhaseEvent, SessionState], list[tuple[int, Any]]]


class Session:
    """Одна запущенная сессия: наружу события, внутрь ответы, в конце один итог."""

    def __init__(
        self,
        runner: TrialRunner,
        session_id: Optional[str] = None,
        event_logger: Optional[JsonlLogger] = None,
    ) -> None:
        self.runner = runner
        self.session_id = session_id or f"s{uuid.uuid4().hex[:12]}"
        self.event_logger = event_logger
        self.now_ms: int = 0
        self._queue: deque[PhaseEvent] = deque()
        self._callbacks: list[CompletionCallback] = []
        self._completed = False

    @property
    def task_id(self) -> str:
        return self.runner.strategy.task_id

    @property
    def state(self) -> SessionState:
        return self.runner.state

    @property
    def results(self) -> list[TrialResult]:
        return list(self.runner.results)

    @property
    def summary(self) -> Optional[SessionSummary]:
        return self.runner.summary

    def is_finished(self) -> bool:
        return self.runner.is_finished()

    def start(self, now_ms: int = 0) -> list[PhaseEvent]:
        self.now_ms = now_ms
        return self._publish(self.runner.start(now_ms))

    def update(self, now_ms: int) -> list[PhaseEvent]:
        self.now_ms = max(self.now_ms, now_ms)
        return self._publish(self.runner.update(now_ms))

    def respond(self, response: Any, now_ms: int) -> list[PhaseEvent]:
        self.now_ms = max(self.now_ms, now_ms)
        return self._publish(self.runner.respond(response, now_ms))

    def fire(self, token: int, now_ms: int) -> list[PhaseEvent]:
        self.now_ms = max(self.now_ms, now_ms)
        return self._publish(self.runner.fire(token, now_ms))

    def exit(self) -> None:
        self.runner.exit()
        self._queue.clear()

    def drain(self) -> list[PhaseEvent]:
        """События с прошлого drain, от старых к новым."""
        events = list(self._queue)
        self._queue.clear()
        return events

    def __iter__(self) -> Iterator[PhaseEvent]:
        return iter(self.drain())

    def on_complete(self, callback: CompletionCallback) -> None:
        if self._completed:
            self._invoke(callback)
            return
        self._callbacks.append(callback)

    def stream(self, responder: Responder) -> Iterator[PhaseEvent]:
        """
        Проигрываем сессию на собственной шкале времени и отдаём все события.

        responder спрашиваем один раз на каждый awaiting_response; его ответы
        доставляются со своими задержками, если раньше не наступил дедлайн фазы.
        Поток кончается на session_complete или раньше, если из сессии вышли.
        """
        pending: list[tuple[int, int, Any]] = []
        order = 0
        while True:
            for event in self.drain():
                if event.kind == EVENT_AWAITING_RESPONSE:
                    for delay_ms, value in responder(event, self.state):
                        heapq.heappush(pending, (event.at_ms + delay_ms, order, value))
                        order += 1
                yield event
                if self.runner.get_phase() == PHASE_EXITED:
                    return

            if self.is_finished():
                return

            timer = self.runner.pending_timer
            if pending and (timer is None or pending[0][0] < timer.due_ms):
                at_ms, _, value = heapq.heappop(pending)
                self.respond(value, at_ms)
            elif timer is not None:
                # ответы, опоздавшие к своему окну, уже не нужны
                pending = [p for p in pending if p[0] > timer.due_ms]
                heapq.heapify(pending)
                self.update(timer.due_ms)
            else:
                return

    def _publish(self, events: list[PhaseEvent]) -> list[PhaseEvent]:
        for event in events:
            self._queue.append(event)
            if self.event_logger is not None:
                record = {"session_id": self.session_id, "task_id": self.task_id}
                record.update(event.to_dict())
                self.event_logger.write(record)

        if not self._completed and self.runner.summary is not None:
            self._completed = True
            callbacks, self._callbacks = self._callbacks, []
            for callback in callbacks:
                self._invoke(callback)
        return events

    def _invoke(self, callback: CompletionCallback) -> None:
        try:
            callback(list(self.runner.results), self.runner.summary)
        except Exception:
            logger.exception("completion callback failed for session %s", self.session_id)


def start_session(
    config: CorsiConfig | NBackConfig | DigitSpanConfig,
    seed: Optional[int] = None,
    now_ms: int = 0,
    event_logger: Optional[JsonlLogger] = None,
    session_id: Optional[str] = None,
) -> Session:
    """Проверяем конфиг, запускаем trial 0 и отдаём сессию."""
    strategy = create_strategy(config.task_id, config)
    runner = TrialRunner(strategy, random.Random(seed))
    session = Session(runner, session_id=session_id, event_logger=event_logger)
    session.start(now_ms)
    return session
