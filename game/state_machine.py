import random
from dataclasses import asdict
from typing import List, Optional

from data.models import (
    EVENT_AWAITING_RESPONSE,
    EVENT_SESSION_COMPLETE,
    EVENT_STIMULUS_OFF,
    EVENT_STIMULUS_ON,
    EVENT_TRIAL_SCORED,
    PHASE_EXITED,
    PHASE_PRESENTING,
    PHASE_RESPONDING,
    PHASE_SCORED,
    PHASE_TERMINAL,
    PhaseEvent,
    SessionState,
    SessionSummary,
    TrialResult,
)
from game.session_metrics import summarize_session
from game.tasks.base import TaskStrategy
from game.timers import PendingTimer, TimerSlot

# Какой таймер сейчас взведён
TIMER_ITEM_OFF = "item_off"            # погасить текущую клетку
TIMER_NEXT_ITEM = "next_item"          # показать следующую клетку
TIMER_OPEN_RESPONSE = "open_response"  # пора ждать ответ
TIMER_RESPONSE_TIMEOUT = "response_timeout"
TIMER_NEXT_TRIAL = "next_trial"


class SessionError(RuntimeError):
    """Сессию дёргают в невозможном порядке (повторный start, start после exit)."""


class TrialRunner:
    """
    Один "мозг" на сессию: гоняет trial-ы по фазам для любой задачи.

    Идея:
    - фазы: presenting -> responding -> scored -> (presenting | terminal)
    - время всегда передаёт вызывающий код (now_ms), сам runner не спит
    - у сессии ровно один взведённый таймер; каждый переход меняет токен,
      поэтому старый callback не может сдвинуть уже ушедшую вперёд сессию
    - что показывать и как оценивать ответ, решает TaskStrategy
    """

    def __init__(self, strategy: TaskStrategy, rng: random.Random) -> None:
        self.strategy = strategy
        self.timing = strategy.timing
        self.rng = rng

        self.state = SessionState(task_id=strategy.task_id)
        self.timer = TimerSlot()

        # все завершённые trial-ы по порядку; только дописываем
        self.results: List[TrialResult] = []
        self.summary: Optional[SessionSummary] = None
        self.started = False

    def start(self, now_ms: int) -> List[PhaseEvent]:
        """
        Запускаем сессию и первый trial.

        Кривой конфиг падает здесь с ConfigError, до того, как взведён хоть один таймер.
        """
        if self.started:
            raise SessionError("session already started")
        if self.state.phase == PHASE_EXITED:
            raise SessionError("session was exited before start")
        self.strategy.validate()
        self.started = True

        self.strategy.start(self.state, self.rng)
        events: List[PhaseEvent] = []
        self._begin_trial(now_ms, events)
        return events

    def get_phase(self) -> str:
        return self.state.phase

    def is_finished(self) -> bool:
        return self.state.phase in (PHASE_TERMINAL, PHASE_EXITED)

    @property
    def pending_timer(self) -> Optional[PendingTimer]:
        """Для тех, кто ставит настоящие таймеры: когда и с каким токеном вызвать fire()."""
        return self.timer.pending

    def update(self, now_ms: int) -> List[PhaseEvent]:
        """
        Вызывается каждый кадр (или когда угодно).

        Если вызвали поздно, прогоняем все просроченные фазы по очереди,
        каждую в её собственный момент времени.
        """
        events: List[PhaseEvent] = []
        while True:
            timer = self.timer.pop_due(now_ms)
            if timer is None:
                return events
            self._on_timer(timer.kind, timer.due_ms, events)

    def fire(self, token: int, now_ms: int) -> List[PhaseEvent]:
        """Callback внешнего таймера. Чужой/старый токен просто игнорируем."""
        timer = self.timer.take(token)
        if timer is None:
            return []
        events: List[PhaseEvent] = []
        self._on_timer(timer.kind, now_ms, events)
        return events

    def respond(self, response, now_ms: int) -> List[PhaseEvent]:
        """
        Ответ игрока: клетка для corsi, нажатие для n-back.

        Вне фазы responding ответ игнорируется.
        """
        events = self.update(now_ms)
        if self.state.phase != PHASE_RESPONDING:
            return events
        if not self.strategy.accept_response(self.state, response):
            return events

        self.state.response_ms = now_ms
        if self.strategy.response_complete(self.state):
            self._score_trial(now_ms, events)
        return events

    def exit(self) -> None:
        """Выход до конца сессии: гасим таймер, итог не считаем."""
        if self.is_finished():
            return
        self.timer.cancel()
        self.state.phase = PHASE_EXITED

    # --------------------------
    # переходы
    # --------------------------

    def _on_timer(self, kind: str, now_ms: int, events: List[PhaseEvent]) -> None:
        state = self.state

        if kind == TIMER_ITEM_OFF:
            self._emit(events, EVENT_STIMULUS_OFF, now_ms, {
                "item": state.stimulus[state.present_index],
                "position": state.present_index,
            })
            state.present_index += 1
            self.timer.schedule(now_ms + self.timing.gap_ms, TIMER_NEXT_ITEM)
            return

        if kind == TIMER_NEXT_ITEM:
            if state.present_index < len(state.stimulus):
                self._show_item(now_ms, events)
            else:
                self.timer.schedule(now_ms + self.timing.response_delay_ms, TIMER_OPEN_RESPONSE)
            return

        if kind == TIMER_OPEN_RESPONSE:
            self._open_response(now_ms, events)
            return

        if kind == TIMER_RESPONSE_TIMEOUT:
            # окно закрылось: что успели ответить, то и оцениваем
            if self.strategy.show_during_response:
                self._emit(events, EVENT_STIMULUS_OFF, now_ms, {"item": state.stimulus[0], "position": 0})
            self._score_trial(now_ms, events)
            return

        if kind == TIMER_NEXT_TRIAL:
            state.trial_index += 1
            self._begin_trial(now_ms, events)
            return

        # Если таймер вдруг неизвестный, это ошибка в коде
        raise ValueError(f"Unknown timer: {kind}")

    def _begin_trial(self, now_ms: int, events: List[PhaseEvent]) -> None:
        state = self.state
        state.phase = PHASE_PRESENTING
        state.stimulus = self.strategy.next_stimulus(state, self.rng)
        state.present_index = 0
        state.entered = []
        state.responded = False
        state.response_ms = None
        # от этого момента считаем RT
        state.trial_onset_ms = now_ms

        if self.strategy.show_during_response:
            self._emit(events, EVENT_STIMULUS_ON, now_ms, {"item": state.stimulus[0], "position": 0})
            self._open_response(now_ms, events)
        else:
            self._show_item(now_ms, events)

    def _show_item(self, now_ms: int, events: List[PhaseEvent]) -> None:
        state = self.state
        self._emit(events, EVENT_STIMULUS_ON, now_ms, {
            "item": state.stimulus[state.present_index],
            "position": state.present_index,
        })
        self.timer.schedule(now_ms + self.timing.stimulus_ms, TIMER_ITEM_OFF)

    def _open_response(self, now_ms: int, events: List[PhaseEvent]) -> None:
        self.state.phase = PHASE_RESPONDING
        self._emit(events, EVENT_AWAITING_RESPONSE, now_ms, {
            "window_ms": self.timing.response_window_ms,
            "expected": len(self.state.stimulus),
            **self.strategy.prompt(self.state),
        })
        self.timer.schedule(now_ms + self.timing.response_window_ms, TIMER_RESPONSE_TIMEOUT)

    def _score_trial(self, now_ms: int, events: List[PhaseEvent]) -> None:
        state = self.state
        self.timer.cancel()

        correct, trial_type = self.strategy.classify_trial(state)
        response = self.strategy.describe_response(state)

        # нет ответа, rt=0 (в среднее такие trial-ы потом не попадают)
        rt_ms = 0.0
        if response is not None and state.response_ms is not None:
            rt_ms = float(max(0, state.response_ms - state.trial_onset_ms))

        result = TrialResult(
            trial_index=state.trial_index,
            stimulus=self.strategy.describe_stimulus(state),
            response=response,
            correct=correct,
            reaction_time_ms=rt_ms,
            trial_type=trial_type,
            span=self.strategy.trial_span(state),
        )
        self.results.append(result)
        state.phase = PHASE_SCORED
        self.strategy.apply_outcome(state, result)
        self._emit(events, EVENT_TRIAL_SCORED, now_ms, {"result": result.to_dict()})

        if self.strategy.is_session_complete(state, self.results) or len(self.results) >= self.strategy.budget:
            self._finish(now_ms, events)
        else:
            self.timer.schedule(now_ms + self.timing.feedback_ms, TIMER_NEXT_TRIAL)

    def _finish(self, now_ms: int, events: List[PhaseEvent]) -> None:
        state = self.state
        self.timer.cancel()
        state.phase = PHASE_TERMINAL
        self.summary = summarize_session(
            self.results,
            score=self.strategy.score(state, self.results),
            details=self.strategy.details(state, self.results),
        )
        self._emit(events, EVENT_SESSION_COMPLETE, now_ms, {"summary": asdict(self.summary)})

    def _emit(self, events: List[PhaseEvent], kind: str, now_ms: int, payload: dict) -> None:
        events.append(PhaseEvent(kind=kind, trial_index=self.state.trial_index, at_ms=now_ms, payload=payload))
