"""Unit tests for the trial runner state machine."""
import random

import pytest

from config.settings import ConfigError, CorsiConfig, NBackConfig, SpanTiming
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
)
from game.state_machine import SessionError, TrialRunner
from game.tasks import NBackStrategy

# default span timing: cells at 0 and 1000, last off 1700, recall opens at 2500
RECALL_OPENS_2 = 2500
RECALL_OPENS_3 = 3500


def _kinds(events):
    return [e.kind for e in events]


# ─────────────────────────────────────────────────────────────────────────────
# Corsi
# ─────────────────────────────────────────────────────────────────────────────

class TestCorsiRunner:
    def test_presentation_plays_each_cell_then_opens_recall(self, corsi_runner):
        runner = corsi_runner([[3, 5]])
        events = runner.start(0)
        assert _kinds(events) == [EVENT_STIMULUS_ON]
        assert events[0].payload == {"item": 3, "position": 0}
        assert runner.get_phase() == PHASE_PRESENTING

        events = runner.update(RECALL_OPENS_2)
        assert _kinds(events) == [
            EVENT_STIMULUS_OFF,
            EVENT_STIMULUS_ON,
            EVENT_STIMULUS_OFF,
            EVENT_AWAITING_RESPONSE,
        ]
        assert [e.at_ms for e in events] == [700, 1000, 1700, 2500]
        assert events[1].payload["item"] == 5
        assert runner.get_phase() == PHASE_RESPONDING

    def test_correct_replay_increments_span(self, corsi_runner):
        runner = corsi_runner([[3, 5], [0, 1, 2]])
        runner.start(0)
        runner.update(RECALL_OPENS_2)
        runner.respond(3, 2600)
        events = runner.respond(5, 2800)

        assert _kinds(events) == [EVENT_TRIAL_SCORED]
        result = runner.results[0]
        assert result.correct is True
        assert result.stimulus == "3,5"
        assert result.response == "3,5"
        assert result.span == 2
        assert result.reaction_time_ms == 2800
        assert runner.state.span == 3
        assert runner.get_phase() == PHASE_SCORED

        events = runner.update(3800)
        assert events[0].kind == EVENT_STIMULUS_ON
        assert runner.state.stimulus == [0, 1, 2]

    def test_two_failures_end_session_with_last_completed_span(self, corsi_runner):
        runner = corsi_runner([[3, 5], [1, 2, 3], [4, 5, 6]])
        runner.start(0)
        runner.update(RECALL_OPENS_2)
        runner.respond(3, 2600)
        runner.respond(5, 2700)

        # trial 1 starts at 3700, span 3
        runner.update(3700 + RECALL_OPENS_3)
        for t, cell in enumerate([1, 2, 4]):
            runner.respond(cell, 7300 + t * 100)
        assert runner.results[-1].correct is False
        assert runner.state.consecutive_failures == 1
        assert runner.state.span == 3

        next_onset = runner.pending_timer.due_ms
        runner.update(next_onset + RECALL_OPENS_3)
        events = []
        for t, cell in enumerate([6, 5, 4]):
            events += runner.respond(cell, next_onset + RECALL_OPENS_3 + 100 + t * 100)

        assert _kinds(events) == [EVENT_TRIAL_SCORED, EVENT_SESSION_COMPLETE]
        assert runner.get_phase() == PHASE_TERMINAL
        assert runner.summary.score == 2
        assert runner.summary.accuracy == pytest.approx(100 / 3)
        assert runner.pending_timer is None
        assert len(runner.results) == 3

    def test_recall_timeout_scores_partial_replay_incorrect(self, corsi_runner):
        runner = corsi_runner([[3, 5], [3, 5]])
        runner.start(0)
        runner.update(RECALL_OPENS_2)
        runner.respond(3, 2600)
        events = runner.update(RECALL_OPENS_2 + 30000)

        assert _kinds(events) == [EVENT_TRIAL_SCORED]
        result = runner.results[0]
        assert result.correct is False
        assert result.response == "3"

    def test_recall_timeout_without_taps_has_no_response(self, corsi_runner):
        runner = corsi_runner([[3, 5], [3, 5]])
        runner.start(0)
        runner.update(RECALL_OPENS_2 + 30000)
        result = runner.results[0]
        assert result.response is None
        assert result.reaction_time_ms == 0.0

    def test_taps_outside_recall_or_grid_are_ignored(self, corsi_runner):
        runner = corsi_runner([[3, 5]])
        runner.start(0)
        assert runner.respond(3, 100) == []
        runner.update(RECALL_OPENS_2)
        runner.respond(9, 2600)
        runner.respond(-1, 2600)
        runner.respond(True, 2600)
        runner.respond("3", 2600)
        assert runner.state.entered == []

    def test_full_grid_success_ends_session(self, corsi_runner):
        config = CorsiConfig(grid_size=3, start_span=3)
        runner = corsi_runner([[2, 0, 1]], config)
        runner.start(0)
        runner.update(RECALL_OPENS_3)
        for t, cell in enumerate([2, 0, 1]):
            events = runner.respond(cell, 3600 + t * 100)
        assert events[-1].kind == EVENT_SESSION_COMPLETE
        assert runner.summary.score == 3
        assert runner.state.span == 3

    def test_trial_budget_caps_results(self, corsi_runner):
        config = CorsiConfig(max_trials=2)
        runner = corsi_runner([[0, 1], [0, 1, 2], [0, 1, 2, 3]], config)
        runner.start(0)
        runner.update(RECALL_OPENS_2)
        runner.respond(0, 2600)
        runner.respond(1, 2700)
        onset = runner.pending_timer.due_ms
        runner.update(onset + RECALL_OPENS_3)
        for cell in [0, 1, 2]:
            runner.respond(cell, onset + RECALL_OPENS_3 + 100)
        assert runner.get_phase() == PHASE_TERMINAL
        assert len(runner.results) == 2
        assert runner.summary.score == 3

    def test_custom_timing_is_used(self, corsi_runner):
        timing = SpanTiming(stimulus_ms=100, gap_ms=50, response_delay_ms=0, response_window_ms=1000)
        runner = corsi_runner([[4]], CorsiConfig(timing=timing))
        runner.start(0)
        events = runner.update(150)
        assert _kinds(events) == [EVENT_STIMULUS_OFF, EVENT_AWAITING_RESPONSE]
        assert events[-1].at_ms == 150


# ─────────────────────────────────────────────────────────────────────────────
# N-back
# ─────────────────────────────────────────────────────────────────────────────

class TestNBackRunner:
    # trials start at 0, 2000, 4000 (1500 window + 500 feedback)

    def test_stimulus_and_window_open_together(self, nback_runner):
        runner = nback_runner([4, 7, 4])
        events = runner.start(0)
        assert _kinds(events) == [EVENT_STIMULUS_ON, EVENT_AWAITING_RESPONSE]
        assert events[0].payload["item"] == 4
        assert events[1].payload["window_ms"] == 1500
        assert runner.get_phase() == PHASE_RESPONDING

    def test_target_with_response_is_hit(self, nback_runner):
        runner = nback_runner([4, 7, 4])
        runner.start(0)
        runner.update(4000)
        assert runner.state.trial_index == 2
        assert runner.respond("SPACE", 4300) == []

        events = runner.update(5500)
        assert _kinds(events) == [EVENT_STIMULUS_OFF, EVENT_TRIAL_SCORED, EVENT_SESSION_COMPLETE]
        result = runner.results[2]
        assert result.trial_type == "target"
        assert result.correct is True
        assert result.response == "SPACE"
        assert result.reaction_time_ms == 300
        assert result.stimulus == "4 (4)"
        assert runner.summary.details["hits"] == 1

    def test_target_without_response_is_miss(self, nback_runner):
        runner = nback_runner([4, 7, 4])
        runner.start(0)
        runner.update(5500)
        result = runner.results[2]
        assert result.trial_type == "target"
        assert result.correct is False
        assert result.response is None
        assert result.reaction_time_ms == 0.0
        assert runner.summary.details["misses"] == 1

    def test_non_target_rejection_and_false_alarm(self, nback_runner):
        runner = nback_runner([4, 7, 4])
        runner.start(0)
        runner.respond("SPACE", 200)
        runner.update(2000)
        first, = runner.results
        assert first.trial_type == "non-target"
        assert first.stimulus == "4 (N/A)"
        assert first.correct is False

        runner.update(3500)
        assert runner.results[1].correct is True
        assert runner.results[1].response is None

    def test_only_first_press_counts(self, nback_runner):
        runner = nback_runner([4, 7, 4])
        runner.start(0)
        runner.update(4000)
        runner.respond("SPACE", 4200)
        runner.respond("SPACE", 4900)
        runner.update(5500)
        assert runner.results[2].reaction_time_ms == 200

    def test_press_after_window_lands_in_next_trial(self, nback_runner):
        runner = nback_runner([4, 7, 4])
        runner.start(0)
        runner.respond("SPACE", 2100)
        assert runner.results[0].response is None
        assert runner.state.trial_index == 1
        assert runner.state.responded is True

    def test_session_ends_after_total_trials(self, nback_runner):
        runner = nback_runner([1, 2, 3, 4, 5, 6])
        runner.start(0)
        runner.update(10 ** 6)
        assert runner.get_phase() == PHASE_TERMINAL
        assert len(runner.results) == 6
        assert runner.summary.score == 6
        assert runner.summary.reaction_time_ms == 0.0


# ─────────────────────────────────────────────────────────────────────────────
# Timers, exit, config
# ─────────────────────────────────────────────────────────────────────────────

class TestTimerTokens:
    def test_stale_token_is_ignored(self, corsi_runner):
        runner = corsi_runner([[3, 5]])
        runner.start(0)
        stale = runner.pending_timer.token
        runner.update(700)
        assert runner.fire(stale, 800) == []
        assert runner.state.present_index == 1

    def test_current_token_advances(self, corsi_runner):
        runner = corsi_runner([[3, 5]])
        runner.start(0)
        events = runner.fire(runner.pending_timer.token, 700)
        assert _kinds(events) == [EVENT_STIMULUS_OFF]
        events = runner.fire(runner.pending_timer.token, 1000)
        assert _kinds(events) == [EVENT_STIMULUS_ON]

    def test_response_invalidates_timeout_token(self, nback_runner):
        runner = nback_runner([4, 7, 4], NBackConfig(total_trials=3))
        runner.start(0)
        timeout = runner.pending_timer.token
        runner.update(1500)
        assert runner.fire(timeout, 1500) == []
        assert len(runner.results) == 1


class TestExit:
    def test_exit_cancels_timer_and_skips_summary(self, nback_runner):
        runner = nback_runner([4, 7, 4])
        runner.start(0)
        token = runner.pending_timer.token
        runner.exit()
        assert runner.get_phase() == PHASE_EXITED
        assert runner.pending_timer is None
        assert runner.fire(token, 1500) == []
        assert runner.update(10 ** 6) == []
        assert runner.respond("SPACE", 100) == []
        assert runner.summary is None

    def test_exited_runner_cannot_be_started(self, nback_runner):
        runner = nback_runner([4, 7, 4])
        runner.exit()
        with pytest.raises(SessionError):
            runner.start(0)
        assert runner.get_phase() == PHASE_EXITED
        assert runner.pending_timer is None
        assert runner.update(10 ** 6) == []
        assert runner.summary is None

    def test_exit_after_terminal_keeps_terminal(self, nback_runner):
        runner = nback_runner([1, 2])
        runner.start(0)
        runner.update(10 ** 6)
        runner.exit()
        assert runner.get_phase() == PHASE_TERMINAL


class TestConfigValidation:
    @pytest.mark.parametrize(
        "config",
        [
            NBackConfig(total_trials=0),
            NBackConfig(n=0),
            NBackConfig(target_probability=1.5),
            NBackConfig(symbols=(3,)),
        ],
    )
    def test_bad_nback_config_rejected_before_any_timer(self, config):
        runner = TrialRunner(NBackStrategy(config), random.Random(0))
        with pytest.raises(ConfigError):
            runner.start(0)
        assert runner.pending_timer is None
        assert runner.timer.token == 0
        assert runner.results == []

    @pytest.mark.parametrize(
        "config",
        [
            CorsiConfig(start_span=0),
            CorsiConfig(start_span=10),
            CorsiConfig(max_trials=0),
            CorsiConfig(timing=SpanTiming(response_window_ms=0)),
            CorsiConfig(timing=SpanTiming(stimulus_ms=-1)),
        ],
    )
    def test_bad_corsi_config_rejected(self, corsi_runner, config):
        runner = corsi_runner([[0, 1]], config)
        with pytest.raises(ConfigError):
            runner.start(0)
        assert runner.pending_timer is None

    def test_runner_cannot_restart(self, nback_runner):
        runner = nback_runner([1, 2, 3])
        runner.start(0)
        with pytest.raises(SessionError):
            runner.start(10)


class TestEventPayloads:
    def test_awaiting_response_carries_task_parameters(self, nback_runner, corsi_runner):
        nback = nback_runner([4, 7, 4, 1], NBackConfig(total_trials=4, n=3))
        events = nback.start(0)
        assert events[-1].payload["n"] == 3

        corsi = corsi_runner([[0, 1]])
        corsi.start(0)
        events = corsi.update(RECALL_OPENS_2)
        assert events[-1].payload["grid_size"] == 9

    def test_summary_payload_is_a_deep_copy(self, nback_runner):
        runner = nback_runner([4, 7, 4])
        runner.start(0)
        events = runner.update(10 ** 6)
        payload = events[-1].payload["summary"]
        payload["details"]["hits"] = 99
        assert runner.summary.details["hits"] == 0
