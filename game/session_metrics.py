from __future__ import annotations

from typing import Any, Optional

from data.models import SessionSummary, TrialResult


def task_title(task_id: str) -> str:
    return {
        "corsi": "Corsi Block-Tapping",
        "nback": "N-Back",
        "digit_span_forward": "Digit Span (Forward)",
        "digit_span_backward": "Digit Span (Backward)",
    }.get(task_id, task_id)


def mean_reaction_time(results: list[TrialResult]) -> float:
    # trial-ы без ответа записаны с rt=0, но в среднее не входят
    rts = [r.reaction_time_ms for r in results if r.response is not None]
    if not rts:
        return 0.0
    return sum(rts) / len(rts)


def compute_accuracy(results: list[TrialResult]) -> float:
    if not results:
        return 0.0
    return 100.0 * sum(1 for r in results if r.correct) / len(results)


def count_signal_outcomes(results: list[TrialResult]) -> dict[str, int]:
    hits = misses = false_alarms = correct_rejections = 0
    for r in results:
        responded = r.response is not None
        if r.trial_type == "target":
            if responded:
                hits += 1
            else:
                misses += 1
        elif r.trial_type == "non-target":
            if responded:
                false_alarms += 1
            else:
                correct_rejections += 1
    return {
        "hits": hits,
        "misses": misses,
        "false_alarms": false_alarms,
        "correct_rejections": correct_rejections,
    }


def max_completed_span(results: list[TrialResult], current_span: int) -> int:
    spans = [r.span for r in results if r.correct and r.span is not None]
    return max(spans + [current_span - 1])


def summarize_session(
    results: list[TrialResult],
    score: int,
    details: Optional[dict[str, Any]] = None,
) -> SessionSummary:
    total = len(results)
    correct = sum(1 for r in results if r.correct)
    accuracy = compute_accuracy(results)
    return SessionSummary(
        score=score,
        accuracy=accuracy,
        reaction_time_ms=mean_reaction_time(results),
        total_trials=total,
        correct_trials=correct,
        error_count=total - correct,
        error_rate=(100.0 - accuracy) if total else 0.0,
        details=dict(details or {}),
    )
