import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class GameAgg:
    game_id: str
    results: int = 0
    score_sum: float = 0.0
    accuracy_sum: float = 0.0
    rt_sum: float = 0.0
    rt_count: int = 0
    best_score: float = 0.0

    def add_result(self, score: float, accuracy: float, reaction_time: float) -> None:
        self.results += 1
        self.score_sum += score
        self.accuracy_sum += accuracy
        # rt=0 значит "ни одного ответа", в среднее не берём
        if reaction_time > 0:
            self.rt_sum += reaction_time
            self.rt_count += 1
        self.best_score = max(self.best_score, score)

    def to_row(self) -> dict[str, Any]:
        count = max(1, self.results)
        mean_rt = (self.rt_sum / self.rt_count) if self.rt_count > 0 else 0.0
        return {
            "game_id": self.game_id,
            "count": int(self.results),
            "avg_score": round(self.score_sum / count, 2),
            "best_score": round(self.best_score, 2),
            "avg_accuracy": round(self.accuracy_sum / count, 2),
            "avg_reaction_time": round(mean_rt, 1),
        }


def build_stats(db_path: Path) -> dict[str, Any]:
    empty = {"total_users": 0, "total_results": 0, "games": [], "daily": []}
    if not db_path.exists():
        return empty

    with sqlite3.connect(f"file:{db_path}?mode=ro", uri=True) as conn:
        total_users = conn.execute("SELECT COUNT(*) FROM users WHERE role = 'student'").fetchone()[0]
        rows = conn.execute(
            """
            SELECT game_id, score, accuracy, reaction_time, completed_at
            FROM game_results
            ORDER BY completed_at ASC
            """
        ).fetchall()

    games: dict[str, GameAgg] = {}
    daily: dict[str, int] = {}
    for game_id, score, accuracy, reaction_time, completed_at in rows:
        agg = games.setdefault(game_id, GameAgg(game_id=game_id))
        agg.add_result(float(score or 0.0), float(accuracy or 0.0), float(reaction_time or 0.0))
        day = datetime.fromtimestamp(int(completed_at) / 1000, tz=timezone.utc).date().isoformat()
        daily[day] = daily.get(day, 0) + 1

    game_rows = [agg.to_row() for agg in games.values()]
    game_rows.sort(key=lambda r: (-int(r["count"]), str(r["game_id"])))
    return {
        "total_users": int(total_users),
        "total_results": len(rows),
        "games": game_rows,
        "daily": [{"date": day, "count": count} for day, count in sorted(daily.items())],
    }
