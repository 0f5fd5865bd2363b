import argparse
import csv
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from backend.app.db import list_results

CSV_HEADERS = [
    "completed_at",
    "user_id",
    "game_id",
    "score",
    "accuracy",
    "reaction_time",
    "error_count",
    "error_rate",
    "result_id",
]


def format_ts(completed_at_ms: Any) -> str:
    dt = datetime.fromtimestamp(int(completed_at_ms) / 1000, tz=timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def result_to_row(result: dict[str, Any]) -> list[Any]:
    return [
        format_ts(result["completed_at"]),
        result["user_id"],
        result["game_id"],
        f"{float(result['score']):.2f}",
        f"{float(result['accuracy']):.2f}",
        f"{float(result['reaction_time']):.0f}",
        "" if result.get("error_count") is None else result["error_count"],
        "" if result.get("error_rate") is None else f"{float(result['error_rate']):.2f}",
        result["id"],
    ]


def trial_rows(result: dict[str, Any]) -> list[dict[str, Any]]:
    details = result.get("details") or {}
    trials = details.get("trials") if isinstance(details, dict) else None
    if not isinstance(trials, list):
        return []
    rows = []
    for trial in trials:
        if not isinstance(trial, dict):
            continue
        rows.append({"result_id": result["id"], "user_id": result["user_id"], "game_id": result["game_id"], **trial})
    return rows


def export_results(
    db_path: Path,
    csv_out: Path,
    trials_out: Optional[Path],
    user_id: Optional[str] = None,
    game_id: Optional[str] = None,
) -> tuple[int, int]:
    if not db_path.exists():
        raise FileNotFoundError(f"SQLite db not found: {db_path}")

    results = list_results(db_path, user_id=user_id, game_id=game_id, limit=5000)

    csv_out.parent.mkdir(parents=True, exist_ok=True)
    with csv_out.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADERS)
        for result in results:
            writer.writerow(result_to_row(result))

    trials_n = 0
    if trials_out is not None:
        trials_out.parent.mkdir(parents=True, exist_ok=True)
        with trials_out.open("w", encoding="utf-8") as f:
            for result in results:
                for row in trial_rows(result):
                    f.write(json.dumps(row, ensure_ascii=False) + "\n")
                    trials_n += 1

    return len(results), trials_n


def main() -> None:
    project_root = Path(__file__).resolve().parents[2]
    default_db = project_root / "backend" / "data" / "results.db"
    default_csv = project_root / "data" / "results_export.csv"

    parser = argparse.ArgumentParser(description="Export stored game results to CSV (and trials to JSONL)")
    parser.add_argument("--db", default=str(default_db), help="Path to backend SQLite db")
    parser.add_argument("--csv-out", default=str(default_csv), help="Output path for the results CSV")
    parser.add_argument("--trials-out", default="", help="Optional JSONL output with one row per trial")
    parser.add_argument("--user", default=None, help="Only this user_id")
    parser.add_argument("--game", default=None, help="Only this game_id")
    args = parser.parse_args()

    results_n, trials_n = export_results(
        db_path=Path(args.db),
        csv_out=Path(args.csv_out),
        trials_out=Path(args.trials_out) if args.trials_out else None,
        user_id=args.user,
        game_id=args.game,
    )
    print(f"Export complete: results={results_n}, trials={trials_n}")


if __name__ == "__main__":
    main()
