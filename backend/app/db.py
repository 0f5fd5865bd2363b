import json
import sqlite3
import time
from pathlib import Path
from typing import Any, Optional

RESULT_COLUMNS = (
    "id",
    "user_id",
    "game_id",
    "score",
    "accuracy",
    "reaction_time",
    "error_count",
    "error_rate",
    "details",
    "completed_at",
)


class UnknownUserError(Exception):
    """Результат ссылается на незарегистрированного пользователя."""


def _connect(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def ensure_db(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with _connect(path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                role TEXT NOT NULL DEFAULT 'student',
                created_at INTEGER NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS game_results (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                game_id TEXT NOT NULL,
                score REAL NOT NULL,
                accuracy REAL NOT NULL,
                reaction_time REAL NOT NULL,
                error_count INTEGER,
                error_rate REAL,
                details TEXT,
                completed_at INTEGER NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_results_user_id ON game_results(user_id);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_results_game_id ON game_results(game_id);")
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_results_completed_at ON game_results(completed_at);"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_results_user_game ON game_results(user_id, game_id);"
        )


def upsert_user(db_path: Path, user_id: str, email: str, role: str = "student") -> None:
    with _connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO users (id, email, role, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET email = excluded.email, role = excluded.role
            """,
            (user_id, email, role, int(time.time() * 1000)),
        )


def upsert_results(db_path: Path, results: list[dict[str, Any]]) -> int:
    """
    Вставка или обновление результатов по id, вся пачка или ничего.

    Повторная отправка того же id перезаписывает строку, а не добавляет вторую.
    """
    rows = []
    for result in results:
        details = result.get("details")
        rows.append(
            (
                str(result["id"]),
                str(result["user_id"]),
                str(result["game_id"]),
                float(result["score"]),
                float(result["accuracy"]),
                float(result["reaction_time"]),
                result.get("error_count"),
                result.get("error_rate"),
                json.dumps(details, ensure_ascii=False, separators=(",", ":")) if details is not None else None,
                int(result["completed_at"]),
            )
        )

    try:
        with _connect(db_path) as conn:
            conn.executemany(
                """
                INSERT INTO game_results (
                    id, user_id, game_id, score, accuracy, reaction_time,
                    error_count, error_rate, details, completed_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    user_id = excluded.user_id,
                    game_id = excluded.game_id,
                    score = excluded.score,
                    accuracy = excluded.accuracy,
                    reaction_time = excluded.reaction_time,
                    error_count = excluded.error_count,
                    error_rate = excluded.error_rate,
                    details = excluded.details,
                    completed_at = excluded.completed_at
                """,
                rows,
            )
    except sqlite3.IntegrityError as exc:
        if "FOREIGN KEY" in str(exc).upper():
            raise UnknownUserError(str(exc)) from exc
        raise
    return len(rows)


def _row_to_result(row: tuple) -> dict[str, Any]:
    record = dict(zip(RESULT_COLUMNS, row))
    raw = record.get("details")
    try:
        record["details"] = json.loads(raw) if raw else None
    except json.JSONDecodeError:
        record["details"] = None
    return record


def list_results(
    db_path: Path,
    user_id: Optional[str] = None,
    game_id: Optional[str] = None,
    limit: int = 100,
) -> list[dict[str, Any]]:
    safe_limit = max(1, min(5000, int(limit)))
    if not db_path.exists():
        return []

    clauses = []
    params: list[Any] = []
    if user_id:
        clauses.append("user_id = ?")
        params.append(user_id)
    if game_id:
        clauses.append("game_id = ?")
        params.append(game_id)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    with sqlite3.connect(f"file:{db_path}?mode=ro", uri=True) as conn:
        rows = conn.execute(
            f"""
            SELECT {', '.join(RESULT_COLUMNS)}
            FROM game_results
            {where}
            ORDER BY completed_at DESC, id ASC
            LIMIT ?
            """,
            (*params, safe_limit),
        ).fetchall()
    return [_row_to_result(row) for row in rows]


def delete_result(db_path: Path, result_id: str, user_id: str) -> bool:
    with _connect(db_path) as conn:
        cur = conn.execute(
            "DELETE FROM game_results WHERE id = ? AND user_id = ?",
            (result_id, user_id),
        )
        return cur.rowcount > 0
