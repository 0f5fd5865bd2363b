import argparse
import logging
import time
from pathlib import Path

from config.client_settings import load_client_settings
from data.logger import JsonlLogger
from data.results_client import completion_handler
from game.session import start_session
from game.session_metrics import task_title
from game.simulated import SimulatedParticipant
from game.task_manager import TASKS, default_config


def main() -> None:
    parser = argparse.ArgumentParser(description="Play one cognitive task session with a simulated participant")
    parser.add_argument("--task", choices=sorted(TASKS), default="nback")
    parser.add_argument("--seed", type=int, default=1)
    parser.add_argument("--accuracy", type=float, default=0.8, help="Simulated participant accuracy (0..1)")
    parser.add_argument("--user", default="", help="Registered user_id for the result upload")
    parser.add_argument("--upload", action="store_true", help="Send the result to the backend")
    parser.add_argument("--settings", default="data/client_settings.json")
    args = parser.parse_args()
    if args.upload and not args.user:
        # сервер не примет результат без зарегистрированного пользователя
        parser.error("--upload needs --user")

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # 1. Конфиг задачи и бот-игрок
    config = default_config(args.task)
    participant = SimulatedParticipant(task_id=args.task, accuracy=args.accuracy, seed=args.seed)

    # 2. Создаём сессию (trial 0 уже запущен)
    session = start_session(
        config,
        seed=args.seed,
        event_logger=JsonlLogger("data/events.jsonl"),
    )

    session_logger = JsonlLogger("data/sessions.jsonl")
    session.on_complete(
        lambda results, summary: session_logger.write(
            {
                "timestamp": int(time.time()),
                "session_id": session.session_id,
                "task_id": args.task,
                **vars(summary),
            }
        )
    )

    # 3. Отправка результата на сервер, по желанию
    if args.upload:
        client = load_client_settings(Path(args.settings)).make_client()
        session.on_complete(completion_handler(client, args.user, args.task))

    # 4. Проигрываем сессию целиком
    for event in session.stream(participant):
        if event.kind == "trial_scored":
            r = event.payload["result"]
            print(
                r["trial_index"],
                r["stimulus"],
                r["response"],
                r["correct"],
                r["reaction_time_ms"],
            )

    summary = session.summary
    print(f"{task_title(args.task)} finished")
    print(
        f"score={summary.score} accuracy={summary.accuracy:.1f}% "
        f"rt={summary.reaction_time_ms:.0f}ms errors={summary.error_count}"
    )


if __name__ == "__main__":
    main()
