from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PendingTimer:
    token: int
    due_ms: int
    kind: str


class TimerSlot:
    """
    У сессии не больше одного взведённого дедлайна.

    Любой schedule() или cancel() увеличивает токен, поэтому callback со
    старым токеном уже ничего не сделает с сессией.
    """

    def __init__(self) -> None:
        self.token: int = 0
        self.pending: Optional[PendingTimer] = None

    def schedule(self, due_ms: int, kind: str) -> int:
        self.token += 1
        self.pending = PendingTimer(token=self.token, due_ms=due_ms, kind=kind)
        return self.token

    def cancel(self) -> None:
        self.token += 1
        self.pending = None

    def is_current(self, token: int) -> bool:
        return self.pending is not None and self.pending.token == token

    def pop_due(self, now_ms: int) -> Optional[PendingTimer]:
        if self.pending is None or now_ms < self.pending.due_ms:
            return None
        timer = self.pending
        self.pending = None
        return timer

    def take(self, token: int) -> Optional[PendingTimer]:
        if not self.is_current(token):
            return None
        timer = self.pending
        self.pending = None
        return timer
