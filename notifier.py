import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Literal, Optional

from bson import ObjectId

logger = logging.getLogger(__name__)

Level = Literal["success", "error", "info"]

# schedule(delay_seconds, callback)
Scheduler = Callable[[float, Callable[[], None]], None]


def _timer_schedule(delay: float, callback: Callable[[], None]) -> None:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()


@dataclass
class Notification:
    message: str
    level: str = "info"
    id: str = field(default_factory=lambda: str(ObjectId()))
    created_at: datetime = field(default_factory=datetime.now)


class Notifier:
    """Transient user feedback.

    Every notification is shown immediately and removed after a fixed delay,
    whatever happened in between. There is no queue: overlapping
    notifications are all visible at once.
    """

    LEVELS = ("success", "error", "info")

    def __init__(self, delay_ms: int = 3000, schedule: Optional[Scheduler] = None):
        self.delay_ms = delay_ms
        self._schedule = schedule or _timer_schedule
        self._active: List[Notification] = []
        self._lock = threading.Lock()

    def notify(self, message: str, level: Level = "info") -> Notification:
        if level not in self.LEVELS:
            level = "info"
        note = Notification(message=message, level=level)
        with self._lock:
            self._active.append(note)
        log = logger.warning if level == "error" else logger.info
        log("[%s] %s", level, message)
        self._schedule(self.delay_ms / 1000.0, lambda: self.dismiss(note.id))
        return note

    def dismiss(self, notification_id: str) -> None:
        with self._lock:
            self._active = [n for n in self._active if n.id != notification_id]

    def active(self) -> List[Notification]:
        with self._lock:
            return list(self._active)
