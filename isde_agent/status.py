import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from config import STATUS_HISTORY


class StatusKind(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    WAITING = "waiting"
    MANUAL = "manual"
    PAUSED = "paused"
    STOPPED = "stopped"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class StatusLine:
    message: str
    step: Optional[str] = None
    detected: Optional[str] = None
    kind: StatusKind = StatusKind.IDLE
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "step": self.step,
            "detected": self.detected,
            "kind": self.kind.value,
            "timestamp": self.timestamp,
        }


class StatusBoard:
    """Latest status triple plus the subscribers that render it."""

    def __init__(self, echo: bool = True, history_size: int = STATUS_HISTORY):
        self.latest = StatusLine("Idle")
        self.history: deque[StatusLine] = deque(maxlen=history_size)
        self.echo = echo
        self._subscribers: list[Callable[[StatusLine], None]] = []

    def subscribe(self, callback: Callable[[StatusLine], None]) -> None:
        self._subscribers.append(callback)

    def update(self, message: str, step=None, detected=None, kind: StatusKind = StatusKind.RUNNING) -> StatusLine:
        line = StatusLine(
            message=message,
            step=getattr(step, "value", step),
            detected=getattr(detected, "value", detected),
            kind=kind,
        )
        self.latest = line
        self.history.append(line)
        if self.echo:
            print(f"  [status] {kind.value}: {message} (step={line.step}, detected={line.detected})", flush=True)
        for callback in self._subscribers:
            callback(line)
        return line
