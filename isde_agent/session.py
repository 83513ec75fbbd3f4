import json
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from models import AutomationConfig
from steps import StepId

STEP_KEY = "automationStep"
CONFIG_KEY = "automationConfig"
NAVIGATION_CLICK_KEY = "lastNavigationClick"
STOPPED_KEY = "automationStoppedByUser"


class SessionStore:
    """Tab-scoped key/value store that outlives page navigations."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value if isinstance(value, str) else json.dumps(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> list[str]:
        return list(self._data)


@dataclass
class AutomationSession:
    config: AutomationConfig
    store: SessionStore = field(default_factory=SessionStore)
    tab_id: str = ""
    paused: bool = False
    stopped: bool = False
    completed: bool = False
    last_executed_step: Optional[StepId] = None
    execution_count: int = 0
    detail_view: bool = False

    def __post_init__(self):
        self.store.set(CONFIG_KEY, self.config.model_dump_json(by_alias=True))
        self.store.remove(STOPPED_KEY)

    @property
    def active(self) -> bool:
        return not (self.stopped or self.paused or self.completed)

    @property
    def current_step(self) -> Optional[StepId]:
        return StepId.parse(self.store.get(STEP_KEY))

    @current_step.setter
    def current_step(self, step: Optional[StepId]) -> None:
        if step is None:
            self.store.remove(STEP_KEY)
        else:
            self.store.set(STEP_KEY, step.value)

    def mark_navigation_click(self, now: Optional[float] = None) -> None:
        self.store.set(NAVIGATION_CLICK_KEY, str(now if now is not None else time.time()))

    def clear_navigation_click(self) -> None:
        self.store.remove(NAVIGATION_CLICK_KEY)

    def recently_clicked(self, window: float, now: Optional[float] = None) -> bool:
        raw = self.store.get(NAVIGATION_CLICK_KEY)
        if raw is None:
            return False
        now = now if now is not None else time.time()
        return now - float(raw) < window

    def reset_counters(self) -> None:
        self.last_executed_step = None
        self.execution_count = 0

    def clear(self, stopped_by_user: bool = False) -> None:
        """Drop the persisted session; the in-memory flags stay for in-flight routines."""
        for key in (STEP_KEY, CONFIG_KEY, NAVIGATION_CLICK_KEY):
            self.store.remove(key)
        if stopped_by_user:
            self.store.set(STOPPED_KEY, "true")
