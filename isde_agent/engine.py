"""Engine driver: one tick per page event, resume or self-chained continuation.

A tick checks the stop and pause flags, detects the stage, reconciles it with
the persisted one, consults the loop guard and dispatches to the stage
table. Only one tick runs at a time; triggers that arrive meanwhile are
folded into a single follow-up tick.
"""

import asyncio
import time
import uuid
from typing import TYPE_CHECKING, Optional
from pydantic import ValidationError

from config import ELEMENT_TIMEOUT, LOAD_SETTLE_DELAY, PACE
from detector import detect
from dom_parser import PageSnapshot
from errors import AutomationStopped, DetectionAmbiguous, LoopDetected
from executor import StepContext, StepExecutor, StepOutcome
from handlers import LOOKUP_MODAL_TEXT, fill_current_page, find_step
from loop_guard import GuardDecision, LoopGuard
from metrics import MetricsTracker
from models import AutomationConfig
from reconciler import reconcile_session
from recovery import RecoveryStore
from session import CONFIG_KEY, STOPPED_KEY, AutomationSession, SessionStore
from status import StatusBoard, StatusKind
from steps import StepId
from timers import TimerRegistry

if TYPE_CHECKING:
    from browser import BrowserController

TICK_KEY = "tick"
POLL_KEY = "poll"
POLL_ATTEMPTS = 15


class AutomationEngine:
    def __init__(
        self,
        browser: "BrowserController",
        store: Optional[SessionStore] = None,
        timers: Optional[TimerRegistry] = None,
        status: Optional[StatusBoard] = None,
        metrics: Optional[MetricsTracker] = None,
        recovery: Optional[RecoveryStore] = None,
        guard: Optional[LoopGuard] = None,
        pace: float = PACE,
        element_timeout: float = ELEMENT_TIMEOUT,
    ):
        self.browser = browser
        self.store = store or SessionStore()
        self.timers = timers or TimerRegistry()
        self.status = status or StatusBoard()
        self.metrics = metrics or MetricsTracker()
        self.executor = StepExecutor(self.metrics)
        self.recovery = recovery
        self.guard = guard or LoopGuard()
        self.pace = pace
        self.element_timeout = element_timeout

        self.tab_id = f"tab_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        self.session: Optional[AutomationSession] = None
        self.finished = asyncio.Event()
        self._ticking = False
        self._rerun = False

    def attach(self) -> None:
        """Tick on page loads of the controlled tab."""
        self.browser.on("load", self.on_page_load)
        self.browser.on("domcontentloaded", self.on_dom_ready)

    # Commands

    async def handle_message(self, message: dict) -> dict:
        """Route a command from the popup or status panel."""
        action = message.get("action")
        try:
            if action == "startAutomation":
                self.start(AutomationConfig.model_validate(message.get("config") or {}))
                return {"success": True}
            if action == "fillCurrentPage":
                config = message.get("config")
                filled = await self.fill_current_page(AutomationConfig.model_validate(config) if config else None)
                return {"success": True, "filled": filled}
            if action == "pause":
                self.pause()
                return {"success": True}
            if action == "resume":
                await self.resume()
                return {"success": True}
            if action == "stop":
                self.stop()
                return {"success": True}
            if action == "toggle-detail-view":
                return {"success": True, "details": self.toggle_detail_view()}
        except (DetectionAmbiguous, ValidationError) as e:
            return {"success": False, "error": str(e)}
        return {"success": False, "error": f"Unknown action: {action}"}

    def start(self, config: AutomationConfig, step: StepId = StepId.START) -> AutomationSession:
        """Begin a fresh session; any previous one is discarded."""
        if self.session is not None:
            self.session.stopped = True
        self.timers.cancel_all()
        self.store.clear()
        self.finished.clear()

        self.session = AutomationSession(config=config, store=self.store, tab_id=self.tab_id)
        self.session.current_step = step
        print(f"  [engine] Session {self.tab_id} started at {step.value}", flush=True)
        self.status.update("Automation started", step, None, StatusKind.RUNNING)
        self.request_tick(0)
        return self.session

    def restore(self, record: dict) -> AutomationSession:
        """Continue a session saved by the recovery store."""
        config = AutomationConfig.model_validate(record["config"])
        step = StepId.parse(record.get("step")) or StepId.START
        return self.start(config, step)

    def pause(self) -> None:
        session = self.session
        if session is None or session.stopped:
            return
        session.paused = True
        self.timers.cancel_all()
        self.status.update("Paused", session.current_step, None, StatusKind.PAUSED)

    async def resume(self) -> None:
        session = self.session
        if session is None or session.stopped or session.completed:
            return
        session.paused = False
        self.guard.reset(session)

        # The operator may have opened the meldcode lookup by hand
        snapshot = await self._snapshot()
        if snapshot is not None and snapshot.contains_text(LOOKUP_MODAL_TEXT):
            session.current_step = StepId.MELDCODE_LOOKUP_OPENED

        self.status.update("Resumed", session.current_step, None, StatusKind.RUNNING)
        self.request_tick(0)

    def stop(self) -> None:
        session = self.session
        if session is None:
            return
        session.stopped = True
        session.paused = False
        self.timers.cancel_all()
        self.guard.reset(session)
        session.clear(stopped_by_user=True)
        if self.recovery:
            self.recovery.clear(session.tab_id)
        self.status.update("Automation stopped", None, None, StatusKind.STOPPED)
        self.finished.set()

    def toggle_detail_view(self) -> Optional[dict]:
        session = self.session
        if session is None:
            return None
        session.detail_view = not session.detail_view
        return session.config.summary() if session.detail_view else None

    async def fill_current_page(self, config: Optional[AutomationConfig] = None) -> int:
        config = config or (self.session.config if self.session else None)
        if config is None:
            raise DetectionAmbiguous("No applicant data to fill in")
        filled = await fill_current_page(self.browser, config)
        self.status.update(f"Filled {filled} field(s) on this page", kind=StatusKind.IDLE)
        return filled

    # Page events

    def on_page_load(self) -> None:
        session = self.session
        if session is None:
            return
        if session.stopped or self.store.get(STOPPED_KEY):
            session.clear(stopped_by_user=True)
            return
        if session.paused:
            self.status.update("Paused. Resume to continue.", session.current_step, None, StatusKind.PAUSED)
            return
        self.request_tick(LOAD_SETTLE_DELAY)

    def on_dom_ready(self) -> None:
        session = self.session
        if session is None or not session.active:
            return
        if session.current_step in (None, StepId.START):
            return
        self.request_tick(LOAD_SETTLE_DELAY)

    # Tick

    def request_tick(self, delay: float = 0.0) -> None:
        if self._ticking:
            self._rerun = True
            return
        self.timers.schedule(delay * self.pace, self._guarded_tick, key=TICK_KEY)

    async def _guarded_tick(self) -> None:
        try:
            await self.tick()
        except Exception as e:
            session = self.session
            step = session.current_step if session else None
            print(f"  [engine] Error during tick: {e}", flush=True)
            self.status.update(f"Unexpected error: {e}", step, None, StatusKind.ERROR)

    async def tick(self) -> Optional[StepId]:
        session = self.session
        if session is None or session.completed:
            return None
        if session.stopped:
            self.timers.cancel_all()
            return None
        if session.paused:
            return None
        if self._ticking:
            self._rerun = True
            return None

        self._ticking = True
        self._rerun = False
        try:
            return await self._run(session)
        except AutomationStopped:
            print("  [engine] Tick abandoned: automation stopped", flush=True)
            return None
        finally:
            self._ticking = False
            latest = self.session
            if self._rerun and latest is not None and latest.active and not self.timers.has_pending(TICK_KEY):
                self.timers.schedule(LOAD_SETTLE_DELAY * self.pace, self._guarded_tick, key=TICK_KEY)
            self._rerun = False

    async def _run(self, session: AutomationSession) -> Optional[StepId]:
        snapshot = await self._snapshot()
        if snapshot is None:
            self.status.update("Waiting for page to load...", session.current_step, None, StatusKind.WAITING)
            return session.current_step

        detected = detect(snapshot)
        current = reconcile_session(session, detected)
        self._save_recovery(session, current, snapshot.url)

        if self.guard.observe(session, current) == GuardDecision.FORCE_PAUSE:
            error = LoopDetected(current.value, self.guard.max_repeats)
            session.paused = True
            self.timers.cancel_all()
            self.status.update(str(error), current, detected, StatusKind.MANUAL)
            return current

        definition = find_step(current, detected, snapshot)
        if definition is None:
            self.status.update("Waiting for next step...", current, detected, StatusKind.WAITING)
            return current

        self.status.update(f"Executing {definition.id.value}", current, detected, StatusKind.RUNNING)
        ctx = StepContext(
            self.browser, session, snapshot, detected,
            pace=self.pace, element_timeout=self.element_timeout,
        )
        try:
            outcome = await self.executor.execute(definition, ctx)
        except AutomationStopped:
            raise
        except Exception:
            # Retry the same stage next time
            if not session.stopped:
                session.current_step = current
            raise

        self._apply(session, outcome, detected)
        return session.current_step

    def _apply(self, session: AutomationSession, outcome: StepOutcome, detected: StepId) -> None:
        if outcome.next_step is not None and not session.stopped:
            session.current_step = outcome.next_step
        self.status.update(outcome.message, session.current_step, detected, outcome.kind)

        if outcome.pause:
            session.paused = True
            self.timers.cancel_all()
        elif outcome.terminal:
            self._complete(session)
        elif outcome.chain_after is not None:
            self.timers.schedule(outcome.chain_after * self.pace, self._guarded_tick, key=TICK_KEY)
        elif outcome.poll_for:
            self.timers.schedule(1.0 * self.pace, self._poll, outcome.poll_for, POLL_ATTEMPTS, key=POLL_KEY)

    async def _poll(self, selector: str, attempts_left: int) -> None:
        """Tick once selector appears, in case no load event arrives."""
        session = self.session
        if session is None or not session.active:
            return
        if await self.browser.query(selector) or attempts_left <= 1:
            self.request_tick(0)
            return
        self.timers.schedule(1.0 * self.pace, self._poll, selector, attempts_left - 1, key=POLL_KEY)

    def _complete(self, session: AutomationSession) -> None:
        session.completed = True
        self.timers.cancel_all()
        session.clear()
        if self.recovery:
            self.recovery.clear(session.tab_id)
        print(f"  [engine] Session {session.tab_id} reached the terms page", flush=True)
        self.finished.set()

    async def _snapshot(self) -> Optional[PageSnapshot]:
        try:
            html = await self.browser.get_html()
            url = await self.browser.get_url()
        except Exception as e:
            print(f"  [engine] Page not readable yet: {e}", flush=True)
            return None
        return PageSnapshot(html, url)

    def _save_recovery(self, session: AutomationSession, step: StepId, url: str) -> None:
        if not self.recovery:
            return
        try:
            self.recovery.save(session.tab_id, session.store.get(CONFIG_KEY) or "{}", step.value, url)
        except OSError as e:
            print(f"  [engine] Could not save recovery snapshot: {e}", flush=True)
