"""Step execution: the primitives handlers use and the boundary that turns
stage failures into outcomes.

Every primitive goes through checkpoint(), so a stop surfaces as
AutomationStopped at the next suspension point and a pause holds the
routine in place until resume.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable, Optional

from config import (
    DELAY_NORMAL,
    DELAY_SHORT,
    ELEMENT_TIMEOUT,
    PACE,
    POLL_INTERVAL,
)
from detector import Rule
from dom_parser import PageSnapshot
from errors import (
    AutomationStopped,
    ElementNotFound,
    MissingRequiredInput,
    UploadFailure,
)
from metrics import MetricsTracker
from models import AutomationConfig, FileAttachment
from sanitization import sanitize_for_field
from session import AutomationSession
from status import StatusKind
from steps import StepId

if TYPE_CHECKING:
    from browser import BrowserController


@dataclass
class StepOutcome:
    message: str
    next_step: Optional[StepId] = None
    kind: StatusKind = StatusKind.RUNNING
    chain_after: Optional[float] = None  # seconds until the engine re-ticks itself
    poll_for: Optional[str] = None       # selector to poll for before re-ticking
    pause: bool = False
    terminal: bool = False
    failed: bool = False                 # the stage did not complete; do not advance


@dataclass(frozen=True)
class StepDefinition:
    """One entry of the stage table."""
    id: StepId
    action: Callable[["StepContext"], Awaitable[StepOutcome]]
    triggers: frozenset = frozenset()          # persisted stages that route here
    on_detected: frozenset = frozenset()       # detected stages that route here
    requires: Optional[str] = None             # element that must be on the page
    when: Optional[Rule] = None                # extra page condition
    successors: tuple = field(default=())

    def matches(self, current: StepId, detected: StepId, page: PageSnapshot) -> bool:
        if current not in self.triggers and detected not in self.on_detected:
            return False
        if self.requires is not None and not page.has(self.requires):
            return False
        return self.when is None or self.when(page)


class StepContext:
    def __init__(
        self,
        browser: "BrowserController",
        session: AutomationSession,
        snapshot: PageSnapshot,
        detected: StepId,
        pace: float = PACE,
        element_timeout: float = ELEMENT_TIMEOUT,
    ):
        self.browser = browser
        self.session = session
        self.snapshot = snapshot
        self.detected = detected
        self.pace = pace
        self.element_timeout = element_timeout

    @property
    def config(self) -> AutomationConfig:
        return self.session.config

    @property
    def step(self) -> Optional[StepId]:
        return self.session.current_step

    async def checkpoint(self) -> None:
        """Raise if stopped; hold while paused."""
        while True:
            if self.session.stopped:
                raise AutomationStopped()
            if not self.session.paused:
                return
            await asyncio.sleep(POLL_INTERVAL)

    async def sleep(self, seconds: float, jitter: float = 0.0) -> None:
        remaining = (seconds + random.random() * jitter) * self.pace
        await asyncio.sleep(0)
        while True:
            await self.checkpoint()
            if remaining <= 0:
                return
            chunk = min(remaining, POLL_INTERVAL)
            await asyncio.sleep(chunk)
            remaining -= chunk

    async def refresh(self) -> PageSnapshot:
        html = await self.browser.get_html()
        self.snapshot = PageSnapshot(html, await self.browser.get_url())
        return self.snapshot

    async def wait_for(self, selector: str, timeout: Optional[float] = None) -> str:
        """Poll until selector exists. Time spent paused does not count."""
        timeout = self.element_timeout if timeout is None else timeout
        waited = 0.0
        while True:
            await self.checkpoint()
            if await self.browser.query(selector):
                return selector
            if waited >= timeout:
                raise ElementNotFound(selector, timeout)
            await asyncio.sleep(POLL_INTERVAL * self.pace)
            waited += POLL_INTERVAL

    async def click(self, selector: str, persist: Optional[StepId] = None, timeout: Optional[float] = None) -> None:
        """Wait for and click an element; persist the successor first when given."""
        await self.wait_for(selector, timeout)
        await self.browser.scroll_into_view(selector)
        await self.sleep(DELAY_SHORT, jitter=0.3)
        if persist is not None:
            self.persist(persist)
        if not await self.browser.click(selector):
            raise ElementNotFound(selector)
        print(f"  [executor] clicked {selector}", flush=True)
        await self.sleep(DELAY_NORMAL, jitter=0.5)

    async def click_if_present(self, selector: str) -> bool:
        if not await self.browser.query(selector):
            return False
        await self.click(selector)
        return True

    async def click_first(self, selectors: Iterable[str]) -> Optional[str]:
        for selector in selectors:
            if await self.click_if_present(selector):
                return selector
        return None

    async def fill(self, selector: str, value: Optional[str], required: bool = True) -> bool:
        """Type value into a field. Empty values are skipped."""
        if not value:
            return False
        if required:
            await self.wait_for(selector)
        elif not await self.browser.query(selector):
            return False
        await self.browser.scroll_into_view(selector)
        await self.sleep(0.4, jitter=0.2)
        await self.checkpoint()
        if not await self.browser.fill(selector, sanitize_for_field(selector, value)):
            raise ElementNotFound(selector)
        await self.sleep(0.3, jitter=0.2)
        return True

    async def fill_first(self, selectors: Iterable[str], value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        for selector in selectors:
            if await self.fill(selector, value, required=False):
                return selector
        return None

    async def upload(self, trigger: str, attachment: FileAttachment, file_input: str, timeout: float) -> None:
        """Open the attachment widget, inject the file and notify the page."""
        await self.click(trigger)
        try:
            await self.wait_for(file_input, timeout)
        except ElementNotFound:
            raise UploadFailure(attachment.name, "file input did not appear")
        await self.checkpoint()
        if not await self.browser.inject_file(file_input, attachment):
            raise UploadFailure(attachment.name, "file could not be assigned to the input")
        await self.checkpoint()
        if not await self.browser.dispatch_event(file_input, "change"):
            raise UploadFailure(attachment.name, "change event could not be dispatched")
        print(f"  [executor] uploaded {attachment.name}", flush=True)

    def persist(self, step: StepId) -> None:
        """Record the successor before the action that leaves this stage."""
        if self.session.stopped:
            raise AutomationStopped()
        self.session.current_step = step


class StepExecutor:
    """Runs one stage action and converts stage-level failures into outcomes."""

    def __init__(self, metrics: Optional[MetricsTracker] = None):
        self.metrics = metrics or MetricsTracker()

    async def execute(self, definition: StepDefinition, ctx: StepContext) -> StepOutcome:
        """Run the stage action. A failed stage leaves the persisted step where it was."""
        entry = ctx.session.current_step
        metric = self.metrics.start_step(definition.id.value)
        try:
            outcome = await definition.action(ctx)
        except AutomationStopped:
            self.metrics.end_step(metric, success=False, error="stopped")
            raise
        except MissingRequiredInput as e:
            outcome = StepOutcome(str(e), kind=StatusKind.MANUAL, pause=True, failed=True)
        except UploadFailure as e:
            outcome = StepOutcome(str(e), kind=StatusKind.MANUAL, failed=True)
        except ElementNotFound as e:
            outcome = StepOutcome(f"Waiting for page: {e}", kind=StatusKind.WAITING, failed=True)
        except Exception as e:
            self.metrics.end_step(metric, success=False, error=str(e))
            raise
        else:
            outcome = self._check_successor(definition, outcome)

        if outcome.failed:
            self.metrics.end_step(metric, success=False, error=outcome.message)
            if not ctx.session.stopped:
                ctx.session.current_step = entry
            return outcome
        self.metrics.end_step(metric, success=outcome.kind != StatusKind.MANUAL)
        return outcome

    @staticmethod
    def _check_successor(definition: StepDefinition, outcome: StepOutcome) -> StepOutcome:
        if outcome.next_step is None or not definition.successors or outcome.next_step in definition.successors:
            return outcome
        message = f"{definition.id.value} tried to advance to undeclared stage {outcome.next_step.value}"
        print(f"  [executor] {message}", flush=True)
        return StepOutcome(message, kind=StatusKind.MANUAL, pause=True, failed=True)
