from enum import Enum

from config import MAX_STEP_RETRIES
from session import AutomationSession
from steps import StepId


class GuardDecision(str, Enum):
    PROCEED = "proceed"
    FORCE_PAUSE = "force_pause"


class LoopGuard:
    """Detects a stage that keeps being re-entered without progress."""

    def __init__(self, max_repeats: int = MAX_STEP_RETRIES):
        self.max_repeats = max_repeats

    def observe(self, session: AutomationSession, step: StepId) -> GuardDecision:
        if step != session.last_executed_step:
            session.last_executed_step = step
            session.execution_count = 1
            return GuardDecision.PROCEED

        session.execution_count += 1
        if session.execution_count >= self.max_repeats:
            print(f"  [loop_guard] {step.value} seen {session.execution_count} times in a row", flush=True)
            session.reset_counters()
            return GuardDecision.FORCE_PAUSE
        return GuardDecision.PROCEED

    def reset(self, session: AutomationSession) -> None:
        session.reset_counters()
