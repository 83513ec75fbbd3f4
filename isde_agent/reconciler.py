from typing import Optional

from session import AutomationSession
from steps import StepId


def reconcile(detected: StepId, persisted: Optional[StepId]) -> StepId:
    """Merge the detected stage with the persisted one.

    At flow start a generic landing-page match is a common false positive,
    so persisted state wins there only when detection is inconclusive.
    Once the flow is underway, any conclusive detection overrides the
    persisted stage, which can go stale across navigations.
    """
    if persisted is None or persisted == StepId.START:
        if detected == StepId.UNKNOWN:
            return persisted or StepId.START
        return detected
    if detected not in (StepId.UNKNOWN, StepId.START):
        return detected
    return persisted


def reconcile_session(session: AutomationSession, detected: StepId) -> StepId:
    persisted = session.current_step
    current = reconcile(detected, persisted)
    if current != persisted:
        print(f"  [reconciler] {persisted.value if persisted else '-'} -> {current.value} (detected {detected.value})", flush=True)
    session.current_step = current
    return current
