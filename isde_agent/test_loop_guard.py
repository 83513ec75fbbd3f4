import pytest
from fake_portal import make_config
from loop_guard import GuardDecision, LoopGuard
from session import AutomationSession
from steps import StepId


@pytest.fixture
def session():
    return AutomationSession(config=make_config())


def test_new_step_resets_count(session):
    guard = LoopGuard(max_repeats=4)
    assert guard.observe(session, StepId.START) == GuardDecision.PROCEED
    assert guard.observe(session, StepId.START) == GuardDecision.PROCEED
    assert session.execution_count == 2

    assert guard.observe(session, StepId.ISDE_SELECTED) == GuardDecision.PROCEED
    assert session.last_executed_step == StepId.ISDE_SELECTED
    assert session.execution_count == 1


def test_fourth_consecutive_observation_forces_pause(session):
    guard = LoopGuard(max_repeats=4)
    decisions = [guard.observe(session, StepId.MEASURE_OVERVIEW) for _ in range(4)]

    assert decisions == [GuardDecision.PROCEED] * 3 + [GuardDecision.FORCE_PAUSE]
    assert session.execution_count == 0
    assert session.last_executed_step is None


def test_counting_starts_over_after_force_pause(session):
    guard = LoopGuard(max_repeats=2)
    guard.observe(session, StepId.START)
    assert guard.observe(session, StepId.START) == GuardDecision.FORCE_PAUSE
    assert guard.observe(session, StepId.START) == GuardDecision.PROCEED


def test_reset(session):
    guard = LoopGuard()
    guard.observe(session, StepId.START)
    guard.reset(session)
    assert session.execution_count == 0
    assert session.last_executed_step is None
