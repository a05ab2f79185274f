"""Tests for CommandStabilityWindow."""

from granted_relay.core import CommandStabilityWindow

DWELL = 0.25


def _window(clock, accepted):
    return CommandStabilityWindow(DWELL, accepted.append, scheduler=clock)


def test_new_command_promoted_after_dwell(clock):
    accepted = []
    window = _window(clock, accepted)

    window.observe("ROBOT_START", clock.time())
    clock.advance(0.125)
    assert accepted == []
    assert window.pending == "ROBOT_START"

    clock.advance(0.125)
    assert accepted == ["ROBOT_START"]
    assert window.accepted == "ROBOT_START"
    assert window.pending is None


def test_flip_before_dwell_restarts_window(clock):
    accepted = []
    window = _window(clock, accepted)

    window.observe("ROBOT_START", clock.time())
    clock.advance(0.125)
    window.observe("ROBOT_IDLE", clock.time())
    clock.advance(0.125)

    assert accepted == []
    assert clock.pending == 1

    clock.advance(0.125)
    assert accepted == ["ROBOT_IDLE"]


def test_repeat_after_dwell_promotes_immediately(clock):
    accepted = []
    window = _window(clock, accepted)

    window.observe("ROBOT_START", 0.0)
    # A poll that observes a stable value before the timer callback ran.
    window.observe("ROBOT_START", 0.5)

    assert accepted == ["ROBOT_START"]
    assert clock.pending == 0


def test_repeat_inside_dwell_keeps_waiting(clock):
    accepted = []
    window = _window(clock, accepted)

    window.observe("ROBOT_START", 0.0)
    window.observe("ROBOT_START", 0.125)

    assert accepted == []
    assert clock.pending == 1


def test_each_candidate_promoted_once(clock):
    accepted = []
    window = _window(clock, accepted)

    window.observe("ROBOT_START", clock.time())
    clock.advance(1.0)
    window.observe("ROBOT_START", clock.time())
    clock.advance(1.0)
    window.observe("ROBOT_START", clock.time())

    assert accepted == ["ROBOT_START"]


def test_reset_discards_pending_candidate(clock):
    accepted = []
    window = _window(clock, accepted)

    window.observe("ROBOT_START", clock.time())
    window.reset()
    clock.advance(1.0)

    assert accepted == []
    assert window.candidate is None
