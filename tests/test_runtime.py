# Evolver — organism runtime tests
# Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

import math

import numpy as np
import pytest

from evolver.runtime import FREEZE_DAMPING_PEAK, MUSCLE_RANGE, THAWED, freeze_damping
from evolver.world import SandboxWorld


@pytest.fixture
def runtime(make_blueprint):
    return make_blueprint().spawn(SandboxWorld())


# ─── Freeze Ramp ────────────────────────────────────────

def test_freeze_damping_curve():
    assert freeze_damping(0.0, 0.2) == pytest.approx(FREEZE_DAMPING_PEAK + 0.2)
    assert freeze_damping(1.0, 0.2) == 0.2
    assert freeze_damping(3.0, 0.2) == 0.2
    xs = np.linspace(0.0, 1.2, 50)
    values = [freeze_damping(x, 0.2) for x in xs]
    assert all(a >= b for a, b in zip(values, values[1:]))


def test_advance_freeze_is_monotonic_then_thawed(runtime):
    seen = []
    for _ in range(30):
        damping = runtime.advance_freeze(0.1, 0.2)
        if damping is None:
            break
        seen.append(damping)
        runtime.finish_freeze()
    assert runtime.freeze_progress == THAWED
    assert runtime.thawed
    assert seen[-1] == 0.2
    assert all(a >= b for a, b in zip(seen, seen[1:]))
    assert runtime.advance_freeze(0.1, 0.2) is None


def test_restart_freeze(runtime):
    runtime.freeze_progress = THAWED
    runtime.restart_freeze()
    assert runtime.freeze_progress == 0.0
    assert runtime.advance_freeze(0.5, 0.2) == pytest.approx(freeze_damping(0.5, 0.2))


# ─── Stimuli & Brain Tick ───────────────────────────────

def test_clock_signal_sawtooth(runtime):
    runtime.genome.internal_clock.value = 2.0
    assert runtime.clock_signal(0.0) == pytest.approx(-1.0)
    assert runtime.clock_signal(1.0) == pytest.approx(0.0)
    assert runtime.clock_signal(1.5) == pytest.approx(0.5)
    assert runtime.clock_signal(2.0) == pytest.approx(-1.0)


def test_build_stimuli_scales_rotation(runtime):
    stim = runtime.build_stimuli(0.0, math.pi / 2)
    assert stim.shape == (2,)
    assert stim[1] == pytest.approx(0.5)


def test_process_stimuli_updates_memory_and_energy(runtime):
    expected = runtime.brain.forward(runtime.build_stimuli(0.25, 0.0))
    targets = runtime.process_stimuli(0.25, 0.0)
    assert np.allclose(runtime.brain.memory, expected)
    assert np.allclose(targets, runtime.muscle_rest_lengths * (1.0 + MUSCLE_RANGE * expected))
    # memory starts at zero, so the previous targets are the rest lengths
    rest = runtime.muscle_rest_lengths
    assert runtime.energy_used == pytest.approx(np.abs(targets - rest).sum())

    energy = runtime.energy_used
    second = runtime.process_stimuli(0.25, 0.0)
    assert runtime.energy_used == pytest.approx(energy + np.abs(second - targets).sum())


def test_energy_scales_with_muscle_length(runtime):
    short = runtime.brain.clone()
    runtime.process_stimuli(0.25, 0.0)
    base = runtime.energy_used

    runtime.brain = short
    runtime.energy_used = 0.0
    runtime.muscle_rest_lengths = runtime.muscle_rest_lengths * 3.0
    runtime.process_stimuli(0.25, 0.0)
    assert runtime.energy_used == pytest.approx(3.0 * base)


def test_ramp_holds_at_one_until_finished(runtime):
    runtime.freeze_progress = 0.95
    assert runtime.advance_freeze(0.1, 0.2) == 0.2
    assert runtime.freeze_progress == 1.0
    assert not runtime.thawed
    # floor is offered again until finish_freeze confirms it was applied
    assert runtime.advance_freeze(0.1, 0.2) == 0.2
    runtime.finish_freeze()
    assert runtime.thawed


def test_finish_freeze_mid_ramp_is_noop(runtime):
    runtime.advance_freeze(0.3, 0.2)
    runtime.finish_freeze()
    assert runtime.freeze_progress == pytest.approx(0.3)


def test_handles_order_links_before_joints(runtime):
    handles = runtime.handles()
    assert handles[:2] == runtime.muscle_handles
    assert handles[-4:] == runtime.joint_handles
    assert runtime.root == runtime.joint_handles[0]


def test_to_dict(runtime):
    d = runtime.to_dict()
    assert d['joints'] == 4
    assert d['muscles'] == 2
    assert d['memory'] == [0.0, 0.0]
