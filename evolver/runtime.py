"""
Evolver — Live Organism

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

A spawned creature: live copies of brain and genome, plus the handles of
every joint, bone and muscle entity the world created for it.

STIMULUS CONTRACT:
  The brain receives exactly two external stimuli each tick, after its
  memory block (one slot per muscle):

    1. clock          — sawtooth in [-1, 1] with period genome.internal_clock
    2. root rotation  — rotation of joint 0 in radians, scaled by 1/pi

  Both are independent of body topology, so the input width only ever
  moves with the muscle count.

ENERGY:
  Every change of a muscle's target length costs |delta|, so long muscles
  pay more than short ones for the same activation swing. Accumulated over
  the generation it becomes the efficiency penalty in the fitness function.

FREEZE RAMP:
  A freshly spawned body has no muscle tension yet and would collapse or
  bounce on the first physics steps. For its first second of life each
  joint gets a very high linear damping that decays quadratically:

    damping(x) = 1000 * (x - 1)^2 + floor     for x < 1
               = floor                         for x >= 1

  Progress stops at 1.0 until the floor damping has reached the world
  (`finish_freeze`); after that, freeze_progress is parked at THAWED and
  never updated again.
"""

import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .brain import Brain
from .genome import Genome
from .world import EntityRef


EXTERNAL_STIMULI = 2
MUSCLE_RANGE = 0.5          # activation ±1 → rest length × (1 ± 0.5)
THAWED = -1.0
FREEZE_DAMPING_PEAK = 1000.0


def freeze_damping(x: float, floor: float) -> float:
    if x < 1.0:
        return FREEZE_DAMPING_PEAK * (x - 1.0) ** 2 + floor
    return floor


@dataclass(eq=False)
class OrganismRuntime:
    brain: Brain
    genome: Genome
    joint_handles: list[EntityRef]
    bone_handles: list[EntityRef]
    muscle_handles: list[EntityRef]
    muscle_rest_lengths: np.ndarray = field(default=None)
    spawn_centroid_x: float = 0.0
    energy_used: float = 0.0
    freeze_progress: float = 0.0

    def __post_init__(self):
        if self.muscle_rest_lengths is None:
            self.muscle_rest_lengths = np.ones(len(self.muscle_handles))

    @property
    def root(self) -> Optional[EntityRef]:
        return self.joint_handles[0] if self.joint_handles else None

    @property
    def thawed(self) -> bool:
        return self.freeze_progress == THAWED

    def handles(self) -> list[EntityRef]:
        """Links before joints, so nothing outlives the joints it hangs from."""
        return self.muscle_handles + self.bone_handles + self.joint_handles

    # ─── Brain ───────────────────────────────────────────

    def clock_signal(self, elapsed: float) -> float:
        period = self.genome.internal_clock.value
        return 2.0 * ((elapsed % period) / period) - 1.0

    def build_stimuli(self, elapsed: float, root_rotation: float) -> np.ndarray:
        return np.array([self.clock_signal(elapsed), root_rotation / math.pi])

    def process_stimuli(self, elapsed: float, root_rotation: float) -> np.ndarray:
        """One brain tick. Returns the target length of every muscle."""
        activation = self.brain.forward(self.build_stimuli(elapsed, root_rotation))
        previous = self.target_lengths(self.brain.memory)
        targets = self.target_lengths(activation)
        self.energy_used += float(np.abs(targets - previous).sum())
        self.brain.set_memory(activation)
        return targets

    def target_lengths(self, activation: np.ndarray) -> np.ndarray:
        return self.muscle_rest_lengths * (1.0 + MUSCLE_RANGE * activation)

    # ─── Freeze Ramp ─────────────────────────────────────

    def advance_freeze(self, dt: float, floor: float) -> Optional[float]:
        """Damping to apply this tick, or None once the ramp is over."""
        if self.thawed:
            return None
        self.freeze_progress = min(self.freeze_progress + dt, 1.0)
        return freeze_damping(self.freeze_progress, floor)

    def finish_freeze(self):
        """Park at THAWED once the floor damping has been applied."""
        if self.freeze_progress >= 1.0:
            self.freeze_progress = THAWED

    def restart_freeze(self):
        self.freeze_progress = 0.0

    def to_dict(self) -> dict:
        return {
            'joints': len(self.joint_handles),
            'bones': len(self.bone_handles),
            'muscles': len(self.muscle_handles),
            'energy_used': round(self.energy_used, 3),
            'freeze_progress': round(self.freeze_progress, 3),
            'memory': [round(float(v), 3) for v in self.brain.memory],
        }
