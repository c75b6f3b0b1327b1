"""
Evolver — Organism Blueprint

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

A blueprint is everything needed to build a creature and nothing that
lives in the world: brain, genome, joint positions (relative to the spawn
point) and bone / muscle connectivity as pairs of joint indices.

INVARIANTS (checked after every mutation and every load):
  - every bone and muscle index < len(joint_positions), no self-links
  - brain output width == len(muscles)
  - brain input width  == len(muscles) + EXTERNAL_STIMULI

MUTATION, in order:
  a. genome (meta parameters, then values)
  b. brain weights, gated by learning_rate, scaled by learning_factor
  c. joint drift: each joint, with p = joint_mutate_rate, moves by a
     uniform offset of half-width joint_mutate_factor, then is clamped
     into JOINT_BOUNDS so morphology cannot run away
  d. with p = bone_mutate_rate: grow a bone to a new joint, or drop a
     bone no muscle depends on (50/50)
  e. with p = muscle_mutate_rate: add a muscle between two distinct joints,
     or drop one (50/50). Each muscle change resizes the brain in step.

  Joints are never deleted, so existing indices stay valid.
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .brain import Brain
from .exceptions import InvariantViolation
from .genome import Genome
from .runtime import EXTERNAL_STIMULI, OrganismRuntime
from .world import World


Vec2 = tuple[float, float]

JOINT_BOUNDS = ((-100.0, 0.0), (100.0, 150.0))
NEW_JOINT_REACH = 40.0


def clamp_to_bounds(x: float, y: float) -> Vec2:
    (x_min, y_min), (x_max, y_max) = JOINT_BOUNDS
    return (float(np.clip(x, x_min, x_max)), float(np.clip(y, y_min, y_max)))


@dataclass(eq=False)
class OrganismBlueprint:
    brain: Brain
    genome: Genome = field(default_factory=Genome)
    joint_positions: list[Vec2] = field(default_factory=list)
    bones: list[tuple[int, int]] = field(default_factory=list)
    muscles: list[tuple[int, int]] = field(default_factory=list)

    def __post_init__(self):
        self.joint_positions = [(float(x), float(y)) for x, y in self.joint_positions]
        self.bones = [(int(a), int(b)) for a, b in self.bones]
        self.muscles = [(int(a), int(b)) for a, b in self.muscles]
        self.check_invariants()

    @classmethod
    def new(cls, joint_positions, bones, muscles, hidden_layers: list[int],
            rng: np.random.Generator, genome: Optional[Genome] = None) -> 'OrganismBlueprint':
        """Hand-authored body with a fresh random brain sized to its muscles."""
        n_muscles = len(muscles)
        structure = [EXTERNAL_STIMULI + n_muscles, *hidden_layers, n_muscles]
        return cls(
            brain=Brain.random(structure, rng),
            genome=genome or Genome(),
            joint_positions=list(joint_positions),
            bones=list(bones),
            muscles=list(muscles),
        )

    def check_invariants(self):
        n = len(self.joint_positions)
        for kind, pairs in (('bone', self.bones), ('muscle', self.muscles)):
            for a, b in pairs:
                if not (0 <= a < n and 0 <= b < n):
                    raise InvariantViolation(f"{kind} {(a, b)} references a joint outside 0..{n - 1}")
                if a == b:
                    raise InvariantViolation(f"{kind} {(a, b)} links a joint to itself")
        self.brain.check_invariants()
        if self.brain.output_width != len(self.muscles):
            raise InvariantViolation(
                f"brain drives {self.brain.output_width} muscles, body has {len(self.muscles)}")
        if self.brain.stimuli_width != EXTERNAL_STIMULI:
            raise InvariantViolation(
                f"brain expects {self.brain.stimuli_width} external stimuli, "
                f"organisms provide {EXTERNAL_STIMULI}")

    # ─── Spawning ────────────────────────────────────────

    def spawn(self, world: World, translation: Vec2 = (0.0, 0.0)) -> OrganismRuntime:
        offset = np.asarray(translation, dtype=np.float64)
        positions = [offset + np.asarray(p) for p in self.joint_positions]

        joint_handles = [world.spawn_joint(tuple(p)) for p in positions]
        bone_handles = [
            world.spawn_bone((joint_handles[a], joint_handles[b]), (positions[a], positions[b]))
            for a, b in self.bones
        ]
        muscle_handles = [
            world.spawn_muscle((joint_handles[a], joint_handles[b]), (positions[a], positions[b]))
            for a, b in self.muscles
        ]
        rest = np.array([
            np.linalg.norm(positions[b] - positions[a]) for a, b in self.muscles
        ], dtype=np.float64)

        return OrganismRuntime(
            brain=self.brain.clone(),
            genome=self.genome.clone(),
            joint_handles=joint_handles,
            bone_handles=bone_handles,
            muscle_handles=muscle_handles,
            muscle_rest_lengths=rest,
            spawn_centroid_x=float(np.mean([p[0] for p in positions])) if positions else 0.0,
        )

    # ─── Mutation ────────────────────────────────────────

    def mutate(self, rng: np.random.Generator):
        g = self.genome
        g.mutate(rng)
        self.brain.learn(rng, g.learning_rate.value, g.learning_factor.value)
        self.mutate_joints(rng)

        if rng.random() < g.bone_mutate_rate.value:
            if rng.random() < 0.5:
                self.add_bone(rng)
            else:
                self.remove_bone(rng)

        if rng.random() < g.muscle_mutate_rate.value:
            if rng.random() < 0.5:
                self.add_muscle(rng)
            else:
                self.remove_muscle(rng)

        self.check_invariants()

    def mutate_joints(self, rng: np.random.Generator):
        rate = self.genome.joint_mutate_rate.value
        factor = self.genome.joint_mutate_factor.value
        for i, (x, y) in enumerate(self.joint_positions):
            if rng.random() < rate:
                dx, dy = rng.uniform(-factor, factor, 2)
                self.joint_positions[i] = clamp_to_bounds(x + dx, y + dy)

    def add_bone(self, rng: np.random.Generator) -> bool:
        """Grow a bone from a random joint to a brand-new joint nearby."""
        if not self.joint_positions:
            return False
        anchor = int(rng.integers(len(self.joint_positions)))
        x, y = self.joint_positions[anchor]
        dx, dy = rng.uniform(-NEW_JOINT_REACH, NEW_JOINT_REACH, 2)
        self.joint_positions.append(clamp_to_bounds(x + dx, y + dy))
        self.bones.append((anchor, len(self.joint_positions) - 1))
        return True

    def muscle_joints(self) -> set[int]:
        return {j for pair in self.muscles for j in pair}

    def remove_bone(self, rng: np.random.Generator) -> bool:
        """Drop a random bone that shares no joint with any muscle."""
        anchored = self.muscle_joints()
        candidates = [
            i for i, (a, b) in enumerate(self.bones)
            if a not in anchored and b not in anchored
        ]
        if not candidates:
            return False
        del self.bones[candidates[int(rng.integers(len(candidates)))]]
        return True

    def add_muscle(self, rng: np.random.Generator) -> bool:
        if len(self.joint_positions) < 2:
            return False
        a, b = rng.choice(len(self.joint_positions), size=2, replace=False)
        self.muscles.append((int(a), int(b)))
        self.brain.add_io()
        return True

    def remove_muscle(self, rng: np.random.Generator) -> bool:
        if not self.muscles:
            return False
        index = int(rng.integers(len(self.muscles)))
        del self.muscles[index]
        self.brain.remove_io(index)
        return True

    # ─── Copy / Serialization ────────────────────────────

    def clone(self) -> 'OrganismBlueprint':
        return OrganismBlueprint(
            brain=self.brain.clone(),
            genome=self.genome.clone(),
            joint_positions=list(self.joint_positions),
            bones=list(self.bones),
            muscles=list(self.muscles),
        )

    def to_dict(self) -> dict:
        return {
            'brain': self.brain.to_dict(),
            'genome': self.genome.to_dict(),
            'joint_positions': [[x, y] for x, y in self.joint_positions],
            'bones': [[a, b] for a, b in self.bones],
            'muscles': [[a, b] for a, b in self.muscles],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'OrganismBlueprint':
        return cls(
            brain=Brain.from_dict(data['brain']),
            genome=Genome.from_dict(data['genome']),
            joint_positions=[tuple(p) for p in data['joint_positions']],
            bones=[tuple(p) for p in data['bones']],
            muscles=[tuple(p) for p in data['muscles']],
        )
