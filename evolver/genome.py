"""
Evolver — Self-Adaptive Genome

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

ALLELE:
  One evolvable scalar that carries its own mutation parameters:
    value          — the parameter itself (a rate, a magnitude, a period)
    mutate_rate    — probability that `value` is perturbed this generation
    mutate_factor  — half-width of the uniform perturbation of `value`

  Nothing may collapse to zero or go negative: a zero rate or factor would
  freeze that line of evolution forever. Everything is floored at EPSILON
  and the rate is clamped to [EPSILON, 1].

GENOME:
  A fixed, named set of alleles that steers every other mutation operator
  (brain weights, joint drift, bone and muscle topology, internal clock).

TWO-LEVEL MUTATION:
  1. Meta step — every allele (the `meta` allele included) has its rate and
     factor perturbed, gated and scaled by the meta-rate / meta-factor that
     the genome carried INTO this generation.
  2. Value step — every allele's value is perturbed using its (now updated)
     rate and factor.
  Capturing the meta parameters before step 1 means the meta allele's own
  mutation only takes effect from the next generation on.
"""

from dataclasses import dataclass, field

import numpy as np


EPSILON = 0.001


@dataclass
class Allele:
    value: float = 0.5
    mutate_rate: float = 1.0
    mutate_factor: float = 0.5

    def mutate(self, rng: np.random.Generator, meta_rate: float, meta_factor: float):
        """Perturb this allele's own mutation parameters (meta step)."""
        if rng.random() < meta_rate:
            self.mutate_rate += rng.uniform(-meta_factor, meta_factor)
            self.mutate_factor += rng.uniform(-meta_factor, meta_factor)
        self.mutate_rate = float(np.clip(self.mutate_rate, EPSILON, 1.0))
        self.mutate_factor = float(max(self.mutate_factor, EPSILON))

    def mutate_value(self, rng: np.random.Generator):
        """Perturb the value using the allele's own rate and factor."""
        if rng.random() < self.mutate_rate:
            self.value += rng.uniform(-self.mutate_factor, self.mutate_factor)
        self.value = float(max(self.value, EPSILON))

    def clone(self) -> 'Allele':
        return Allele(self.value, self.mutate_rate, self.mutate_factor)

    def to_dict(self) -> dict:
        return {
            'value': float(self.value),
            'mutate_rate': float(self.mutate_rate),
            'mutate_factor': float(self.mutate_factor),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Allele':
        return cls(
            value=float(data['value']),
            mutate_rate=float(data['mutate_rate']),
            mutate_factor=float(data['mutate_factor']),
        )


# (value, mutate_rate, mutate_factor) for a freshly authored organism.
# Morphology rates start low: a topology change every generation would
# drown out any weight-level progress.
ALLELE_DEFAULTS = {
    'meta':                (1.0, 0.5, 0.05),
    'learning_rate':       (0.1, 0.5, 0.02),
    'learning_factor':     (0.2, 0.5, 0.05),
    'joint_mutate_rate':   (0.05, 0.5, 0.01),
    'joint_mutate_factor': (4.0, 0.5, 1.0),
    'bone_mutate_rate':    (0.02, 0.5, 0.005),
    'muscle_mutate_rate':  (0.02, 0.5, 0.005),
    'internal_clock':      (1.0, 0.5, 0.1),
}


def _default(name: str):
    return lambda: Allele(*ALLELE_DEFAULTS[name])


@dataclass
class Genome:
    meta: Allele = field(default_factory=_default('meta'))
    learning_rate: Allele = field(default_factory=_default('learning_rate'))
    learning_factor: Allele = field(default_factory=_default('learning_factor'))
    joint_mutate_rate: Allele = field(default_factory=_default('joint_mutate_rate'))
    joint_mutate_factor: Allele = field(default_factory=_default('joint_mutate_factor'))
    bone_mutate_rate: Allele = field(default_factory=_default('bone_mutate_rate'))
    muscle_mutate_rate: Allele = field(default_factory=_default('muscle_mutate_rate'))
    internal_clock: Allele = field(default_factory=_default('internal_clock'))

    NAMES = tuple(ALLELE_DEFAULTS)

    def alleles(self) -> list[tuple[str, Allele]]:
        return [(name, getattr(self, name)) for name in self.NAMES]

    @property
    def meta_rate(self) -> float:
        return self.meta.mutate_rate

    @property
    def meta_factor(self) -> float:
        return self.meta.mutate_factor

    def mutate(self, rng: np.random.Generator):
        """Meta step on every allele, then value step on every allele."""
        meta_rate, meta_factor = self.meta_rate, self.meta_factor
        for _, allele in self.alleles():
            allele.mutate(rng, meta_rate, meta_factor)
        for _, allele in self.alleles():
            allele.mutate_value(rng)

    def clone(self) -> 'Genome':
        return Genome(**{name: allele.clone() for name, allele in self.alleles()})

    def to_dict(self) -> dict:
        return {name: allele.to_dict() for name, allele in self.alleles()}

    @classmethod
    def from_dict(cls, data: dict) -> 'Genome':
        # Alleles added after a population was saved fall back to defaults
        return cls(**{
            name: Allele.from_dict(data[name])
            for name in cls.NAMES if name in data
        })
