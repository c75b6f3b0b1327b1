# Evolver test fixtures
# Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

import numpy as np
import pytest

from evolver.blueprint import OrganismBlueprint
from evolver.config import GenerationConfig


@pytest.fixture
def rng():
    # Fixed seed for deterministic tests
    return np.random.default_rng(42)


@pytest.fixture
def make_blueprint(rng):
    """Square body, two bones, two muscles, one hidden layer."""
    def build(joints=None, bones=None, muscles=None, hidden=(4,)):
        joints = joints if joints is not None else [(0.0, 0.0), (20.0, 0.0), (0.0, 20.0), (20.0, 20.0)]
        bones = bones if bones is not None else [(0, 1), (2, 3)]
        muscles = muscles if muscles is not None else [(0, 2), (1, 3)]
        return OrganismBlueprint.new(joints, bones, muscles, list(hidden), rng)
    return build


@pytest.fixture
def fast_config():
    """Short generations so a transition happens within a handful of ticks."""
    return GenerationConfig(population_size=4, generation_duration=0.2, seed=7, preset="muscle_test")
