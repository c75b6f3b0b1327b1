"""
Evolver — Hand-Authored Bodies

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

Starting morphologies for a fresh run. Coordinates are relative to the
spawn point, y up, ground at y = 0.
"""

import numpy as np

from .blueprint import OrganismBlueprint


def runner(rng: np.random.Generator) -> OrganismBlueprint:
    """Two-legged trunk with a muscle down each side."""
    joint_pos = [
        (-20.0, 80.0), (20.0, 80.0),
        (-70.0, 60.0), (0.0, 60.0), (70.0, 60.0),
        (-40.0, 25.0), (40.0, 25.0),
    ]
    bones = [(0, 1), (2, 0), (0, 3), (1, 3), (4, 1), (5, 0), (6, 1), (3, 2), (3, 4)]
    muscles = [(5, 2), (6, 4)]
    return OrganismBlueprint.new(joint_pos, bones, muscles, [3, 3], rng)


def walker(rng: np.random.Generator) -> OrganismBlueprint:
    """Four feet, four muscles."""
    joint_pos = [
        (-20.0, 60.0), (20.0, 60.0),
        (-70.0, 40.0), (0.0, 40.0), (70.0, 40.0),
        (-60.0, 5.0), (-20.0, 5.0), (20.0, 5.0), (60.0, 5.0),
    ]
    bones = [
        (0, 1), (2, 0), (0, 3), (1, 3), (4, 1), (3, 2),
        (2, 4), (5, 0), (6, 3), (7, 3), (8, 1),
    ]
    muscles = [(5, 2), (6, 3), (7, 3), (8, 4)]
    return OrganismBlueprint.new(joint_pos, bones, muscles, [6, 6], rng)


def muscle_test(rng: np.random.Generator) -> OrganismBlueprint:
    """Smallest body with a working muscle."""
    joint_pos = [(0.0, 0.0), (25.0, 50.0), (50.0, 0.0)]
    bones = [(1, 2), (0, 1)]
    muscles = [(1, 0)]
    return OrganismBlueprint.new(joint_pos, bones, muscles, [3, 3], rng)


PRESETS = {
    'runner': runner,
    'walker': walker,
    'muscle_test': muscle_test,
}


def default_population(size: int, rng: np.random.Generator,
                       preset: str = 'runner') -> list[OrganismBlueprint]:
    """One authored body, independently wired brains, `size` times."""
    build = PRESETS[preset]
    return [build(rng) for _ in range(size)]
