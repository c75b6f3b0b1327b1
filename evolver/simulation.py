"""
Evolver — Simulation

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

Wires a world, an initial population and a scheduler together from one
Config. The scheduler ticks first, then the world integrates, so every
command issued in a tick is applied by the physics step that follows it.
"""

import math
from typing import Optional

import numpy as np
from loguru import logger

from .blueprint import OrganismBlueprint
from .config import Config
from .exceptions import PersistenceError
from .persistence import PopulationSaver, load_population, save_population
from .population import GenerationScheduler
from .presets import default_population
from .world import SandboxWorld


DEFAULT_DT = 1.0 / 60.0


def initial_population(config: Config, rng: np.random.Generator) -> list[OrganismBlueprint]:
    """Saved population if loading is enabled and works, authored preset otherwise."""
    gen = config.generation
    save = config.save
    if save.load_enabled:
        if not save.load_path:
            logger.warning("Loading enabled but no load_path set, using default population")
        else:
            try:
                blueprints = load_population(save.load_path)
            except PersistenceError as e:
                logger.warning(f"{e}. Using default population")
            else:
                logger.info(f"Loaded {len(blueprints)} blueprints from {save.load_path}")
                return blueprints
    return default_population(gen.population_size, rng, gen.preset)


class Simulation:

    def __init__(self, config: Optional[Config] = None,
                 blueprints: Optional[list[OrganismBlueprint]] = None):
        self.config = config or Config()
        gen = self.config.generation
        self.rng = np.random.default_rng(gen.seed)
        self.world = SandboxWorld(lane_height=gen.vertical_sep)
        if blueprints is None:
            blueprints = initial_population(self.config, self.rng)
        self.saver = PopulationSaver(self.config.save)
        self.scheduler = GenerationScheduler(
            self.world, blueprints, gen, self.rng, saver=self.saver)

    @property
    def generation(self) -> int:
        return self.scheduler.generation_counter

    def step(self, dt: float = DEFAULT_DT):
        self.scheduler.tick(dt)
        self.world.step(dt)

    def run_generations(self, n: int, dt: float = DEFAULT_DT) -> list[dict]:
        """Tick until `n` more generations have completed. Returns their stats."""
        if not self.scheduler.blueprints:
            return []
        target = self.generation + n
        # spawn tick + ticks per generation, with slack for float drift
        per_gen = math.ceil(self.config.generation.generation_duration / dt) + 2
        budget = n * per_gen + 1
        while self.generation < target and budget > 0:
            self.step(dt)
            budget -= 1
        return self.scheduler.generation_stats[-n:] if n > 0 else []

    def toggle_freeze(self):
        self.scheduler.toggle_freeze()

    def save(self):
        return save_population(self.scheduler.blueprints, self.config.save.save_folder,
                               self.generation)

    def close(self):
        self.scheduler.close()

    def summary(self) -> dict:
        stats = self.scheduler.generation_stats
        return {
            'generation': self.generation,
            'population': len(self.scheduler.blueprints),
            'world_time': round(self.world.time, 3),
            'best_progress': max((s['progress']['max'] for s in stats), default=0.0),
            'last': stats[-1] if stats else {},
            'saved': [str(p) for p in self.saver.saved],
        }
