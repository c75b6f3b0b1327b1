"""
Evolver — Population & Generation Scheduler

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

THE TICK:
  The scheduler is driven by discrete ticks of `dt` seconds. Every tick:

    1. freeze ramp   — advance each fresh organism's damping ramp
    2. read phase    — root-joint rotation for every organism (all reads
                       happen before any write, so one tick sees one world)
    3. think phase   — brain forward pass per organism; optionally spread
                       over a thread pool in contiguous batches. Each worker
                       writes only to the organisms of its own batch.
    4. write phase   — muscle target lengths back to the world
    5. expiry        — once the generation timer runs out, evaluate,
                       select, mutate, despawn and respawn in one go

  A handle the world cannot resolve (despawned, or not materialized yet)
  skips that organism for the current tick. Entities live on their own
  clock; one tick of staleness is normal, not an error.

FITNESS:
  progress   = mean joint x now - mean joint x at spawn, floored at 0
  efficiency = 1 / (1 + energy_used)
  Each vector is divided by its own max |value| (all-zero stays zero), then
  fitness = 0.5 * progress + 0.5 * efficiency.

SELECTION (stochastic acceptance):
  Sweep the population in index order, accepting blueprint i with
  probability |f_i| (clipped to 1), until half the next generation is filled.
  Fill the rest by uniform sampling with replacement from the accepted set.
  Nobody with non-zero fitness is ever excluded with certainty. Combined
  fitness is at least 0.5 for the most efficient organism, so sweeps end
  quickly. All-zero fitness means every organism is accepted with
  probability 1.

  Every child (exact clones included) is mutated, so no generation is a
  copy of the last.

RNG:
  One np.random.Generator drives selection and mutation, single-threaded,
  so a seeded run reproduces the same evolutionary decisions.
"""

import math
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np
from loguru import logger

from .blueprint import OrganismBlueprint
from .config import GenerationConfig
from .exceptions import StaleEntityError
from .persistence import PopulationSaver
from .runtime import THAWED, OrganismRuntime
from .world import World


PROGRESS_WEIGHT = 0.5
EFFICIENCY_WEIGHT = 0.5
DEBUG_INTERVAL = 0.5


# ─── Fitness & Selection ─────────────────────────────────

def normalize(values) -> np.ndarray:
    """Divide by the max absolute value. Zero (or non-finite) max → zeros."""
    values = np.nan_to_num(np.asarray(values, dtype=np.float64), nan=0.0, posinf=0.0, neginf=0.0)
    if len(values) == 0:
        return values
    top = np.abs(values).max()
    if top == 0:
        return np.zeros_like(values)
    return values / top


def combine_fitness(progress, energy_used) -> np.ndarray:
    efficiency = 1.0 / (1.0 + np.asarray(energy_used, dtype=np.float64))
    return PROGRESS_WEIGHT * normalize(progress) + EFFICIENCY_WEIGHT * normalize(efficiency)


def select_parents(fitness, population_size: int, rng: np.random.Generator) -> list[int]:
    """Indices of the blueprints that seed the next generation, exactly `population_size` long."""
    fitness = np.abs(np.nan_to_num(np.asarray(fitness, dtype=np.float64), nan=0.0,
                                   posinf=0.0, neginf=0.0))
    n = len(fitness)
    if n == 0 or population_size < 1:
        return []

    acceptance = np.clip(fitness, 0.0, 1.0) if fitness.max() > 0 else np.ones(n)

    target = math.ceil(population_size / 2)
    accepted: list[int] = []
    while len(accepted) < target:
        for i in range(n):
            if rng.random() < acceptance[i]:
                accepted.append(i)
                if len(accepted) == target:
                    break

    pool = list(accepted)
    while len(accepted) < population_size:
        accepted.append(pool[int(rng.integers(len(pool)))])
    return accepted


def fitness_summary(values) -> dict:
    """Mean, median and upper decile, as the generation log reports them."""
    values = np.sort(np.asarray(values, dtype=np.float64))
    if len(values) == 0:
        return {'mean': 0.0, 'median': 0.0, 'upper_10': 0.0, 'max': 0.0}
    return {
        'mean': float(values.mean()),
        'median': float(values[len(values) // 2]),
        'upper_10': float(values[min(int(len(values) * 0.9), len(values) - 1)]),
        'max': float(values[-1]),
    }


# ─── Scheduler ───────────────────────────────────────────

class GenerationScheduler:
    """Owns the blueprints, their live instances, and the generation clock."""

    def __init__(self, world: World, blueprints: list[OrganismBlueprint],
                 config: GenerationConfig, rng: np.random.Generator,
                 saver: Optional[PopulationSaver] = None):
        self.world = world
        self.blueprints: list[OrganismBlueprint] = list(blueprints)
        self.runtimes: list[OrganismRuntime] = []
        self.spawned = False
        self.generation_counter = 0
        self.elapsed = 0.0
        self.config = config
        self.rng = rng
        self.saver = saver

        self.generation_stats: list[dict] = []
        self.events: list[dict] = []
        self._next_debug = 0.0
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def population_size(self) -> int:
        return self.config.population_size

    # ─── Lifecycle ───────────────────────────────────────

    def spawn(self):
        sep = self.config.vertical_sep
        self.runtimes = [
            bp.spawn(self.world, (0.0, i * sep)) for i, bp in enumerate(self.blueprints)
        ]
        if not self.config.unfreeze_flag:
            for rt in self.runtimes:
                rt.freeze_progress = THAWED
        self.spawned = True
        self._next_debug = 0.0
        self.events.append({
            'type': 'spawn', 'generation': self.generation_counter,
            'organisms': len(self.runtimes),
        })

    def despawn(self):
        for i, rt in enumerate(self.runtimes):
            for handle in rt.handles():
                try:
                    self.world.despawn(handle)
                except StaleEntityError as e:
                    logger.debug(f"Organism {i}: entity {e.ref} already gone at despawn")
        self.events.append({
            'type': 'despawn', 'generation': self.generation_counter,
            'organisms': len(self.runtimes),
        })
        self.runtimes = []
        self.spawned = False

    def toggle_freeze(self):
        """Restart the damping ramp for every live organism."""
        for rt in self.runtimes:
            rt.restart_freeze()

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ─── Tick ────────────────────────────────────────────

    def tick(self, dt: float):
        if not self.blueprints:
            return
        if not self.spawned:
            self.spawn()
            return

        self.elapsed += dt
        if self.config.unfreeze_flag:
            self._update_freeze(dt)

        rotations = self._read_rotations()
        targets = self._think(rotations)
        self._write_targets(targets)

        if self.config.debug_flag and self.runtimes and self.elapsed >= self._next_debug:
            logger.debug(f"Organism 0 memory: {np.round(self.runtimes[0].brain.memory, 3).tolist()}")
            self._next_debug = self.elapsed + DEBUG_INTERVAL

        if self.elapsed >= self.config.generation_duration:
            self.next_generation()

    def _update_freeze(self, dt: float):
        floor = self.config.floor_damping
        for i, rt in enumerate(self.runtimes):
            damping = rt.advance_freeze(dt, floor)
            if damping is None:
                continue
            try:
                for handle in rt.joint_handles:
                    self.world.apply_linear_damping(handle, damping)
            except StaleEntityError as e:
                logger.debug(f"Organism {i}: joint {e.ref} not ready for damping, skipping tick")
                continue
            # only thaw once the floor value has actually reached every joint
            rt.finish_freeze()

    def _read_rotations(self) -> list[Optional[float]]:
        rotations = []
        for i, rt in enumerate(self.runtimes):
            if rt.root is None:
                rotations.append(None)
                continue
            try:
                rotations.append(self.world.get_transform(rt.root).rotation)
            except StaleEntityError as e:
                logger.debug(f"Organism {i}: root joint {e.ref} not readable, skipping tick")
                rotations.append(None)
        return rotations

    def _think_batch(self, lo: int, hi: int, rotations) -> list[Optional[np.ndarray]]:
        out = []
        for rt, rotation in zip(self.runtimes[lo:hi], rotations[lo:hi]):
            if rotation is None:
                out.append(None)
            else:
                out.append(rt.process_stimuli(self.elapsed, rotation))
        return out

    def _think(self, rotations) -> list[Optional[np.ndarray]]:
        n = len(self.runtimes)
        workers = min(self.config.workers, n)
        if workers <= 1:
            return self._think_batch(0, n, rotations)

        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.workers, thread_name_prefix="evolver-brain")
            logger.debug(f"Created brain worker pool with {self.config.workers} threads")
        bounds = np.linspace(0, n, workers + 1).astype(int)
        futures = [
            self._executor.submit(self._think_batch, int(lo), int(hi), rotations)
            for lo, hi in zip(bounds[:-1], bounds[1:])
        ]
        targets = []
        for f in futures:
            targets.extend(f.result())
        return targets

    def _write_targets(self, targets):
        for i, (rt, lengths) in enumerate(zip(self.runtimes, targets)):
            if lengths is None:
                continue
            for handle, length in zip(rt.muscle_handles, lengths):
                try:
                    self.world.apply_force_to_contract_muscle(handle, float(length))
                except StaleEntityError as e:
                    logger.debug(f"Organism {i}: muscle {e.ref} not ready, skipping tick")
                    break

    # ─── Evaluation ──────────────────────────────────────

    def measure_progress(self) -> np.ndarray:
        """Horizontal displacement of each organism's joint centroid, floored at 0."""
        progress = np.zeros(len(self.runtimes))
        for i, rt in enumerate(self.runtimes):
            try:
                xs = [self.world.get_transform(h).position[0] for h in rt.joint_handles]
            except StaleEntityError as e:
                logger.debug(f"Organism {i}: joint {e.ref} unreadable at evaluation, scoring 0")
                continue
            if not xs:
                continue
            score = float(np.mean(xs)) - rt.spawn_centroid_x
            progress[i] = max(score, 0.0) if math.isfinite(score) else 0.0
        return progress

    def evaluate_fitness(self) -> np.ndarray:
        energy = [rt.energy_used for rt in self.runtimes]
        return combine_fitness(self.measure_progress(), energy)

    # ─── Generation Transition ───────────────────────────

    def next_generation(self) -> Optional[dict]:
        if not self.runtimes:
            return None

        progress = self.measure_progress()
        energy = np.array([rt.energy_used for rt in self.runtimes])
        fitness = combine_fitness(progress, energy)
        stats = self._record_stats(fitness, progress, energy)

        parents = select_parents(fitness, self.population_size, self.rng)
        children = []
        for p in parents:
            child = self.blueprints[p].clone()
            child.mutate(self.rng)
            children.append(child)

        self.despawn()
        self.blueprints = children
        self.generation_counter += 1
        self.elapsed = 0.0
        self.spawn()

        if self.saver is not None:
            path = self.saver.maybe_save(self.blueprints, self.generation_counter)
            if path is not None:
                self.events.append({
                    'type': 'save', 'generation': self.generation_counter, 'path': str(path),
                })

        self.events.append({
            'type': 'generation', 'generation': self.generation_counter,
            'parents': sorted(set(parents)), 'best_fitness': stats['fitness']['max'],
        })
        return stats

    def _record_stats(self, fitness, progress, energy) -> dict:
        stats = {
            'generation': self.generation_counter,
            'organisms': len(fitness),
            'fitness': fitness_summary(fitness),
            'progress': fitness_summary(progress),
            'avg_energy': float(np.mean(energy)) if len(energy) else 0.0,
            'avg_muscles': float(np.mean([len(b.muscles) for b in self.blueprints])),
            'avg_joints': float(np.mean([len(b.joint_positions) for b in self.blueprints])),
        }
        self.generation_stats.append(stats)
        p = stats['progress']
        logger.info(
            f"Generation {self.generation_counter}: progress mean={p['mean']:.2f} "
            f"median={p['median']:.2f} upper_10={p['upper_10']:.2f} "
            f"energy={stats['avg_energy']:.2f}")
        return stats

    # ─── Query ───────────────────────────────────────────

    def get_state(self) -> dict:
        return {
            'generation': self.generation_counter,
            'elapsed': round(self.elapsed, 3),
            'duration': self.config.generation_duration,
            'spawned': self.spawned,
            'population': len(self.blueprints),
            'organisms': [rt.to_dict() for rt in self.runtimes],
            'stats': self.generation_stats[-1] if self.generation_stats else {},
        }

    def pop_events(self) -> list[dict]:
        events = self.events
        self.events = []
        return events
