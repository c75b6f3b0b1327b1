# Evolver — self-adaptive neuro-evolution of 2-D soft creatures
# Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

from .genome import Allele, Genome
from .brain import Brain
from .blueprint import OrganismBlueprint
from .runtime import OrganismRuntime
from .world import World, SandboxWorld, EntityRef, Transform
from .population import GenerationScheduler, select_parents
from .persistence import save_population, load_population, PopulationSaver
from .config import Config, GenerationConfig, SaveConfig, load_config
from .simulation import Simulation
from .exceptions import (
    EvolverError, InvariantViolation, ShapeMismatchError,
    StaleEntityError, PersistenceError, ConfigError,
)

__author__ = "SolisHQ"
__version__ = "1.0.0"
