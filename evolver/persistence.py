"""
Evolver — Population Persistence

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

FORMAT:
  One JSON array, one object per blueprint, in population order:

    {"brain":   {"memory": [...], "weights": [[rows, cols, *cells]], "biases": [...]},
     "genome":  {"learning_rate": {"value": .., "mutate_rate": .., "mutate_factor": ..}, ...},
     "joint_positions": [[x, y], ...],
     "bones":   [[a, b], ...],
     "muscles": [[a, b], ...]}

  Floats are written with Python's shortest round-trip repr, so a save/load
  cycle reproduces every matrix cell bit for bit.

FILE NAMES:
  {save_folder}/{DD-MM-YYYY_HH-MM}_gen{generation}.json
"""

import json
from datetime import datetime
from pathlib import Path

from loguru import logger

from .blueprint import OrganismBlueprint
from .config import SaveConfig
from .exceptions import InvariantViolation, PersistenceError


def dump_population(blueprints: list[OrganismBlueprint]) -> str:
    return json.dumps([b.to_dict() for b in blueprints])


def parse_population(text: str) -> list[OrganismBlueprint]:
    try:
        records = json.loads(text)
    except json.JSONDecodeError as e:
        raise PersistenceError(f"Malformed population JSON: {e}") from e
    if not isinstance(records, list):
        raise PersistenceError("Population file must hold a JSON array")
    try:
        return [OrganismBlueprint.from_dict(r) for r in records]
    except (KeyError, IndexError, TypeError, ValueError, InvariantViolation) as e:
        raise PersistenceError(f"Invalid blueprint record: {e}") from e


def save_filename(generation: int, now: datetime = None) -> str:
    now = now or datetime.now()
    return f"{now.strftime('%d-%m-%Y_%H-%M')}_gen{generation}.json"


def save_population(blueprints: list[OrganismBlueprint], folder, generation: int) -> Path:
    path = Path(folder) / save_filename(generation)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_population(blueprints), encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"Error writing {path}: {e}") from e
    return path


def load_population(path) -> list[OrganismBlueprint]:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"Error opening {path}: {e}") from e
    return parse_population(text)


class PopulationSaver:
    """Writes the population every `save_every` generations. Never fatal."""

    def __init__(self, config: SaveConfig):
        self.config = config
        self.saved: list[Path] = []

    def maybe_save(self, blueprints: list[OrganismBlueprint], generation: int):
        if not self.config.save_enabled or generation % self.config.save_every != 0:
            return None
        try:
            path = save_population(blueprints, self.config.save_folder, generation)
        except PersistenceError as e:
            logger.warning(f"Error saving generation {generation}: {e}")
            return None
        self.saved.append(path)
        logger.info(f"Saved generation {generation} ({len(blueprints)} blueprints) to {path}")
        return path
