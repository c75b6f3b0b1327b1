"""
Evolver — Configuration

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

Pydantic models for everything a run can be tuned with. A JSON file with
the same shape as `Config` can be loaded with `load_config`; a missing file
means defaults, a broken one is an error.
"""

from pathlib import Path
from typing import Literal, Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError


class GenerationConfig(BaseModel):
    population_size: int = Field(default=20, ge=2, le=5000)
    vertical_sep: float = Field(default=200.0, gt=0)
    generation_duration: float = Field(default=20.0, gt=0)
    unfreeze_flag: bool = True          # run the damping ramp after every spawn
    debug_flag: bool = False            # log organism 0's brain memory twice a second
    floor_damping: float = Field(default=0.2, ge=0)
    workers: int = Field(default=1, ge=1, le=64)
    seed: Optional[int] = None
    preset: Literal["runner", "walker", "muscle_test"] = "runner"


class SaveConfig(BaseModel):
    save_enabled: bool = False
    save_every: int = Field(default=10, ge=1)
    save_folder: str = "saves"
    load_enabled: bool = False
    load_path: Optional[str] = None


class Config(BaseModel):
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    save: SaveConfig = Field(default_factory=SaveConfig)
    log_level: str = "INFO"


def load_config(path) -> Config:
    path = Path(path)
    if not path.exists():
        logger.warning(f"Config file {path} not found, using defaults")
        return Config()
    try:
        return Config.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        raise ConfigError(f"Error reading config {path}: {e}") from e
