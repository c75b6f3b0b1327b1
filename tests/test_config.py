# Evolver — configuration tests
# Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

import json

import pytest
from pydantic import ValidationError

from evolver.config import Config, GenerationConfig, SaveConfig, load_config
from evolver.exceptions import ConfigError


def test_defaults():
    config = Config()
    assert config.generation.population_size == 20
    assert config.generation.vertical_sep == 200.0
    assert config.generation.unfreeze_flag is True
    assert config.generation.debug_flag is False
    assert config.save.save_every == 10
    assert config.log_level == "INFO"


@pytest.mark.parametrize("field, value", [
    ("population_size", 1),
    ("generation_duration", 0.0),
    ("workers", 0),
    ("preset", "octopus"),
])
def test_generation_bounds(field, value):
    with pytest.raises(ValidationError):
        GenerationConfig(**{field: value})


def test_save_every_must_be_positive():
    with pytest.raises(ValidationError):
        SaveConfig(save_every=0)


def test_load_config_missing_file_uses_defaults(tmp_path):
    assert load_config(tmp_path / "missing.json") == Config()


def test_load_config_partial_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"generation": {"population_size": 8, "seed": 3},
                                "save": {"save_enabled": True}}))
    config = load_config(path)
    assert config.generation.population_size == 8
    assert config.generation.seed == 3
    assert config.generation.generation_duration == 20.0
    assert config.save.save_enabled is True


@pytest.mark.parametrize("text", ["{not json", '{"generation": {"population_size": -4}}'])
def test_load_config_malformed_raises(tmp_path, text):
    path = tmp_path / "config.json"
    path.write_text(text)
    with pytest.raises(ConfigError):
        load_config(path)
