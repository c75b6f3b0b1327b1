"""
Evolver — Error Taxonomy

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

Four families, each with its own handling policy:

  InvariantViolation  — a mutation operator broke a blueprint or brain
                        invariant. Programmer error. Never caught.
  StaleEntityError    — the world no longer (or not yet) resolves a handle.
                        Expected around despawn/respawn. Skipped per tick.
  PersistenceError    — a saved population could not be read or written.
                        Callers fall back to the default population.
  ConfigError         — a configuration file exists but is malformed.
"""


class EvolverError(Exception):
    """Base for all Evolver exceptions."""

    pass


class InvariantViolation(EvolverError, AssertionError):
    """A structural invariant of a blueprint or brain does not hold."""

    pass


class ShapeMismatchError(InvariantViolation):
    """Brain matrices, memory or stimuli disagree on a dimension."""

    pass


class StaleEntityError(EvolverError, LookupError):
    """An entity handle does not resolve in the world."""

    def __init__(self, ref):
        super().__init__(f"entity {ref} does not exist")
        self.ref = ref


class PersistenceError(EvolverError):
    """Population save/load failures."""

    pass


class ConfigError(EvolverError):
    """Configuration file could not be parsed or validated."""

    pass
