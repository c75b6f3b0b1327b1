"""
Evolver — Recurrent Brain

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

ARCHITECTURE:
  A plain feed-forward stack with one step of memory:

    input  = [memory (one slot per muscle) | external stimuli]
    h_0    = tanh(input @ W_0 + b_0)
    h_i    = tanh(h_{i-1} @ W_i + b_i)
    output = h_last                       (one activation per muscle)

  Row-vector convention: W_i has shape (inputs_i, outputs_i), b_i has shape
  (1, outputs_i). The caller feeds the output back through `set_memory`, so
  the brain sees its own previous muscle activations on the next tick.

SHAPE INVARIANT:
  weights[i].shape[1] == biases[i].shape[1] == weights[i+1].shape[0]
  len(memory) == output_width
  input_width == len(memory) + external stimuli count

  The body grows and loses muscles, so input and output width change
  together: `add_io` / `remove_io` insert or delete the matching memory row
  in the first layer and the matching output column in the last layer.
  New connections start at zero — adding a muscle does not change what the
  existing muscles do until mutation finds a use for it.

  Resizing never edits an array in place: every resize builds new arrays
  and swaps them in.
"""

from dataclasses import dataclass, field

import numpy as np

from .exceptions import InvariantViolation, ShapeMismatchError


@dataclass(eq=False)
class Brain:
    weights: list[np.ndarray]
    biases: list[np.ndarray]
    memory: np.ndarray = field(default=None)

    def __post_init__(self):
        if not self.weights or len(self.weights) != len(self.biases):
            raise InvariantViolation("brain needs matching, non-empty weight and bias lists")
        if self.memory is None:
            self.memory = np.zeros(self.output_width)
        self.check_invariants()

    @classmethod
    def random(cls, structure: list[int], rng: np.random.Generator) -> 'Brain':
        """Uniform [-1, 1] weights and biases for layer widths `structure`."""
        if len(structure) < 2:
            raise InvariantViolation(f"brain structure needs >= 2 layers, got {structure}")
        weights, biases = [], []
        for n_in, n_out in zip(structure[:-1], structure[1:]):
            weights.append(rng.uniform(-1.0, 1.0, (n_in, n_out)))
            biases.append(rng.uniform(-1.0, 1.0, (1, n_out)))
        return cls(weights=weights, biases=biases)

    # ─── Shape ───────────────────────────────────────────

    @property
    def input_width(self) -> int:
        return self.weights[0].shape[0]

    @property
    def output_width(self) -> int:
        return self.weights[-1].shape[1]

    @property
    def structure(self) -> list[int]:
        return [self.input_width] + [w.shape[1] for w in self.weights]

    @property
    def memory_width(self) -> int:
        return len(self.memory)

    @property
    def stimuli_width(self) -> int:
        return self.input_width - self.memory_width

    def check_invariants(self):
        for i, (w, b) in enumerate(zip(self.weights, self.biases)):
            if w.ndim != 2 or b.shape != (1, w.shape[1]):
                raise ShapeMismatchError(f"layer {i}: weights {w.shape} vs biases {b.shape}")
            if i > 0 and self.weights[i - 1].shape[1] != w.shape[0]:
                raise ShapeMismatchError(
                    f"layer {i}: expects {w.shape[0]} inputs, previous layer "
                    f"emits {self.weights[i - 1].shape[1]}")
        if len(self.memory) != self.output_width:
            raise ShapeMismatchError(
                f"memory holds {len(self.memory)} values, output width is {self.output_width}")
        if self.stimuli_width < 0:
            raise ShapeMismatchError(
                f"input width {self.input_width} smaller than memory {self.memory_width}")

    # ─── Forward Pass ────────────────────────────────────

    def forward(self, external_stimuli) -> np.ndarray:
        """Run memory + stimuli through every layer. Memory is left untouched."""
        x = np.concatenate([self.memory, np.asarray(external_stimuli, dtype=np.float64)])
        if len(x) != self.input_width:
            raise ShapeMismatchError(
                f"brain can only receive {self.input_width} inputs, received {len(x)}")
        h = x.reshape(1, -1)
        for w, b in zip(self.weights, self.biases):
            h = np.tanh(h @ w + b)
        return h[0]

    def set_memory(self, values):
        values = np.asarray(values, dtype=np.float64)
        if values.shape != self.memory.shape:
            raise ShapeMismatchError(
                f"trying to remember {values.shape[0] if values.ndim else 0} values, "
                f"{len(self.memory)} allocated")
        self.memory = values.copy()

    # ─── Mutation ────────────────────────────────────────

    def learn(self, rng: np.random.Generator, rate: float, factor: float):
        """Each cell, with probability `rate`, moves by U[-factor, factor]."""
        for matrices in (self.weights, self.biases):
            for i, m in enumerate(matrices):
                mask = rng.random(m.shape) < rate
                delta = rng.uniform(-factor, factor, m.shape)
                matrices[i] = np.where(mask, m + delta, m)

    # ─── Resizing ────────────────────────────────────────

    def add_io(self):
        """One more muscle: memory slot in, output column out."""
        slot = self.memory_width
        last = len(self.weights) - 1

        self.weights[0] = insert_row(self.weights[0], slot)
        # Single-layer brains share first and last matrix; the row goes in first
        self.weights[last] = insert_column(self.weights[last], self.output_width)
        self.biases[last] = insert_column(self.biases[last], self.biases[last].shape[1])
        self.memory = np.append(self.memory, 0.0)
        self.check_invariants()

    def remove_io(self, index: int = -1):
        """Drop muscle `index`: its memory row in and its output column out."""
        n = self.memory_width
        if n == 0:
            raise InvariantViolation("brain has no outputs left to remove")
        if not -n <= index < n:
            raise InvariantViolation(f"output index {index} out of range for {n} outputs")
        index %= n
        last = len(self.weights) - 1

        self.weights[0] = delete_row(self.weights[0], index)
        self.weights[last] = delete_column(self.weights[last], index)
        self.biases[last] = delete_column(self.biases[last], index)
        self.memory = np.delete(self.memory, index)
        self.check_invariants()

    # ─── Copy / Serialization ────────────────────────────

    def clone(self) -> 'Brain':
        return Brain(
            weights=[w.copy() for w in self.weights],
            biases=[b.copy() for b in self.biases],
            memory=self.memory.copy(),
        )

    def to_dict(self) -> dict:
        return {
            'memory': [float(v) for v in self.memory],
            'weights': [matrix_to_record(w) for w in self.weights],
            'biases': [matrix_to_record(b) for b in self.biases],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Brain':
        return cls(
            weights=[matrix_from_record(r) for r in data['weights']],
            biases=[matrix_from_record(r) for r in data['biases']],
            memory=np.array(data['memory'], dtype=np.float64),
        )


# ─── Pure Matrix Helpers ─────────────────────────────────

def insert_row(m: np.ndarray, index: int) -> np.ndarray:
    return np.insert(m, index, 0.0, axis=0)


def insert_column(m: np.ndarray, index: int) -> np.ndarray:
    return np.insert(m, index, 0.0, axis=1)


def delete_row(m: np.ndarray, index: int) -> np.ndarray:
    return np.delete(m, index, axis=0)


def delete_column(m: np.ndarray, index: int) -> np.ndarray:
    return np.delete(m, index, axis=1)


def matrix_to_record(m: np.ndarray) -> list:
    """[rows, cols, *cells] in row-major order."""
    rows, cols = m.shape
    return [rows, cols] + [float(v) for v in m.ravel()]


def matrix_from_record(record: list) -> np.ndarray:
    if len(record) < 2:
        raise ShapeMismatchError(f"matrix record needs rows and cols, got {record!r}")
    rows, cols = int(record[0]), int(record[1])
    cells = record[2:]
    if len(cells) != rows * cols:
        raise ShapeMismatchError(f"matrix record {rows}x{cols} carries {len(cells)} cells")
    return np.array(cells, dtype=np.float64).reshape(rows, cols)
