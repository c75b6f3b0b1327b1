# Evolver — brain tests
# Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

import numpy as np
import pytest

from evolver.brain import Brain, matrix_from_record, matrix_to_record
from evolver.exceptions import InvariantViolation, ShapeMismatchError


def assert_shape_invariant(brain: Brain, stimuli: int = 2):
    for i, (w, b) in enumerate(zip(brain.weights, brain.biases)):
        assert b.shape == (1, w.shape[1])
        if i > 0:
            assert brain.weights[i - 1].shape[1] == w.shape[0]
    assert len(brain.memory) == brain.output_width
    assert brain.input_width == brain.memory_width + stimuli


# ─── Construction & Forward ─────────────────────────────

def test_random_brain_shapes(rng):
    brain = Brain.random([4, 3, 2], rng)
    assert brain.structure == [4, 3, 2]
    assert [w.shape for w in brain.weights] == [(4, 3), (3, 2)]
    assert [b.shape for b in brain.biases] == [(1, 3), (1, 2)]
    assert np.array_equal(brain.memory, np.zeros(2))
    assert brain.stimuli_width == 2
    assert np.all(np.abs(brain.weights[0]) <= 1.0)


def test_forward_output_and_memory_untouched(rng):
    brain = Brain.random([4, 3, 2], rng)
    out = brain.forward([0.5, -0.5])
    assert out.shape == (2,)
    assert np.all(np.abs(out) < 1.0)
    assert np.array_equal(brain.memory, np.zeros(2))
    brain.set_memory(out)
    assert np.array_equal(brain.memory, out)


def test_forward_rejects_wrong_stimulus_count(rng):
    brain = Brain.random([4, 3, 2], rng)
    with pytest.raises(ShapeMismatchError):
        brain.forward([1.0, 2.0, 3.0])


def test_set_memory_rejects_wrong_length(rng):
    brain = Brain.random([4, 3, 2], rng)
    with pytest.raises(ShapeMismatchError):
        brain.set_memory([1.0, 2.0, 3.0])


def test_mismatched_layers_rejected():
    with pytest.raises(ShapeMismatchError):
        Brain(weights=[np.zeros((3, 2)), np.zeros((3, 1))], biases=[np.zeros((1, 2)), np.zeros((1, 1))])


# ─── Resizing ───────────────────────────────────────────

def test_add_io_grows_first_and_last_layer(rng):
    brain = Brain.random([4, 3, 2], rng)
    before = brain.forward([0.3, 0.1])
    brain.add_io()
    assert brain.structure == [5, 3, 3]
    assert brain.memory_width == 3
    assert_shape_invariant(brain)
    # new input row and new output column start at zero
    assert np.array_equal(brain.weights[0][2], np.zeros(3))
    assert np.array_equal(brain.weights[-1][:, 2], np.zeros(3))
    assert np.allclose(brain.forward([0.3, 0.1])[:2], before)


def test_add_io_single_layer(rng):
    brain = Brain.random([3, 1], rng)
    brain.add_io()
    assert brain.weights[0].shape == (4, 2)
    assert brain.biases[0].shape == (1, 2)
    assert_shape_invariant(brain)


def test_remove_io_drops_matching_row_and_column(rng):
    brain = Brain.random([4, 3, 2], rng)
    before = brain.forward([0.3, 0.1])
    brain.remove_io(0)
    assert brain.structure == [3, 3, 1]
    assert_shape_invariant(brain)
    assert np.allclose(brain.forward([0.3, 0.1]), before[1:])


def test_remove_io_without_outputs_raises(rng):
    brain = Brain.random([2, 3, 0], rng)
    with pytest.raises(InvariantViolation):
        brain.remove_io()


def test_remove_io_out_of_range_raises(rng):
    brain = Brain.random([4, 3, 2], rng)
    with pytest.raises(InvariantViolation):
        brain.remove_io(5)


def test_shape_invariant_under_random_resize_sequence(rng):
    brain = Brain.random([3, 5, 1], rng)
    for _ in range(300):
        if brain.output_width == 0 or rng.random() < 0.5:
            brain.add_io()
        else:
            brain.remove_io(int(rng.integers(brain.output_width)))
        assert_shape_invariant(brain)
        assert brain.forward([0.0, 1.0]).shape == (brain.output_width,)


def test_resize_does_not_alias_old_arrays(rng):
    brain = Brain.random([4, 3, 2], rng)
    first = brain.weights[0]
    snapshot = first.copy()
    brain.add_io()
    brain.remove_io(0)
    assert brain.weights[0] is not first
    assert np.array_equal(first, snapshot)


# ─── Learning ───────────────────────────────────────────

def test_learn_rate_zero_changes_nothing(rng):
    brain = Brain.random([4, 3, 2], rng)
    clone = brain.clone()
    brain.learn(rng, rate=0.0, factor=1.0)
    for a, b in zip(brain.weights + brain.biases, clone.weights + clone.biases):
        assert np.array_equal(a, b)


def test_learn_rate_one_moves_every_cell_within_factor(rng):
    brain = Brain.random([4, 3, 2], rng)
    clone = brain.clone()
    brain.learn(rng, rate=1.0, factor=0.1)
    for a, b in zip(brain.weights + brain.biases, clone.weights + clone.biases):
        diff = np.abs(a - b)
        assert np.all(diff <= 0.1)
        assert np.all(diff > 0)


# ─── Serialization ──────────────────────────────────────

def test_matrix_record_layout():
    m = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    assert matrix_to_record(m) == [2, 3, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
    assert np.array_equal(matrix_from_record(matrix_to_record(m)), m)


def test_matrix_record_cell_count_checked():
    with pytest.raises(ShapeMismatchError):
        matrix_from_record([2, 2, 1.0, 2.0, 3.0])


def test_brain_dict_round_trip_is_exact(rng):
    brain = Brain.random([4, 3, 2], rng)
    brain.set_memory([0.1, -0.7])
    restored = Brain.from_dict(brain.to_dict())
    for a, b in zip(brain.weights + brain.biases, restored.weights + restored.biases):
        assert a.tobytes() == b.tobytes()
    assert restored.memory.tobytes() == brain.memory.tobytes()


@pytest.mark.parametrize("record", [[], [2]])
def test_matrix_record_without_dimensions_rejected(record):
    with pytest.raises(ShapeMismatchError):
        matrix_from_record(record)


def test_brains_compare_by_identity(rng):
    brain = Brain.random([4, 3, 2], rng)
    assert brain == brain
    assert brain != brain.clone()
