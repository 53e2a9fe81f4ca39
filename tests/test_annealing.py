import math
import random
import sys
from pathlib import Path

import pytest

# Ensure project root is on PYTHONPATH when tests are run via `pytest`
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from optimizer.annealing import (
    AnnealConfig,
    acceptance_probability,
    anneal,
    hyperbolic_temperature,
)


# Toy problem: state is [x], minimize (x-3)^2 over x >= 0 with +/-1 moves.
def _mutate(state, rng: random.Random):
    step = 1 if rng.random() < 0.5 else -1
    state[0] += step
    return step


def _undo(state, step) -> None:
    state[0] -= step


def _energy(state):
    if state[0] < 0:
        return None
    return (state[0] - 3) ** 2


def test_anneal_reaches_minimum_on_quadratic():
    result = anneal(
        initial_state=[10],
        mutate=_mutate,
        energy=_energy,
        clone=list,
        undo=_undo,
        config=AnnealConfig(steps=2000, temp_multiplier=0.01, seed=1),
    )

    assert result.energy == 0
    assert result.state == [3]
    assert result.total_steps == 2000


def test_snapshot_and_undo_rollback_end_in_identical_states():
    for seed in range(1, 6):
        snap = anneal([10], _mutate, _energy, list, _undo, AnnealConfig(steps=3000, seed=seed, rollback="snapshot"))
        und = anneal([10], _mutate, _energy, list, _undo, AnnealConfig(steps=3000, seed=seed, rollback="undo"))

        assert snap.state == und.state
        assert snap.energy == und.energy
        assert snap.accepted_moves == und.accepted_moves
        assert snap.rejected_moves == und.rejected_moves


def test_same_seed_is_reproducible():
    a = anneal([10], _mutate, _energy, list, _undo, AnnealConfig(steps=1500, seed=9))
    b = anneal([10], _mutate, _energy, list, _undo, AnnealConfig(steps=1500, seed=9))

    assert a.state == b.state
    assert a.energy == b.energy


def test_initial_state_is_not_modified():
    initial = [10]
    anneal(initial, _mutate, _energy, list, _undo, AnnealConfig(steps=200, seed=3))
    assert initial == [10]


def test_infeasible_states_are_never_kept():
    seen = []

    def callback(step, temperature, current_energy, accepted):
        seen.append(current_energy)

    # Start at the feasibility boundary; moves to x=-1 are infeasible.
    result = anneal([0], _mutate, _energy, list, _undo, AnnealConfig(steps=500, seed=4), callback=callback)

    assert result.state[0] >= 0
    assert all(e is not None for e in seen)


def test_noop_moves_count_towards_the_budget():
    result = anneal(
        initial_state=[5],
        mutate=lambda state, rng: None,
        energy=_energy,
        clone=list,
        config=AnnealConfig(steps=50, seed=1),
    )

    assert result.noop_steps == 50
    assert result.accepted_moves == 0
    assert result.state == [5]
    assert result.energy == 4


def test_infeasible_initial_state_raises():
    with pytest.raises(ValueError):
        anneal([-1], _mutate, _energy, list, _undo, AnnealConfig(steps=10))


def test_undo_rollback_requires_undo_function():
    with pytest.raises(ValueError):
        anneal([10], _mutate, _energy, list, None, AnnealConfig(steps=10, rollback="undo"))

    with pytest.raises(ValueError):
        anneal([10], _mutate, _energy, list, _undo, AnnealConfig(steps=10, rollback="sideways"))


def test_temperature_decays_hyperbolically():
    assert hyperbolic_temperature(0, 100, 5.0) == pytest.approx(500.0)
    assert hyperbolic_temperature(1, 100, 5.0) == pytest.approx(250.0)
    assert hyperbolic_temperature(99, 100, 5.0) == pytest.approx(5.0)

    temps = []

    def callback(step, temperature, current_energy, accepted):
        temps.append((step, temperature))

    anneal([10], _mutate, _energy, list, _undo, AnnealConfig(steps=40, temp_multiplier=2.0, seed=2), callback=callback)

    assert temps
    for step, t in temps:
        assert t == pytest.approx(2.0 * 40 / (step + 1))


def test_acceptance_probability():
    assert acceptance_probability(0, 1.0) == 1.0
    assert acceptance_probability(-7, 1.0) == 1.0
    assert acceptance_probability(10, 10.0) == pytest.approx(math.exp(-1.0))
    assert acceptance_probability(10, 0.0) == 0.0
