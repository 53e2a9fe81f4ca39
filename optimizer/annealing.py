"""Revert-on-reject simulated annealing.

This module provides a reusable, problem-agnostic search engine. The tutor
allocation problem in `rostering.allocation` plugs into it, but any state that
can be mutated in place, evaluated and rolled back can be annealed.

How it differs from textbook SA
-------------------------------
A textbook annealer builds a *new* candidate from the current state and simply
walks forward. Here the single working state is edited in place:

1) `mutate` applies one small edit to the working state (or reports a no-op)
2) `energy` evaluates it; `None` means "infeasible"
3) infeasible moves are always rejected; downhill/equal moves are always
   accepted; uphill moves are accepted with probability exp(-ΔE/T)
4) on reject the working state is rolled back to the last accepted state

Rollback comes in two flavours that consume identical random draws and end in
identical states:
- "snapshot": clone on every accept, restore a clone on every reject
- "undo": revert just the one move that was applied

Cooling schedule
----------------
The temperature decays hyperbolically:

    T(step) = temp_multiplier * total_steps / (step + 1)

so it starts very hot and late-run uphill moves become exponentially unlikely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Optional, Protocol, TypeVar

import math
import random


TState = TypeVar("TState")
TMove = TypeVar("TMove")

ROLLBACK_MODES = ("snapshot", "undo")


class MutateFn(Protocol[TState, TMove]):
    def __call__(self, state: TState, rng: random.Random) -> Optional[TMove]:  # pragma: no cover
        """Edit `state` in place and describe the edit, or return None for a no-op."""


class EnergyFn(Protocol[TState]):
    def __call__(self, state: TState) -> Optional[int]:  # pragma: no cover
        """Return the cost to MINIMIZE, or None if the state is infeasible."""


class CallbackFn(Protocol):
    def __call__(
        self,
        step: int,
        temperature: float,
        current_energy: int,
        accepted: bool,
    ) -> None:  # pragma: no cover
        """Optional progress callback, called after every step that produced a move."""


@dataclass(frozen=True)
class AnnealConfig:
    """Configuration for one annealing run.

    Attributes:
        steps: Fixed step budget. No-op steps count towards it.
        temp_multiplier: Scales the hyperbolic temperature schedule.
        seed: Seed of the run's own `random.Random` stream.
        rollback: "snapshot" (clone on accept, restore on reject) or
            "undo" (revert the single applied move).
    """

    steps: int = 40_000
    temp_multiplier: float = 5.0
    seed: Optional[int] = 42
    rollback: str = "snapshot"


@dataclass
class AnnealResult(Generic[TState]):
    state: TState
    energy: int
    accepted_moves: int
    rejected_moves: int
    noop_steps: int
    total_steps: int
    seed: Optional[int]


def hyperbolic_temperature(step: int, total_steps: int, temp_multiplier: float) -> float:
    """Temperature at `step` (0-based)."""

    return temp_multiplier * float(total_steps) / (step + 1.0)


def acceptance_probability(delta: int, temperature: float) -> float:
    """Probability of accepting a move that changes the energy by `delta`."""

    if delta <= 0:
        return 1.0
    if temperature <= 0:
        return 0.0
    return math.exp(-delta / temperature)


def anneal(
    initial_state: TState,
    mutate: MutateFn[TState, TMove],
    energy: EnergyFn[TState],
    clone: Callable[[TState], TState],
    undo: Optional[Callable[[TState, TMove], None]] = None,
    config: AnnealConfig = AnnealConfig(),
    callback: Optional[CallbackFn] = None,
) -> AnnealResult[TState]:
    """Run revert-on-reject annealing from `initial_state`.

    Contract:
    - `initial_state` must be feasible
    - `initial_state` is not modified; the search works on a clone
    - with the same seed and inputs the result is bit-for-bit reproducible

    Returns:
        AnnealResult holding the final (current) state and its energy.
    """

    if config.rollback not in ROLLBACK_MODES:
        raise ValueError(f"rollback must be one of {ROLLBACK_MODES}, got {config.rollback!r}")
    if config.rollback == "undo" and undo is None:
        raise ValueError("rollback='undo' requires an undo function")
    if config.steps < 0:
        raise ValueError("steps must be >= 0")

    rng = random.Random(config.seed)

    current = clone(initial_state)
    current_e = energy(current)
    if current_e is None:
        raise ValueError("initial state must be feasible")

    snapshot = clone(current) if config.rollback == "snapshot" else None

    steps = config.steps
    accepted_moves = 0
    rejected_moves = 0
    noop_steps = 0

    for step in range(steps):
        move = mutate(current, rng)
        if move is None:
            noop_steps += 1
            continue

        t = hyperbolic_temperature(step, steps, config.temp_multiplier)
        cand_e = energy(current)

        # infeasible => reject without drawing
        accepted = False
        if cand_e is not None:
            if cand_e <= current_e:
                accepted = True
            else:
                p = acceptance_probability(cand_e - current_e, t)
                if rng.random() < p:
                    accepted = True

        if accepted:
            current_e = cand_e
            accepted_moves += 1
            if snapshot is not None:
                snapshot = clone(current)
        else:
            rejected_moves += 1
            if snapshot is not None:
                current = clone(snapshot)
            else:
                undo(current, move)

        if callback is not None:
            callback(
                step=step,
                temperature=t,
                current_energy=current_e,
                accepted=accepted,
            )

    return AnnealResult(
        state=current,
        energy=current_e,
        accepted_moves=accepted_moves,
        rejected_moves=rejected_moves,
        noop_steps=noop_steps,
        total_steps=steps,
        seed=config.seed,
    )
