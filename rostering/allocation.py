"""Help-session tutor allocation.

This module assigns tutor applicants to recurring help sessions spread over the
teaching weeks, and searches for a good allocation with the revert-on-reject
annealer from `optimizer.annealing`.

Data model
----------
A *session* is one occurrence of a recurring help slot (e.g. "Monday 2pm, week
3, face to face"). Session ids are dense `0..N` and double as indexes into every
applicant's availability list. An *allocation* holds, for every session, the
(small, capped) list of applicant indexes assigned to it.

Hard constraints (violation => infeasible, never accepted)
----------------------------------------------------------
- An applicant is never assigned to a session they rated Impossible
- An applicant's assigned hours within one week never exceed their weekly cap

Soft constraints (summed integer cost)
--------------------------------------
- Preference: Preferred 0, Possible 5, Dislike 100 per assignment
- Understaffing a week: 20 * shortfall^2
- Overstaffing a week: 200 * excess
- Uneven staffing inside a week: 50 * (max - min) when max > min + 1

The solver runs the annealer once per seed, keeps the cheapest seed and replays
it to return the winning allocation.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import logging
import random

from optimizer import AnnealConfig, anneal


logger = logging.getLogger(__name__)


class InputConsistencyError(ValueError):
    """Inputs disagree with each other (fatal, raised before any search)."""


# ----------------------------
# Data models
# ----------------------------


class Availability(IntEnum):
    IMPOSSIBLE = 0
    DISLIKE = 1
    POSSIBLE = 2
    PREFERRED = 3

    @classmethod
    def parse(cls, raw: str) -> "Availability":
        """Parse a survey answer ("Impossible", "Dislike", "Possible", "Preferred")."""

        try:
            return cls[str(raw).strip().upper()]
        except KeyError:
            raise ValueError(f"bad availability {raw!r}") from None

    @property
    def label(self) -> str:
        return self.name.capitalize()


class Day(Enum):
    MON = "mon"
    TUE = "tue"
    WED = "wed"
    THU = "thu"
    FRI = "fri"
    SAT = "sat"

    @property
    def long_name(self) -> str:
        return _DAY_LONG_NAMES[self]


_DAY_LONG_NAMES = {
    Day.MON: "Monday",
    Day.TUE: "Tuesday",
    Day.WED: "Wednesday",
    Day.THU: "Thursday",
    Day.FRI: "Friday",
    Day.SAT: "Saturday",
}


class Venue(Enum):
    FACE_TO_FACE = "f2f"
    ONLINE = "online"


class Course(Enum):
    COMP1511 = "COMP1511"
    COMP1521 = "COMP1521"
    COMP2521 = "COMP2521"

    @classmethod
    def parse(cls, raw: str) -> "Course":
        try:
            return cls(str(raw).strip())
        except ValueError:
            raise ValueError(f"bad course {raw!r}") from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Session:
    session_id: int
    day: Day
    week: int
    venue: Venue
    start_hour: int  # 24-hour clock
    duration_hours: int


@dataclass(frozen=True)
class Applicant:
    applicant_id: int
    email: str
    name: str
    course: Course
    max_hours_per_week: int
    # availabilities[session_id]
    availabilities: Tuple[Availability, ...]


@dataclass(frozen=True)
class Week:
    week: int
    desired_hours: int
    session_ids: Tuple[int, ...]


@dataclass(frozen=True)
class AllocationSettings:
    """Cost configuration. Defaults are the production weights."""

    max_tutors_per_session: int = 5

    # Preference cost per assignment (Impossible is a hard constraint)
    preferred_cost: int = 0
    possible_cost: int = 5
    dislike_cost: int = 100

    # Weekly staffed-hours target
    understaff_weight: int = 20  # * shortfall^2
    overstaff_weight: int = 200  # * excess

    # Uneven staffing between a week's sessions
    uneven_weight: int = 50

    def preference_cost(self, availability: Availability) -> int:
        if availability == Availability.PREFERRED:
            return self.preferred_cost
        if availability == Availability.POSSIBLE:
            return self.possible_cost
        return self.dislike_cost


@dataclass(frozen=True)
class AllocationProblem:
    sessions: Tuple[Session, ...]
    applicants: Tuple[Applicant, ...]  # already filtered to one course
    weeks: Tuple[Week, ...]
    # eligible[session_id] -> applicant indexes not rated Impossible, ascending
    eligible: Tuple[Tuple[int, ...], ...] = ()


# ----------------------------
# State representation
# ----------------------------


@dataclass
class SessionAllocation:
    """Applicant indexes assigned to one session (unordered, no duplicates)."""

    assigned: List[int] = field(default_factory=list)


Allocation = List[SessionAllocation]


class MutationKind(Enum):
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class Mutation:
    kind: MutationKind
    session: int
    applicant: int
    # index in `assigned` the applicant was appended at / removed from
    position: int


@dataclass(frozen=True)
class SolvedSession:
    session: Session
    applicants: Tuple[Applicant, ...]


@dataclass(frozen=True)
class CostBreakdown:
    preference: int
    understaff: int
    overstaff: int
    uneven: int
    effective_hours_by_week: Dict[int, int]

    @property
    def total(self) -> int:
        return self.preference + self.understaff + self.overstaff + self.uneven


@dataclass(frozen=True)
class AllocationResult:
    cost: int
    allocation: Allocation
    seed: Optional[int]
    accepted_moves: int
    rejected_moves: int
    noop_steps: int


@dataclass(frozen=True)
class MultiSeedResult:
    best_seed: int
    best_cost: int
    allocation: Allocation
    seed_costs: Tuple[Tuple[int, int], ...]  # (seed, final cost) in run order
    solution: Tuple[SolvedSession, ...]


# ----------------------------
# Building the problem
# ----------------------------


def build_weeks(sessions: Sequence[Session], desired_hours: Iterable[Tuple[int, int]]) -> Tuple[Week, ...]:
    """Group session ids by week, in the order weeks appear in `desired_hours`.

    Raises:
        InputConsistencyError: if the desired-hours weeks are not exactly the
            weeks that sessions fall in.
    """

    desired: Dict[int, int] = {}
    for week_num, hours in desired_hours:
        week_num = int(week_num)
        if week_num in desired:
            raise InputConsistencyError(f"week {week_num} listed twice in desired hours")
        desired[week_num] = int(hours)

    session_weeks = {s.week for s in sessions}
    if set(desired) != session_weeks:
        missing = sorted(session_weeks - set(desired))
        extra = sorted(set(desired) - session_weeks)
        raise InputConsistencyError(
            f"desired-hours weeks do not match session weeks (missing: {missing}, without sessions: {extra})"
        )

    return tuple(
        Week(
            week=week_num,
            desired_hours=hours,
            session_ids=tuple(s.session_id for s in sessions if s.week == week_num),
        )
        for week_num, hours in desired.items()
    )


def build_problem(
    sessions: Sequence[Session],
    applicants: Sequence[Applicant],
    desired_hours: Iterable[Tuple[int, int]],
    course: Optional[Course] = None,
) -> AllocationProblem:
    """Validate inputs and build an `AllocationProblem`.

    If `course` is given, only applicants of that course are kept. Applicant
    indexes used in allocations refer to positions in the filtered tuple.
    """

    for idx, s in enumerate(sessions):
        if s.session_id != idx:
            raise InputConsistencyError(f"session ids must be dense 0..N, found {s.session_id} at position {idx}")

    if course is not None:
        applicants = [a for a in applicants if a.course == course]

    for a in applicants:
        if len(a.availabilities) != len(sessions):
            raise InputConsistencyError(
                f"applicant {a.name!r} has {len(a.availabilities)} availabilities for {len(sessions)} sessions"
            )

    weeks = build_weeks(sessions, desired_hours)

    eligible = tuple(
        tuple(
            idx
            for idx, a in enumerate(applicants)
            if a.availabilities[s.session_id] != Availability.IMPOSSIBLE
        )
        for s in sessions
    )

    return AllocationProblem(
        sessions=tuple(sessions),
        applicants=tuple(applicants),
        weeks=weeks,
        eligible=eligible,
    )


def empty_allocation(problem: AllocationProblem) -> Allocation:
    return [SessionAllocation() for _ in problem.sessions]


def clone_allocation(allocation: Allocation) -> Allocation:
    return [SessionAllocation(list(a.assigned)) for a in allocation]


# -------------------------------------------------
# Cost
# -------------------------------------------------


def cost_breakdown(
    problem: AllocationProblem,
    settings: AllocationSettings,
    allocation: Allocation,
) -> Optional[CostBreakdown]:
    """Per-term cost of a feasible allocation, or None if it is infeasible.

    Runs in time proportional to the number of assignments.
    """

    preference = understaff = overstaff = uneven = 0
    effective_by_week: Dict[int, int] = {}

    for week in problem.weeks:
        effective_hours = 0
        weekly_hours: Dict[int, int] = {}
        staffed_sizes: List[int] = []

        for sid in week.session_ids:
            assigned = allocation[sid].assigned
            if not assigned:
                continue

            length = problem.sessions[sid].duration_hours
            effective_hours += length * len(assigned)
            staffed_sizes.append(len(assigned))

            for idx in assigned:
                applicant = problem.applicants[idx]
                availability = applicant.availabilities[sid]
                if availability == Availability.IMPOSSIBLE:
                    return None
                preference += settings.preference_cost(availability)

                hours = weekly_hours.get(idx, 0) + length
                if hours > applicant.max_hours_per_week:
                    return None
                weekly_hours[idx] = hours

        if effective_hours < week.desired_hours:
            understaff += settings.understaff_weight * (week.desired_hours - effective_hours) ** 2
        else:
            overstaff += settings.overstaff_weight * (effective_hours - week.desired_hours)

        if staffed_sizes:
            min_size = min(staffed_sizes)
            max_size = max(staffed_sizes)
            if max_size > min_size + 1:
                uneven += settings.uneven_weight * (max_size - min_size)

        effective_by_week[week.week] = effective_hours

    return CostBreakdown(
        preference=preference,
        understaff=understaff,
        overstaff=overstaff,
        uneven=uneven,
        effective_hours_by_week=effective_by_week,
    )


def evaluate_allocation(
    problem: AllocationProblem,
    settings: AllocationSettings,
    allocation: Allocation,
) -> Optional[int]:
    """Total cost (lower is better), or None if a hard constraint is violated."""

    breakdown = cost_breakdown(problem, settings, allocation)
    if breakdown is None:
        return None
    return breakdown.total


# -------------------------------------------------
# Mutation
# -------------------------------------------------


def mutate_allocation(
    problem: AllocationProblem,
    settings: AllocationSettings,
    allocation: Allocation,
    rng: random.Random,
) -> Optional[Mutation]:
    """Add or remove one applicant at one random session, in place.

    Returns the mutation, or None when the drawn action has no legal edit.
    """

    if not allocation:
        return None

    sid = rng.randrange(len(allocation))
    assigned = allocation[sid].assigned

    if rng.randrange(2) == 0:
        if len(assigned) >= settings.max_tutors_per_session:
            return None
        candidates = [idx for idx in problem.eligible[sid] if idx not in assigned]
        if not candidates:
            return None
        applicant = candidates[rng.randrange(len(candidates))]
        assigned.append(applicant)
        return Mutation(kind=MutationKind.ADD, session=sid, applicant=applicant, position=len(assigned) - 1)

    if not assigned:
        return None
    pos = rng.randrange(len(assigned))
    applicant = assigned.pop(pos)
    return Mutation(kind=MutationKind.REMOVE, session=sid, applicant=applicant, position=pos)


def undo_mutation(allocation: Allocation, mutation: Mutation) -> None:
    """Revert `mutation`, restoring the exact previous order of the session list."""

    assigned = allocation[mutation.session].assigned
    if mutation.kind == MutationKind.ADD:
        del assigned[mutation.position]
    else:
        assigned.insert(mutation.position, mutation.applicant)


# -------------------------------------------------
# Solve
# -------------------------------------------------


def solve_allocation(
    problem: AllocationProblem,
    settings: AllocationSettings = AllocationSettings(),
    anneal_config: AnnealConfig = AnnealConfig(),
) -> AllocationResult:
    """Anneal from the empty allocation with one seed."""

    def mutate_fn(allocation: Allocation, rng: random.Random) -> Optional[Mutation]:
        return mutate_allocation(problem, settings, allocation, rng)

    def energy_fn(allocation: Allocation) -> Optional[int]:
        return evaluate_allocation(problem, settings, allocation)

    result = anneal(
        initial_state=empty_allocation(problem),
        mutate=mutate_fn,
        energy=energy_fn,
        clone=clone_allocation,
        undo=undo_mutation,
        config=anneal_config,
    )

    return AllocationResult(
        cost=result.energy,
        allocation=result.state,
        seed=result.seed,
        accepted_moves=result.accepted_moves,
        rejected_moves=result.rejected_moves,
        noop_steps=result.noop_steps,
    )


def resolve_solution(problem: AllocationProblem, allocation: Allocation) -> Tuple[SolvedSession, ...]:
    """Pair every session with the applicant records assigned to it."""

    return tuple(
        SolvedSession(
            session=session,
            applicants=tuple(problem.applicants[idx] for idx in allocation[session.session_id].assigned),
        )
        for session in problem.sessions
    )


def solve_many_times(
    problem: AllocationProblem,
    seeds: Sequence[int],
    settings: AllocationSettings = AllocationSettings(),
    anneal_config: AnnealConfig = AnnealConfig(),
    max_workers: int = 1,
) -> MultiSeedResult:
    """Anneal once per seed, keep the cheapest and replay it.

    Ties go to the seed listed first. With `max_workers > 1` the per-seed runs
    execute on a thread pool; each run owns its allocation and random stream.
    """

    seeds = [int(s) for s in seeds]
    if not seeds:
        raise ValueError("at least one seed is required")

    def run_seed(seed: int) -> int:
        return solve_allocation(problem, settings, replace(anneal_config, seed=seed)).cost

    if max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            costs = list(pool.map(run_seed, seeds))
    else:
        costs = [run_seed(seed) for seed in seeds]

    best_seed = seeds[0]
    best_cost = costs[0]
    for seed, cost in zip(seeds, costs):
        logger.info("seed = %s, cost = %s", seed, cost)
        if cost < best_cost:
            best_seed, best_cost = seed, cost

    replay = solve_allocation(problem, settings, replace(anneal_config, seed=best_seed))
    logger.info("best_seed = %s, best_cost = %s", best_seed, replay.cost)

    return MultiSeedResult(
        best_seed=best_seed,
        best_cost=replay.cost,
        allocation=replay.allocation,
        seed_costs=tuple(zip(seeds, costs)),
        solution=resolve_solution(problem, replay.allocation),
    )
