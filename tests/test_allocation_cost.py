import sys
from pathlib import Path

import pytest

# Ensure project root is on PYTHONPATH
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rostering.allocation import (
    AllocationSettings,
    Applicant,
    Availability,
    Course,
    Day,
    InputConsistencyError,
    Session,
    SessionAllocation,
    Venue,
    build_problem,
    build_weeks,
    cost_breakdown,
    empty_allocation,
    evaluate_allocation,
)

P = Availability.PREFERRED
O = Availability.POSSIBLE
D = Availability.DISLIKE
X = Availability.IMPOSSIBLE


def _session(sid: int, week: int = 1, hours: int = 1) -> Session:
    return Session(session_id=sid, day=Day.MON, week=week, venue=Venue.FACE_TO_FACE, start_hour=14, duration_hours=hours)


def _applicant(idx: int, avails, cap: int = 10, course: Course = Course.COMP1511) -> Applicant:
    return Applicant(
        applicant_id=idx,
        email=f"a{idx}@example.edu",
        name=f"Applicant {idx}",
        course=course,
        max_hours_per_week=cap,
        availabilities=tuple(avails),
    )


def _alloc(*assigned):
    return [SessionAllocation(list(a)) for a in assigned]


SETTINGS = AllocationSettings()


def test_empty_allocation_pays_full_quadratic_shortfall():
    sessions = [_session(0), _session(1)]
    # nobody can work any session
    applicants = [_applicant(0, [X, X]), _applicant(1, [X, X])]
    problem = build_problem(sessions, applicants, [(1, 6)])

    assert evaluate_allocation(problem, SETTINGS, empty_allocation(problem)) == 20 * 6 ** 2


def test_impossible_assignment_is_infeasible():
    sessions = [_session(0), _session(1)]
    applicants = [_applicant(0, [P, X])]
    problem = build_problem(sessions, applicants, [(1, 1)])

    assert evaluate_allocation(problem, SETTINGS, _alloc([0], [])) is not None
    assert evaluate_allocation(problem, SETTINGS, _alloc([], [0])) is None
    assert evaluate_allocation(problem, SETTINGS, _alloc([0], [0])) is None


def test_weekly_cap_is_per_week_not_global():
    sessions = [_session(0, week=1, hours=2), _session(1, week=2, hours=2), _session(2, week=1, hours=1)]
    applicants = [_applicant(0, [P, P, P], cap=2)]
    problem = build_problem(sessions, applicants, [(1, 2), (2, 2)])

    # 2h in week 1 + 2h in week 2: 4h overall but within the 2h weekly cap
    assert evaluate_allocation(problem, SETTINGS, _alloc([0], [0], [])) == 0

    # 3h in week 1 breaks the cap
    assert evaluate_allocation(problem, SETTINGS, _alloc([0], [0], [0])) is None


def test_preference_costs():
    sessions = [_session(0)]
    applicants = [_applicant(0, [P]), _applicant(1, [O]), _applicant(2, [D])]
    problem = build_problem(sessions, applicants, [(1, 3)])

    assert evaluate_allocation(problem, SETTINGS, _alloc([0, 1, 2])) == 0 + 5 + 100
    assert evaluate_allocation(problem, SETTINGS, _alloc([1, 2, 0])) == 105


def test_understaffing_is_quadratic_and_overstaffing_linear():
    sessions = [_session(0)]
    applicants = [_applicant(i, [P]) for i in range(4)]

    short = build_problem(sessions, applicants, [(1, 5)])
    assert evaluate_allocation(short, SETTINGS, _alloc([0])) == 20 * (5 - 1) ** 2

    over = build_problem(sessions, applicants, [(1, 1)])
    assert evaluate_allocation(over, SETTINGS, _alloc([0, 1, 2])) == 200 * (3 - 1)

    # one hour short costs less than one hour over
    exact = build_problem(sessions, applicants, [(1, 2)])
    assert evaluate_allocation(exact, SETTINGS, _alloc([0])) == 20
    assert evaluate_allocation(exact, SETTINGS, _alloc([0, 1, 2])) == 200


def test_effective_hours_weight_by_duration():
    sessions = [_session(0, hours=2), _session(1, hours=3)]
    applicants = [_applicant(i, [P, P]) for i in range(3)]
    problem = build_problem(sessions, applicants, [(1, 7)])

    breakdown = cost_breakdown(problem, SETTINGS, _alloc([0, 1], [2]))
    assert breakdown is not None
    assert breakdown.effective_hours_by_week == {1: 2 * 2 + 3 * 1}
    assert breakdown.total == 0


def test_uneven_staffing_penalty():
    sessions = [_session(0), _session(1), _session(2)]
    applicants = [_applicant(i, [P, P, P]) for i in range(4)]

    problem = build_problem(sessions, applicants, [(1, 4)])
    breakdown = cost_breakdown(problem, SETTINGS, _alloc([0, 1, 2], [3], []))
    assert breakdown.uneven == 50 * (3 - 1)
    assert breakdown.total == 100

    # sizes 2 and 1 differ by one: no penalty
    problem = build_problem(sessions, applicants, [(1, 3)])
    assert evaluate_allocation(problem, SETTINGS, _alloc([0, 1], [2], [])) == 0

    # unstaffed sessions do not count as size 0
    problem = build_problem(sessions, applicants, [(1, 3)])
    assert evaluate_allocation(problem, SETTINGS, _alloc([0, 1, 2], [], [])) == 0


def test_uneven_penalty_is_computed_per_week():
    sessions = [_session(0, week=1), _session(1, week=2)]
    applicants = [_applicant(i, [P, P]) for i in range(4)]
    problem = build_problem(sessions, applicants, [(1, 3), (2, 1)])

    # 3 tutors in week 1 and 1 tutor in week 2: different weeks, no uneven penalty
    assert evaluate_allocation(problem, SETTINGS, _alloc([0, 1, 2], [3])) == 0


def test_custom_weights():
    sessions = [_session(0)]
    applicants = [_applicant(0, [O])]
    problem = build_problem(sessions, applicants, [(1, 3)])
    settings = AllocationSettings(possible_cost=1, understaff_weight=2)

    assert evaluate_allocation(problem, settings, _alloc([0])) == 1 + 2 * (3 - 1) ** 2


def test_evaluation_is_deterministic():
    sessions = [_session(0), _session(1, week=2, hours=2)]
    applicants = [_applicant(0, [P, O]), _applicant(1, [D, P])]
    problem = build_problem(sessions, applicants, [(1, 3), (2, 1)])
    allocation = _alloc([0, 1], [1])

    first = evaluate_allocation(problem, SETTINGS, allocation)
    assert first == evaluate_allocation(problem, SETTINGS, allocation)
    assert first == cost_breakdown(problem, SETTINGS, allocation).total


def test_build_weeks_groups_sessions_in_desired_order():
    sessions = [_session(0, week=2), _session(1, week=1), _session(2, week=2)]
    weeks = build_weeks(sessions, [(2, 5), (1, 3)])

    assert [w.week for w in weeks] == [2, 1]
    assert weeks[0].session_ids == (0, 2)
    assert weeks[0].desired_hours == 5
    assert weeks[1].session_ids == (1,)


def test_week_mismatch_is_an_input_consistency_error():
    sessions = [_session(0, week=1), _session(1, week=2)]

    with pytest.raises(InputConsistencyError):
        build_weeks(sessions, [(1, 3)])

    with pytest.raises(InputConsistencyError):
        build_weeks(sessions, [(1, 3), (2, 3), (3, 3)])

    with pytest.raises(InputConsistencyError):
        build_weeks(sessions, [(1, 3), (2, 3), (2, 4)])


def test_build_problem_checks_inputs_and_filters_course():
    sessions = [_session(0), _session(1)]

    with pytest.raises(InputConsistencyError):
        build_problem(sessions, [_applicant(0, [P])], [(1, 2)])

    with pytest.raises(InputConsistencyError):
        build_problem([_session(1)], [], [(1, 2)])

    applicants = [
        _applicant(0, [P, X], course=Course.COMP1511),
        _applicant(1, [P, P], course=Course.COMP2521),
        _applicant(2, [X, O], course=Course.COMP1511),
    ]
    problem = build_problem(sessions, applicants, [(1, 2)], course=Course.COMP1511)

    assert [a.applicant_id for a in problem.applicants] == [0, 2]
    assert problem.eligible == ((0,), (1,))
