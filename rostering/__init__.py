"""Help-session tutor rostering (problem model, input parsing, solver)."""

from .allocation import (
	AllocationProblem,
	AllocationResult,
	AllocationSettings,
	Applicant,
	Availability,
	Course,
	CostBreakdown,
	Day,
	InputConsistencyError,
	MultiSeedResult,
	Mutation,
	MutationKind,
	Session,
	SessionAllocation,
	SolvedSession,
	Venue,
	Week,
	build_problem,
	build_weeks,
	clone_allocation,
	cost_breakdown,
	empty_allocation,
	evaluate_allocation,
	mutate_allocation,
	resolve_solution,
	solve_allocation,
	solve_many_times,
	undo_mutation,
)

from .inputs import (
	InputFormatError,
	expand_sequence_specification,
	load_applicants,
	load_desired_hours,
	load_sessions,
	read_sessions_from_string,
)

__all__ = [
	"AllocationProblem",
	"AllocationResult",
	"AllocationSettings",
	"Applicant",
	"Availability",
	"Course",
	"CostBreakdown",
	"Day",
	"InputConsistencyError",
	"MultiSeedResult",
	"Mutation",
	"MutationKind",
	"Session",
	"SessionAllocation",
	"SolvedSession",
	"Venue",
	"Week",
	"build_problem",
	"build_weeks",
	"clone_allocation",
	"cost_breakdown",
	"empty_allocation",
	"evaluate_allocation",
	"mutate_allocation",
	"resolve_solution",
	"solve_allocation",
	"solve_many_times",
	"undo_mutation",
	"InputFormatError",
	"expand_sequence_specification",
	"load_applicants",
	"load_desired_hours",
	"load_sessions",
	"read_sessions_from_string",
]
