"""Solve a help-session roster from the three input files.

Usage:
    python scripts/run_allocation.py COMP1511 1-10
    python scripts/run_allocation.py COMP2521 1-3,7 --sessions data/sessions.txt \
        --responses data/responses.tsv --desired-hours data/desired_hours.tsv

Writes the headerless session table to `solution.tsv` (and JSON if asked) and
prints a summary.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Ensure project root is on PYTHONPATH when running as a script
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from optimizer import AnnealConfig
from rostering.allocation import AllocationSettings, Course, build_problem, solve_many_times
from rostering.inputs import (
    expand_sequence_specification,
    load_applicants,
    load_desired_hours,
    load_sessions,
)
from utils.roster_export import session_table_df, solution_json, solution_tsv, summary_lines


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="run_allocation", description="Help-session tutor allocation")
    parser.add_argument("course", choices=[c.value for c in Course], help="Course to roster")
    parser.add_argument("seed", help="Seeds to try, e.g. 1-3,5")
    parser.add_argument("--sessions", default="sessions.txt", help="Session timetable")
    parser.add_argument("--responses", default="responses.tsv", help="Survey responses TSV")
    parser.add_argument("--desired-hours", default="desired_hours.tsv", help="Desired weekly hours TSV")
    parser.add_argument("--output", default="solution.tsv", help="Where to write the solution table")
    parser.add_argument("--json", default=None, help="Optional JSON export path")
    parser.add_argument("--steps", type=int, default=AnnealConfig().steps, help="Annealing steps per seed")
    parser.add_argument("--workers", type=int, default=1, help="Seeds to run in parallel")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    course = Course(args.course)

    print("=" * 80)
    print(args)
    print("-" * 80)

    sessions = load_sessions(args.sessions)
    logger.info("%s sessions to schedule", len(sessions))

    applicants = load_applicants(args.responses, sessions)
    logger.info("%s form responses", len(applicants))

    desired_hours = load_desired_hours(args.desired_hours, course)
    problem = build_problem(sessions, applicants, desired_hours, course=course)

    result = solve_many_times(
        problem,
        expand_sequence_specification(args.seed),
        settings=AllocationSettings(),
        anneal_config=AnnealConfig(steps=args.steps),
        max_workers=args.workers,
    )

    Path(args.output).write_text(solution_tsv(result.solution), encoding="utf-8")
    if args.json:
        Path(args.json).write_text(
            solution_json(result.solution, seed=result.best_seed, cost=result.best_cost),
            encoding="utf-8",
        )

    print(f"Solved for {len(result.solution)} sessions")
    print(session_table_df(result.solution).to_string(index=False))
    print()
    for line in summary_lines(result.solution):
        print(line)
    print(f"best seed = {result.best_seed}, best cost = {result.best_cost}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    raise SystemExit(main())
