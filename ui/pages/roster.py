"""Help-session roster page.

Upload the session timetable, the survey responses and the weekly hour
targets, pick a course and a set of seeds, and run the multi-seed annealer.
The page only collects inputs and renders results; all decisions happen in
`rostering.allocation`.
"""

from __future__ import annotations

import io
import sys
from pathlib import Path

import streamlit as st

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from optimizer import AnnealConfig
from rostering.allocation import (
    AllocationSettings,
    Course,
    InputConsistencyError,
    build_problem,
    cost_breakdown,
    solve_many_times,
)
from rostering.inputs import (
    InputFormatError,
    expand_sequence_specification,
    load_applicants,
    load_desired_hours,
    read_sessions_from_string,
)
from ui.utils.validators import validate_positive_int, validate_seed_spec
from utils.roster_export import (
    hours_by_week_df,
    preference_totals_df,
    roster_workbook_bytes,
    roster_zip_bytes,
    session_table_df,
    solution_json,
    solution_tsv,
    tutor_hours_df,
)


def _text(uploaded) -> str:
    return uploaded.getvalue().decode("utf-8")


def main() -> None:
    st.title("Help Session Roster")
    st.caption("Assign tutors to help sessions with multi-seed simulated annealing.")

    c1, c2, c3 = st.columns(3)
    sessions_file = c1.file_uploader("Sessions (sessions.txt)", type=["txt"])
    responses_file = c2.file_uploader("Survey responses (responses.tsv)", type=["tsv", "txt"])
    desired_file = c3.file_uploader("Desired hours (desired_hours.tsv)", type=["tsv", "txt"])

    course = st.selectbox("Course", [c.value for c in Course])

    c4, c5, c6, c7 = st.columns(4)
    seed_spec = c4.text_input("Seeds", value="1-5", help="Ranges and lists, e.g. 1-3,5")
    steps = c5.number_input("Annealing steps", min_value=1_000, max_value=500_000, value=40_000, step=1_000)
    temp_multiplier = c6.number_input("Temperature multiplier", min_value=0.01, max_value=100.0, value=5.0)
    workers = c7.number_input("Worker threads", min_value=1, max_value=32, value=1)

    run = st.button("Solve", type="primary")
    if not run:
        return

    if sessions_file is None or responses_file is None or desired_file is None:
        st.warning("Upload all three input files first.")
        return

    for ok, msg in (
        validate_seed_spec(seed_spec),
        validate_positive_int(int(steps), "Annealing steps"),
    ):
        if not ok:
            st.error(msg)
            return

    try:
        sessions = read_sessions_from_string(_text(sessions_file))
        applicants = load_applicants(io.StringIO(_text(responses_file)), sessions)
        desired = load_desired_hours(io.StringIO(_text(desired_file)), Course(course))
        problem = build_problem(sessions, applicants, desired, course=Course(course))
    except (InputFormatError, InputConsistencyError) as exc:
        st.error(str(exc))
        return

    settings = AllocationSettings()
    config = AnnealConfig(steps=int(steps), temp_multiplier=float(temp_multiplier))

    with st.spinner("Annealing..."):
        result = solve_many_times(
            problem,
            expand_sequence_specification(seed_spec),
            settings=settings,
            anneal_config=config,
            max_workers=int(workers),
        )

    breakdown = cost_breakdown(problem, settings, result.allocation)

    st.subheader("Summary")
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Sessions", len(problem.sessions))
    m2.metric("Applicants", len(problem.applicants))
    m3.metric("Best seed", result.best_seed)
    m4.metric("Cost", result.best_cost)
    if breakdown is not None:
        st.caption(
            f"preference {breakdown.preference} · understaffing {breakdown.understaff} · "
            f"overstaffing {breakdown.overstaff} · uneven sessions {breakdown.uneven}"
        )

    st.subheader("Cost per seed")
    st.dataframe(
        [{"seed": seed, "cost": cost} for seed, cost in result.seed_costs],
        use_container_width=True,
    )

    st.subheader("Sessions")
    st.dataframe(session_table_df(result.solution), use_container_width=True)

    st.subheader("Tutor hours")
    tutor_df = tutor_hours_df(result.solution)
    st.dataframe(tutor_df, use_container_width=True)
    if not tutor_df.empty:
        st.bar_chart(tutor_df.set_index("name")["Total"])

    c8, c9 = st.columns(2)
    c8.dataframe(hours_by_week_df(result.solution), use_container_width=True)
    c9.dataframe(preference_totals_df(result.solution), use_container_width=True)

    st.subheader("Export")
    st.download_button(
        "Download solution.tsv",
        solution_tsv(result.solution).encode("utf-8"),
        file_name="solution.tsv",
        mime="text/tab-separated-values",
    )
    st.download_button(
        "Download solution.json",
        solution_json(result.solution, seed=result.best_seed, cost=result.best_cost).encode("utf-8"),
        file_name="solution.json",
        mime="application/json",
    )
    st.download_button(
        "Download roster workbook (.xlsx)",
        data=roster_workbook_bytes(result.solution),
        file_name="roster.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
    st.download_button(
        "Download ALL outputs (.zip)",
        data=roster_zip_bytes(result.solution, seed=result.best_seed, cost=result.best_cost),
        file_name="roster_bundle.zip",
        mime="application/zip",
    )


if __name__ == "__main__":
    main()
