"""Main Streamlit app entrypoint.

Run:
    streamlit run ui/app.py

"""

from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

# Ensure project root is on PYTHONPATH when Streamlit runs this file
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rostering.allocation import AllocationSettings


st.set_page_config(
    page_title="Help Session Roster",
    page_icon="🗓️",
    layout="wide",
)


def main() -> None:
    st.sidebar.title("Roster")
    st.sidebar.caption("Tutor allocation by simulated annealing")

    st.title("Dashboard")
    st.write(
        "Open the Roster page in the sidebar, upload the session timetable, the survey responses "
        "and the desired weekly hours, then solve for one course."
    )

    settings = AllocationSettings()
    st.subheader("Cost model")
    st.table(
        [
            {"term": "Preferred / Possible / Dislike", "cost": f"{settings.preferred_cost} / {settings.possible_cost} / {settings.dislike_cost} per assignment"},
            {"term": "Understaffed week", "cost": f"{settings.understaff_weight} x shortfall²"},
            {"term": "Overstaffed week", "cost": f"{settings.overstaff_weight} x excess hours"},
            {"term": "Uneven sessions in a week", "cost": f"{settings.uneven_weight} x (max - min) tutors, when max > min + 1"},
            {"term": "Tutors per session", "cost": f"at most {settings.max_tutors_per_session}"},
        ]
    )
    st.info("Impossible availability and weekly hour caps are hard limits: they are never violated.")


if __name__ == "__main__":
    main()
