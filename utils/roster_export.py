from __future__ import annotations

import io
import json
import zipfile
from typing import Iterable, Optional, Sequence

import pandas as pd

from rostering.allocation import Availability, SolvedSession


SESSION_COLUMNS = [
    "week",
    "day",
    "time",
    "hours",
    "venue",
    "tutors",
    "Preferred",
    "Possible",
    "Dislike",
    "effective_hours",
    "names",
]


def _count_pref(solved: SolvedSession, pref: Availability) -> int:
    sid = solved.session.session_id
    return sum(1 for a in solved.applicants if a.availabilities[sid] == pref)


def session_table_df(solution: Sequence[SolvedSession]) -> pd.DataFrame:
    """One row per session, ordered by week (stable within a week)."""

    rows = []
    for solved in sorted(solution, key=lambda s: s.session.week):
        sess = solved.session
        rows.append(
            {
                "week": sess.week,
                "day": sess.day.long_name,
                "time": sess.start_hour,
                "hours": sess.duration_hours,
                "venue": sess.venue.value,
                "tutors": len(solved.applicants),
                "Preferred": _count_pref(solved, Availability.PREFERRED),
                "Possible": _count_pref(solved, Availability.POSSIBLE),
                "Dislike": _count_pref(solved, Availability.DISLIKE),
                "effective_hours": len(solved.applicants) * sess.duration_hours,
                "names": ", ".join(a.name for a in solved.applicants),
            }
        )
    return pd.DataFrame(rows, columns=SESSION_COLUMNS)


def solution_tsv(solution: Sequence[SolvedSession]) -> str:
    """Headerless tab-separated session table (the `solution.tsv` file)."""

    df = session_table_df(solution)
    return df.to_csv(sep="\t", header=False, index=False, lineterminator="\n")


def hours_by_week_df(solution: Sequence[SolvedSession]) -> pd.DataFrame:
    """Staffed hours (duration x tutors) per week."""

    df = session_table_df(solution)
    if df.empty:
        return pd.DataFrame(columns=["week", "hours"])
    return (
        df.groupby("week")["effective_hours"]
        .sum()
        .reset_index()
        .rename(columns={"effective_hours": "hours"})
        .sort_values("week")
    )


def preference_totals_df(solution: Sequence[SolvedSession]) -> pd.DataFrame:
    """How many assignments landed on each availability rating."""

    counts = {pref: 0 for pref in Availability}
    for solved in solution:
        sid = solved.session.session_id
        for a in solved.applicants:
            counts[a.availabilities[sid]] += 1
    rows = [{"availability": pref.label, "count": n} for pref, n in sorted(counts.items()) if n > 0]
    return pd.DataFrame(rows, columns=["availability", "count"])


def tutor_hours_df(solution: Sequence[SolvedSession]) -> pd.DataFrame:
    """Per-tutor hour summary: total plus one column per week.

    `over_cap_weeks` counts weeks above the tutor's weekly cap (0 for any
    allocation the solver returns).
    """

    weeks = sorted({s.session.week for s in solution})
    rows = {}
    for solved in solution:
        sess = solved.session
        for a in solved.applicants:
            if a.applicant_id not in rows:
                rows[a.applicant_id] = {
                    "name": a.name,
                    "email": a.email,
                    "max_hours_per_week": a.max_hours_per_week,
                }
                for w in weeks:
                    rows[a.applicant_id][f"week {w}"] = 0
            rows[a.applicant_id][f"week {sess.week}"] += sess.duration_hours

    week_cols = [f"week {w}" for w in weeks]
    out = pd.DataFrame(list(rows.values()), columns=["name", "email", "max_hours_per_week"] + week_cols)
    if out.empty:
        out["Total"] = pd.Series(dtype=int)
        out["over_cap_weeks"] = pd.Series(dtype=int)
        return out

    out["Total"] = out[week_cols].sum(axis=1)
    out["over_cap_weeks"] = out[week_cols].gt(out["max_hours_per_week"], axis=0).sum(axis=1)
    return out.sort_values(["Total", "name"], ascending=[False, True]).reset_index(drop=True)


def solution_to_dict(
    solution: Sequence[SolvedSession],
    *,
    seed: Optional[int] = None,
    cost: Optional[int] = None,
) -> dict:
    return {
        "seed": seed,
        "cost": cost,
        "sessions": [
            {
                "id": s.session.session_id,
                "week": s.session.week,
                "day": s.session.day.long_name,
                "venue": s.session.venue.value,
                "start_hour": s.session.start_hour,
                "duration_hours": s.session.duration_hours,
                "tutors": [{"name": a.name, "email": a.email} for a in s.applicants],
            }
            for s in solution
        ],
    }


def solution_json(
    solution: Sequence[SolvedSession],
    *,
    seed: Optional[int] = None,
    cost: Optional[int] = None,
) -> str:
    return json.dumps(solution_to_dict(solution, seed=seed, cost=cost), ensure_ascii=False, indent=2) + "\n"


def _safe_sheet_name(name: str) -> str:
    """Excel sheet names: max 31 chars, cannot contain: `: \\ / ? * [ ]`."""

    bad = [":", "\\", "/", "?", "*", "[", "]"]
    out = str(name or "Sheet")
    for b in bad:
        out = out.replace(b, "-")
    out = out.strip() or "Sheet"
    return out[:31]


def roster_workbook_bytes(solution: Sequence[SolvedSession]) -> bytes:
    """Multi-sheet Excel workbook: sessions, tutor hours, hours per week, one sheet per week."""

    # Pandas uses openpyxl to write .xlsx by default.
    out = io.BytesIO()
    sessions_df = session_table_df(solution)

    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        sessions_df.to_excel(writer, sheet_name=_safe_sheet_name("Sessions"), index=False)
        tutor_hours_df(solution).to_excel(writer, sheet_name=_safe_sheet_name("Tutor Hours"), index=False)
        hours_by_week_df(solution).to_excel(writer, sheet_name=_safe_sheet_name("Hours per Week"), index=False)
        preference_totals_df(solution).to_excel(writer, sheet_name=_safe_sheet_name("Preferences"), index=False)

        weeks = sorted(sessions_df["week"].unique()) if not sessions_df.empty else []
        for week in weeks:
            week_df = sessions_df[sessions_df["week"] == week]
            week_df.to_excel(writer, sheet_name=_safe_sheet_name(f"Week {week}"), index=False)

    return out.getvalue()


def roster_zip_bytes(
    solution: Sequence[SolvedSession],
    *,
    seed: Optional[int] = None,
    cost: Optional[int] = None,
) -> bytes:
    """Create a ZIP containing all outputs (xlsx + tsv + json + csv tables)."""

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, mode="w", compression=zipfile.ZIP_DEFLATED) as z:
        z.writestr("roster.xlsx", roster_workbook_bytes(solution))
        z.writestr("solution.tsv", solution_tsv(solution).encode("utf-8"))
        z.writestr("solution.json", solution_json(solution, seed=seed, cost=cost).encode("utf-8"))
        z.writestr("tables/tutor_hours.csv", tutor_hours_df(solution).to_csv(index=False).encode("utf-8"))
        z.writestr("tables/hours_by_week.csv", hours_by_week_df(solution).to_csv(index=False).encode("utf-8"))
        z.writestr(
            "tables/preference_totals.csv",
            preference_totals_df(solution).to_csv(index=False).encode("utf-8"),
        )
    return buf.getvalue()


def df_to_markdown(df: pd.DataFrame) -> str:
    """Convert DataFrame to a GitHub-flavored Markdown table."""

    # pandas to_markdown needs tabulate; keep a small renderer instead.
    cols = list(df.columns)
    rows = df.astype(str).values.tolist()

    def esc(s: str) -> str:
        return str(s).replace("\n", " ").replace("|", "\\|")

    header = "| " + " | ".join(esc(c) for c in cols) + " |"
    sep = "| " + " | ".join(["---"] * len(cols)) + " |"
    body = ["| " + " | ".join(esc(v) for v in r) + " |" for r in rows]
    return "\n".join([header, sep] + body) + "\n"


def summary_lines(solution: Sequence[SolvedSession]) -> Iterable[str]:
    """Plain-text summary: hours per week, then preference totals."""

    for week, hours in hours_by_week_df(solution).itertuples(index=False, name=None):
        yield f"week {week}: {hours} hours"
    yield ""
    for label, count in preference_totals_df(solution).itertuples(index=False, name=None):
        yield f"{label}: {count}"
