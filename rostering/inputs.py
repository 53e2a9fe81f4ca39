"""Loading sessions, survey responses and weekly hour targets.

Session timetable format (one recurring slot per line)::

    # day  time  length  venue   weeks
    mon    2pm   2hrs    f2f     1-5,7
    wed    11am  1hrs    online  2-10

Each week listed produces one `Session`; ids are assigned densely in file
order. Survey responses and desired hours are tab-separated spreadsheets
exported from the sign-up form.
"""

from __future__ import annotations

from pathlib import Path
from typing import IO, List, Sequence, Tuple, Union

import pandas as pd

from .allocation import Applicant, Availability, Course, Day, Session, Venue


class InputFormatError(ValueError):
    """An input file could not be parsed."""


EMAIL_COLUMN = "Email"
NAME_COLUMN = "Name"
COURSE_COLUMN = "Which course are you primarily teaching?"
HOURS_COLUMN = "Around how many hours would you like to work on help sessions, per week?"
UNAVAILABLE_WEEKS_COLUMN = "Are then any weeks you specifically are not available?"
WEEK_COLUMN = "Week"

# Survey hour brackets -> weekly cap
MAX_HOURS_BY_BRACKET = {
    "1-5": 5,
    "6-10": 10,
    ">10": 15,
}

PathOrBuffer = Union[str, Path, IO[str]]


def expand_sequence_specification(spec: str) -> List[int]:
    """Expand "1-3,5" into [1, 2, 3, 5]."""

    out: List[int] = []
    for part in str(spec).split(","):
        part = part.strip()
        try:
            if "-" in part:
                start, end = part.split("-", 1)
                out.extend(range(int(start), int(end) + 1))
            else:
                out.append(int(part))
        except ValueError:
            raise InputFormatError(f"bad sequence {spec!r}") from None
    return out


def twelve_hour_to_24(raw: str) -> int:
    """Convert e.g. "2pm" -> 14, "12pm" -> 12, "12am" -> 0."""

    s = str(raw).strip().lower()
    if s.endswith("am"):
        offset = 0
    elif s.endswith("pm"):
        offset = 12
    else:
        raise InputFormatError(f"bad time {raw!r}")
    try:
        hour = int(s[:-2])
    except ValueError:
        raise InputFormatError(f"bad time {raw!r}") from None
    if not 1 <= hour <= 12:
        raise InputFormatError(f"bad time {raw!r}")
    return hour % 12 + offset


def twentyfour_hour_to_12(hour: int) -> str:
    """Convert e.g. 14 -> "2pm", 12 -> "12pm", 9 -> "9am"."""

    hour = int(hour) % 24
    if hour == 0:
        return "12am"
    if hour == 12:
        return "12pm"
    if hour < 12:
        return f"{hour}am"
    return f"{hour - 12}pm"


def _sessions_from_line(line: str, next_id: int) -> List[Session]:
    content = line.split("#", 1)[0].strip()
    if not content:
        return []

    fields = content.split()
    if len(fields) != 5:
        raise InputFormatError(f"bad session line: {line!r}")
    day_raw, time_raw, length_raw, venue_raw, weeks_raw = fields

    try:
        day = Day(day_raw.lower())
    except ValueError:
        raise InputFormatError(f"bad day {day_raw!r} on line {line!r}") from None

    start_hour = twelve_hour_to_24(time_raw)

    if not length_raw.endswith("hrs") or not length_raw[:-3].isdigit():
        raise InputFormatError(f"bad time length {length_raw!r} on line {line!r}")
    length = int(length_raw[:-3])

    try:
        venue = Venue(venue_raw.lower())
    except ValueError:
        raise InputFormatError(f"bad venue {venue_raw!r} on line {line!r}") from None

    return [
        Session(
            session_id=next_id + i,
            day=day,
            week=week,
            venue=venue,
            start_hour=start_hour,
            duration_hours=length,
        )
        for i, week in enumerate(expand_sequence_specification(weeks_raw))
    ]


def read_sessions_from_string(text: str) -> List[Session]:
    sessions: List[Session] = []
    for line in text.splitlines():
        sessions.extend(_sessions_from_line(line, len(sessions)))
    return sessions


def load_sessions(path: Union[str, Path]) -> List[Session]:
    return read_sessions_from_string(Path(path).read_text(encoding="utf-8"))


def _read_tsv(source: PathOrBuffer) -> pd.DataFrame:
    # Keep every cell as text; blank cells stay "" rather than NaN.
    return pd.read_csv(source, sep="\t", dtype=str, keep_default_na=False)


def _require_columns(df: pd.DataFrame, columns: Sequence[str], what: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise InputFormatError(f"{what} is missing columns: {missing}")


def availability_column(session: Session) -> str:
    """Survey column holding availability for the slot `session` belongs to."""

    prefix = "Online " if session.venue == Venue.ONLINE else ""
    start = twentyfour_hour_to_12(session.start_hour)
    end = twentyfour_hour_to_12(session.start_hour + session.duration_hours)
    return f"{prefix}{session.day.long_name} {start}-{end}"


def _unavailable_weeks(raw: str) -> set[int]:
    weeks: set[int] = set()
    for part in str(raw).split(";"):
        part = part.strip()
        if not part:
            continue
        if not part.startswith("Week "):
            raise InputFormatError(f"bad week {part!r}")
        try:
            weeks.add(int(part[len("Week "):]))
        except ValueError:
            raise InputFormatError(f"bad week {part!r}") from None
    return weeks


def applicants_from_frame(df: pd.DataFrame, sessions: Sequence[Session]) -> List[Applicant]:
    """Build applicants (one per survey row) with one availability per session."""

    columns = {s.session_id: availability_column(s) for s in sessions}
    _require_columns(
        df,
        [EMAIL_COLUMN, NAME_COLUMN, COURSE_COLUMN, HOURS_COLUMN, UNAVAILABLE_WEEKS_COLUMN]
        + sorted(set(columns.values())),
        "responses",
    )

    applicants: List[Applicant] = []
    for idx, row in enumerate(df.to_dict(orient="records")):
        try:
            course = Course.parse(row[COURSE_COLUMN])
        except ValueError as exc:
            raise InputFormatError(str(exc)) from None

        bracket = str(row[HOURS_COLUMN]).strip()
        if bracket not in MAX_HOURS_BY_BRACKET:
            raise InputFormatError(f"bad max hours {bracket!r}")

        cant_do = _unavailable_weeks(row[UNAVAILABLE_WEEKS_COLUMN])

        availabilities: List[Availability] = []
        for s in sessions:
            if s.week in cant_do:
                availabilities.append(Availability.IMPOSSIBLE)
                continue
            try:
                availabilities.append(Availability.parse(row[columns[s.session_id]]))
            except ValueError as exc:
                raise InputFormatError(f"{exc} for {row[NAME_COLUMN]!r}") from None

        applicants.append(
            Applicant(
                applicant_id=idx,
                email=str(row[EMAIL_COLUMN]).strip(),
                name=str(row[NAME_COLUMN]).strip(),
                course=course,
                max_hours_per_week=MAX_HOURS_BY_BRACKET[bracket],
                availabilities=tuple(availabilities),
            )
        )
    return applicants


def load_applicants(source: PathOrBuffer, sessions: Sequence[Session]) -> List[Applicant]:
    return applicants_from_frame(_read_tsv(source), sessions)


def desired_hours_column(course: Course) -> str:
    return f"Desired {course} hours"


def desired_hours_from_frame(df: pd.DataFrame, course: Course) -> List[Tuple[int, int]]:
    """(week, desired staffed hours) pairs for `course`, in spreadsheet order."""

    column = desired_hours_column(course)
    _require_columns(df, [WEEK_COLUMN, column], "desired hours")

    out: List[Tuple[int, int]] = []
    for row in df[[WEEK_COLUMN, column]].itertuples(index=False):
        try:
            out.append((int(row[0]), int(row[1])))
        except ValueError:
            raise InputFormatError(f"bad desired hours row {tuple(row)!r}") from None
    return out


def load_desired_hours(source: PathOrBuffer, course: Course) -> List[Tuple[int, int]]:
    return desired_hours_from_frame(_read_tsv(source), course)
