"""Validation helpers for Streamlit forms."""

from __future__ import annotations

from typing import Tuple

from rostering.inputs import InputFormatError, expand_sequence_specification


def require_non_empty(value: str, field: str) -> Tuple[bool, str]:
    if not value or not value.strip():
        return False, f"{field} cannot be empty"
    return True, ""


def validate_positive_int(value: int, field: str, min_value: int = 1, max_value: int | None = None) -> Tuple[bool, str]:
    if value is None:
        return False, f"{field} is required"
    if value < min_value:
        return False, f"{field} must be >= {min_value}"
    if max_value is not None and value > max_value:
        return False, f"{field} must be <= {max_value}"
    return True, ""


def validate_seed_spec(value: str, field: str = "Seeds", max_seeds: int = 1_000) -> Tuple[bool, str]:
    """Seeds are given as ranges/lists, e.g. "1-3,5"."""

    ok, msg = require_non_empty(value, field)
    if not ok:
        return ok, msg
    try:
        seeds = expand_sequence_specification(value)
    except InputFormatError:
        return False, f"{field} must look like 1-3,5"
    if not seeds:
        return False, f"{field} must name at least one seed"
    if len(seeds) > max_seeds:
        return False, f"{field} names {len(seeds)} seeds (max {max_seeds})"
    return True, ""
