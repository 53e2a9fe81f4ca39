"""UI utilities (form validators)."""

from .validators import require_non_empty, validate_positive_int, validate_seed_spec

__all__ = ["require_non_empty", "validate_positive_int", "validate_seed_spec"]
