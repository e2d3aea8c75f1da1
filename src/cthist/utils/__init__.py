"""Utility helpers."""

from .parsing import NCT_PATTERN, parse_partial_date, split_enrolment, validate_identifiers

__all__ = ["NCT_PATTERN", "parse_partial_date", "split_enrolment", "validate_identifiers"]
