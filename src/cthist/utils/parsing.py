"""Parsing and normalization helpers."""

from __future__ import annotations

import re
from datetime import date
from typing import TYPE_CHECKING

from cthist.errors import InvalidIdentifierError

if TYPE_CHECKING:
    from collections.abc import Iterable

NCT_PATTERN = re.compile(r"^NCT\d{8}$")

_ENROLMENT_NUMBER_RE = re.compile(r"^[0-9]+")
_ENROLMENT_TYPE_RE = re.compile(r"[A-Za-z]+")
_PARTIAL_DATE_RE = re.compile(r"^\s*(\d{4})(?:-(\d{1,2}))?(?:-(\d{1,2}))?\s*$")


def validate_identifiers(identifiers: Iterable[str], pattern: re.Pattern[str]) -> list[str]:
    """Return identifiers unchanged, or raise if any does not match ``pattern``."""

    values = list(identifiers)
    invalid = [value for value in values if not isinstance(value, str) or not pattern.fullmatch(value)]
    if invalid:
        raise InvalidIdentifierError(invalid)
    return values


def split_enrolment(raw: str | None) -> tuple[int | None, str | None]:
    """Split ``"120 ACTUAL"`` into ``(120, "ACTUAL")``.

    Either part is None when absent.
    """

    if raw is None:
        return None, None
    text = raw.strip()
    number = _ENROLMENT_NUMBER_RE.search(text)
    qualifier = _ENROLMENT_TYPE_RE.search(text)
    return (
        int(number.group(0)) if number else None,
        qualifier.group(0) if qualifier else None,
    )


def parse_partial_date(raw: str | None) -> tuple[date | None, str | None]:
    """Parse ``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD`` into a date and its precision.

    Missing month/day components are normalized to 1.
    """

    if not raw or not isinstance(raw, str):
        return None, None
    match = _PARTIAL_DATE_RE.match(raw)
    if not match:
        return None, None
    year, month, day = match.groups()
    try:
        parsed = date(int(year), int(month or 1), int(day or 1))
    except ValueError:
        return None, None
    if day:
        return parsed, "day"
    if month:
        return parsed, "month"
    return parsed, "year"
