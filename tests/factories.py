"""Shared test factory helpers and an in-memory registry."""

from __future__ import annotations

import re
from collections import Counter
from datetime import date

from cthist.models.version import ERROR_SENTINEL, FetchFailure, VersionData, VersionRecord


def make_version_data(**overrides) -> VersionData:
    """Create VersionData with sensible defaults. Override any field via kwargs."""
    defaults = {
        "overall_status": "RECRUITING",
        "study_start_date": date(2020, 3, 1),
        "study_start_date_precision": "month",
        "primary_completion_date": date(2022, 6, 15),
        "primary_completion_date_precision": "day",
        "primary_completion_date_type": "ESTIMATED",
        "enrolment": "120 ESTIMATED",
        "min_age": "18 Years",
        "sex": "ALL",
        "criteria": "Inclusion Criteria:\n\n* Adults, aged 18+",
    }
    defaults.update(overrides)
    return VersionData(**defaults)


def make_record(nctid: str = "ABC00000001", version_number: int = 1, total_versions: int = 1, **overrides) -> VersionRecord:
    """Create a VersionRecord with sensible defaults. Override any field via kwargs."""
    defaults = {
        "nctid": nctid,
        "version_number": version_number,
        "total_versions": total_versions,
        "version_date": f"2020-01-{version_number:02d}",
        "overall_status": "RECRUITING",
        "enrolment": 120,
        "enrolment_type": "ESTIMATED",
    }
    defaults.update(overrides)
    return VersionRecord(**defaults)


def make_error_record(nctid: str, version_number: int, total_versions: int) -> VersionRecord:
    return make_record(
        nctid,
        version_number,
        total_versions,
        overall_status=ERROR_SENTINEL,
        enrolment=None,
        enrolment_type=None,
    )


class FakeRegistry:
    """Registry double that serves canned histories and counts every call.

    ``failures`` maps ``(identifier, version_index)`` to the number of calls
    that return the error sentinel before the version succeeds.
    """

    name = "fake-registry"
    id_pattern = re.compile(r"^[A-Z]{3}\d{8}$")

    def __init__(
        self,
        histories: dict[str, list[str]],
        *,
        failures: dict[tuple[str, int], int] | None = None,
        reachable: bool = True,
    ) -> None:
        self.histories = histories
        self.failures = failures or {}
        self.reachable = reachable
        self.reachability_checks = 0
        self.date_calls: list[str] = []
        self.version_calls: Counter[tuple[str, int]] = Counter()

    def is_reachable(self) -> bool:
        self.reachability_checks += 1
        return self.reachable

    def fetch_dates(self, identifier: str) -> list[str]:
        self.date_calls.append(identifier)
        return list(self.histories.get(identifier, []))

    def fetch_version(self, identifier: str, version_index: int) -> VersionData | FetchFailure:
        key = (identifier, version_index)
        self.version_calls[key] += 1
        if self.version_calls[key] <= self.failures.get(key, 0):
            return FetchFailure(reason="simulated outage")
        return make_version_data(overall_status=f"STATUS_V{version_index}")

    @property
    def total_version_calls(self) -> int:
        return sum(self.version_calls.values())
