"""Version-level models: tagged fetch results and persisted rows."""

from __future__ import annotations

from datetime import date  # noqa: TC003
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

ERROR_SENTINEL = "Error"

DatePrecision = Literal["day", "month", "year"]


class VersionData(BaseModel):
    """Fields of one successfully fetched registry version."""

    model_config = ConfigDict(str_strip_whitespace=True)

    status: Literal["ok"] = "ok"

    overall_status: str | None = None
    study_start_date: date | None = None
    study_start_date_precision: DatePrecision | None = None
    primary_completion_date: date | None = None
    primary_completion_date_precision: DatePrecision | None = None
    primary_completion_date_type: str | None = None
    enrolment: str | None = None

    min_age: str | None = None
    max_age: str | None = None
    sex: str | None = None
    gender_based: str | None = None
    accepts_healthy_volunteers: str | None = None
    criteria: str | None = None

    outcome_measures: str | None = None
    contacts: str | None = None
    sponsor_collaborators: str | None = None
    whystopped: str | None = None


class FetchFailure(BaseModel):
    """Error sentinel returned instead of raising when a version cannot be fetched."""

    status: Literal["error"] = "error"
    reason: str = ERROR_SENTINEL


VersionResult = Annotated[VersionData | FetchFailure, Field(discriminator="status")]


def is_failure(result: VersionData | FetchFailure | None) -> bool:
    """Return True for an absent result or the error sentinel."""

    return result is None or result.status == "error"


class VersionRecord(BaseModel):
    """One persisted row: one historical version of one identifier.

    Column order here is the on-disk column order of the checkpoint CSV.
    ``version_date`` and ``overall_status`` hold :data:`ERROR_SENTINEL` for rows
    whose fetch never succeeded.
    """

    nctid: str
    version_number: int = Field(ge=1)
    total_versions: int = Field(ge=0)
    version_date: str | None = None
    overall_status: str | None = None
    study_start_date: date | None = None
    study_start_date_precision: str | None = None
    primary_completion_date: date | None = None
    primary_completion_date_precision: str | None = None
    primary_completion_date_type: str | None = None
    enrolment: int | None = None
    enrolment_type: str | None = None
    min_age: str | None = None
    max_age: str | None = None
    sex: str | None = None
    gender_based: str | None = None
    accepts_healthy_volunteers: str | None = None
    criteria: str | None = None
    outcome_measures: str | None = None
    contacts: str | None = None
    sponsor_collaborators: str | None = None
    whystopped: str | None = None

    @property
    def is_error(self) -> bool:
        return ERROR_SENTINEL in (self.version_date, self.overall_status)
