"""ClinicalTrials.gov history API."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger
from pydantic import ValidationError

from cthist.clients.http import RetryableStatusError, SoftErrorDetected, fetch_json, host_reachable
from cthist.models.version import FetchFailure, VersionData
from cthist.utils.parsing import NCT_PATTERN, parse_partial_date

if TYPE_CHECKING:
    from cthist.settings import Settings

_FETCH_ERRORS = (httpx.HTTPError, RetryableStatusError, SoftErrorDetected)


def _flag(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


def _as_json(value: Any) -> str | None:
    if not value:
        return None
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def _module(section: dict[str, Any], name: str) -> dict[str, Any]:
    value = section.get(name)
    return value if isinstance(value, dict) else {}


def parse_version_payload(payload: dict[str, Any]) -> VersionData:
    """Map one ``history/{n}`` payload to :class:`VersionData`."""

    study = payload.get("study")
    protocol = study.get("protocolSection") if isinstance(study, dict) else None
    if not isinstance(protocol, dict):
        raise SoftErrorDetected("Version payload has no protocolSection")

    status = _module(protocol, "statusModule")
    design = _module(protocol, "designModule")
    eligibility = _module(protocol, "eligibilityModule")
    contacts = _module(protocol, "contactsLocationsModule")
    sponsors = _module(protocol, "sponsorCollaboratorsModule")

    start = _module(status, "startDateStruct")
    start_date, start_precision = parse_partial_date(start.get("date"))
    completion = _module(status, "primaryCompletionDateStruct")
    completion_date, completion_precision = parse_partial_date(completion.get("date"))

    enrollment = _module(design, "enrollmentInfo")
    enrolment_parts = [str(part) for part in (enrollment.get("count"), enrollment.get("type")) if part is not None]

    return VersionData(
        overall_status=status.get("overallStatus"),
        study_start_date=start_date,
        study_start_date_precision=start_precision,
        primary_completion_date=completion_date,
        primary_completion_date_precision=completion_precision,
        primary_completion_date_type=completion.get("type"),
        enrolment=" ".join(enrolment_parts) or None,
        min_age=eligibility.get("minimumAge"),
        max_age=eligibility.get("maximumAge"),
        sex=eligibility.get("sex"),
        gender_based=_flag(eligibility.get("genderBased")),
        accepts_healthy_volunteers=_flag(eligibility.get("healthyVolunteers")),
        criteria=eligibility.get("eligibilityCriteria"),
        outcome_measures=_as_json(protocol.get("outcomesModule")),
        contacts=_as_json(
            {
                key: contacts[key]
                for key in ("centralContacts", "overallOfficials")
                if contacts.get(key)
            }
        ),
        sponsor_collaborators=_as_json(
            {key: sponsors[key] for key in ("leadSponsor", "collaborators") if sponsors.get(key)}
        ),
        whystopped=status.get("whyStopped"),
    )


class ClinicalTrialsGovRegistry:
    """Dates and versions of NCT entries from the ClinicalTrials.gov history endpoints."""

    name = "clinicaltrials.gov"
    id_pattern = NCT_PATTERN

    def __init__(self, client: httpx.Client, settings: Settings, *, backoff: float = 1.0) -> None:
        self.client = client
        self.base_url = settings.ctgov_base_url.rstrip("/")
        self.attempts = settings.http_attempts
        self.backoff = backoff

    def history_url(self, nctid: str, version_index: int | None = None) -> str:
        url = f"{self.base_url}/api/int/studies/{nctid}/history"
        if version_index is None:
            return url
        # the API numbers versions from 0
        return f"{url}/{version_index - 1}"

    def is_reachable(self) -> bool:
        return host_reachable(self.client, self.base_url)

    def fetch_dates(self, identifier: str) -> list[str]:
        try:
            payload = fetch_json(self.client, self.history_url(identifier), attempts=self.attempts, backoff=self.backoff)
        except _FETCH_ERRORS as exc:
            logger.warning("Unable to list versions of {}: {}", identifier, exc)
            return []
        changes = payload.get("changes")
        if not isinstance(changes, list):
            logger.warning("History of {} has no change list", identifier)
            return []
        # one entry per API version, dated or not, so indexes stay aligned with history/{n-1}
        return [str(change.get("date") or "") if isinstance(change, dict) else "" for change in changes]

    def fetch_version(self, identifier: str, version_index: int) -> VersionData | FetchFailure:
        url = self.history_url(identifier, version_index)
        try:
            payload = fetch_json(self.client, url, attempts=self.attempts, backoff=self.backoff)
            return parse_version_payload(payload)
        except (*_FETCH_ERRORS, ValidationError) as exc:
            logger.debug("Version {} of {} failed: {}", version_index, identifier, exc)
            return FetchFailure(reason=str(exc))
