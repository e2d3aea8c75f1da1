"""Tests for the ClinicalTrials.gov registry."""

import json
from datetime import date

import httpx
import pyarrow as pa
import pytest

from cthist import clinicaltrials_gov_download
from cthist.clients.http import SoftErrorDetected, create_http_client
from cthist.errors import InvalidIdentifierError
from cthist.models.version import FetchFailure, VersionData
from cthist.registries.base import Registry
from cthist.registries.clinicaltrials_gov import ClinicalTrialsGovRegistry, parse_version_payload
from cthist.settings import Settings
from cthist.storage.checkpoint import CheckpointStore

NCT = "NCT02110043"


def _registry(handler) -> ClinicalTrialsGovRegistry:
    settings = Settings(http_attempts=1)
    client = create_http_client(settings, transport=httpx.MockTransport(handler))
    return ClinicalTrialsGovRegistry(client, settings, backoff=0)


def _api_handler(history_payload: dict, version_payload: dict, *, broken_version: int | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == f"/api/int/studies/{NCT}/history":
            return httpx.Response(200, json=history_payload)
        if path.startswith(f"/api/int/studies/{NCT}/history/"):
            if broken_version is not None and path.endswith(f"/{broken_version}"):
                return httpx.Response(404)
            return httpx.Response(200, json=version_payload)
        if path in {"", "/"}:
            return httpx.Response(200, text="<html></html>")
        return httpx.Response(404)

    return handler


def test_parse_version_payload(version_payload: dict) -> None:
    data = parse_version_payload(version_payload)

    assert data.overall_status == "COMPLETED"
    assert data.study_start_date == date(2014, 5, 1)
    assert data.study_start_date_precision == "month"
    assert data.primary_completion_date == date(2015, 8, 1)
    assert data.primary_completion_date_precision == "month"
    assert data.primary_completion_date_type == "ACTUAL"
    assert data.enrolment == "42 ACTUAL"
    assert data.min_age == "18 Years"
    assert data.max_age == "65 Years"
    assert data.gender_based == "Yes"
    assert data.accepts_healthy_volunteers == "No"
    assert data.criteria.startswith("Inclusion Criteria:")
    assert data.whystopped is None
    assert json.loads(data.sponsor_collaborators)["leadSponsor"]["name"] == "Example University"
    assert "overallOfficials" in json.loads(data.contacts)
    assert json.loads(data.outcome_measures)["primaryOutcomes"][0]["timeFrame"] == "12 weeks"


def test_parse_version_payload_without_protocol() -> None:
    with pytest.raises(SoftErrorDetected):
        parse_version_payload({"study": {}})


def test_parse_version_payload_minimal() -> None:
    data = parse_version_payload({"study": {"protocolSection": {}}})
    assert data == VersionData()


def test_registry_satisfies_protocol() -> None:
    registry = _registry(lambda request: httpx.Response(200))
    assert isinstance(registry, Registry)
    assert registry.history_url(NCT, 1).endswith(f"/api/int/studies/{NCT}/history/0")


def test_fetch_dates(history_payload: dict, version_payload: dict) -> None:
    registry = _registry(_api_handler(history_payload, version_payload))
    assert registry.fetch_dates(NCT) == ["2014-04-08", "2014-09-02", "2016-01-21"]


def test_fetch_dates_failure_is_empty() -> None:
    registry = _registry(lambda request: httpx.Response(500))
    assert registry.fetch_dates(NCT) == []


def test_fetch_dates_unexpected_shape_is_empty() -> None:
    registry = _registry(lambda request: httpx.Response(200, json={"changes": "none"}))
    assert registry.fetch_dates(NCT) == []


def test_fetch_version(history_payload: dict, version_payload: dict) -> None:
    registry = _registry(_api_handler(history_payload, version_payload))
    result = registry.fetch_version(NCT, 1)
    assert isinstance(result, VersionData)
    assert result.overall_status == "COMPLETED"


def test_fetch_version_never_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    registry = _registry(handler)
    result = registry.fetch_version(NCT, 1)
    assert isinstance(result, FetchFailure)
    assert "slow" in result.reason


def test_download_to_file(tmp_path, history_payload: dict, version_payload: dict) -> None:
    output = tmp_path / "historical_versions.csv"
    transport = httpx.MockTransport(_api_handler(history_payload, version_payload))

    assert clinicaltrials_gov_download([NCT], output, quiet=True, transport=transport) is True

    table = CheckpointStore(output).read()
    assert table.num_rows == 3
    assert table.column("version_date").to_pylist() == ["2014-04-08", "2014-09-02", "2016-01-21"]
    assert table.column("enrolment").to_pylist() == [42, 42, 42]
    assert table.column("primary_completion_date").to_pylist()[0] == date(2015, 8, 1)


def test_download_returns_table_without_filename(history_payload: dict, version_payload: dict) -> None:
    transport = httpx.MockTransport(_api_handler(history_payload, version_payload))

    result = clinicaltrials_gov_download(NCT, quiet=True, transport=transport)

    assert isinstance(result, pa.Table)
    assert result.column("version_number").to_pylist() == [1, 2, 3]


def test_download_reports_failed_version(tmp_path, history_payload: dict, version_payload: dict) -> None:
    output = tmp_path / "out.csv"
    settings = Settings(http_attempts=1, version_attempts=2, quiet=True)
    transport = httpx.MockTransport(_api_handler(history_payload, version_payload, broken_version=1))

    assert clinicaltrials_gov_download([NCT], output, settings=settings, transport=transport) is False
    statuses = CheckpointStore(output).read().column("overall_status").to_pylist()
    assert statuses == ["COMPLETED", "Error", "COMPLETED"]


def test_download_rejects_malformed_nct(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(InvalidIdentifierError):
        clinicaltrials_gov_download(["NCT123"], tmp_path / "out.csv", transport=httpx.MockTransport(handler))


def test_fetch_dates_keeps_undated_versions() -> None:
    payload = {"changes": [{"date": "2014-04-08"}, {"version": 1}, {"date": "2016-01-21"}]}
    registry = _registry(lambda request: httpx.Response(200, json=payload))
    assert registry.fetch_dates(NCT) == ["2014-04-08", "", "2016-01-21"]
