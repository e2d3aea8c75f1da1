"""Resumable, strictly sequential download of registry version histories."""

from __future__ import annotations

import tempfile
from collections.abc import Sequence  # noqa: TC003
from pathlib import Path
from typing import TYPE_CHECKING

import pyarrow as pa  # noqa: TC002
from loguru import logger
from prefect import flow

from cthist.models.run import DownloadSummary
from cthist.models.version import ERROR_SENTINEL, FetchFailure, VersionRecord, is_failure
from cthist.pipeline.planner import audit_store, repair_and_plan
from cthist.registries.base import Registry  # noqa: TC001
from cthist.settings import Settings
from cthist.storage.checkpoint import CheckpointStore
from cthist.utils.parsing import split_enrolment, validate_identifiers

if TYPE_CHECKING:
    from cthist.models.run import StoreAudit, Worklist
    from cthist.models.version import VersionData

ERRORS_MESSAGE = (
    "{n} error(s) detected among your downloaded data. "
    "If you re-run this script, it will remove any data tagged as an error and try to download again."
)
INCOMPLETE_MESSAGE = (
    "{n} incomplete download(s) detected among your downloaded data. "
    "If you re-run this script, it will remove any data that has not been downloaded completely "
    "and try to download again."
)


def fetch_version_with_retry(
    registry: Registry,
    nctid: str,
    version_index: int,
    *,
    attempts: int = 10,
    quiet: bool = False,
) -> VersionData | FetchFailure:
    """Call the registry until it returns data or ``attempts`` calls have failed.

    No delay between calls. The last failure is returned rather than raised.
    """

    result: VersionData | FetchFailure | None = None
    calls = 0
    while is_failure(result) and calls < attempts:
        if calls > 0 and not quiet:
            logger.info("Trying again ...")
        result = registry.fetch_version(nctid, version_index)
        calls += 1

    if is_failure(result):
        logger.warning("Version {} of {} failed after {} attempts", version_index, nctid, calls)
        return result or FetchFailure(reason="No result")
    if calls > 1 and not quiet:
        logger.info("Recovered from error successfully")
    return result


def build_record(
    nctid: str,
    version_index: int,
    total_versions: int,
    version_date: str,
    result: VersionData | FetchFailure,
) -> VersionRecord:
    """Turn one fetch result into a checkpoint row."""

    if is_failure(result):
        return VersionRecord(
            nctid=nctid,
            version_number=version_index,
            total_versions=total_versions,
            version_date=version_date,
            overall_status=ERROR_SENTINEL,
        )

    fields = result.model_dump(exclude={"status", "enrolment"})
    enrolment, enrolment_type = split_enrolment(result.enrolment)
    return VersionRecord(
        nctid=nctid,
        version_number=version_index,
        total_versions=total_versions,
        version_date=version_date,
        enrolment=enrolment,
        enrolment_type=enrolment_type,
        **fields,
    )


def fetch_identifier(
    registry: Registry,
    store: CheckpointStore,
    nctid: str,
    *,
    attempts: int = 10,
    quiet: bool = False,
) -> tuple[int, int]:
    """Fetch every version of one identifier, appending each row as soon as it exists.

    Returns ``(rows_written, error_rows_written)``.
    """

    versions = registry.fetch_dates(nctid)
    total = len(versions)
    rows = errors = 0
    for version_index, version_date in enumerate(versions, start=1):
        result = fetch_version_with_retry(registry, nctid, version_index, attempts=attempts, quiet=quiet)
        record = build_record(nctid, version_index, total, version_date, result)
        rows += store.append([record])
        errors += int(record.is_error)
        if total > 2 and not quiet:
            logger.info("{} - {} of {}", nctid, version_index, total)
    return rows, errors


def verdict_from_audit(audit: StoreAudit) -> tuple[bool, str | None]:
    """Success flag and the user-facing message; errors take precedence over incompleteness."""

    if audit.errors_n > 0:
        return False, ERRORS_MESSAGE.format(n=audit.errors_n)
    if audit.incomplete_n > 0:
        return False, INCOMPLETE_MESSAGE.format(n=audit.incomplete_n)
    return True, None


def run_worklist(
    registry: Registry,
    store: CheckpointStore,
    worklist: Worklist,
    *,
    attempts: int = 10,
    quiet: bool = False,
) -> DownloadSummary:
    """Drain the worklist one identifier at a time, then audit the store."""

    summary = DownloadSummary(verdict="failure", requested=len(worklist.requested))
    while worklist:
        nctid = worklist.next()
        rows, errors = fetch_identifier(registry, store, nctid, attempts=attempts, quiet=quiet)
        worklist.mark_done(nctid)

        summary.fetched.append(nctid)
        summary.rows_appended += rows
        summary.error_rows_appended += errors
        if rows == 0:
            logger.warning("No versions found for {}", nctid)
            summary.no_versions.append(nctid)
        if not quiet:
            logger.info("{} processed ({} versions, {:.1f}%)", nctid, rows, worklist.progress_percent)

    audit = audit_store(store.read())
    ok, message = verdict_from_audit(audit)
    summary.verdict = "success" if ok else "failure"
    summary.message = message
    summary.errors_n = audit.errors_n
    summary.incomplete_n = audit.incomplete_n
    if message:
        logger.error(message)
    return summary


def run_download(
    registry: Registry,
    store: CheckpointStore,
    identifiers: Sequence[str],
    *,
    settings: Settings,
    quiet: bool = False,
) -> DownloadSummary:
    """Repair, plan and fetch under the store lock."""

    with store.locked(timeout=settings.lock_timeout):
        worklist = repair_and_plan(store, identifiers)
        if not quiet:
            logger.info(
                "{} of {} requested identifiers to download into {}",
                len(worklist),
                len(worklist.requested),
                store.path,
            )
        return run_worklist(registry, store, worklist, attempts=settings.version_attempts, quiet=quiet)


@flow(name="cthist-download", validate_parameters=False)
def download_flow(
    registry: Registry,
    identifiers: Sequence[str],
    output_path: Path | str | None = None,
    *,
    settings: Settings | None = None,
    quiet: bool | None = None,
) -> bool | pa.Table:
    """Download every version of every identifier, resuming from ``output_path``.

    Returns True/False when ``output_path`` is given. Without it a temporary
    store is used and the full table is returned on success, False otherwise.
    """

    settings = settings or Settings()
    quiet = settings.quiet if quiet is None else quiet
    identifiers = validate_identifiers(identifiers, registry.id_pattern)

    if not registry.is_reachable():
        logger.error("Unable to connect to {}", registry.name)
        return False

    if output_path is not None:
        store = CheckpointStore(Path(output_path))
        return run_download(registry, store, identifiers, settings=settings, quiet=quiet).ok

    with tempfile.TemporaryDirectory(prefix="cthist-") as tmp_dir:
        store = CheckpointStore(Path(tmp_dir) / "versions.csv")
        summary = run_download(registry, store, identifiers, settings=settings, quiet=quiet)
        return store.read() if summary.ok else False
