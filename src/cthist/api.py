"""Public entry points."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cthist.clients.http import create_http_client
from cthist.pipeline.orchestrator import download_flow
from cthist.registries.clinicaltrials_gov import ClinicalTrialsGovRegistry
from cthist.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    import httpx
    import pyarrow as pa


def clinicaltrials_gov_download(
    nctids: str | Iterable[str],
    output_filename: Path | str | None = None,
    quiet: bool = False,
    *,
    settings: Settings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> bool | pa.Table:
    """Download all historical versions of the given NCT numbers.

    With ``output_filename`` the versions are written there as CSV and the
    return value is True on success. Calling again with the same numbers and
    file removes rows tagged as errors or belonging to incompletely downloaded
    trials, then fetches only what is still missing. Without a filename the
    versions are returned as a ``pyarrow.Table``, or False on failure.
    """

    settings = settings or Settings()
    ids = [nctids] if isinstance(nctids, str) else list(nctids)
    with create_http_client(settings, transport=transport) as client:
        registry = ClinicalTrialsGovRegistry(client, settings)
        return download_flow.fn(registry, ids, output_filename, settings=settings, quiet=quiet)
