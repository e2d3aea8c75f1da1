"""Pydantic models and run state."""

from .run import DownloadSummary, StoreAudit, Verdict, Worklist
from .version import (
    ERROR_SENTINEL,
    FetchFailure,
    VersionData,
    VersionRecord,
    VersionResult,
    is_failure,
)

__all__ = [
    "ERROR_SENTINEL",
    "DownloadSummary",
    "FetchFailure",
    "StoreAudit",
    "Verdict",
    "VersionData",
    "VersionRecord",
    "VersionResult",
    "Worklist",
    "is_failure",
]
