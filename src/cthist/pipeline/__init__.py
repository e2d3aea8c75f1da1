"""Download pipeline."""

from .orchestrator import download_flow, fetch_version_with_retry, run_download, run_worklist
from .planner import audit_store, repair_and_plan, repair_store

__all__ = [
    "audit_store",
    "download_flow",
    "fetch_version_with_retry",
    "repair_and_plan",
    "repair_store",
    "run_download",
    "run_worklist",
]
