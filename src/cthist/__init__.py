"""Mass-download historical versions of clinical trial registry entries."""

from __future__ import annotations

__version__ = "0.1.0"

from cthist.api import clinicaltrials_gov_download  # noqa: E402

__all__ = ["__version__", "clinicaltrials_gov_download"]
