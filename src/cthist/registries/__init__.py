"""Trial registry collaborators."""

from .base import Registry
from .clinicaltrials_gov import ClinicalTrialsGovRegistry, parse_version_payload

__all__ = ["ClinicalTrialsGovRegistry", "Registry", "parse_version_payload"]
