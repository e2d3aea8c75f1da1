"""Run-level state: worklist, store audit and download summary."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, Field

Verdict = Literal["success", "failure"]


@dataclass
class Worklist:
    """Deduplicated request plus the identifiers still pending in this run.

    ``requested`` keeps first-seen order. ``pending`` is mutated by the
    orchestrator as each identifier finishes.
    """

    requested: list[str]
    pending: list[str] = field(default_factory=list)
    processed: list[str] = field(default_factory=list)

    @classmethod
    def build(cls, requested: list[str], already_done: set[str]) -> Worklist:
        unique = list(dict.fromkeys(requested))
        return cls(requested=unique, pending=[nctid for nctid in unique if nctid not in already_done])

    def __bool__(self) -> bool:
        return bool(self.pending)

    def __len__(self) -> int:
        return len(self.pending)

    def next(self) -> str:
        return self.pending[0]

    def mark_done(self, nctid: str) -> None:
        self.pending.remove(nctid)
        self.processed.append(nctid)

    @property
    def progress_percent(self) -> float:
        if not self.requested:
            return 100.0
        return (len(self.requested) - len(self.pending)) * 100.0 / len(self.requested)


@dataclass(frozen=True)
class StoreAudit:
    """Classification of every identifier found in the checkpoint store."""

    row_counts: dict[str, int]
    total_versions: dict[str, int]
    tainted: frozenset[str]
    incomplete: frozenset[str]

    @property
    def complete(self) -> frozenset[str]:
        return frozenset(self.row_counts) - self.tainted - self.incomplete

    @property
    def errors_n(self) -> int:
        return len(self.tainted)

    @property
    def incomplete_n(self) -> int:
        """Rows belonging to identifiers whose row count disagrees with their total."""
        return sum(self.row_counts[nctid] for nctid in self.incomplete)

    @property
    def is_clean(self) -> bool:
        return self.errors_n == 0 and self.incomplete_n == 0


class DownloadSummary(BaseModel):
    """Outcome of one download run."""

    verdict: Verdict
    message: str | None = None
    requested: int = Field(default=0, ge=0)
    fetched: list[str] = Field(default_factory=list)
    no_versions: list[str] = Field(default_factory=list)
    rows_appended: int = Field(default=0, ge=0)
    error_rows_appended: int = Field(default=0, ge=0)
    errors_n: int = Field(default=0, ge=0)
    incomplete_n: int = Field(default=0, ge=0)

    @property
    def ok(self) -> bool:
        return self.verdict == "success"
