"""Store audit, self-healing repair and worklist planning."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

import pyarrow as pa
import pyarrow.compute as pc
from loguru import logger

from cthist.models.run import StoreAudit, Worklist
from cthist.models.version import ERROR_SENTINEL
from cthist.storage.schema import CLASSIFICATION_COLUMNS

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cthist.storage.checkpoint import CheckpointStore


def audit_store(table: pa.Table) -> StoreAudit:
    """Classify every identifier in a checkpoint table.

    An identifier is tainted when any of its rows carries the error sentinel
    in a classification column, and incomplete when its row count differs
    from the first total_versions value recorded for it.
    """

    nctids = table.column("nctid").to_pylist()
    totals = table.column("total_versions").to_pylist()

    row_counts = Counter(nctids)
    total_versions: dict[str, int] = {}
    for nctid, total in zip(nctids, totals, strict=True):
        total_versions.setdefault(nctid, total)

    error_mask = None
    for column in CLASSIFICATION_COLUMNS:
        matches = pc.fill_null(pc.equal(table.column(column), ERROR_SENTINEL), False)
        error_mask = matches if error_mask is None else pc.or_(error_mask, matches)
    tainted = frozenset(table.filter(error_mask).column("nctid").to_pylist()) if error_mask is not None else frozenset()

    incomplete = frozenset(nctid for nctid, count in row_counts.items() if count != total_versions[nctid])

    return StoreAudit(
        row_counts=dict(row_counts),
        total_versions=total_versions,
        tainted=tainted,
        incomplete=incomplete,
    )


def repair_store(store: CheckpointStore) -> StoreAudit:
    """Drop every row of tainted or incomplete identifiers and rewrite the store.

    All-or-nothing per identifier: version numbers and totals are only
    meaningful as a complete set, so good rows of a tainted identifier go too.
    A torn final row left by a crash is cut off first. The file is otherwise
    left untouched when there is nothing to drop.
    """

    store.heal()
    table = store.read()
    audit = audit_store(table)
    dropped = audit.tainted | audit.incomplete
    if not dropped:
        return audit

    keep = pc.invert(pc.is_in(table.column("nctid"), value_set=pa.array(sorted(dropped), type=pa.string())))
    repaired = table.filter(keep)
    store.rewrite(repaired)
    logger.info(
        "Repaired {}: removed {} rows ({} identifiers with errors, {} incomplete)",
        store.path,
        table.num_rows - repaired.num_rows,
        len(audit.tainted),
        len(audit.incomplete - audit.tainted),
    )
    return audit


def repair_and_plan(store: CheckpointStore, requested: Sequence[str]) -> Worklist:
    """Initialize or repair the store, then return the identifiers still to fetch."""

    if not store.exists():
        store.initialize()
        done: set[str] = set()
    else:
        repair_store(store)
        done = store.identifiers()
    return Worklist.build(list(requested), done)
