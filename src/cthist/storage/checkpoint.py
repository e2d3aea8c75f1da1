"""Append-only CSV checkpoint store with atomic full rewrites."""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pyarrow as pa
import pyarrow.csv as pacsv
from filelock import FileLock, Timeout
from loguru import logger

from cthist.errors import StoreCorruptError, StoreLockedError
from cthist.storage.schema import CHECKPOINT_SCHEMA, COLUMN_TYPES, COLUMNS, empty_table

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from cthist.models.version import VersionRecord


def _skip_truncated_row(row: pacsv.InvalidRow) -> str:
    logger.warning(
        "Skipping malformed checkpoint row ({} of {} columns): {!r}",
        row.actual_columns,
        row.expected_columns,
        row.text[:80],
    )
    return "skip"


def record_boundary(data: bytes) -> int:
    """Length of the longest prefix of ``data`` that ends on a complete CSV record.

    A record ends at a newline outside quotes. Strings are always quoted and
    embedded quotes doubled, so quote parity gives the quoting state.
    """

    total_quotes = data.count(b'"')
    if data.endswith(b"\n") and total_quotes % 2 == 0:
        return len(data)

    quotes_after = 0
    end = len(data)
    pos = data.rfind(b"\n", 0, end)
    while pos != -1:
        quotes_after += data.count(b'"', pos, end)
        if (total_quotes - quotes_after) % 2 == 0:
            return pos + 1
        end = pos
        pos = data.rfind(b"\n", 0, end)
    return 0


def records_to_table(records: Sequence[VersionRecord]) -> pa.Table:
    """Convert version records to a table using the checkpoint schema."""

    return pa.Table.from_pylist([record.model_dump() for record in records], schema=CHECKPOINT_SCHEMA)


class CheckpointStore:
    """CSV file acting as both the download output and the resume log.

    Rows are appended one version at a time. The only non-append write is
    :meth:`rewrite`, which replaces the whole file atomically. Callers must
    hold :meth:`locked` for the duration of a run; concurrent writers against
    the same path are not supported.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"CheckpointStore({str(self.path)!r})"

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    def exists(self) -> bool:
        return self.path.exists()

    @contextlib.contextmanager
    def locked(self, timeout: float = 10.0) -> Iterator[CheckpointStore]:
        """Hold an advisory lock on the store for the duration of the block."""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        lock = FileLock(str(self.lock_path), timeout=timeout)
        try:
            lock.acquire()
        except Timeout as exc:
            raise StoreLockedError(f"Another run is using {self.path} (lock {self.lock_path})") from exc
        try:
            yield self
        finally:
            lock.release()

    def initialize(self) -> None:
        """Create the file with the header row only."""

        self.rewrite(empty_table())

    def append(self, records: Sequence[VersionRecord]) -> int:
        """Append rows without a header. Returns the number of rows written."""

        if not records:
            return 0
        if not self.path.exists():
            self.initialize()
        elif not self._ends_with_newline():
            self.heal()
        table = records_to_table(records)
        with self.path.open("ab") as sink:
            pacsv.write_csv(table, sink, write_options=pacsv.WriteOptions(include_header=False))
        return table.num_rows

    def read(self) -> pa.Table:
        """Load the whole store with the fixed schema; nothing is type-inferred."""

        if not self.path.exists():
            return empty_table()
        data = self.path.read_bytes()
        end = record_boundary(data)
        if end == 0:
            logger.warning("Checkpoint store {} has no complete header, treating as empty", self.path)
            return empty_table()
        if end < len(data):
            logger.warning("Ignoring torn final row in {} ({} bytes)", self.path, len(data) - end)
        try:
            table = pacsv.read_csv(
                pa.BufferReader(pa.py_buffer(data).slice(0, end)),
                parse_options=pacsv.ParseOptions(
                    newlines_in_values=True,
                    invalid_row_handler=_skip_truncated_row,
                ),
                convert_options=pacsv.ConvertOptions(
                    column_types=COLUMN_TYPES,
                    include_columns=COLUMNS,
                    null_values=[""],
                    strings_can_be_null=True,
                ),
            )
        except pa.ArrowException as exc:
            raise StoreCorruptError(f"Unable to parse checkpoint store {self.path}: {exc}") from exc
        return table.select(COLUMNS).cast(CHECKPOINT_SCHEMA)

    def _ends_with_newline(self) -> bool:
        with self.path.open("rb") as f:
            f.seek(0, os.SEEK_END)
            if f.tell() == 0:
                return False
            f.seek(-1, os.SEEK_END)
            return f.read(1) == b"\n"

    def heal(self) -> bool:
        """Cut off a final row left incomplete by a crash mid-write.

        Returns True when the file was changed. Its identifier then counts as
        incomplete (or absent) and is fetched again.
        """

        if not self.path.exists():
            return False
        data = self.path.read_bytes()
        end = record_boundary(data)
        if 0 < end == len(data):
            return False
        logger.warning("Removing torn final row from {} ({} bytes)", self.path, len(data) - end)
        if end == 0:
            self.initialize()
        else:
            with self.path.open("r+b") as f:
                f.truncate(end)
        return True

    def rewrite(self, table: pa.Table) -> None:
        """Replace the file contents atomically (tempfile + replace)."""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        os.close(fd)
        try:
            pacsv.write_csv(
                table.select(COLUMNS).cast(CHECKPOINT_SCHEMA),
                tmp_path,
                write_options=pacsv.WriteOptions(include_header=True),
            )
            Path(tmp_path).replace(self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def identifiers(self) -> set[str]:
        """Identifiers that currently have at least one row on disk."""

        return set(self.read().column("nctid").to_pylist())
