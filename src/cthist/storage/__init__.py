"""Storage helpers."""

from .checkpoint import CheckpointStore, records_to_table
from .schema import CHECKPOINT_SCHEMA, CLASSIFICATION_COLUMNS, COLUMNS, empty_table

__all__ = [
    "CHECKPOINT_SCHEMA",
    "CLASSIFICATION_COLUMNS",
    "COLUMNS",
    "CheckpointStore",
    "empty_table",
    "records_to_table",
]
