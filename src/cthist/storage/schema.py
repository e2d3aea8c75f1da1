"""Explicit column schema shared by every read and write of the checkpoint CSV."""

from __future__ import annotations

import pyarrow as pa

CHECKPOINT_SCHEMA = pa.schema(
    [
        pa.field("nctid", pa.string()),
        pa.field("version_number", pa.int64()),
        pa.field("total_versions", pa.int64()),
        # text, not date: failed rows carry the "Error" sentinel here
        pa.field("version_date", pa.string()),
        pa.field("overall_status", pa.string()),
        pa.field("study_start_date", pa.date32()),
        pa.field("study_start_date_precision", pa.string()),
        pa.field("primary_completion_date", pa.date32()),
        pa.field("primary_completion_date_precision", pa.string()),
        pa.field("primary_completion_date_type", pa.string()),
        pa.field("enrolment", pa.int64()),
        pa.field("enrolment_type", pa.string()),
        pa.field("min_age", pa.string()),
        pa.field("max_age", pa.string()),
        pa.field("sex", pa.string()),
        pa.field("gender_based", pa.string()),
        pa.field("accepts_healthy_volunteers", pa.string()),
        pa.field("criteria", pa.string()),
        pa.field("outcome_measures", pa.string()),
        pa.field("contacts", pa.string()),
        pa.field("sponsor_collaborators", pa.string()),
        pa.field("whystopped", pa.string()),
    ]
)

COLUMNS: list[str] = CHECKPOINT_SCHEMA.names

CLASSIFICATION_COLUMNS = ("version_date", "overall_status")

COLUMN_TYPES: dict[str, pa.DataType] = {field.name: field.type for field in CHECKPOINT_SCHEMA}


def empty_table() -> pa.Table:
    """Zero-row table with the checkpoint schema."""

    return CHECKPOINT_SCHEMA.empty_table()
