"""cthist CLI."""

from __future__ import annotations

import sys
from pathlib import Path

import pyarrow as pa
import pyarrow.csv as pacsv
import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from cthist.api import clinicaltrials_gov_download
from cthist.errors import CthistError
from cthist.pipeline.planner import audit_store
from cthist.settings import Settings
from cthist.storage.checkpoint import CheckpointStore

app = typer.Typer(help="Mass-download historical versions of ClinicalTrials.gov registry entries")
console = Console()

SEARCH_EXPORT_COLUMN = "NCT Number"


def _configure_logging(quiet: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="WARNING" if quiet else "INFO")


def _settings_from_args(quiet: bool | None = None, version_attempts: int | None = None) -> Settings:
    settings = Settings()
    if quiet is not None:
        settings.quiet = quiet
    if version_attempts is not None:
        settings.version_attempts = version_attempts
    return settings


def _load_search_export(path: Path) -> list[str]:
    """Read NCT numbers from a ClinicalTrials.gov search results CSV."""

    try:
        table = pacsv.read_csv(
            path,
            parse_options=pacsv.ParseOptions(newlines_in_values=True),
            convert_options=pacsv.ConvertOptions(
                include_columns=[SEARCH_EXPORT_COLUMN],
                column_types={SEARCH_EXPORT_COLUMN: pa.string()},
            ),
        )
    except pa.ArrowException as exc:
        raise typer.BadParameter(f"{path} has no readable '{SEARCH_EXPORT_COLUMN}' column") from exc
    return [value.strip() for value in table.column(SEARCH_EXPORT_COLUMN).to_pylist() if value]


def _version_counts_table(table: pa.Table) -> Table:
    audit = audit_store(table)
    out = Table(title="Downloaded versions")
    out.add_column("NCT Number")
    out.add_column("Versions", justify="right")
    for nctid, count in audit.row_counts.items():
        out.add_row(nctid, str(count))
    return out


@app.command("download")
def download(
    nctids: list[str] = typer.Argument(None, help="NCT numbers, e.g. NCT00942747"),
    from_csv: Path | None = typer.Option(
        None,
        "--from-csv",
        exists=True,
        dir_okay=False,
        help="ClinicalTrials.gov search export with an 'NCT Number' column",
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="CSV to write to (and resume from)"),
    quiet: bool = typer.Option(False, "--quiet", "-q"),
    version_attempts: int | None = typer.Option(None, "--version-attempts", min=1, max=10),
) -> None:
    """Download every historical version of the given trials."""

    ids = list(nctids or [])
    if from_csv is not None:
        ids.extend(_load_search_export(from_csv))
    if not ids:
        raise typer.BadParameter("Provide NCT numbers or --from-csv")

    _configure_logging(quiet)
    settings = _settings_from_args(quiet=quiet, version_attempts=version_attempts)
    try:
        result = clinicaltrials_gov_download(ids, output, quiet, settings=settings)
    except CthistError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2) from exc

    if result is False:
        raise typer.Exit(code=1)
    if isinstance(result, pa.Table):
        console.print(_version_counts_table(result))
    else:
        console.print(f"download complete: {output}")


@app.command("check")
def check(
    path: Path = typer.Argument(..., help="CSV written by `cthist download`"),
) -> None:
    """Audit a downloaded CSV for error rows and incomplete trials without fetching."""

    store = CheckpointStore(path)
    if not store.exists():
        raise typer.BadParameter(f"{path} does not exist")
    try:
        audit = audit_store(store.read())
    except CthistError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2) from exc

    table = Table(title=f"Checkpoint audit ({path.name})")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("trials", str(len(audit.row_counts)))
    table.add_row("rows", str(sum(audit.row_counts.values())))
    table.add_row("complete", str(len(audit.complete)))
    table.add_row("with errors", ", ".join(sorted(audit.tainted)) or "0")
    table.add_row("incomplete", ", ".join(sorted(audit.incomplete)) or "0")
    console.print(table)
    if not audit.is_clean:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
