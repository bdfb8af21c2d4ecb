"""autorip CLI: makemkvcon driver and disc identifier."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from autorip.analyze import Identifier
from autorip.db import Store, open_db
from autorip.export import event_to_dict, export_json, plan_report, plan_to_dict
from autorip.imdb.catalog import CatalogIndex
from autorip.imdb.fetch import DATASET_SOURCE, FetchError, fetch
from autorip.model import DiscInfo, ProgressTitle, ProgressUpdate, RobotEvent
from autorip.ops import MakeMkv
from autorip.robot.launch import find_makemkvcon
from autorip.robot.parse import RobotParser

app = typer.Typer(name="autorip", help="Drive makemkvcon and identify discs")
catalog_app = typer.Typer(help="Manage the local title catalog")
app.add_typer(catalog_app, name="catalog")
console = Console(stderr=True)
log = logging.getLogger(__name__)

_DB_OPTION = typer.Option("autorip.sqlite", "--db", envvar="AUTORIP_DB", help="SQLite database")
_MAKEMKVCON_OPTION = typer.Option(
    None, "--makemkvcon", envvar="AUTORIP_MAKEMKVCON", help="Path to makemkvcon executable"
)
_CATALOG_OPTION = typer.Option(
    ...,
    "--catalog-dir",
    envvar="AUTORIP_CATALOG",
    help="Directory holding the IMDb dataset files",
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log debug output"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _fail(e: Exception) -> typer.Exit:
    console.print(f"[red]Error:[/red] {e}")
    return typer.Exit(1)


def _resolve_makemkvcon(path: str | None) -> str:
    found = path or find_makemkvcon()
    if not found:
        console.print(
            "[red]Error:[/red] makemkvcon not found\n"
            "  Install MakeMKV or pass --makemkvcon / set AUTORIP_MAKEMKVCON"
        )
        raise typer.Exit(1)
    return found


def _open_catalog(catalog_dir: str) -> CatalogIndex:
    with console.status("[bold]Loading catalog…"):
        index = CatalogIndex.from_dir(catalog_dir)
    log.info("Loaded %d catalog titles", len(index))
    return index


def _iter_events(source: str, log_id: int | None, db: str) -> Iterator[RobotEvent]:
    if log_id is not None:
        store = Store(open_db(db))
        yield from RobotParser(store.log_lines(log_id)).events()
        return
    with open(source, encoding="utf-8", errors="replace") as f:
        yield from RobotParser(f).events()


class _ProgressReporter:
    """Mirrors PRGT/PRGC/PRGV events onto a rich progress bar."""

    def __init__(self, progress: Progress) -> None:
        self.progress = progress
        self.task_id = progress.add_task("makemkvcon…", total=None)

    def __call__(self, event: RobotEvent) -> None:
        parsed = event.parsed
        if isinstance(parsed, ProgressTitle):
            self.progress.update(self.task_id, description=parsed.name)
        elif isinstance(parsed, ProgressUpdate) and parsed.max > 0:
            self.progress.update(self.task_id, completed=parsed.total, total=parsed.max)


def _progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    )


@app.command()
def parse(
    source: str = typer.Argument(None, help="Robot-mode log file"),
    log_id: int = typer.Option(None, "--log-id", help="Replay a log stored in the database"),
    disc_only: bool = typer.Option(False, "--disc-only", help="Only print disc snapshots"),
    db: str = _DB_OPTION,
):
    """Decode a makemkvcon robot-mode log to JSON lines."""
    if source is None and log_id is None:
        console.print("[red]Error:[/red] give a log file or --log-id")
        raise typer.Exit(1)
    try:
        for event in _iter_events(source, log_id, db):
            if disc_only and not isinstance(event.parsed, DiscInfo):
                continue
            typer.echo(export_json(event_to_dict(event), pretty=False))
    except (ValueError, RuntimeError, OSError) as e:
        raise _fail(e)


@app.command()
def drives(
    makemkvcon: str = _MAKEMKVCON_OPTION,
    db: str = _DB_OPTION,
):
    """List attached disc drives."""
    mkv = MakeMkv(Store(open_db(db)), _resolve_makemkvcon(makemkvcon))
    try:
        with console.status("[bold]Scanning drives…"):
            found = mkv.scan_drives()
    except (ValueError, RuntimeError) as e:
        raise _fail(e)

    for d in found:
        typer.echo(f"{d.index}\t{d.state_name}\t{d.drive_name}\t{d.disc_name}\t{d.drive_path}")
    if not found:
        console.print("[yellow]No drives found.[/yellow]")


def _analyze(mkv: MakeMkv):
    with console.status("[bold]Scanning drives…"):
        found = mkv.scan_drives()
    with _progress() as progress:
        return mkv.analyze(found, _ProgressReporter(progress))


@app.command()
def analyze(
    makemkvcon: str = _MAKEMKVCON_OPTION,
    db: str = _DB_OPTION,
    output: str = typer.Option(None, "-o", "--output", help="Write disc JSON to file"),
):
    """Read the inserted disc and record its fingerprint."""
    mkv = MakeMkv(Store(open_db(db)), _resolve_makemkvcon(makemkvcon))
    try:
        result = _analyze(mkv)
    except (ValueError, RuntimeError) as e:
        raise _fail(e)

    status = "[green]new[/green]" if result.new else "[yellow]seen before[/yellow]"
    console.print(
        f"Drive {result.drive_index}: {result.disc_info.name or result.disc_info.volume_name}"
        f"  {result.fingerprint.hex()}  {status}",
        soft_wrap=True,
    )
    if output:
        export_json(event_to_dict(RobotEvent("", "", result.disc_info)), path=output)
        console.print(f"[green]Wrote:[/green] {output}")


@app.command()
def plan(
    source: str = typer.Argument(None, help="Robot-mode log file; reads the drive if omitted"),
    catalog_dir: str = _CATALOG_OPTION,
    makemkvcon: str = _MAKEMKVCON_OPTION,
    db: str = _DB_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print the plan as JSON"),
):
    """Identify a disc and choose the titles to rip."""
    mkv = None
    if source is None:
        mkv = MakeMkv(Store(open_db(db)), _resolve_makemkvcon(makemkvcon))
    try:
        if mkv is None:
            disc_info = DiscInfo()
            for event in _iter_events(source, None, db):
                if isinstance(event.parsed, DiscInfo):
                    disc_info = event.parsed
        else:
            disc_info = _analyze(mkv).disc_info

        identifier = Identifier(_open_catalog(catalog_dir))
        with console.status("[bold]Identifying disc…"):
            result = identifier.make_plan(disc_info)
    except (ValueError, RuntimeError, OSError) as e:
        raise _fail(e)

    if as_json:
        typer.echo(export_json(plan_to_dict(result)))
    else:
        typer.echo(plan_report(result))


@app.command()
def search(
    query: str = typer.Argument(..., help="Title to look up"),
    catalog_dir: str = _CATALOG_OPTION,
    limit: int = typer.Option(10, "-n", "--limit", help="Maximum results"),
):
    """Search the title catalog."""
    try:
        index = _open_catalog(catalog_dir)
    except (ValueError, OSError) as e:
        raise _fail(e)

    shown = 0
    with index.search(query) as results:
        for r in results:
            if shown >= limit:
                break
            year = r.entry.start_year or ""
            series = r.series.primary_title if r.series else ""
            typer.echo(
                f"{r.entry.tconst}\t{r.entry.title_type}\t{r.entry.primary_title}\t{year}"
                f"\t{r.entry.runtime_minutes}\t{r.num_votes}\t{series}"
            )
            shown += 1
    if not shown:
        console.print("[yellow]No matches.[/yellow]")


@catalog_app.command("fetch")
def catalog_fetch(
    catalog_dir: str = _CATALOG_OPTION,
    source: str = typer.Option(DATASET_SOURCE, "--source", help="Base URL of the dataset files"),
):
    """Download the IMDb dataset files into the catalog directory."""
    progress = Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        console=console,
        transient=True,
    )
    tasks: dict[str, int] = {}

    def report(name: str, done: int, total: int | None) -> None:
        if name not in tasks:
            tasks[name] = progress.add_task(name, total=total)
        progress.update(tasks[name], completed=done)

    try:
        with progress:
            written = fetch(catalog_dir, base_url=source, on_progress=report)
    except (FetchError, OSError) as e:
        raise _fail(e)

    for path in written:
        console.print(f"[green]Wrote:[/green] {path}", soft_wrap=True)


if __name__ == "__main__":
    app()
