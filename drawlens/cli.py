# drawlens/cli.py
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich import box

from .candidates import Kind, Mode
from .config import load_settings
from .errors import DrawlensError
from .logging_config import setup_logging
from .mapper import to_elements
from .pipeline import ExtractionRun
from .state import Progress, ProjectStore, StructureType, TaskStatus, percent_done
from .text_source import read_page_tokens


app = typer.Typer(add_completion=False, help="Structural drawing labels → columns, footings and snapped beams")
console = Console()

logger = logging.getLogger("drawlens.cli")


def _settings():
    try:
        s = load_settings()
    except RuntimeError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    setup_logging(s.log_level)
    return s


def _run(pdf: str, mode: Mode, backend: Optional[str], flip: Optional[List[str]], s) -> ExtractionRun:
    backend = backend or s.text_backend
    console.print(f"[cyan]Reading page 1 of {pdf} ({backend})...[/cyan]")
    logger.info("Reading tokens from %s via %s", pdf, backend)
    try:
        tokens = read_page_tokens(pdf, backend)
        run = ExtractionRun.from_tokens(tokens, mode, s.tolerance)
    except (DrawlensError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Failed to analyze {pdf}: {e}[/red]")
        logger.error("Extraction failed for %s: %s", pdf, e)
        raise typer.Exit(code=1)

    for cid in flip or []:
        if not run.flip_orientation(cid):
            console.print(f"[yellow]  -> cannot flip {cid}: not a connected beam[/yellow]")
    logger.info("Found %d %s item(s) in %s", len(run), run.mode.value, pdf)
    return run


def _candidate_table(run: ExtractionRun) -> Table:
    table = Table(title=f"{run.mode.value} candidates", box=box.SIMPLE_HEAVY)
    table.add_column("ID")
    table.add_column("Label")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("Orientation")
    table.add_column("Length", justify="right")
    table.add_column("Connected")
    for c in run.candidates:
        if c.kind is Kind.BEAM:
            orient = "vertical" if c.orientation else "horizontal"
            conn = "[green]yes[/green]" if c.connected else "[red]no[/red]"
        else:
            orient, conn = "-", "-"
        length = "-" if c.length is None else f"{c.length:g}"
        table.add_row(c.id, c.label, f"{c.x:g}", f"{c.y:g}", orient, length, conn)
    return table


def _progress_table(prog: Progress) -> Table:
    table = Table(title="Progress by level", box=box.SIMPLE_HEAVY)
    table.add_column("Level")
    table.add_column("Done", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("%", justify="right")
    for lv in prog.levels:
        table.add_row(lv.name, str(lv.done), str(lv.total), str(percent_done(lv.done, lv.total)))
    return table


def _store(db: Optional[str], s) -> ProjectStore:
    return ProjectStore(db or s.state_db)


@app.command("extract")
def extract(
    pdf: str = typer.Argument(..., help="Drawing PDF (page 1 is read)"),
    mode: Mode = typer.Option(Mode.COLUMN, case_sensitive=False, help="Component type to extract"),
    backend: str = typer.Option(None, help="Text backend: pymupdf | pdfplumber"),
    flip: List[str] = typer.Option(None, "--flip", help="Toggle orientation of a connected beam by ID"),
    out: Path = typer.Option(None, "--out", help="Also write candidates as JSON to this file"),
):
    s = _settings()
    run = _run(pdf, mode, backend, flip, s)
    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps([c.to_public() for c in run.candidates], indent=2), encoding="utf-8")
        logger.info("Wrote %s", out)
    if not len(run):
        console.print(f"[yellow]No {mode.value} labels found.[/yellow]")
        return
    console.print(_candidate_table(run))


@app.command("project-create")
def project_create(
    name: str = typer.Argument(...),
    floors: int = typer.Option(2, help="Floors above ground"),
    floor_height: float = typer.Option(3.5, help="Floor height in metres"),
    structure: StructureType = typer.Option(StructureType.RCC_FRAMED, case_sensitive=False),
    db: str = typer.Option(None, help="Override state DB path"),
):
    s = _settings()
    store = _store(db, s)
    try:
        pid = store.add_project(name, structure, floors, floor_height)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    finally:
        store.close()
    console.print(f"[green]Created project {pid}[/green]")
    typer.echo(pid)


@app.command("levels")
def levels(
    project: str = typer.Argument(...),
    db: str = typer.Option(None, help="Override state DB path"),
):
    s = _settings()
    store = _store(db, s)
    try:
        lvls = store.levels(project)
    finally:
        store.close()
    if not lvls:
        console.print(f"[red]Unknown project or no levels: {project}[/red]")
        raise typer.Exit(code=1)
    table = Table(title=f"Levels of {project}", box=box.SIMPLE_HEAVY)
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Elevation (m)", justify="right")
    for lvl in lvls:
        table.add_row(lvl.id, lvl.name, f"{lvl.elevation:g}")
    console.print(table)


@app.command("import")
def import_drawing(
    pdf: str = typer.Argument(...),
    project: str = typer.Option(..., help="Project ID"),
    level: str = typer.Option(..., help="Level ID"),
    mode: Mode = typer.Option(Mode.COLUMN, case_sensitive=False),
    backend: str = typer.Option(None, help="Text backend: pymupdf | pdfplumber"),
    flip: List[str] = typer.Option(None, "--flip", help="Toggle orientation of a connected beam by ID"),
    scale: float = typer.Option(None, help="Drawing units per metre (default DRAWLENS_UNITS_PER_METER)"),
    db: str = typer.Option(None, help="Override state DB path"),
):
    s = _settings()
    if scale is not None and scale <= 0:
        console.print("[red]--scale must be > 0[/red]")
        raise typer.Exit(code=1)
    store = _store(db, s)
    try:
        lvl = store.get_level(level)
        if store.get_project(project) is None or lvl is None or lvl.project_id != project:
            console.print(f"[red]Unknown project/level: {project}/{level}[/red]")
            raise typer.Exit(code=1)

        run = _run(pdf, mode, backend, flip, s)
        drawing = store.get_drawing(store.add_drawing(project, Path(pdf).name, pdf, scale))
        elements = to_elements(run.candidates, project, lvl, drawing.scale_factor or s.units_per_meter)
        n = store.add_elements(elements)
    finally:
        store.close()
    logger.info("Stored %d element(s) from %s on %s", n, drawing.id, level)
    console.print(f"[green]Added {n} {mode.value}(s) to {lvl.name} (drawing {drawing.id})[/green]")


@app.command("drawings")
def drawings(
    project: str = typer.Argument(...),
    db: str = typer.Option(None, help="Override state DB path"),
):
    s = _settings()
    store = _store(db, s)
    try:
        rows = store.drawings(project)
    finally:
        store.close()
    if not rows:
        console.print(f"[yellow]No drawings recorded for {project}.[/yellow]")
        return
    table = Table(title=f"Drawings of {project}", box=box.SIMPLE_HEAVY)
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Scale (units/m)", justify="right")
    for d in rows:
        scale = f"{d.scale_factor:g}" if d.scale_factor is not None else f"{s.units_per_meter:g} (default)"
        table.add_row(d.id, d.name, scale)
    console.print(table)


@app.command("drawing-scale")
def drawing_scale(
    drawing: str = typer.Argument(...),
    scale: float = typer.Argument(..., help="Drawing units per metre"),
    db: str = typer.Option(None, help="Override state DB path"),
):
    s = _settings()
    store = _store(db, s)
    try:
        d = store.update_drawing_scale(drawing, scale)
    except KeyError:
        console.print(f"[red]Unknown drawing: {drawing}[/red]")
        raise typer.Exit(code=1)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    finally:
        store.close()
    console.print(f"[green]{d.name}: {d.scale_factor:g} units/m[/green]")


@app.command("wbs")
def wbs(
    project: str = typer.Argument(...),
    db: str = typer.Option(None, help="Override state DB path"),
):
    s = _settings()
    store = _store(db, s)
    try:
        if store.get_project(project) is None:
            console.print(f"[red]Unknown project: {project}[/red]")
            raise typer.Exit(code=1)
        if not store.elements(project):
            console.print("[red]No elements in this project. Please add at least one drawing layer first.[/red]")
            raise typer.Exit(code=1)
        new = store.generate_wbs(project)
        all_tasks = store.tasks(project)
        prog = store.progress(project)
    finally:
        store.close()
    table = Table(title="Work breakdown", box=box.SIMPLE_HEAVY)
    table.add_column("Task")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("End")
    for t in all_tasks:
        table.add_row(t.id, t.name, t.status.value, t.end_date or "")
    console.print(table)
    console.print(f"[green]{len(new)} new task(s).[/green]")
    console.print(_progress_table(prog))
    console.print(f"{prog.done}/{prog.total} task(s) done ({prog.percent}%)")


@app.command("progress")
def progress(
    project: str = typer.Argument(...),
    db: str = typer.Option(None, help="Override state DB path"),
):
    s = _settings()
    store = _store(db, s)
    try:
        if store.get_project(project) is None:
            console.print(f"[red]Unknown project: {project}[/red]")
            raise typer.Exit(code=1)
        prog = store.progress(project)
    finally:
        store.close()
    if not prog.total:
        console.print("[yellow]No tasks yet. Run `drawlens wbs` first.[/yellow]")
        return
    console.print(_progress_table(prog))
    console.print(f"{prog.done}/{prog.total} task(s) done ({prog.percent}%)")


@app.command("task-status")
def task_status(
    task: str = typer.Argument(...),
    status: TaskStatus = typer.Argument(..., case_sensitive=False),
    db: str = typer.Option(None, help="Override state DB path"),
):
    s = _settings()
    store = _store(db, s)
    try:
        t = store.update_task_status(task, status)
    except KeyError:
        console.print(f"[red]Unknown task: {task}[/red]")
        raise typer.Exit(code=1)
    finally:
        store.close()
    console.print(f"[green]{t.name}: {t.status.value}[/green]")


def main():
    app()

if __name__ == "__main__":
    main()
