from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich import print as rprint
from rich.logging import RichHandler

from . import gui_launcher
from .engine import Engine
from .engine_defaults import DEFAULTS, apply_overrides, load_options
from .errors import MarkEngineError
from .output import Outcome
from .scanned_image import scans_from_paths
from .template import load_template
from .visualize_core import overlay_template

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="markengine: apply OMR templates (bubble + barcode fields) to scanned forms.",
)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


# ----------------------------- APPLY ---------------------------------
@app.command()
def apply(
    template: str = typer.Argument(..., help="Template file (.yaml/.yml or .json)"),
    scans: List[str] = typer.Argument(..., help="Scanned page images or PDFs (one page output per page)"),
    out_json: str = typer.Option("results.json", "--out-json", "-o", help="Output JSON with one record per page"),
    param: Optional[List[str]] = typer.Option(None, "--param", "-p", help="Parameter copied into each page output (repeatable)"),
    settings: Optional[str] = typer.Option(None, "--settings", "-s", help="Engine settings file (.yaml/.yml or .json)"),
    save_debug: Optional[str] = typer.Option(None, "--save-debug", help="Directory for per-stage debug snapshots"),
    analyzed_dir: Optional[str] = typer.Option(None, "--analyzed-dir", help="Directory for analyzed JPEGs (default: temp dir)"),
    threshold: Optional[int] = typer.Option(None, "--threshold", help="Binarization cutoff 0-255 (default 120)"),
    min_area: Optional[int] = typer.Option(None, "--min-area", help="Minimum blob pixels for a marked bubble (default 3)"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Pages processed concurrently"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Apply a template to scanned pages and write the page outputs as JSON.
    """
    _setup_logging(verbose)
    try:
        tpl = load_template(template)
        opts = load_options(settings) if settings else DEFAULTS
        opts = apply_overrides(
            opts,
            threshold=threshold,
            min_blob_area=min_area,
            workers=workers,
            analyzed_dir=analyzed_dir,
            save_intermediate_images=True if save_debug else None,
            debug_dir=save_debug,
        )
        pages = scans_from_paths(scans, template_name=tpl.name, parameters=param or [])
        outputs = Engine(opts).apply_many(tpl, pages)
    except (MarkEngineError, ValueError, OSError) as e:
        rprint(f"[red]Could not apply {template}:[/red] {e}")
        raise typer.Exit(code=2)

    out_path = Path(out_json).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps([o.to_dict() for o in outputs], indent=2), encoding="utf-8")

    failed = [o for o in outputs if o.outcome is Outcome.FAILURE]
    for o in failed:
        rprint(f"[yellow]Page {o.id} {o.parameters} failed:[/yellow] {o.error_message}")
    rprint(f"[green]Wrote {len(outputs)} page(s):[/green] {out_path}")
    if failed:
        raise typer.Exit(code=1)


# --------------------------- VISUALIZE -------------------------------
@app.command()
def visualize(
    template: str = typer.Argument(..., help="Template file (.yaml/.yml or .json)"),
    scan: str = typer.Argument(..., help="A scanned page image or PDF (first page is used)"),
    out_image: str = typer.Option("template_overlay.png", "--out-image", "-o", help="Output overlay PNG"),
    labels: bool = typer.Option(True, "--labels/--no-labels", help="Draw field ids"),
):
    """
    Register a scan into template space and overlay every field to verify placement.
    """
    _setup_logging(False)
    try:
        out = overlay_template(scan, template, out_image=out_image, label_fields=labels)
    except (MarkEngineError, ValueError, OSError) as e:
        rprint(f"[red]Visualization failed for {template}:[/red] {e}")
        raise typer.Exit(code=2)

    rprint(f"[green]Wrote:[/green] {out}")


# ------------------------------- GUI ---------------------------------
@app.command()
def gui(
    port: int = typer.Option(8501, "--port", help="Port to serve Streamlit GUI"),
    browser: bool = typer.Option(True, "--open-browser/--no-open-browser", help="Open browser automatically"),
):
    """
    Launch the Streamlit GUI.
    """
    args = ["--server.port", str(port)]
    if not browser:
        args.extend(["--server.headless", "true"])

    rprint(f"[cyan]Launching GUI on port {port}[/cyan]")
    try:
        code = gui_launcher.launch(args)
    except ImportError:
        rprint("[red]Streamlit not found. Install it in your environment (`pip install streamlit`).[/red]")
        raise typer.Exit(code=3)
    if code:
        rprint(f"[red]Streamlit exited with code {code}[/red]")
        raise typer.Exit(code=4)


# ------------------------------- MAIN --------------------------------
def app_main() -> None:
    """Entry point for console_scripts."""
    try:
        app()
    except KeyboardInterrupt:
        rprint("\n[red]Interrupted[/red]")
        sys.exit(130)


if __name__ == "__main__":
    app_main()
