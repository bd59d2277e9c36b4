from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from routedoc.config import DEFAULT_CONFIG_FILE, load_config
from routedoc.errors import RouteDocError
from routedoc.orchestrator.pipeline import run_generate
from routedoc.store.yaml_store import EndpointYAMLStore
from routedoc.tools.diagnostics import Diagnostics, setup_logging
from routedoc.writing.summary import ConsoleSummaryWriter


app = typer.Typer(no_args_is_help=True, add_completion=False)

endpoints_app = typer.Typer(no_args_is_help=True)
app.add_typer(endpoints_app, name="endpoints")

console = Console()


@app.command()
def generate(
    config: Path = typer.Option(Path(DEFAULT_CONFIG_FILE), "--config", "-c", help="Path to the YAML config"),
    routes: Optional[str] = typer.Option(None, help="Route table as module:attribute (overrides config)"),
    force: bool = typer.Option(False, "--force", help="Discard any changes you've made to the generated docs"),
    no_extraction: bool = typer.Option(
        False, "--no-extraction", help="Skip extraction and reuse the existing intermediate files"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print full details for failed routes"),
) -> None:
    """Extract endpoint info from the route table and write the docs."""
    logger = setup_logging(verbose, console=console)

    try:
        cfg = load_config(config)
        if routes:
            cfg = cfg.model_copy(update={"routes": routes})

        result = run_generate(
            cfg,
            force=force,
            no_extraction=no_extraction,
            writer=ConsoleSummaryWriter(console=console, title=cfg.title, base_url=cfg.base_url),
            diagnostics=Diagnostics(verbose=verbose, logger=logger.getChild("extraction")),
        )
    except RouteDocError as exc:
        console.print(f"[bold red]error[/bold red]: {exc}")
        raise typer.Exit(code=1)

    console.print("")
    if result.mode == "full":
        console.print(
            f"Routes: {result.routes_seen} seen, {result.extracted} extracted, {result.skipped} skipped"
        )
        console.print(f"Group files written: {len(result.files_written)}")
    console.print(f"Endpoints loaded from {result.intermediate_dir}: [bold]{len(result.endpoints)}[/bold]")


@endpoints_app.command("list")
def endpoints_list(
    directory: Path = typer.Option(Path(EndpointYAMLStore.DEFAULT_DIR), "--dir", help="Intermediate directory"),
    group: Optional[str] = typer.Option(None, help="Only show this group"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    store = EndpointYAMLStore(directory)
    try:
        groups = store.load_groups()
    except RouteDocError as exc:
        console.print(f"[bold red]error[/bold red]: {exc}")
        raise typer.Exit(code=1)

    if group is not None:
        groups = [g for g in groups if g.name == group]

    fmt = format.lower().strip()
    if fmt not in ("table", "json"):
        raise typer.BadParameter("format must be one of: table, json")

    if fmt == "json":
        payload = [
            {
                "name": g.name,
                "description": g.description,
                "endpoints": [e.model_dump(mode="json") for e in g.endpoints],
            }
            for g in groups
        ]
        console.print(json.dumps(payload, indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("GROUP")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("URI")
    table.add_column("TITLE")

    count = 0
    for g in groups:
        for e in g.endpoints:
            table.add_row(g.name, ",".join(e.http_methods), e.uri, e.metadata.title or "")
            count += 1

    console.print(f"[bold]Dir:[/bold] {store.directory}")
    console.print(f"[bold]Endpoints:[/bold] {count} in {len(groups)} group(s)")
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
