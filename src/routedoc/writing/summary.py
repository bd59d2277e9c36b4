from __future__ import annotations

from typing import Optional, Protocol, Sequence

from rich.console import Console
from rich.table import Table

from routedoc.domain.models import EndpointRecord
from routedoc.store.yaml_store import group_endpoints


class Writer(Protocol):
    def write_docs(self, endpoints: Sequence[EndpointRecord], force: bool = False) -> None: ...


class ConsoleSummaryWriter:
    """Prints the loaded endpoints as one table per group."""

    def __init__(
        self,
        console: Optional[Console] = None,
        title: str = "API Documentation",
        base_url: Optional[str] = None,
    ):
        self.console = console or Console()
        self.title = title
        self.base_url = (base_url or "").rstrip("/")

    def url_for(self, endpoint: EndpointRecord) -> str:
        return f"{self.base_url}{endpoint.uri}"

    def write_docs(self, endpoints: Sequence[EndpointRecord], force: bool = False) -> None:
        self.console.print(f"[bold]{self.title}[/bold]")
        if self.base_url:
            self.console.print(f"Base URL: {self.base_url}")
        if force:
            self.console.print("force: previous manual edits will be overwritten")

        if not endpoints:
            self.console.print("No endpoints documented.")
            return

        for group in group_endpoints(endpoints):
            table = Table(title=group.name, show_header=True, header_style="bold")
            table.add_column("METHOD", no_wrap=True)
            table.add_column("URI")
            table.add_column("TITLE")
            table.add_column("AUTH", no_wrap=True)

            for e in group.endpoints:
                table.add_row(
                    ",".join(e.http_methods),
                    self.url_for(e),
                    e.metadata.title or "",
                    "yes" if e.metadata.authenticated else "",
                )
            self.console.print(table)
