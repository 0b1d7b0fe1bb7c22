"""
Human-readable console output (status lines and summary tables)
"""

from collections.abc import Mapping, Sequence
from typing import Any

from rich.console import Console
from rich.table import Table

from gcrecordings.models import ExportResult


class OutputFormatter:
    """Format progress and results for the operator"""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def output_header(self, title: str) -> None:
        self.console.print(f"\n[bold]=== {title} ===[/bold]")

    def output_error(self, message: str) -> None:
        """Output error message"""
        self.console.print(f"[bold red]Error:[/bold red] {message}")

    def output_warning(self, message: str) -> None:
        """Output warning message"""
        self.console.print(f"[bold yellow]![/bold yellow] {message}")

    def output_success(self, message: str) -> None:
        """Output success message"""
        self.console.print(f"[bold green]✓[/bold green] {message}")

    def output_info(self, message: str) -> None:
        """Output info message"""
        self.console.print(message)

    def output_regions(self, regions: Mapping[str, str]) -> None:
        table = Table(title="Genesys Cloud Regions")
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Region", style="green")
        table.add_column("Location", style="blue")
        for idx, (domain, label) in enumerate(regions.items(), 1):
            table.add_row(str(idx), domain, label)
        self.console.print(table)

    def output_queues(self, queues: Sequence[dict[str, Any]]) -> None:
        """Numbered queue table; numbers are what the queue prompt accepts"""
        if not queues:
            self.console.print("[yellow]No queues found[/yellow]")
            return

        table = Table(title="Routing Queues")
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Name", style="green")
        table.add_column("ID", style="blue")
        for idx, queue in enumerate(queues, 1):
            table.add_row(str(idx), str(queue.get("name", "N/A")), str(queue.get("id", "")))
        self.console.print(table)

    def output_export_summary(self, result: ExportResult) -> None:
        """Downloaded files table plus success/error counts"""
        if result.downloaded:
            table = Table()
            table.add_column("File", style="cyan")
            table.add_column("Size", style="yellow")
            for downloaded in result.downloaded:
                table.add_row(downloaded.path.name, f"{downloaded.size_mb:.2f} MB")
            self.console.print(table)

        for item in result.export_errors:
            self.output_warning(f"Export failed on the platform: {item.label}: {item.error_msg}")
        for item in result.download_failures:
            self.output_warning(f"Download failed: {item.label}")

        self.console.print(f"\n[bold]Recordings downloaded:[/bold] {result.success_count}")
        self.console.print(f"[bold]Errors:[/bold] {result.error_count}")
        if result.output_dir is not None:
            self.console.print(f"[bold]Saved to:[/bold] {result.output_dir}")
