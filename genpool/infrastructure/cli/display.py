import logging
from datetime import datetime
from typing import Any, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.box import ROUNDED, HEAVY, SIMPLE
from rich.syntax import Syntax
from rich.text import Text
from rich.table import Table

from genpool.domain.interfaces.user_interface import UserInterface
from genpool.domain.models.common import ProcessedOutput
from genpool.domain.models.credential import CredentialHealth, CredentialView, PoolStats

logger = logging.getLogger(__name__)

HEALTH_STYLES = {
    CredentialHealth.HEALTHY: "bold green",
    CredentialHealth.DEGRADED: "bold yellow",
    CredentialHealth.SUSPENDED: "bold red",
}

def _format_time(value: Optional[datetime]) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S") if value else "-"

class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self):
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_output(self, output: ProcessedOutput, **kwargs: Any) -> None:
        """Displays output text, highlighted as JSON when `as_json` is set.

        Args:
            output: The processed output string to display.
            **kwargs: Additional arguments including:
                - title: Panel title (default: "Result")
                - as_json: Render with JSON syntax highlighting
        """
        title = kwargs.get("title", "Result")
        body = Syntax(str(output), "json", word_wrap=True) if kwargs.get("as_json") else Text(str(output))
        panel = Panel(
            body,
            title=f"[bold white]{title}[/bold white]",
            title_align="left",
            border_style="blue",
            box=ROUNDED,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_credentials(self, credentials: List[CredentialView]) -> None:
        """Renders the credential pool as a table. Secrets are never available here."""
        if not credentials:
            self.display_info("No API keys registered.")
            return
        table = Table(show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("ID", style="dim")
        table.add_column("Label", style="bold")
        table.add_column("Health")
        table.add_column("Errors", justify="right")
        table.add_column("Last used", style="dim")
        table.add_column("Created", style="dim")
        table.add_column("Expired", style="dim")
        for view in credentials:
            style = HEALTH_STYLES.get(view.health, "white")
            table.add_row(
                view.id,
                view.label,
                f"[{style}]{view.health.value}[/{style}]",
                str(view.error_count),
                _format_time(view.last_used_at),
                _format_time(view.created_at),
                _format_time(view.expires_at),
            )
        self.console.print(table)

    def display_stats(self, stats: PoolStats) -> None:
        table = Table(show_header=False, box=SIMPLE, border_style="cyan", padding=(0, 1))
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_row("Total keys", str(stats.total))
        table.add_row("Usable", f"[bold green]{stats.usable}[/bold green]")
        table.add_row("Degraded", f"[bold yellow]{stats.degraded}[/bold yellow]")
        table.add_row("Suspended", f"[bold red]{stats.suspended}[/bold red]")
        self.console.print(table)

    def get_prompt(self, prompt_message: str = "> ") -> str:
        """Reads one shell command line from the console."""
        return self.console.input(f"[bold green]{prompt_message}[/bold green]")
