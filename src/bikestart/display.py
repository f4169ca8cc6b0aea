"""
Display manager for Rich-based console output and the live status notice.

Handles all console output including formatted tables, status display,
and the single in-place status notice shown while the service runs.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from .sequencer import SequenceStep
from .status import StatusNotice, StatusNotifier

logger = logging.getLogger(__name__)

NOTICE_ICONS = {
    "scan": "[cyan]◎[/cyan]",
    "bluetooth_connected": "[green]ᛒ[/green]",
    "error": "[red]✗[/red]",
}


class DisplayManager(StatusNotifier):
    """Manages console output with Rich library."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize display manager.

        Args:
            console: Rich Console instance (creates one if None)
        """
        self.console = console or Console()
        self.notice: Optional[StatusNotice] = None
        self._live: Optional[Live] = None

    def print_banner(self) -> None:
        """Print startup banner."""
        panel = Panel(
            "[bold cyan]BikeStart - Motorcycle Remote Start[/bold cyan]\n"
            "[dim]Type 'help' for commands, 'quit' to exit[/dim]",
            expand=False,
        )
        self.console.print(panel)

    def print_status(self, data: dict) -> None:
        """Display one-time status table.

        Args:
            data: Dictionary with state, sequence, running, connected, scanning
        """
        table = self.format_status_table(data)
        self.console.print(table)

    def print_sequence_result(self, step: SequenceStep) -> None:
        """Display the outcome of a start sequence."""
        if step is SequenceStep.COMPLETE:
            self.console.print("[green]✓[/green] Start sequence sent", highlight=False)
        elif step is SequenceStep.ABORTED:
            self.console.print(
                "[red]✗[/red] Start sequence aborted (link lost)", highlight=False
            )
        else:
            self.console.print(
                f"[yellow]?[/yellow] Start sequence: {step.value}", highlight=False
            )

    def print_error(self, message: str) -> None:
        """Print red error message.

        Args:
            message: Error message text
        """
        self.console.print(f"[red]Error:[/red] {message}", highlight=False)

    def print_info(self, message: str) -> None:
        """Print blue info message.

        Args:
            message: Info message text
        """
        self.console.print(f"[cyan]Info:[/cyan] {message}", highlight=False)

    def print_help(self, commands: list) -> None:
        """Display command reference.

        Args:
            commands: List of Command objects
        """
        table = Table(title="Available Commands", show_header=True)
        table.add_column("Command", style="cyan")
        table.add_column("Aliases", style="magenta")
        table.add_column("Description", style="white")
        table.add_column("Usage", style="yellow")

        for cmd in commands:
            aliases = ", ".join(cmd.aliases) if cmd.aliases else "-"
            table.add_row(cmd.name, aliases, cmd.description, cmd.usage)

        self.console.print(table)
        self.console.print(
            "[dim]Keyboard shortcuts: Ctrl+C to interrupt, Ctrl+D to exit[/dim]"
        )

    def show(self, notice: StatusNotice) -> None:
        """Show the status notice, replacing the previous one in place."""
        self.notice = notice
        renderable = self._create_notice_panel(notice)

        if self._live is None:
            self._live = Live(renderable, console=self.console, refresh_per_second=4)
            self._live.start()
            return

        try:
            self._live.update(renderable)
        except Exception as e:
            logger.error(f"Notice update error: {e}")

    def clear(self) -> None:
        """Remove the status notice."""
        self.notice = None
        if self._live is not None:
            self._live.stop()
            self._live = None

    def _create_notice_panel(self, notice: StatusNotice) -> Panel:
        icon = NOTICE_ICONS.get(notice.icon, "•")
        return Panel(
            f"{icon} {notice.message}",
            title="BikeStart",
            title_align="left",
            expand=False,
        )

    def format_status_table(self, data: dict) -> Table:
        """Create Rich Table for status display.

        Args:
            data: Dictionary with state, sequence, running, connected, scanning

        Returns:
            Rich Table object
        """
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Item", style="cyan")
        table.add_column("Value", style="yellow")

        table.add_row("State", self.format_state(data.get("state", "idle")))
        table.add_row("Sequence", self.format_state(data.get("sequence", "idle")))
        table.add_row("Running", self.format_flag(data.get("running", False)))
        table.add_row("Connected", self.format_flag(data.get("connected", False)))
        table.add_row("Scanning", self.format_flag(data.get("scanning", False)))
        if data.get("restart_pending"):
            table.add_row("Restart", "pending")

        return table

    @staticmethod
    def format_state(value: str) -> str:
        """Format a state value for display.

        Args:
            value: Enum value such as "discovering_services"

        Returns:
            Human readable text ("Discovering services")
        """
        return value.replace("_", " ").capitalize()

    @staticmethod
    def format_flag(value: bool) -> str:
        return "yes" if value else "no"
