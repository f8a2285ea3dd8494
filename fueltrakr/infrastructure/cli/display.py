import logging
from typing import Any, Dict, List, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from fueltrakr.domain.interfaces.user_interface import UserInterface
from fueltrakr.domain.models.fuel import FuelEntry
from fueltrakr.domain.models.user import User

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
            **kwargs: ``detail`` is printed dimmed below the message when set.
        """
        body = Text(error_message, style="white")
        detail = kwargs.get("detail")
        if detail:
            body.append(f"\n{detail}", style="dim")
        panel = Panel(
            body,
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

    def display_success(self, message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(message, style="white"),
            title="[bold green]Done[/bold green]",
            border_style="green",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message with enhanced styling.

        Args:
            warning_message: The warning message to display.
        """
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_entries(self, entries: List[FuelEntry], title: str = "Fuel Entries") -> None:
        """Displays fuel entries as a table, one row per fill-up."""
        logger.debug(f"Displaying {len(entries)} fuel entries")
        if not entries:
            self.display_info("No fuel entries yet.")
            return

        table = Table(title=title, show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("Date", style="dim")
        table.add_column("Vehicle", style="bold")
        table.add_column("Mileage", justify="right")
        table.add_column("Gallons", justify="right")
        table.add_column("Cost", justify="right", style="green")
        table.add_column("Porter")
        table.add_column("Receipt", justify="center")
        table.add_column("Notes", style="white")

        for entry in entries:
            notes = entry.notes or ""
            if len(notes) > 40:
                notes = notes[:37] + "..."
            table.add_row(
                entry.timestamp.strftime("%Y-%m-%d %H:%M"),
                entry.vehicle_label,
                f"{entry.mileage:,.0f}",
                f"{entry.fuel_amount:.2f}",
                f"${entry.fuel_cost:,.2f}",
                entry.user_name,
                "[green]yes[/green]" if entry.receipt_photo else "[yellow]no[/yellow]",
                notes,
            )
        self.console.print(table)

    def display_users(self, users: List[User]) -> None:
        if not users:
            self.display_info("No users found.")
            return

        table = Table(title="Users", show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("ID", style="dim")
        table.add_column("Name", style="bold")
        table.add_column("Email")
        table.add_column("Role")
        for user in users:
            role_style = "bold magenta" if user.role == "admin" else "bold blue"
            table.add_row(user.id, user.name, user.email, f"[{role_style}]{user.role}[/{role_style}]")
        self.console.print(table)

    def display_mapping(self, data: Dict[str, Any], title: str) -> None:
        table = Table(show_header=False, box=SIMPLE, border_style="cyan", padding=(0, 1))
        table.add_column("Key", style="bold cyan")
        table.add_column("Value", style="white")
        for key, value in data.items():
            table.add_row(str(key), str(value))
        self.console.print(Panel(table, title=f"[bold]{title}[/bold]", border_style="cyan", box=ROUNDED))
