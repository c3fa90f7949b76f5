"""Terminal output and logging setup using rich."""

import logging

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

console = Console(stderr=True)


def configure_logging(level: str = "info") -> None:
    """Route every logger, uvicorn's included, through a rich handler."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = True


def print_startup(root: str, listen: str) -> None:
    """Print startup message."""
    console.print()
    console.print(
        Panel(
            f"[bold cyan]WebTail[/bold cyan] is serving [green]{root}[/green]\n"
            f"Listening on [green]{listen}[/green]\n"
            "[dim]Press Ctrl+C to stop[/dim]",
            box=box.ROUNDED,
            border_style="cyan",
        )
    )
    console.print()


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[cyan]{message}[/cyan]")
