"""CLI interface for WebTail."""

from pathlib import Path
from typing import Annotated, Optional

import typer

from . import __version__
from . import output
from .config import DEFAULT_LISTEN, ServerConfig
from .errors import ConfigError
from .session import TailSettings


app = typer.Typer(
    name="webtail",
    help="WebTail - follow log files from a browser",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    if value:
        output.console.print(f"WebTail v{__version__}")
        raise typer.Exit()


@app.command()
def serve(
    root: Annotated[
        Path,
        typer.Argument(help="Directory whose files can be browsed and tailed"),
    ],
    listen: Annotated[
        str,
        typer.Option(
            "--listen", "-l", envvar="WEBTAIL_LISTEN",
            help="Listening address: ':8080', 'host:port' or 'unix:/path.sock'",
        ),
    ] = DEFAULT_LISTEN,
    poll_interval: Annotated[
        float,
        typer.Option("--poll-interval", envvar="WEBTAIL_POLL_INTERVAL", help="Seconds between polls of an idle file"),
    ] = 1.0,
    max_poll_interval: Annotated[
        Optional[float],
        typer.Option("--max-poll-interval", envvar="WEBTAIL_MAX_POLL_INTERVAL", help="Upper bound for the idle poll interval"),
    ] = None,
    flush_interval: Annotated[
        float,
        typer.Option("--flush-interval", envvar="WEBTAIL_FLUSH_INTERVAL", help="Seconds between flushes to clients"),
    ] = 2.0,
    log_level: Annotated[
        str,
        typer.Option("--log-level", envvar="WEBTAIL_LOG_LEVEL", help="debug, info, warning or error"),
    ] = "info",
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Serve ROOT over HTTP and stream its files as Server-Sent Events."""
    config = ServerConfig(
        root=root,
        listen=listen,
        log_level=log_level,
        tail=TailSettings(
            poll_interval=poll_interval,
            max_poll_interval=max_poll_interval,
            flush_interval=flush_interval,
        ),
    )
    try:
        config.validate()
    except ConfigError as e:
        output.print_error(str(e))
        raise typer.Exit(1)

    # Imported late so --help and --version stay fast.
    from .server import run_server

    output.configure_logging(log_level)
    output.print_startup(str(config.root), str(config.address))
    try:
        run_server(config)
    except KeyboardInterrupt:
        output.print_info("Stopped serving.")
    except Exception as e:
        output.print_error(str(e))
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
