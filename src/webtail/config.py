"""Server configuration."""

from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError
from .session import TailSettings

DEFAULT_LISTEN = ":8080"
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


@dataclass
class Listen:
    """Where the server accepts connections: a TCP address or a unix socket."""

    host: str | None = None
    port: int | None = None
    uds: str | None = None

    def __str__(self) -> str:
        if self.uds:
            return f"unix:{self.uds}"
        host = f"[{self.host}]" if self.host and ":" in self.host else self.host
        return f"{host}:{self.port}"


def parse_listen(addr: str) -> Listen:
    """
    Parse a listen address.

    Accepts ``:8080`` (all interfaces), ``host:port``, ``[::1]:8080`` and
    ``unix:/path/to.sock``.
    """
    if addr.startswith("unix:"):
        path = addr[len("unix:"):]
        if not path:
            raise ConfigError(f"missing socket path in {addr!r}")
        return Listen(uds=path)

    host, sep, port_str = addr.rpartition(":")
    if not sep:
        raise ConfigError(f"listen address {addr!r} needs a port, e.g. :8080")
    try:
        port = int(port_str)
    except ValueError:
        raise ConfigError(f"invalid port {port_str!r} in {addr!r}") from None
    if not 0 <= port <= 65535:
        raise ConfigError(f"port {port} out of range in {addr!r}")
    host = host.strip("[]") or "0.0.0.0"
    return Listen(host=host, port=port)


@dataclass
class ServerConfig:
    """Everything needed to start a server."""

    root: Path
    listen: str = DEFAULT_LISTEN
    log_level: str = "info"
    tail: TailSettings = field(default_factory=TailSettings)

    def __post_init__(self):
        self.root = Path(self.root).absolute()

    @property
    def address(self) -> Listen:
        return parse_listen(self.listen)

    def validate(self) -> None:
        """Raise ConfigError if the server cannot start with this config."""
        if not self.root.exists():
            raise ConfigError(f"root {self.root} does not exist")
        if not self.root.is_dir():
            raise ConfigError(f"root {self.root} is not a directory")
        parse_listen(self.listen)
        if self.log_level.lower() not in LOG_LEVELS:
            raise ConfigError(f"unknown log level {self.log_level!r}, use one of {', '.join(LOG_LEVELS)}")
        tail = self.tail
        if tail.poll_interval <= 0:
            raise ConfigError("poll interval must be positive")
        if tail.max_poll_interval is not None and tail.max_poll_interval < tail.poll_interval:
            raise ConfigError("max poll interval must not be below the poll interval")
        if tail.flush_interval <= 0:
            raise ConfigError("flush interval must be positive")
        if tail.buffer_size < 1:
            raise ConfigError("buffer size must be positive")
        if tail.max_pending < 1:
            raise ConfigError("max pending bytes must be positive")
