"""Exceptions raised by webtail."""


class WebtailError(Exception):
    """Base class for webtail errors."""


class Cancelled(WebtailError):
    """A guarded operation lost the race against its cancel token."""


class FileTruncated(WebtailError):
    """The tailed file shrank below the offset already consumed."""

    def __init__(self, path: str, offset: int, size: int):
        self.path = path
        self.offset = offset
        self.size = size
        super().__init__(f"{path} truncated to {size} bytes (read offset {offset})")


class PathRejected(WebtailError):
    """A requested path failed validation against the served root."""

    def __init__(self, message: str, status_code: int = 400):
        self.status_code = status_code
        super().__init__(message)


class ConfigError(WebtailError):
    """Invalid startup configuration."""
