"""WebTail - follow growing log files from a browser over Server-Sent Events."""

__version__ = "0.1.0"
