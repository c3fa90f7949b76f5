"""Validation of user-supplied paths against the served root."""

import logging
import posixpath
import stat
from dataclasses import dataclass
from pathlib import Path

from .errors import PathRejected

log = logging.getLogger(__name__)


@dataclass
class Entry:
    """A listable directory entry."""

    name: str
    path: str  # slash path relative to the root, starting with "/"
    is_dir: bool


class Sandbox:
    """Maps request paths onto files below a root directory.

    Request paths are slash-separated and relative to the root. Nothing a
    client sends can name a file outside of it: ``..`` is collapsed before
    joining and symlinks are resolved before the containment check.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    @staticmethod
    def clean(raw: str | None) -> str:
        """Normalize a request path to ``/a/b`` form, never above ``/``."""
        return posixpath.normpath("/" + (raw or "").lstrip("/"))

    def resolve(self, raw: str | None) -> Path:
        """
        Absolute filesystem path for a request path.

        Raises:
            PathRejected: the resolved path lies outside the root
        """
        rel = self.clean(raw).lstrip("/")
        path = (self.root / rel).resolve()
        if path != self.root and self.root not in path.parents:
            log.warning("Rejected %r: resolves to %s outside %s", raw, path, self.root)
            raise PathRejected(f"only files under the served root can be tailed ({self.clean(raw)!r})")
        return path

    def tail_target(self, raw: str | None) -> Path:
        """
        Resolve a request path that must name an existing regular file.

        Raises:
            PathRejected: 404 if it cannot be stat'ed, 400 if it escapes the
                root or is not a regular file
        """
        name = self.clean(raw)
        path = self.resolve(raw)
        try:
            mode = path.stat().st_mode
        except OSError as e:
            log.warning("stat %s under %s: %s", name, self.root, e)
            raise PathRejected(f"{name}: {e.strerror or e}", status_code=404) from e
        if not stat.S_ISREG(mode):
            raise PathRejected(f"{name!r} is not a regular file ({stat.filemode(mode)})")
        return path

    def listing_dir(self, raw: str | None) -> str:
        """
        Directory to list for a request path.

        Unknown or rejected paths fall back to the root; a file lists the
        directory that contains it.
        """
        name = self.clean(raw)
        try:
            path = self.resolve(name)
            mode = path.stat().st_mode
        except (OSError, PathRejected) as e:
            log.info("listing %s: %s, showing root", name, e)
            return "/"
        if not stat.S_ISDIR(mode):
            return posixpath.dirname(name)
        return name

    def entries(self, rel: str) -> list[Entry]:
        """Subdirectories and regular files of a directory, sorted by name."""
        entries = []
        for child in sorted(self.resolve(rel).iterdir(), key=lambda p: p.name):
            try:
                mode = child.stat().st_mode
            except OSError:
                continue
            if stat.S_ISDIR(mode):
                is_dir = True
            elif stat.S_ISREG(mode):
                is_dir = False
            else:
                continue
            entries.append(Entry(child.name, posixpath.join(rel, child.name), is_dir))
        return entries
