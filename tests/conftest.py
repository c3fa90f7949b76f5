from pathlib import Path

import pytest


@pytest.fixture()
def log_file(tmp_path: Path) -> Path:
    """An empty log file under a fresh root."""
    path = tmp_path / "app.log"
    path.write_bytes(b"")
    return path
