"""Root pytest configuration."""

from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load environment variables before tests run
_root = Path(__file__).parent
load_dotenv(_root / ".env")
load_dotenv(_root / ".env.local", override=True)


@pytest.fixture(autouse=True)
def attachments_dir(tmp_path, monkeypatch):
    """Keep uploaded files out of the working tree."""
    path = tmp_path / "uploads"
    monkeypatch.setenv("ATTACHMENTS_PATH", str(path))
    return path
