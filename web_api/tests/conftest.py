# web_api/tests/conftest.py
"""Pytest fixtures for web API tests.

API tests run without a database: each test module patches the connection
helpers and the core persistence functions it exercises.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure we import from root main.py
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from core.outline.session import get_session_store  # noqa: E402
from core.outline.tree import OutlineTree  # noqa: E402


@pytest.fixture(autouse=True)
def clear_sessions():
    """Every test starts and ends with no open editing sessions."""
    get_session_store().clear()
    yield
    get_session_store().clear()


@pytest.fixture
def client():
    from main import app

    return TestClient(app)


@pytest.fixture
def stored_outline() -> OutlineTree:
    """Two chapters; the first has two subchapters.

    1   Getting started   (folder 0)
    1.1   Install         (folder 1)
    1.2   First steps     (folder 2)
    2   Deploying         (folder 3)
    """
    return OutlineTree.from_nested(
        [
            {
                "title": "Getting started",
                "content": "Welcome",
                "order": 1,
                "folderIndex": 0,
                "sublessons": [
                    {"title": "Install", "content": "pip install", "order": 1, "folderIndex": 1},
                    {"title": "First steps", "content": "Run it", "order": 2, "folderIndex": 2},
                ],
            },
            {"title": "Deploying", "content": "Ship it", "order": 2, "folderIndex": 3},
        ]
    )
