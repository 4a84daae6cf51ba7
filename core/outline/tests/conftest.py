"""Pytest fixtures for outline tests."""

import pytest

from core.outline.tree import OutlineTree


def lesson(title: str, folder_index: int, order: int, sublessons=None) -> dict:
    """Nested lesson dict in the snapshot format."""
    return {
        "title": title,
        "content": f"{title} content",
        "order": order,
        "folderIndex": folder_index,
        "sublessons": sublessons or [],
    }


@pytest.fixture
def two_chapters() -> OutlineTree:
    """[A, B], both roots."""
    return OutlineTree.from_nested([lesson("A", 0, 1), lesson("B", 1, 2)])


@pytest.fixture
def course_tree() -> OutlineTree:
    """A three-level course.

    1   Basics           (folder 0)
    1.1   Install        (folder 1)
    1.2   Configure      (folder 2)
    1.2.1   Env vars     (folder 3)
    2   Advanced         (folder 4)
    2.1   Scaling        (folder 5)
    3   Wrap-up          (folder 6)
    """
    return OutlineTree.from_nested(
        [
            lesson(
                "Basics",
                0,
                1,
                [
                    lesson("Install", 1, 1),
                    lesson("Configure", 2, 2, [lesson("Env vars", 3, 1)]),
                ],
            ),
            lesson("Advanced", 4, 2, [lesson("Scaling", 5, 1)]),
            lesson("Wrap-up", 6, 3),
        ]
    )


@pytest.fixture
def make_lesson():
    return lesson
