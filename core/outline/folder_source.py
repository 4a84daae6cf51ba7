# core/outline/folder_source.py
"""Load course outlines from course folders on disk.

Folder layout:

    my-course/
        course.json                   {"id", "title", "description", ...}
        lessons/
            00-getting-started/
                lesson.json           {"title", "order"} (optional)
                content.md
                sublessons/
                    00-install/
                        content.md

Folders are read in name order. A lesson's order comes from lesson.json, or
from the numeric folder prefix ("11-sqs-and-sns" -> 11) when lesson.json has
neither order nor title. Sublessons keep folder order and use the folder name
as title. Folder indices are handed out in traversal order.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from core.outline.tree import MAX_DEPTH, FolderPath, OutlineTree

logger = logging.getLogger(__name__)

SKIPPED_COURSE_FOLDERS = {"COURSE-TEMPLATE"}


class CourseFolderError(Exception):
    """Raised when a course folder can't be read."""

    pass


@dataclass
class FolderCourse:
    """A course read from disk, with the directory behind every folder index."""

    course_id: str
    title: str
    description: str
    outline: OutlineTree
    root: Path
    directories: dict[int, Path] = field(default_factory=dict)


def _order_from_folder_name(name: str) -> int:
    prefix = name.split("-", 1)[0]
    return int(prefix) if prefix.isdigit() else 0


def _read_json(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CourseFolderError(f"Failed to parse {path}: {e}")


def _read_content(folder: Path) -> str:
    content_path = folder / "content.md"
    if not content_path.exists():
        return ""
    return content_path.read_text(encoding="utf-8")


def _sorted_dirs(folder: Path) -> list[Path]:
    if not folder.is_dir():
        return []
    return sorted((p for p in folder.iterdir() if p.is_dir()), key=lambda p: p.name)


def load_course_folder(course_dir: Path | str) -> FolderCourse:
    """Read a course folder into an outline.

    Lesson folders that fail to load are skipped with a warning.

    Raises:
        CourseFolderError: If course.json is missing or invalid
    """
    course_dir = Path(course_dir)
    course_json_path = course_dir / "course.json"
    if not course_json_path.exists():
        raise CourseFolderError(f"No course.json in {course_dir}")
    course_json = _read_json(course_json_path)

    directories: dict[int, Path] = {}
    next_index = 0

    def _load_group(folder: Path, depth: int) -> list[dict]:
        nonlocal next_index
        lessons = []
        for lesson_dir in _sorted_dirs(folder):
            try:
                lesson_json = _read_json(lesson_dir / "lesson.json") if depth == 0 else {}
                content = _read_content(lesson_dir)
            except (CourseFolderError, OSError) as e:
                logger.warning(f"Failed to load lesson {lesson_dir.name}: {e}")
                continue

            folder_index = next_index
            next_index += 1
            directories[folder_index] = lesson_dir

            if depth == 0:
                order = lesson_json.get("order") or 0
                if not order and not lesson_json.get("title"):
                    order = _order_from_folder_name(lesson_dir.name)
                title = lesson_json.get("title") or lesson_dir.name
            else:
                order = len(lessons) + 1
                title = lesson_dir.name

            sublessons = []
            if depth < MAX_DEPTH:
                sublessons = _load_group(lesson_dir / "sublessons", depth + 1)

            lessons.append(
                {
                    "title": title,
                    "content": content,
                    "order": order,
                    "folderIndex": folder_index,
                    "sublessons": sublessons,
                }
            )
        return lessons

    outline = OutlineTree.from_nested(_load_group(course_dir / "lessons", 0))
    course_id = course_json.get("id") or ""
    if not course_id or course_id == "GENERATE-UUID":
        course_id = course_dir.name

    return FolderCourse(
        course_id=course_id,
        title=course_json.get("title") or course_dir.name,
        description=course_json.get("description", ""),
        outline=outline,
        root=course_dir,
        directories=directories,
    )


def load_course_folders(courses_dir: Path | str) -> list[FolderCourse]:
    """Load every course folder under courses_dir, skipping broken ones."""
    courses = []
    for course_dir in _sorted_dirs(Path(courses_dir)):
        if course_dir.name in SKIPPED_COURSE_FOLDERS:
            continue
        try:
            courses.append(load_course_folder(course_dir))
        except CourseFolderError as e:
            logger.warning(f"Skipping course folder {course_dir.name}: {e}")
    return courses


def write_lesson_content(course: FolderCourse, folder_path: FolderPath, content: str) -> Path:
    """Overwrite a lesson's content.md, keeping the old file as content.md.bak.

    Returns:
        Path of the written content.md

    Raises:
        InvalidPathError: If folder_path doesn't name a lesson of this course
    """
    node = course.outline.node_at_folder_path(tuple(folder_path))
    content_path = course.directories[node.folder_index] / "content.md"

    if content_path.exists():
        backup_path = content_path.with_name("content.md.bak")
        backup_path.write_text(content_path.read_text(encoding="utf-8"), encoding="utf-8")

    content_path.write_text(content, encoding="utf-8")
    logger.info(f"Wrote {content_path} ({len(content)} chars)")
    return content_path
