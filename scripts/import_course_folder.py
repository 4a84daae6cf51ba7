#!/usr/bin/env python
"""
Import course folders from disk into the database.

Each course folder (course.json + lessons/) becomes a stored outline,
replacing any outline already saved under the same course id.

Usage:
    python scripts/import_course_folder.py path/to/course
    python scripts/import_course_folder.py --all            # every course under COURSES_PATH
    python scripts/import_course_folder.py --all --dry-run  # print outlines only
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

load_dotenv(".env.local")
load_dotenv()

logger = logging.getLogger("import_course_folder")


async def import_courses(paths: list[Path], all_under: Path | None, dry_run: bool) -> int:
    """Load and save courses. Returns the number of courses imported."""
    from core.database import close_engine, get_transaction
    from core.outline.flattener import project_outline
    from core.outline.folder_source import (
        CourseFolderError,
        load_course_folder,
        load_course_folders,
    )
    from core.outline.repository import save_outline

    courses = []
    if all_under is not None:
        courses.extend(load_course_folders(all_under))
    for path in paths:
        try:
            courses.append(load_course_folder(path))
        except CourseFolderError as e:
            logger.error(f"Skipping {path}: {e}")

    if not courses:
        print("No courses found")
        return 0

    imported = 0
    try:
        for course in courses:
            records = project_outline(course.outline)
            print(f"\n{course.title} ({course.course_id}): {len(records)} lessons")
            for record in records:
                print(f"  {'  ' * record.depth}{record.display_number} {record.node.title}")

            if dry_run:
                continue

            async with get_transaction() as conn:
                await save_outline(
                    conn,
                    course.course_id,
                    course.outline,
                    title=course.title,
                    description=course.description,
                )
            imported += 1
    finally:
        await close_engine()

    return imported


def main():
    parser = argparse.ArgumentParser(description="Import course folders into the database")
    parser.add_argument("paths", nargs="*", type=Path, help="Course folder(s) to import")
    parser.add_argument(
        "--all",
        action="store_true",
        help="Import every course folder under COURSES_PATH",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the outlines without saving them",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    from core.config import get_courses_path

    all_under = None
    if args.all:
        all_under = get_courses_path()
        if all_under is None:
            print("ERROR: --all needs COURSES_PATH to be set")
            sys.exit(1)
    elif not args.paths:
        parser.error("give at least one course folder, or --all")

    imported = asyncio.run(import_courses(args.paths, all_under, args.dry_run))
    if not args.dry_run:
        print(f"\nImported {imported} course(s)")


if __name__ == "__main__":
    main()
