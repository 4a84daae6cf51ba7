"""SQLAlchemy Core table definitions for the database schema."""

from sqlalchemy import (
    BigInteger,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

# Naming convention for constraints (helps Alembic generate better names)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=convention)


# =====================================================
# 1. COURSE OUTLINES
# =====================================================
course_outlines = Table(
    "course_outlines",
    metadata,
    Column("course_id", Text, primary_key=True),
    Column("title", Text, nullable=False, server_default=""),
    Column("description", Text, nullable=False, server_default=""),
    # Append-only folder index allocator; never decreases
    Column("next_folder_index", Integer, nullable=False, server_default="0"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
)


# =====================================================
# 2. OUTLINE NODES (chapters and subchapters)
# =====================================================
outline_nodes = Table(
    "outline_nodes",
    metadata,
    Column(
        "course_id",
        Text,
        ForeignKey("course_outlines.course_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("folder_index", Integer, primary_key=True),
    Column("parent_folder_index", Integer),  # NULL for root chapters
    Column("position", Integer, nullable=False),  # index within the sibling list
    Column("order", Integer, nullable=False),
    Column("title", Text, nullable=False),
    Column("content", Text, nullable=False, server_default=""),
    Index("idx_outline_nodes_parent", "course_id", "parent_folder_index"),
)


# =====================================================
# 3. COURSE ENROLLMENTS (learner progress)
# =====================================================
course_enrollments = Table(
    "course_enrollments",
    metadata,
    Column("enrollment_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "course_id",
        Text,
        ForeignKey("course_outlines.course_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("learner_token", UUID(as_uuid=True), nullable=False),
    # Flat indices into the outline projection at the time they were recorded
    Column("current_lesson_index", Integer, nullable=False, server_default="0"),
    Column("completed_lessons", JSONB, nullable=False, server_default=text("'[]'::jsonb")),
    Column("progress", Integer, nullable=False, server_default="0"),  # 0-100
    Column("started_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("completed_at", TIMESTAMP(timezone=True)),
    UniqueConstraint("learner_token", "course_id", name="uq_course_enrollments_learner_course"),
    Index("idx_course_enrollments_course_id", "course_id"),
)


# =====================================================
# 4. LESSON ATTACHMENTS
# =====================================================
lesson_attachments = Table(
    "lesson_attachments",
    metadata,
    Column("attachment_id", UUID(as_uuid=True), primary_key=True),
    Column(
        "course_id",
        Text,
        ForeignKey("course_outlines.course_id", ondelete="CASCADE"),
        nullable=False,
    ),
    # Folder index of the root chapter; subchapters can't own attachments
    Column("chapter_index", Integer, nullable=False),
    Column("filename", Text, nullable=False),  # name on disk
    Column("original_name", Text, nullable=False),
    Column("mime_type", Text, nullable=False),
    Column("size", BigInteger, nullable=False),
    Column("uploaded_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_lesson_attachments_chapter", "course_id", "chapter_index"),
)


# =====================================================
# 5. COURSE BOOKMARKS
# =====================================================
course_bookmarks = Table(
    "course_bookmarks",
    metadata,
    Column("bookmark_id", UUID(as_uuid=True), primary_key=True),
    Column(
        "course_id",
        Text,
        ForeignKey("course_outlines.course_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("learner_token", UUID(as_uuid=True), nullable=False),
    # Flat index into the outline projection, like completed_lessons
    Column("lesson_index", Integer, nullable=False),
    Column("note", Text, nullable=False, server_default=""),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    UniqueConstraint(
        "learner_token",
        "course_id",
        "lesson_index",
        name="uq_course_bookmarks_learner_course_lesson",
    ),
    Index("idx_course_bookmarks_learner_course", "learner_token", "course_id"),
)
