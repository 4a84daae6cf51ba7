"""Course outline schema.

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates course_outlines, outline_nodes, course_enrollments and
lesson_attachments.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "course_outlines",
        sa.Column("course_id", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), server_default="", nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("next_folder_index", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("course_id", name="pk_course_outlines"),
    )

    op.create_table(
        "outline_nodes",
        sa.Column(
            "course_id",
            sa.Text(),
            sa.ForeignKey(
                "course_outlines.course_id",
                ondelete="CASCADE",
                name="fk_outline_nodes_course_id_course_outlines",
            ),
            nullable=False,
        ),
        sa.Column("folder_index", sa.Integer(), nullable=False),
        sa.Column("parent_folder_index", sa.Integer(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), server_default="", nullable=False),
        sa.PrimaryKeyConstraint("course_id", "folder_index", name="pk_outline_nodes"),
    )
    op.create_index(
        "idx_outline_nodes_parent",
        "outline_nodes",
        ["course_id", "parent_folder_index"],
    )

    op.create_table(
        "course_enrollments",
        sa.Column("enrollment_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "course_id",
            sa.Text(),
            sa.ForeignKey(
                "course_outlines.course_id",
                ondelete="CASCADE",
                name="fk_course_enrollments_course_id_course_outlines",
            ),
            nullable=False,
        ),
        sa.Column("learner_token", UUID(as_uuid=True), nullable=False),
        sa.Column(
            "current_lesson_index", sa.Integer(), server_default="0", nullable=False
        ),
        sa.Column(
            "completed_lessons",
            JSONB(),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column("progress", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "started_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("enrollment_id", name="pk_course_enrollments"),
        sa.UniqueConstraint(
            "learner_token", "course_id", name="uq_course_enrollments_learner_course"
        ),
    )
    op.create_index(
        "idx_course_enrollments_course_id", "course_enrollments", ["course_id"]
    )

    op.create_table(
        "lesson_attachments",
        sa.Column("attachment_id", UUID(as_uuid=True), nullable=False),
        sa.Column(
            "course_id",
            sa.Text(),
            sa.ForeignKey(
                "course_outlines.course_id",
                ondelete="CASCADE",
                name="fk_lesson_attachments_course_id_course_outlines",
            ),
            nullable=False,
        ),
        sa.Column("chapter_index", sa.Integer(), nullable=False),
        sa.Column("filename", sa.Text(), nullable=False),
        sa.Column("original_name", sa.Text(), nullable=False),
        sa.Column("mime_type", sa.Text(), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        sa.Column(
            "uploaded_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("attachment_id", name="pk_lesson_attachments"),
    )
    op.create_index(
        "idx_lesson_attachments_chapter",
        "lesson_attachments",
        ["course_id", "chapter_index"],
    )


def downgrade() -> None:
    op.drop_index("idx_lesson_attachments_chapter", table_name="lesson_attachments")
    op.drop_table("lesson_attachments")
    op.drop_index("idx_course_enrollments_course_id", table_name="course_enrollments")
    op.drop_table("course_enrollments")
    op.drop_index("idx_outline_nodes_parent", table_name="outline_nodes")
    op.drop_table("outline_nodes")
    op.drop_table("course_outlines")
