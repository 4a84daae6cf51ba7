"""Course bookmarks.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

Learners bookmark lessons by flat index, optionally with a note.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "course_bookmarks",
        sa.Column("bookmark_id", UUID(as_uuid=True), nullable=False),
        sa.Column(
            "course_id",
            sa.Text(),
            sa.ForeignKey(
                "course_outlines.course_id",
                ondelete="CASCADE",
                name="fk_course_bookmarks_course_id_course_outlines",
            ),
            nullable=False,
        ),
        sa.Column("learner_token", UUID(as_uuid=True), nullable=False),
        sa.Column("lesson_index", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), server_default="", nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("bookmark_id", name="pk_course_bookmarks"),
        sa.UniqueConstraint(
            "learner_token",
            "course_id",
            "lesson_index",
            name="uq_course_bookmarks_learner_course_lesson",
        ),
    )
    op.create_index(
        "idx_course_bookmarks_learner_course",
        "course_bookmarks",
        ["learner_token", "course_id"],
    )


def downgrade() -> None:
    op.drop_index("idx_course_bookmarks_learner_course", table_name="course_bookmarks")
    op.drop_table("course_bookmarks")
