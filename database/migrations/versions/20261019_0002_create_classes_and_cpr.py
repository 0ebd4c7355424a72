"""create classes and cpr hierarchy

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    cpr_status = sa.Enum("PENDING", "IN_PROGRESS", "COMPLETED", name="cpr_status")

    op.create_table(
        "classes",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("division_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("room_id", sa.String(length=36), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("lecture_number", sa.Integer(), nullable=False),
        sa.Column("calendar_event_id", sa.String(length=255), nullable=True),
        sa.Column("sub_topic_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_classes_teacher_window", "classes", ["teacher_id", "start_at", "end_at"])
    op.create_index("ix_classes_room_window", "classes", ["room_id", "start_at", "end_at"])
    op.create_index("ix_classes_subject_start", "classes", ["subject_id", "start_at"])
    op.create_index("ix_classes_sub_topic_id", "classes", ["sub_topic_id"])

    op.create_table(
        "cpr_modules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("subject_id", "order", name="uq_cpr_modules_subject_order"),
    )
    op.create_index("ix_cpr_modules_subject_id", "cpr_modules", ["subject_id"])

    op.create_table(
        "cpr_topics",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("module_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("module_id", "order", name="uq_cpr_topics_module_order"),
    )
    op.create_index("ix_cpr_topics_module_id", "cpr_topics", ["module_id"])

    op.create_table(
        "cpr_sub_topics",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("topic_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("lecture_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", cpr_status, nullable=False, server_default="PENDING"),
        sa.Column("planned_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("planned_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("topic_id", "order", name="uq_cpr_sub_topics_topic_order"),
        sa.CheckConstraint("lecture_count >= 1", name="ck_cpr_sub_topics_lecture_count_positive"),
    )
    op.create_index("ix_cpr_sub_topics_topic_id", "cpr_sub_topics", ["topic_id"])


def downgrade() -> None:
    op.drop_index("ix_cpr_sub_topics_topic_id", table_name="cpr_sub_topics")
    op.drop_table("cpr_sub_topics")
    op.drop_index("ix_cpr_topics_module_id", table_name="cpr_topics")
    op.drop_table("cpr_topics")
    op.drop_index("ix_cpr_modules_subject_id", table_name="cpr_modules")
    op.drop_table("cpr_modules")
    op.drop_index("ix_classes_sub_topic_id", table_name="classes")
    op.drop_index("ix_classes_subject_start", table_name="classes")
    op.drop_index("ix_classes_room_window", table_name="classes")
    op.drop_index("ix_classes_teacher_window", table_name="classes")
    op.drop_table("classes")
    sa.Enum(name="cpr_status").drop(op.get_bind(), checkfirst=True)
