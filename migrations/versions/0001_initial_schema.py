"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    source_type_enum = sa.Enum("tempo", "upload", name="source_type_enum")
    source_type_enum.create(op.get_bind(), checkfirst=True)

    entry_status_enum = sa.Enum(
        "pending", "mapped", "submitted", "failed", "ignored", name="entry_status_enum"
    )
    entry_status_enum.create(op.get_bind(), checkfirst=True)

    match_operator_enum = sa.Enum(
        "equals", "contains", "starts_with", "regex", name="match_operator_enum"
    )
    match_operator_enum.create(op.get_bind(), checkfirst=True)

    submission_status_enum = sa.Enum(
        "success", "failed", "retrying", name="submission_status_enum"
    )
    submission_status_enum.create(op.get_bind(), checkfirst=True)

    # --- import_sources ---
    op.create_table(
        "import_sources",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("source_type", sa.Enum(
            "tempo", "upload", name="source_type_enum", create_type=False,
        ), nullable=False),
        sa.Column("api_token", sa.Text(), nullable=True),
        sa.Column("base_url", sa.String(256), nullable=True),
        sa.Column("poll_schedule", sa.String(64), nullable=True),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_polled_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_import_sources_id", "import_sources", ["id"])

    # --- timelog_projects ---
    op.create_table(
        "timelog_projects",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("external_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("external_id"),
    )
    op.create_index("ix_timelog_projects_id", "timelog_projects", ["id"])

    # --- timelog_tasks ---
    op.create_table(
        "timelog_tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("timelog_project_id", sa.Integer(), nullable=False),
        sa.Column("external_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["timelog_project_id"], ["timelog_projects.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("timelog_project_id", "external_id", name="uq_task_project_external_id"),
    )
    op.create_index("ix_timelog_tasks_id", "timelog_tasks", ["id"])
    op.create_index("ix_timelog_tasks_timelog_project_id", "timelog_tasks", ["timelog_project_id"])

    # --- mapping_rules ---
    op.create_table(
        "mapping_rules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("source_type", sa.Enum(
            "tempo", "upload", name="source_type_enum", create_type=False,
        ), nullable=True),
        sa.Column("match_field", sa.String(128), nullable=False),
        sa.Column("match_operator", sa.Enum(
            "equals", "contains", "starts_with", "regex",
            name="match_operator_enum", create_type=False,
        ), nullable=False),
        sa.Column("match_value", sa.String(512), nullable=False),
        sa.Column("timelog_project_id", sa.Integer(), nullable=False),
        sa.Column("timelog_task_id", sa.Integer(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["timelog_project_id"], ["timelog_projects.id"]),
        sa.ForeignKeyConstraint(["timelog_task_id"], ["timelog_tasks.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_mapping_rules_id", "mapping_rules", ["id"])
    op.create_index("ix_mapping_rules_priority", "mapping_rules", ["priority"])

    # --- imported_entries ---
    op.create_table(
        "imported_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("import_source_id", sa.Integer(), nullable=False),
        sa.Column("external_id", sa.String(128), nullable=False),
        sa.Column("user_identifier", sa.String(256), nullable=False),
        sa.Column("work_date", sa.Date(), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("project_key", sa.String(64), nullable=True),
        sa.Column("issue_key", sa.String(64), nullable=True),
        sa.Column("activity", sa.String(128), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("status", sa.Enum(
            "pending", "mapped", "submitted", "failed", "ignored",
            name="entry_status_enum", create_type=False,
        ), nullable=False, server_default="pending"),
        sa.Column("imported_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("mapping_rule_id", sa.Integer(), nullable=True),
        sa.Column("timelog_project_id", sa.Integer(), nullable=True),
        sa.Column("timelog_task_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["import_source_id"], ["import_sources.id"]),
        sa.ForeignKeyConstraint(["mapping_rule_id"], ["mapping_rules.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["timelog_project_id"], ["timelog_projects.id"]),
        sa.ForeignKeyConstraint(["timelog_task_id"], ["timelog_tasks.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("import_source_id", "external_id", name="uq_entry_source_external_id"),
    )
    op.create_index("ix_imported_entries_id", "imported_entries", ["id"])
    op.create_index("ix_imported_entries_import_source_id", "imported_entries", ["import_source_id"])
    op.create_index("ix_imported_entries_work_date", "imported_entries", ["work_date"])
    op.create_index("ix_imported_entries_status", "imported_entries", ["status"])

    # --- submitted_entries ---
    op.create_table(
        "submitted_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("imported_entry_id", sa.Integer(), nullable=False),
        sa.Column("external_id", sa.String(128), nullable=True),
        sa.Column("status", sa.Enum(
            "success", "failed", "retrying", name="submission_status_enum", create_type=False,
        ), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="1"),
        sa.ForeignKeyConstraint(["imported_entry_id"], ["imported_entries.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("imported_entry_id"),
    )
    op.create_index("ix_submitted_entries_id", "submitted_entries", ["id"])


def downgrade() -> None:
    op.drop_table("submitted_entries")
    op.drop_table("imported_entries")
    op.drop_table("mapping_rules")
    op.drop_table("timelog_tasks")
    op.drop_table("timelog_projects")
    op.drop_table("import_sources")
    op.execute("DROP TYPE IF EXISTS submission_status_enum")
    op.execute("DROP TYPE IF EXISTS match_operator_enum")
    op.execute("DROP TYPE IF EXISTS entry_status_enum")
    op.execute("DROP TYPE IF EXISTS source_type_enum")
