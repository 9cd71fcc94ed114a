"""initial taskboard schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    """Create members, audit trail, catalogs, projects, boards, tasks and notifications."""
    # Check if tables already exist (idempotent)
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            _uuid_pk(),
            sa.Column("role", sa.String(32), nullable=False),
            sa.Column("email", sa.String(320), nullable=False),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("password_hash", sa.String(255), nullable=False),
            *_timestamps(),
        )
        op.create_index("idx_users_role_email", "users", ["role", "email"])
        op.create_index("idx_users_role", "users", ["role"])

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.String(36), nullable=True),
            sa.Column("actor_role", sa.String(32), nullable=True),
            sa.Column("actor_email", sa.String(320), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
        )
        op.create_index("idx_audit_events_entity", "audit_events", ["entity_type", "entity_id"])
        op.create_index("idx_audit_events_created_at", "audit_events", ["created_at"])

    for table in ("task_management_roles", "task_statuses", "task_priorities"):
        if table not in existing_tables:
            op.create_table(
                table,
                _uuid_pk(),
                sa.Column("code", sa.String(64), nullable=False, unique=True),
                sa.Column("name", sa.String(255), nullable=False),
                sa.Column("description", sa.Text(), nullable=True),
                *_timestamps(),
            )

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            _uuid_pk(),
            sa.Column("owner_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("code", sa.String(64), nullable=False, unique=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_projects_owner", "projects", ["owner_id"])
        op.create_index("idx_projects_name", "projects", ["name"])

    if "project_members" not in existing_tables:
        op.create_table(
            "project_members",
            _uuid_pk(),
            sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
            sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("deleted_at", sa.DateTime(), nullable=True),
        )
        op.create_index("idx_project_members_project_user", "project_members", ["project_id", "user_id"])

    if "boards" not in existing_tables:
        op.create_table(
            "boards",
            _uuid_pk(),
            sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
            sa.Column("owner_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("code", sa.String(64), nullable=False),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            *_timestamps(),
            sa.UniqueConstraint("project_id", "code", name="uq_boards_project_code"),
        )
        op.create_index("idx_boards_project", "boards", ["project_id"])
        op.create_index("idx_boards_owner", "boards", ["owner_id"])

    if "board_members" not in existing_tables:
        op.create_table(
            "board_members",
            _uuid_pk(),
            sa.Column("board_id", sa.String(36), sa.ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
            sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
            *_timestamps(),
        )
        op.create_index("idx_board_members_board_user", "board_members", ["board_id", "user_id"])

    if "tasks" not in existing_tables:
        op.create_table(
            "tasks",
            _uuid_pk(),
            sa.Column("status_id", sa.String(36), sa.ForeignKey("task_statuses.id"), nullable=False),
            sa.Column("priority_id", sa.String(36), sa.ForeignKey("task_priorities.id"), nullable=False),
            sa.Column("creator_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id"), nullable=True),
            sa.Column("board_id", sa.String(36), sa.ForeignKey("boards.id"), nullable=True),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("due_date", sa.DateTime(), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_tasks_status", "tasks", ["status_id"])
        op.create_index("idx_tasks_priority", "tasks", ["priority_id"])
        op.create_index("idx_tasks_creator", "tasks", ["creator_id"])
        op.create_index("idx_tasks_project", "tasks", ["project_id"])
        op.create_index("idx_tasks_board", "tasks", ["board_id"])

    if "task_assignments" not in existing_tables:
        op.create_table(
            "task_assignments",
            _uuid_pk(),
            sa.Column("task_id", sa.String(36), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
            sa.Column("assignee_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("assigned_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.UniqueConstraint("task_id", "assignee_id", name="uq_task_assignments_task_assignee"),
        )

    if "task_comments" not in existing_tables:
        op.create_table(
            "task_comments",
            _uuid_pk(),
            sa.Column("task_id", sa.String(36), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
            sa.Column("commenter_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("comment_body", sa.Text(), nullable=False),
            *_timestamps(),
        )
        op.create_index("idx_task_comments_task", "task_comments", ["task_id"])
        op.create_index("idx_task_comments_commenter", "task_comments", ["commenter_id"])

    if "task_status_changes" not in existing_tables:
        op.create_table(
            "task_status_changes",
            _uuid_pk(),
            sa.Column("task_id", sa.String(36), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
            sa.Column("new_status_id", sa.String(36), sa.ForeignKey("task_statuses.id"), nullable=False),
            sa.Column("changed_by_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
            sa.Column("changed_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("comment", sa.Text(), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_task_status_changes_task", "task_status_changes", ["task_id"])

    if "notifications" not in existing_tables:
        op.create_table(
            "notifications",
            _uuid_pk(),
            sa.Column("recipient_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("task_id", sa.String(36), sa.ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True),
            sa.Column("notification_type", sa.String(64), nullable=False),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("read_at", sa.DateTime(), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_notifications_recipient", "notifications", ["recipient_id", "is_read"])

    if "notification_preferences" not in existing_tables:
        op.create_table(
            "notification_preferences",
            _uuid_pk(),
            sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("preference_key", sa.String(128), nullable=False),
            sa.Column("delivery_method", sa.String(32), nullable=False, server_default="in_app"),
            sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
            sa.UniqueConstraint("user_id", "preference_key", name="uq_notification_preferences_user_key"),
        )


def downgrade() -> None:
    """Drop tables in reverse dependency order."""
    op.drop_table("notification_preferences")
    op.drop_table("notifications")
    op.drop_table("task_status_changes")
    op.drop_table("task_comments")
    op.drop_table("task_assignments")
    op.drop_table("tasks")
    op.drop_table("board_members")
    op.drop_table("boards")
    op.drop_table("project_members")
    op.drop_table("projects")
    op.drop_table("task_priorities")
    op.drop_table("task_statuses")
    op.drop_table("task_management_roles")
    op.drop_table("audit_events")
    op.drop_table("users")
