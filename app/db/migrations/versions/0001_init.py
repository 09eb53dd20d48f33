"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-12 10:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

ROLE_VALUES = ("client", "technician", "admin")
PRIORITY_VALUES = ("low", "medium", "high", "critical")
STATUS_VALUES = ("new", "in_progress", "waiting_for_client", "resolved", "closed")

# типи створюємо вручну, SA не повинен робити CREATE TYPE повторно
role_enum = postgresql.ENUM(*ROLE_VALUES, name="role_enum", create_type=False)
priority_enum = postgresql.ENUM(*PRIORITY_VALUES, name="priority_enum", create_type=False)
status_enum = postgresql.ENUM(*STATUS_VALUES, name="ticket_status_enum", create_type=False)


def _create_enum(name: str, values: tuple[str, ...]) -> None:
    labels = ",".join(f"'{v}'" for v in values)
    op.execute(f"""
    DO $$
    BEGIN
        CREATE TYPE {name} AS ENUM ({labels});
    EXCEPTION WHEN duplicate_object THEN NULL;
    END$$;
    """)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # ---------- 1) ENUM типи (ідемпотентно) ----------
    _create_enum("role_enum", ROLE_VALUES)
    _create_enum("priority_enum", PRIORITY_VALUES)
    _create_enum("ticket_status_enum", STATUS_VALUES)

    # ---------- 2) Таблиці ----------
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", role_enum, nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("department", sa.String(128), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "technicians",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("department", sa.String(128), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.UniqueConstraint("user_id", name="uq_technicians_user_id"),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("name", name="uq_categories_name"),
    )

    op.create_table(
        "subcategories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_subcategories_category_id", "subcategories", ["category_id"], unique=False)

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("subcategory_id", sa.Integer(), sa.ForeignKey("subcategories.id"), nullable=True),
        sa.Column("priority", priority_enum, nullable=False, server_default="medium"),
        sa.Column("status", status_enum, nullable=False, server_default="new"),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("technician_id", sa.Integer(), sa.ForeignKey("technicians.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("assigned_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(technician_id IS NULL) = (assigned_user_id IS NULL)",
            name="ck_tickets_assignment_pair",
        ),
    )
    op.create_index("ix_tickets_category_id", "tickets", ["category_id"], unique=False)
    op.create_index("ix_tickets_created_by_id", "tickets", ["created_by_id"], unique=False)
    op.create_index("ix_tickets_technician_id", "tickets", ["technician_id"], unique=False)
    op.create_index("ix_tickets_assigned_user_id", "tickets", ["assigned_user_id"], unique=False)
    op.create_index("ix_tickets_status_priority", "tickets", ["status", "priority"], unique=False)
    op.create_index("ix_tickets_created_at", "tickets", ["created_at"], unique=False)

    op.create_table(
        "ticket_messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("status", status_enum, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_ticket_messages_ticket_id", "ticket_messages", ["ticket_id"], unique=False)
    op.create_index("ix_ticket_messages_author_id", "ticket_messages", ["author_id"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"], unique=False)

    op.create_table(
        "system_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("app_name", sa.String(255), nullable=False, server_default="Helpdesk"),
        sa.Column("support_email", sa.String(255), nullable=False, server_default="support@example.com"),
        sa.Column("support_phone", sa.String(64), nullable=False, server_default=""),
        sa.Column("default_language", sa.String(8), nullable=False, server_default="en"),
        sa.Column("default_theme", sa.String(16), nullable=False, server_default="system"),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("default_priority", priority_enum, nullable=False, server_default="medium"),
        sa.Column("default_status", status_enum, nullable=False, server_default="new"),
        sa.Column("response_sla_hours", sa.Integer(), nullable=False, server_default="24"),
        sa.Column("auto_assign_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("allow_client_attachments", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("max_attachment_size_mb", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("email_notifications_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("sms_notifications_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("notify_on_ticket_created", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notify_on_ticket_assigned", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notify_on_ticket_replied", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notify_on_ticket_closed", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("password_min_length", sa.Integer(), nullable=False, server_default="6"),
        sa.Column("require_2fa", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("session_timeout_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("allowed_email_domains", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("system_settings")

    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_ticket_messages_author_id", table_name="ticket_messages")
    op.drop_index("ix_ticket_messages_ticket_id", table_name="ticket_messages")
    op.drop_table("ticket_messages")

    op.drop_index("ix_tickets_created_at", table_name="tickets")
    op.drop_index("ix_tickets_status_priority", table_name="tickets")
    op.drop_index("ix_tickets_assigned_user_id", table_name="tickets")
    op.drop_index("ix_tickets_technician_id", table_name="tickets")
    op.drop_index("ix_tickets_created_by_id", table_name="tickets")
    op.drop_index("ix_tickets_category_id", table_name="tickets")
    op.drop_table("tickets")

    op.drop_index("ix_subcategories_category_id", table_name="subcategories")
    op.drop_table("subcategories")
    op.drop_table("categories")
    op.drop_table("technicians")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    op.execute("DROP TYPE IF EXISTS ticket_status_enum")
    op.execute("DROP TYPE IF EXISTS priority_enum")
    op.execute("DROP TYPE IF EXISTS role_enum")
