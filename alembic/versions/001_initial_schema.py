"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "mcp_servers",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("organization_id", sa.String(64), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("transport", sa.String(32), nullable=False, server_default="streamable-http"),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("command", sa.Text(), nullable=True),
        sa.Column("args", JSON_TYPE, nullable=True),
        sa.Column("env", JSON_TYPE, nullable=True),
        sa.Column("headers", JSON_TYPE, nullable=True),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_connected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "tools",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("organization_id", sa.String(64), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("parameters", JSON_TYPE, nullable=True),
        sa.Column("execution_config", JSON_TYPE, nullable=True),
        sa.Column(
            "mcp_server_id",
            sa.String(64),
            sa.ForeignKey("mcp_servers.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint(
            "category IN ('builtin', 'custom', 'mcp', 'openapi')",
            name="ck_tools_category",
        ),
    )
    op.create_index("ix_tools_organization_id", "tools", ["organization_id"])

    op.create_table(
        "assistant_tools",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("assistant_id", sa.String(64), nullable=False),
        sa.Column(
            "tool_id",
            sa.String(64),
            sa.ForeignKey("tools.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("assistant_id", "tool_id", name="uq_assistant_tools_assistant_tool"),
    )
    op.create_index("ix_assistant_tools_assistant_id", "assistant_tools", ["assistant_id"])

    # Append-only audit log; tool_id is not a foreign key so records outlive their tool
    op.create_table(
        "tool_executions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("tool_name", sa.String(255), nullable=False),
        sa.Column("tool_id", sa.String(64), nullable=True),
        sa.Column("category", sa.String(32), nullable=True),
        sa.Column("assistant_id", sa.String(64), nullable=True),
        sa.Column("session_id", sa.String(64), nullable=True),
        sa.Column("input", JSON_TYPE, nullable=True),
        sa.Column("output", JSON_TYPE, nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("organization_id", sa.String(64), nullable=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_tool_executions_org_created",
        "tool_executions",
        ["organization_id", "created_at"],
    )
    op.create_index(
        "ix_tool_executions_assistant_tool",
        "tool_executions",
        ["assistant_id", "tool_name"],
    )


def downgrade() -> None:
    op.drop_index("ix_tool_executions_assistant_tool", table_name="tool_executions")
    op.drop_index("ix_tool_executions_org_created", table_name="tool_executions")
    op.drop_table("tool_executions")
    op.drop_index("ix_assistant_tools_assistant_id", table_name="assistant_tools")
    op.drop_table("assistant_tools")
    op.drop_index("ix_tools_organization_id", table_name="tools")
    op.drop_table("tools")
    op.drop_table("mcp_servers")
