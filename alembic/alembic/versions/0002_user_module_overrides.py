"""per-user module overrides

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "user_module_overrides",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("module", sa.String(), nullable=False),
        sa.Column("effect", sa.String()),
        sa.Column("allowed", sa.Boolean()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_user_module_overrides_tenant_id", "user_module_overrides", ["tenant_id"])
    op.create_index("ix_user_module_overrides_user_id", "user_module_overrides", ["user_id"])


def downgrade():
    op.drop_index("ix_user_module_overrides_user_id", table_name="user_module_overrides")
    op.drop_index("ix_user_module_overrides_tenant_id", table_name="user_module_overrides")
    op.drop_table("user_module_overrides")
