"""create ledger_users

Revision ID: 0001_create_ledger_users
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa

revision = "0001_create_ledger_users"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "ledger_users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String, unique=True, index=True, nullable=False),
        sa.Column("balance", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_earn", sa.Integer, nullable=False, server_default="0"),
        sa.Column("referrals", sa.Integer, nullable=False, server_default="0"),
        sa.Column("ref_code", sa.String(8), index=True, nullable=False),
        sa.Column("referred_by", sa.String, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade():
    op.drop_table("ledger_users")
