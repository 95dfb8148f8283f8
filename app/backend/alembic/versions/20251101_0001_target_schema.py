"""users, hierarchy and targets schema

Revision ID: 20251101_0001
Revises:
Create Date: 2025-11-01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20251101_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role = postgresql.ENUM(
    "promotor", "sator", "spv", "manager", "admin", name="user_role", create_type=False
)
user_status = postgresql.ENUM("active", "inactive", name="user_status", create_type=False)
target_type = postgresql.ENUM("primary", "as_sator", name="target_type", create_type=False)


def upgrade() -> None:
    user_role.create(op.get_bind(), checkfirst=True)
    user_status.create(op.get_bind(), checkfirst=True)
    target_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("employee_id", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("status", user_status, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_role_status", "users", ["role", "status"])

    op.create_table(
        "hierarchy",
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column("atasan_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("area", sa.String(length=128), nullable=True),
        sa.Column("store_id", postgresql.UUID(as_uuid=True), nullable=True),
    )
    op.create_index("ix_hierarchy_atasan_id", "hierarchy", ["atasan_id"])
    op.create_index("ix_hierarchy_area", "hierarchy", ["area"])

    op.create_table(
        "targets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("period_month", sa.Integer(), nullable=False),
        sa.Column("period_year", sa.Integer(), nullable=False),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("target_value", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("target_type", target_type, nullable=False, server_default="primary"),
        sa.Column(
            "set_by_admin_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("period_month BETWEEN 1 AND 12", name="ck_targets_period_month_range"),
        sa.CheckConstraint("target_value >= 0", name="ck_targets_target_value_non_negative"),
    )
    op.create_unique_constraint(
        "uq_targets_user_period_type",
        "targets",
        ["user_id", "period_month", "period_year", "target_type"],
    )
    op.create_index("ix_targets_period", "targets", ["period_year", "period_month"])
    op.create_index("ix_targets_user_id", "targets", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_targets_user_id", table_name="targets")
    op.drop_index("ix_targets_period", table_name="targets")
    op.drop_constraint("uq_targets_user_period_type", "targets", type_="unique")
    op.drop_table("targets")

    op.drop_index("ix_hierarchy_area", table_name="hierarchy")
    op.drop_index("ix_hierarchy_atasan_id", table_name="hierarchy")
    op.drop_table("hierarchy")

    op.drop_index("ix_users_role_status", table_name="users")
    op.drop_table("users")

    target_type.drop(op.get_bind(), checkfirst=True)
    user_status.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
