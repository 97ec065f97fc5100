"""Initial schema: nations, scan_history, reset_times, error_logs

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "nations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("nation_name", sa.String(255), nullable=True),
        sa.Column("leader_name", sa.String(255), nullable=True),
        sa.Column("alliance_id", sa.Integer(), nullable=True),
        sa.Column("last_active", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_nations_last_active", "nations", ["last_active"])

    op.create_table(
        "scan_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("nation_id", sa.Integer(), sa.ForeignKey("nations.id"), nullable=False),
        sa.Column("espionage_available", sa.Boolean(), nullable=False),
        sa.Column("scanned_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_scan_history_nation_scanned", "scan_history", ["nation_id", "scanned_at"])

    op.create_table(
        "reset_times",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("nation_id", sa.Integer(), sa.ForeignKey("nations.id"), nullable=False, unique=True),
        sa.Column("reset_time", sa.Time(), nullable=False),
        sa.Column("detected_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("confidence_score", sa.Numeric(3, 2), nullable=False, server_default="1.00"),
    )

    op.create_table(
        "error_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("error_type", sa.String(100), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("stack_trace", sa.Text(), nullable=True),
        sa.Column("context_json", sa.Text(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_error_logs_occurred_at", "error_logs", ["occurred_at"])


def downgrade() -> None:
    op.drop_index("ix_error_logs_occurred_at", table_name="error_logs")
    op.drop_table("error_logs")
    op.drop_table("reset_times")
    op.drop_index("idx_scan_history_nation_scanned", table_name="scan_history")
    op.drop_table("scan_history")
    op.drop_index("ix_nations_last_active", table_name="nations")
    op.drop_table("nations")
