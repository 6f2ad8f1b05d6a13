"""create risk governor tables

Revision ID: 0001
Revises: None
Create Date: 2026-10-16

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "risk_limits",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("workspace_id", sa.String(length=64), nullable=False),
        sa.Column("version", sa.String(length=32), nullable=False, server_default="v1"),
        sa.Column("max_daily_loss_absolute", sa.Float(), nullable=True),
        sa.Column("max_position_size_pct_of_equity", sa.Float(), nullable=True),
        sa.Column("max_risk_per_trade_pct", sa.Float(), nullable=True),
        sa.Column("max_concurrent_positions", sa.Integer(), nullable=True),
        sa.Column("min_order_price", sa.Float(), nullable=True),
        sa.Column("min_order_value", sa.Float(), nullable=True),
        sa.Column(
            "pattern_day_trader_equity_threshold",
            sa.Float(),
            nullable=False,
            server_default="25000",
        ),
        sa.Column("pattern_day_trader_limit", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("max_trades_per_day", sa.Integer(), nullable=True),
        sa.Column("severity_overrides_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("workspace_id", name="ux_risk_limits_workspace_id"),
    )

    op.create_table(
        "blacklisted_symbols",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("workspace_id", sa.String(length=64), nullable=False),
        sa.Column("symbol", sa.String(length=16), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "workspace_id",
            "symbol",
            name="ux_blacklisted_symbols_workspace_symbol",
        ),
    )
    op.create_index(
        "ix_blacklisted_symbols_workspace_id",
        "blacklisted_symbols",
        ["workspace_id"],
    )

    op.create_table(
        "account_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("workspace_id", sa.String(length=64), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False, server_default="sync"),
        sa.Column("payload_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("as_of_ts", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_account_snapshots_workspace_ts",
        "account_snapshots",
        ["workspace_id", "as_of_ts"],
    )

    op.create_table(
        "decision_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("decision_id", sa.String(length=64), nullable=False),
        sa.Column("workspace_id", sa.String(length=64), nullable=True),
        sa.Column("symbol", sa.String(length=16), nullable=False),
        sa.Column("side", sa.String(length=8), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("allowed", sa.Boolean(), nullable=False),
        sa.Column("risk_level", sa.String(length=16), nullable=False),
        sa.Column("risk_score", sa.Float(), nullable=False),
        sa.Column("violation_codes", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("verdict_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("context_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("decision_id", name="ux_decision_records_decision_id"),
    )
    op.create_index(
        "ix_decision_records_workspace_ts",
        "decision_records",
        ["workspace_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_decision_records_workspace_ts", table_name="decision_records")
    op.drop_table("decision_records")
    op.drop_index("ix_account_snapshots_workspace_ts", table_name="account_snapshots")
    op.drop_table("account_snapshots")
    op.drop_index("ix_blacklisted_symbols_workspace_id", table_name="blacklisted_symbols")
    op.drop_table("blacklisted_symbols")
    op.drop_table("risk_limits")
