"""Add processed_events and relay_attempts tables

Revision ID: b7d2f9e4c8a5
Revises: a1c4e7b20f31
Create Date: 2026-10-19

processed_events records applied event ids so redelivered events are
dropped. relay_attempts counts failed deliveries per relay unit and
marks units that exceeded the retry limit.
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "b7d2f9e4c8a5"
down_revision = "a1c4e7b20f31"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "processed_events",
        sa.Column("event_id", sa.String(length=255), primary_key=True),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("source", sa.String(length=100), nullable=True),
        sa.Column(
            "applied_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "relay_attempts",
        sa.Column("unit_id", sa.String(length=255), primary_key=True),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text, nullable=True),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dead_lettered_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_relay_attempts_dead_lettered_at", "relay_attempts", ["dead_lettered_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_relay_attempts_dead_lettered_at", table_name="relay_attempts")
    op.drop_table("relay_attempts")
    op.drop_table("processed_events")
