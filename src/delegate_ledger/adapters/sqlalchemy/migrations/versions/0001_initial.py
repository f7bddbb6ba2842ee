"""Create delegate record and marketplace listing tables.

Revision ID: 0001_initial
Revises:
Create Date: 2026-09-28
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from delegate_ledger.adapters.sqlalchemy.mappings import UTCDateTime

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "delegate_record",
        sa.Column("record_id", sa.String(), nullable=False),
        sa.Column("temp_id", sa.String(), nullable=True),
        sa.Column("catalog_id", sa.String(), nullable=False),
        sa.Column("reference_id", sa.String(), nullable=False),
        sa.Column("owner_address", sa.String(), nullable=False),
        sa.Column("project_id", sa.String(), nullable=True),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column(
            "state",
            sa.Enum(
                "pending",
                "confirmed",
                "failed",
                name="recordstate",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("issuance_ref", sa.String(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("confirmed_at", UTCDateTime(), nullable=True),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("record_id", name=op.f("pk_delegate_record")),
        sa.UniqueConstraint("temp_id", name=op.f("uq_delegate_record_temp_id")),
    )
    op.create_index(
        "ix_delegate_record_owner_state",
        "delegate_record",
        ["owner_address", "state"],
    )
    op.create_index(
        "ix_delegate_record_state_created",
        "delegate_record",
        ["state", "created_at"],
    )

    op.create_table(
        "marketplace_listing",
        sa.Column("asset_ref", sa.String(), nullable=False),
        sa.Column("destination", sa.String(), nullable=False),
        sa.Column("price_units", sa.BigInteger(), nullable=False),
        sa.Column("seller_address", sa.String(), nullable=False),
        sa.Column("signed_proposal", sa.Text(), nullable=False),
        sa.Column("fee_rate", sa.Float(), nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint(
            "asset_ref", "destination", "price_units", name=op.f("pk_marketplace_listing")
        ),
    )


def downgrade() -> None:
    op.drop_table("marketplace_listing")
    op.drop_index("ix_delegate_record_state_created", table_name="delegate_record")
    op.drop_index("ix_delegate_record_owner_state", table_name="delegate_record")
    op.drop_table("delegate_record")
