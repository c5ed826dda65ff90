"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "regions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("code", sa.String(32), nullable=True, unique=True),
        sa.Column("parent_id", sa.Integer, sa.ForeignKey("regions.id"), nullable=True),
        sa.Column("level", sa.Integer, nullable=False, server_default="1"),
        sa.Column("status", sa.Integer, nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index("ix_regions_id", "regions", ["id"], unique=False)
    op.create_index("ix_regions_parent_level", "regions", ["parent_id", "level"], unique=False)

    op.create_table(
        "prices",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("service_id", sa.Integer, nullable=False),
        sa.Column("service_type", sa.SmallInteger, nullable=False),
        sa.Column("origin_region_id", sa.Integer, sa.ForeignKey("regions.id"), nullable=True),
        sa.Column("destination_region_id", sa.Integer, sa.ForeignKey("regions.id"), nullable=True),
        sa.Column("weight_start", sa.Numeric(12, 3), nullable=True),
        sa.Column("weight_end", sa.Numeric(12, 3), nullable=True),
        sa.Column("volume_start", sa.Numeric(12, 3), nullable=True),
        sa.Column("volume_end", sa.Numeric(12, 3), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(8), nullable=False, server_default="CNY"),
        sa.Column("price_unit", sa.String(16), nullable=False),
        sa.Column("effective_date", sa.Date, nullable=False),
        sa.Column("expiry_date", sa.Date, nullable=True),
        sa.Column("is_current", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("price_type", sa.SmallInteger, nullable=False, server_default="1"),
        sa.Column("visibility_type", sa.SmallInteger, nullable=False, server_default="1"),
        sa.Column("organization_id", sa.Integer, nullable=True),
        sa.Column("created_by", sa.Integer, nullable=True),
        sa.Column("remark", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_prices_id", "prices", ["id"], unique=False)
    op.create_index(
        "ix_prices_scope_current",
        "prices",
        ["service_id", "service_type", "origin_region_id", "destination_region_id", "is_current"],
        unique=False,
    )
    op.create_index("ix_prices_effective_expiry", "prices", ["effective_date", "expiry_date"], unique=False)
    op.create_index("ix_prices_type_visibility", "prices", ["price_type", "visibility_type"], unique=False)

    op.create_table(
        "price_visible_orgs",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("price_id", sa.Integer, sa.ForeignKey("prices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("organization_id", sa.Integer, nullable=False),
        sa.UniqueConstraint("price_id", "organization_id", name="uq_price_visible_orgs_price_org"),
    )
    op.create_index(
        "ix_price_visible_orgs_organization_id", "price_visible_orgs", ["organization_id"], unique=False
    )

    op.create_table(
        "price_history",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("price_id", sa.Integer, nullable=False),
        sa.Column("service_id", sa.Integer, nullable=False),
        sa.Column("service_type", sa.SmallInteger, nullable=False),
        sa.Column("origin_region_id", sa.Integer, nullable=True),
        sa.Column("destination_region_id", sa.Integer, nullable=True),
        sa.Column("weight_start", sa.Numeric(12, 3), nullable=True),
        sa.Column("weight_end", sa.Numeric(12, 3), nullable=True),
        sa.Column("volume_start", sa.Numeric(12, 3), nullable=True),
        sa.Column("volume_end", sa.Numeric(12, 3), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(8), nullable=False),
        sa.Column("price_unit", sa.String(16), nullable=False),
        sa.Column("effective_date", sa.Date, nullable=False),
        sa.Column("expiry_date", sa.Date, nullable=True),
        sa.Column("is_current", sa.Boolean, nullable=False),
        sa.Column("price_type", sa.SmallInteger, nullable=False),
        sa.Column("visibility_type", sa.SmallInteger, nullable=False),
        sa.Column("visible_org_ids", sa.JSON, nullable=True),
        sa.Column("organization_id", sa.Integer, nullable=True),
        sa.Column("remark", sa.Text, nullable=True),
        sa.Column("operation_type", sa.String(16), nullable=False),
        sa.Column("operated_by", sa.Integer, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_price_history_id", "price_history", ["id"], unique=False)
    op.create_index("ix_price_history_price_id", "price_history", ["price_id", "created_at"], unique=False)


def downgrade():
    op.drop_index("ix_price_history_price_id", table_name="price_history")
    op.drop_index("ix_price_history_id", table_name="price_history")
    op.drop_table("price_history")

    op.drop_index("ix_price_visible_orgs_organization_id", table_name="price_visible_orgs")
    op.drop_table("price_visible_orgs")

    op.drop_index("ix_prices_type_visibility", table_name="prices")
    op.drop_index("ix_prices_effective_expiry", table_name="prices")
    op.drop_index("ix_prices_scope_current", table_name="prices")
    op.drop_index("ix_prices_id", table_name="prices")
    op.drop_table("prices")

    op.drop_index("ix_regions_parent_level", table_name="regions")
    op.drop_index("ix_regions_id", table_name="regions")
    op.drop_table("regions")
