"""Initial EnerjiOS tables

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261019_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


QUOTE_STATUS = ("DRAFT", "SENT", "VIEWED", "APPROVED", "REJECTED", "EXPIRED")
QUOTE_ITEM_KIND = ("PRODUCT", "CUSTOM")
PROJECT_REQUEST_STATUS = ("OPEN", "CONTACTED", "ASSIGNED", "SITE_VISIT", "CONVERTED_TO_PROJECT", "LOST")
PROJECT_TYPE = (
    "RESIDENTIAL", "COMMERCIAL", "INDUSTRIAL", "AGRICULTURAL", "ROOFTOP", "LAND",
    "AGRISOLAR", "CARPARK", "ONGRID", "OFFGRID", "STORAGE", "HYBRID",
)
PRIORITY = ("LOW", "MEDIUM", "HIGH")
REQUEST_SOURCE = (
    "WEBSITE", "PHONE", "EMAIL", "REFERRAL", "SOCIAL_MEDIA", "WALK_IN", "PARTNER_REFERRAL", "WHATSAPP", "OTHER",
)


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "company",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("tax_number", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )

    op.create_table(
        "user",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True, index=True),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=False, server_default="COMPANY"),
        sa.Column("company_id", sa.String(), sa.ForeignKey("company.id"), nullable=False, index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "product",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("company_id", sa.String(), sa.ForeignKey("company.id"), nullable=False, index=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=True, index=True),
        sa.Column("brand", sa.String(), nullable=True),
        sa.Column("model", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit", sa.String(), nullable=False, server_default="adet"),
        sa.Column("power_watts", sa.Integer(), nullable=True),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("stock >= 0", name="stock_non_negative"),
    )

    op.create_table(
        "project_request",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("company_id", sa.String(), sa.ForeignKey("company.id"), nullable=False, index=True),
        sa.Column("request_number", sa.String(), nullable=False, unique=True, index=True),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("customer_email", sa.String(), nullable=False, index=True),
        sa.Column("customer_phone", sa.String(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("contact_preference", sa.String(), nullable=True),
        sa.Column("project_type", sa.Enum(*PROJECT_TYPE, name="projecttype"), nullable=False),
        sa.Column("estimated_capacity_kw", sa.Numeric(10, 2), nullable=True),
        sa.Column("estimated_budget", sa.Numeric(14, 2), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*PROJECT_REQUEST_STATUS, name="projectrequeststatus"),
            nullable=False,
            server_default="OPEN",
            index=True,
        ),
        sa.Column("priority", sa.Enum(*PRIORITY, name="priority"), nullable=False, server_default="MEDIUM"),
        sa.Column("source", sa.Enum(*REQUEST_SOURCE, name="requestsource"), nullable=False, server_default="WEBSITE"),
        sa.Column("assigned_engineer_id", sa.String(), sa.ForeignKey("user.id"), nullable=True, index=True),
        sa.Column("scheduled_visit_date", sa.DateTime(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("notes", sa.JSON(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "project_request_status_history",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "project_request_id",
            sa.String(),
            sa.ForeignKey("project_request.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("status", postgresql.ENUM(*PROJECT_REQUEST_STATUS, name="projectrequeststatus", create_type=False), nullable=False),
        sa.Column(
            "previous_status",
            postgresql.ENUM(*PROJECT_REQUEST_STATUS, name="projectrequeststatus", create_type=False),
            nullable=True,
        ),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("user_name", sa.String(), nullable=False, server_default="System"),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now(), index=True),
    )

    op.create_table(
        "quote",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("company_id", sa.String(), sa.ForeignKey("company.id"), nullable=False, index=True),
        sa.Column("quote_number", sa.String(), nullable=False, unique=True),
        sa.Column(
            "project_request_id", sa.String(), sa.ForeignKey("project_request.id"), nullable=True, index=True
        ),
        sa.Column(
            "status", sa.Enum(*QUOTE_STATUS, name="quotestatus"), nullable=False, server_default="DRAFT", index=True
        ),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("customer_email", sa.String(), nullable=True),
        sa.Column("customer_phone", sa.String(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("project_type", sa.String(), nullable=True),
        sa.Column("capacity_kw", sa.Numeric(10, 2), nullable=True),
        sa.Column("subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("discount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("tax_rate", sa.Numeric(5, 2), nullable=False, server_default="20"),
        sa.Column("tax", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("total", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("terms", sa.Text(), nullable=True),
        sa.Column("valid_until", sa.DateTime(), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        sa.Column("viewed_at", sa.DateTime(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("approved_by_id", sa.String(), sa.ForeignKey("user.id"), nullable=True),
        sa.Column("rejected_at", sa.DateTime(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("expired_at", sa.DateTime(), nullable=True),
        sa.Column("created_by_id", sa.String(), sa.ForeignKey("user.id"), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "quote_item",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("quote_id", sa.String(), sa.ForeignKey("quote.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("kind", sa.Enum(*QUOTE_ITEM_KIND, name="quoteitemkind"), nullable=False),
        sa.Column("product_id", sa.String(), sa.ForeignKey("product.id"), nullable=True, index=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("line_total", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.CheckConstraint(
            "(kind = 'PRODUCT' AND product_id IS NOT NULL) OR (kind = 'CUSTOM' AND product_id IS NULL)",
            name="kind_matches_product",
        ),
        sa.CheckConstraint("quantity > 0", name="quantity_positive"),
    )

    op.create_table(
        "user_notification",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("company_id", sa.String(), sa.ForeignKey("company.id"), nullable=False, index=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("user.id"), nullable=True, index=True),
        sa.Column("type", sa.String(), nullable=False, index=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link", sa.String(), nullable=True),
        sa.Column("entity_type", sa.String(), nullable=True),
        sa.Column("entity_id", sa.String(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("priority", sa.String(), nullable=False, server_default="normal"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("user_notification")
    op.drop_table("quote_item")
    op.drop_table("quote")
    op.drop_table("project_request_status_history")
    op.drop_table("project_request")
    op.drop_table("product")
    op.drop_table("user")
    op.drop_table("company")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in (
            "quoteitemkind",
            "quotestatus",
            "requestsource",
            "priority",
            "projectrequeststatus",
            "projecttype",
        ):
            sa.Enum(name=enum_name).drop(bind, checkfirst=True)
