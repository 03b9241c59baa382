"""init schema

Revision ID: 20261001_init
Revises:
Create Date: 2026-10-01 10:12:41.118204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String, nullable=False, server_default=""),
        sa.Column("name", sa.String),
        sa.Column("avatar_url", sa.String),
        sa.Column("shop_name", sa.String),
        sa.Column("designer_name", sa.String),
        sa.Column("instagram_id", sa.String),
        sa.Column("specialties", sa.JSON, nullable=False),
        sa.Column("bio", sa.Text),
        sa.Column("is_onboarded", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("portfolio_works", sa.JSON, nullable=False),
        sa.Column("plan", sa.String(16), nullable=False, server_default="free"),
        sa.Column("daily_usage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_usage_date", sa.Date, nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.CheckConstraint("daily_usage >= 0", name="ck_profiles_daily_usage"),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("designer_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("phone", sa.String),
        sa.Column("memo", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_customers_designer_id", "customers", ["designer_id"])

    op.create_table(
        "consultations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "customer_id",
            sa.String(36),
            sa.ForeignKey("customers.id"),
            nullable=False,
        ),
        sa.Column("designer_id", sa.String(64), nullable=False),
        sa.Column("session_number", sa.Integer),
        sa.Column("treatment_type", sa.String(32), nullable=False),
        sa.Column("photos", sa.JSON, nullable=False),
        sa.Column("result", sa.JSON, nullable=False),
        sa.Column("notes", sa.Text, nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_consultations_customer_id", "consultations", ["customer_id"])

    op.create_table(
        "chemical_records",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "consultation_id",
            sa.String(36),
            sa.ForeignKey("consultations.id"),
            nullable=False,
        ),
        sa.Column("brand", sa.String, nullable=False),
        sa.Column("product_name", sa.String, nullable=False),
        sa.Column("ratio", sa.String, nullable=False),
        sa.Column("mixing_notes", sa.Text, nullable=False, server_default=""),
        sa.Column("application_method", sa.Text, nullable=False, server_default=""),
        sa.Column("processing_time", sa.String, nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_chemical_records_consultation_id", "chemical_records", ["consultation_id"]
    )

    op.create_table(
        "timelines",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.String(36), nullable=True),
        sa.Column("treatment_image_url", sa.String),
        sa.Column("treatment_type", sa.String(32), nullable=False),
        sa.Column("result", sa.JSON, nullable=False),
        sa.Column("revisit_recommendation", sa.Text),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_timelines_user_id", "timelines", ["user_id"])
    op.create_index("ix_timelines_customer_id", "timelines", ["customer_id"])

    op.create_table(
        "recipes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.String(36), nullable=True),
        sa.Column("current_image_url", sa.String),
        sa.Column("reference_image_url", sa.String),
        sa.Column("result", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_recipes_user_id", "recipes", ["user_id"])

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("plan", sa.String(16), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "cancelled", "expired", name="subscription_status"),
            nullable=False,
        ),
        sa.Column("order_id", sa.String, nullable=False, unique=True),
        sa.Column("payment_key", sa.String, nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("started_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("event", sa.String, nullable=False),
        sa.Column("ts", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_events_user_id", "events", ["user_id"])


def downgrade() -> None:
    op.drop_table("events")
    op.drop_table("subscriptions")
    op.drop_table("recipes")
    op.drop_table("timelines")
    op.drop_table("chemical_records")
    op.drop_table("consultations")
    op.drop_table("customers")
    op.drop_table("profiles")
    sa.Enum(name="subscription_status").drop(op.get_bind(), checkfirst=True)
