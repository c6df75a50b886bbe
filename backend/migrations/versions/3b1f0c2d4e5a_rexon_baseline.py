"""rexon baseline: users, customers, agents, warehouses, uploads, settings

Revision ID: 3b1f0c2d4e5a
Revises:
Create Date: 2026-10-16 10:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3b1f0c2d4e5a"
down_revision = None
branch_labels = None
depends_on = None


def _has_table(inspector, table_name: str) -> bool:
    try:
        return table_name in inspector.get_table_names()
    except Exception:
        return False


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not _has_table(inspector, "users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("first_name", sa.String(length=120), nullable=False),
            sa.Column("last_name", sa.String(length=120), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("phone", sa.String(length=32), nullable=True),
            sa.Column("password_hash", sa.String(length=255), nullable=True),
            sa.Column("auth_provider", sa.String(length=16), nullable=False, server_default="email"),
            sa.Column("google_id", sa.String(length=64), nullable=True),
            sa.Column("microsoft_id", sa.String(length=64), nullable=True),
            sa.Column("role", sa.String(length=32), nullable=False, server_default="user"),
            sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
            *_timestamps(),
            sa.Column("last_login", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id", name="pk_users"),
            sa.UniqueConstraint("email", name="uq_users_email"),
            sa.UniqueConstraint("google_id", name="uq_users_google_id"),
            sa.UniqueConstraint("microsoft_id", name="uq_users_microsoft_id"),
        )

    if not _has_table(inspector, "customers"):
        op.create_table(
            "customers",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("full_name", sa.String(length=160), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("mobile_number", sa.String(length=16), nullable=False),
            sa.Column("city", sa.String(length=120), nullable=False),
            sa.Column("complete_address", sa.Text(), nullable=False),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="Active"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id", name="pk_customers"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_customers_user_id_users", ondelete="CASCADE"),
            sa.UniqueConstraint("user_id", name="uq_customers_user_id"),
            sa.UniqueConstraint("email", name="uq_customers_email"),
            sa.UniqueConstraint("mobile_number", name="uq_customers_mobile_number"),
        )

    if not _has_table(inspector, "agents"):
        op.create_table(
            "agents",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("full_name", sa.String(length=160), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("mobile_number", sa.String(length=16), nullable=False),
            sa.Column("secondary_number", sa.String(length=16), nullable=True),
            sa.Column("whatsapp_number", sa.String(length=16), nullable=True),
            sa.Column("date_of_birth", sa.String(length=16), nullable=True),
            sa.Column("gender", sa.String(length=16), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("city", sa.String(length=120), nullable=True),
            sa.Column("state", sa.String(length=120), nullable=True),
            sa.Column("pincode", sa.String(length=6), nullable=True),
            sa.Column("agency_name", sa.String(length=200), nullable=True),
            sa.Column("license_number", sa.String(length=80), nullable=True),
            sa.Column("experience_years", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("properties_managed", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("specialization", sa.String(length=16), nullable=False, server_default="All"),
            sa.Column("rera_registration", sa.String(length=80), nullable=True),
            sa.Column("aadhar_number", sa.String(length=12), nullable=True),
            sa.Column("pan_number", sa.String(length=10), nullable=True),
            sa.Column("languages_spoken", sa.Text(), nullable=True),
            sa.Column("service_areas", sa.Text(), nullable=True),
            sa.Column("bio", sa.Text(), nullable=True),
            sa.Column("profile_photo_key", sa.String(length=512), nullable=True),
            sa.Column("profile_photo_url", sa.String(length=1024), nullable=True),
            sa.Column("kyc_document_key", sa.String(length=512), nullable=True),
            sa.Column("kyc_document_url", sa.String(length=1024), nullable=True),
            sa.Column("terms_accepted", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="Pending"),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id", name="pk_agents"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_agents_user_id_users", ondelete="CASCADE"),
            sa.UniqueConstraint("user_id", name="uq_agents_user_id"),
            sa.UniqueConstraint("email", name="uq_agents_email"),
            sa.UniqueConstraint("mobile_number", name="uq_agents_mobile_number"),
            sa.UniqueConstraint("license_number", name="uq_agents_license_number"),
        )
        op.create_index("ix_agents_status", "agents", ["status"], unique=False)

    if not _has_table(inspector, "agent_domains"):
        op.create_table(
            "agent_domains",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("agent_id", sa.Integer(), nullable=False),
            sa.Column("domain_name", sa.String(length=50), nullable=False),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id", name="pk_agent_domains"),
            sa.ForeignKeyConstraint(
                ["agent_id"], ["agents.id"], name="fk_agent_domains_agent_id_agents", ondelete="CASCADE"
            ),
            sa.UniqueConstraint("agent_id", name="uq_agent_domains_agent_id"),
            sa.UniqueConstraint("domain_name", name="uq_agent_domains_domain_name"),
        )

    if not _has_table(inspector, "warehouses"):
        op.create_table(
            "warehouses",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("property_name", sa.String(length=255), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("property_type", sa.String(length=64), nullable=False),
            sa.Column("space_available", sa.Float(), nullable=False, server_default="0"),
            sa.Column("space_unit", sa.String(length=16), nullable=False, server_default="sqft"),
            sa.Column("warehouse_size", sa.Float(), nullable=False, server_default="0"),
            sa.Column("available_from", sa.String(length=32), nullable=True),
            sa.Column("price_type", sa.String(length=16), nullable=False, server_default="Lease"),
            sa.Column("price_per_sqft", sa.Float(), nullable=False, server_default="0"),
            sa.Column("total_price", sa.Float(), nullable=True),
            sa.Column("address", sa.Text(), nullable=False),
            sa.Column("city", sa.String(length=120), nullable=False),
            sa.Column("state", sa.String(length=120), nullable=False),
            sa.Column("pincode", sa.String(length=6), nullable=True),
            sa.Column("road_connectivity", sa.String(length=32), nullable=True),
            sa.Column("contact_person_name", sa.String(length=160), nullable=True),
            sa.Column("contact_person_phone", sa.String(length=16), nullable=True),
            sa.Column("contact_person_email", sa.String(length=255), nullable=True),
            sa.Column("contact_person_designation", sa.String(length=120), nullable=True),
            sa.Column("latitude", sa.Float(), nullable=True),
            sa.Column("longitude", sa.Float(), nullable=True),
            sa.Column("amenities", sa.Text(), nullable=True),
            sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="Pending"),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id", name="pk_warehouses"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_warehouses_user_id_users", ondelete="CASCADE"),
        )
        op.create_index("ix_warehouses_user_id", "warehouses", ["user_id"], unique=False)
        op.create_index("ix_warehouses_property_type", "warehouses", ["property_type"], unique=False)
        op.create_index("ix_warehouses_city", "warehouses", ["city"], unique=False)
        op.create_index(
            "ix_warehouses_status_featured_created", "warehouses", ["status", "is_featured", "created_at"], unique=False
        )
        op.create_index("ix_warehouses_lat_lng", "warehouses", ["latitude", "longitude"], unique=False)

    if not _has_table(inspector, "uploads"):
        op.create_table(
            "uploads",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("warehouse_id", sa.Integer(), nullable=False),
            sa.Column("image_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("file_name", sa.String(length=255), nullable=False),
            sa.Column("file_type", sa.String(length=100), nullable=False),
            sa.Column("file_size", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("storage_key", sa.String(length=512), nullable=False),
            sa.Column("url", sa.String(length=1024), nullable=False),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="Active"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id", name="pk_uploads"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_uploads_user_id_users", ondelete="CASCADE"),
            sa.ForeignKeyConstraint(
                ["warehouse_id"], ["warehouses.id"], name="fk_uploads_warehouse_id_warehouses", ondelete="CASCADE"
            ),
        )
        op.create_index("ix_uploads_warehouse_status", "uploads", ["warehouse_id", "status"], unique=False)

    if not _has_table(inspector, "system_settings"):
        op.create_table(
            "system_settings",
            sa.Column("key", sa.String(length=64), nullable=False),
            sa.Column("value", sa.Text(), nullable=False),
            sa.Column("updated_by", sa.Integer(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("key", name="pk_system_settings"),
            sa.ForeignKeyConstraint(
                ["updated_by"], ["users.id"], name="fk_system_settings_updated_by_users", ondelete="SET NULL"
            ),
        )


def downgrade():
    op.drop_table("system_settings")
    op.drop_index("ix_uploads_warehouse_status", table_name="uploads")
    op.drop_table("uploads")
    for name in (
        "ix_warehouses_lat_lng",
        "ix_warehouses_status_featured_created",
        "ix_warehouses_city",
        "ix_warehouses_property_type",
        "ix_warehouses_user_id",
    ):
        op.drop_index(name, table_name="warehouses")
    op.drop_table("warehouses")
    op.drop_table("agent_domains")
    op.drop_index("ix_agents_status", table_name="agents")
    op.drop_table("agents")
    op.drop_table("customers")
    op.drop_table("users")
