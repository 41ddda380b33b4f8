"""Initial schema: cities, hospitals, blood banks, inventory, requests

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

from bloodnet.db.base import UUID


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "cities",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("state", sa.String(100), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_cities_id", "cities", ["id"])
    op.create_index("ix_cities_name", "cities", ["name"])

    op.create_table(
        "hospitals",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("is_government", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column(
            "city_id",
            UUID(),
            sa.ForeignKey("cities.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    op.create_index("ix_hospitals_id", "hospitals", ["id"])
    op.create_index("ix_hospitals_city_id", "hospitals", ["city_id"])

    op.create_table(
        "blood_banks",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("address", sa.String(300), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("emergency_phone", sa.String(20), nullable=True),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("is_24x7", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column(
            "city_id",
            UUID(),
            sa.ForeignKey("cities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "hospital_id",
            UUID(),
            sa.ForeignKey("hospitals.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index("ix_blood_banks_id", "blood_banks", ["id"])
    op.create_index("ix_blood_banks_name", "blood_banks", ["name"])
    op.create_index("ix_blood_banks_city_id", "blood_banks", ["city_id"])
    op.create_index("ix_blood_banks_hospital_id", "blood_banks", ["hospital_id"])
    op.create_index("idx_blood_bank_city_active", "blood_banks", ["city_id", "is_active"])

    op.create_table(
        "blood_inventory",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("blood_type", sa.String(20), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("cost_per_unit", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("is_free", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("expiry_date", sa.Date, nullable=True),
        sa.Column("availability_status", sa.String(20), nullable=False),
        sa.Column("last_updated", sa.DateTime, nullable=False),
        sa.Column("updated_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column(
            "facility_id",
            UUID(),
            sa.ForeignKey("blood_banks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.UniqueConstraint("facility_id", "blood_type", name="uq_inventory_facility_type"),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        sa.CheckConstraint("cost_per_unit >= 0", name="ck_inventory_cost_non_negative"),
    )
    op.create_index("ix_blood_inventory_id", "blood_inventory", ["id"])
    op.create_index("ix_blood_inventory_blood_type", "blood_inventory", ["blood_type"])
    op.create_index("ix_blood_inventory_expiry_date", "blood_inventory", ["expiry_date"])
    op.create_index(
        "ix_blood_inventory_availability_status", "blood_inventory", ["availability_status"]
    )
    op.create_index("ix_blood_inventory_facility_id", "blood_inventory", ["facility_id"])
    op.create_index("idx_inventory_type_quantity", "blood_inventory", ["blood_type", "quantity"])
    op.create_index(
        "idx_inventory_expiry_facility", "blood_inventory", ["expiry_date", "facility_id"]
    )

    op.create_table(
        "blood_requests",
        sa.Column("id", UUID(), primary_key=True, nullable=False),
        sa.Column("patient_name", sa.String(200), nullable=False),
        sa.Column("blood_type", sa.String(20), nullable=False),
        sa.Column("units_required", sa.Integer, nullable=False),
        sa.Column("urgency", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("required_by", sa.DateTime, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("requested_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column(
            "hospital_id",
            UUID(),
            sa.ForeignKey("hospitals.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    op.create_index("ix_blood_requests_id", "blood_requests", ["id"])
    op.create_index("ix_blood_requests_blood_type", "blood_requests", ["blood_type"])
    op.create_index("ix_blood_requests_status", "blood_requests", ["status"])
    op.create_index("ix_blood_requests_created_at", "blood_requests", ["created_at"])
    op.create_index("ix_blood_requests_hospital_id", "blood_requests", ["hospital_id"])
    op.create_index("idx_request_hospital_status", "blood_requests", ["hospital_id", "status"])


def downgrade():
    op.drop_table("blood_requests")
    op.drop_table("blood_inventory")
    op.drop_table("blood_banks")
    op.drop_table("hospitals")
    op.drop_table("cities")
