"""Create districts, members and counties tables

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import geoalchemy2
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _geometry_column() -> sa.Column:
    return sa.Column(
        "geom",
        geoalchemy2.types.Geometry(
            geometry_type="GEOMETRY",
            srid=4326,
            spatial_index=False,
            from_text="ST_GeomFromEWKT",
            name="geometry",
        ),
        nullable=False,
    )


def upgrade() -> None:
    """Create the district, member and county tables with GIST indexes."""
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    op.create_table(
        "districts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("state_code", sa.String(length=2), nullable=False),
        sa.Column("district_number", sa.Integer(), nullable=False),
        sa.Column("is_at_large", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("source_file", sa.String(length=255), nullable=True),
        sa.Column("imported_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        _geometry_column(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("state_code", "district_number", name="uq_district_state_number"),
    )
    op.create_index("idx_districts_state", "districts", ["state_code"], unique=False)
    op.create_index(
        "idx_districts_geom", "districts", ["geom"], unique=False, postgresql_using="gist"
    )

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bioguide_id", sa.String(length=10), nullable=True),
        sa.Column("state_code", sa.String(length=2), nullable=False),
        sa.Column("district_number", sa.Integer(), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("party", sa.String(length=50), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("website", sa.String(length=500), nullable=True),
        sa.Column("contact_form_url", sa.String(length=500), nullable=True),
        sa.Column("photo_url", sa.String(length=500), nullable=True),
        sa.Column("office_room", sa.String(length=50), nullable=True),
        sa.Column("office_building", sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("bioguide_id"),
    )
    op.create_index(
        "idx_members_state_district", "members", ["state_code", "district_number"], unique=False
    )

    op.create_table(
        "counties",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("geoid", sa.String(length=5), nullable=False),
        sa.Column("statefp", sa.String(length=2), nullable=False),
        sa.Column("countyfp", sa.String(length=3), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("state_abbr", sa.String(length=2), nullable=True),
        _geometry_column(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("geoid"),
    )
    op.create_index(
        "idx_counties_geom", "counties", ["geom"], unique=False, postgresql_using="gist"
    )


def downgrade() -> None:
    """Drop the district, member and county tables."""
    op.drop_index("idx_counties_geom", table_name="counties", postgresql_using="gist")
    op.drop_table("counties")
    op.drop_index("idx_members_state_district", table_name="members")
    op.drop_table("members")
    op.drop_index("idx_districts_geom", table_name="districts", postgresql_using="gist")
    op.drop_index("idx_districts_state", table_name="districts")
    op.drop_table("districts")
