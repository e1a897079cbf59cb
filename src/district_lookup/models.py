"""SQLAlchemy models for the district/county geometry store."""

from geoalchemy2 import Geometry
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class District(Base):
    """Congressional district boundary.

    ``district_number`` is 0 for at-large states (one district covering the
    whole state).
    """

    __tablename__ = "districts"

    id = Column(Integer, primary_key=True)
    state_code = Column(String(2), nullable=False)
    district_number = Column(Integer, nullable=False)
    is_at_large = Column(Boolean, nullable=False, default=False)
    name = Column(String(100), nullable=True)
    source_file = Column(String(255), nullable=True)
    imported_at = Column(DateTime, nullable=False, default=func.now())

    # Polygon or MultiPolygon; the GIST index is declared in __table_args__
    geom = Column(Geometry("GEOMETRY", srid=4326, spatial_index=False), nullable=False)

    __table_args__ = (
        UniqueConstraint("state_code", "district_number", name="uq_district_state_number"),
        Index("idx_districts_geom", "geom", postgresql_using="gist"),
        Index("idx_districts_state", "state_code"),
    )

    def __repr__(self) -> str:
        """String representation of District model."""
        return f"<District(state='{self.state_code}', district={self.district_number})>"


class Member(Base):
    """House member currently representing a district."""

    __tablename__ = "members"

    id = Column(Integer, primary_key=True)
    bioguide_id = Column(String(10), nullable=True, unique=True)
    state_code = Column(String(2), nullable=False)
    district_number = Column(Integer, nullable=False)
    full_name = Column(String(200), nullable=False)
    party = Column(String(50), nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(500), nullable=True)
    contact_form_url = Column(String(500), nullable=True)
    photo_url = Column(String(500), nullable=True)
    office_room = Column(String(50), nullable=True)
    office_building = Column(String(100), nullable=True)

    __table_args__ = (Index("idx_members_state_district", "state_code", "district_number"),)

    def __repr__(self) -> str:
        """String representation of Member model."""
        return (
            f"<Member(name='{self.full_name}', "
            f"state='{self.state_code}', district={self.district_number})>"
        )


class County(Base):
    """County boundary (Census cartographic boundary file)."""

    __tablename__ = "counties"

    id = Column(Integer, primary_key=True)
    geoid = Column(String(5), nullable=False, unique=True)  # state FIPS + county FIPS
    statefp = Column(String(2), nullable=False)
    countyfp = Column(String(3), nullable=False)
    name = Column(String(100), nullable=False)
    state_abbr = Column(String(2), nullable=True)

    geom = Column(Geometry("GEOMETRY", srid=4326, spatial_index=False), nullable=False)

    __table_args__ = (Index("idx_counties_geom", "geom", postgresql_using="gist"),)

    def __repr__(self) -> str:
        """String representation of County model."""
        return f"<County(geoid='{self.geoid}', name='{self.name}')>"
