"""
Operating County Data Model

This module defines the SQLAlchemy ORM model for the durable form of a
profile's county coverage: one row per (profile, county FIPS code).

Model: OperatingCounty
- profile_id: owner of the coverage (opaque string from the auth layer)
- fips: 5-digit state+county FIPS code

Partial-coverage zone ids are not stored here; only the FIPS set is durable.

Author: CountyZones Project
License: AGPL-3.0
"""

from sqlalchemy import Column, Integer, String, UniqueConstraint
from countyzones.db.base import Base


class OperatingCounty(Base):
    """
    SQLAlchemy ORM model for a county a profile operates in.

    Attributes:
        id (int): Surrogate primary key
        profile_id (str): Profile identifier
        fips (str): 5-digit county FIPS code (e.g. "53033")
        position (int): Order in which the county was selected
    """

    __tablename__ = "operating_counties"
    __table_args__ = (
        UniqueConstraint("profile_id", "fips", name="uq_operating_county_profile_fips"),
    )

    id = Column(Integer, primary_key=True, index=True)
    profile_id = Column(String(64), nullable=False, index=True)
    fips = Column(String(5), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<OperatingCounty profile={self.profile_id} fips={self.fips}>"
