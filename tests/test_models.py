"""
Database Model Tests

Tests for the OperatingCounty ORM model and its constraints.

Test Classes:
- TestOperatingCountyModel: field values and representation
- TestModelConstraints: uniqueness per (profile, county)

Author: CountyZones Project
License: AGPL-3.0
"""

import pytest
from sqlalchemy.exc import IntegrityError

from countyzones.models.operating_county import OperatingCounty


class TestOperatingCountyModel:
    """Test OperatingCounty ORM model."""

    def test_creation(self):
        row = OperatingCounty(profile_id="profile-1", fips="12057", position=0)
        assert row.profile_id == "profile-1"
        assert row.fips == "12057"
        assert row.position == 0

    def test_repr(self):
        row = OperatingCounty(profile_id="profile-1", fips="12057")
        assert repr(row) == "<OperatingCounty profile=profile-1 fips=12057>"

    def test_position_defaults_on_insert(self, db_session):
        db_session.add(OperatingCounty(profile_id="profile-1", fips="12057"))
        db_session.commit()
        stored = db_session.query(OperatingCounty).one()
        assert stored.position == 0
        assert stored.id is not None

    def test_table_name(self):
        assert OperatingCounty.__tablename__ == "operating_counties"


class TestModelConstraints:
    """Test database constraints."""

    def test_same_county_twice_for_profile_rejected(self, db_session):
        db_session.add(OperatingCounty(profile_id="profile-1", fips="12057", position=0))
        db_session.add(OperatingCounty(profile_id="profile-1", fips="12057", position=1))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_same_county_for_different_profiles_allowed(self, db_session):
        db_session.add(OperatingCounty(profile_id="profile-1", fips="12057"))
        db_session.add(OperatingCounty(profile_id="profile-2", fips="12057"))
        db_session.commit()
        assert db_session.query(OperatingCounty).count() == 2

    def test_fips_required(self, db_session):
        db_session.add(OperatingCounty(profile_id="profile-1", fips=None))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()
