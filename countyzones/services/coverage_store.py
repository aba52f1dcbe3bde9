"""
@file coverage_store.py
@brief Persistence adapter for a profile's operating counties

@details
The editor core only needs "get the FIPS list" and "set the FIPS list" for a
profile (CoverageStore protocol). CoverageRepository implements it on the
operating_counties table. Writes normalise the list first (5-digit codes,
de-duplicated, first occurrence wins) and replace the stored set in one
transaction.

@author CountyZones Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0

@see models.operating_county for the table
@see geo.fips for normalisation rules
"""

import logging
from typing import Iterable, List, Protocol

from sqlalchemy.orm import Session

from countyzones.geo.fips import normalize_fips_list
from countyzones.models.operating_county import OperatingCounty

logger = logging.getLogger(__name__)


class CoverageStore(Protocol):
    def get_fips(self, profile_id: str) -> List[str]: ...

    def set_fips(self, profile_id: str, fips_list: Iterable[str]) -> List[str]: ...


class CoverageRepository:
    """
    @brief SQLAlchemy-backed CoverageStore
    """

    def __init__(self, db: Session):
        """
        @brief Initialize repository with database session

        @param db SQLAlchemy Session for coverage queries
        """
        self.db = db

    def get_fips(self, profile_id: str) -> List[str]:
        """
        @brief Persisted FIPS codes for a profile, in selection order

        @return Empty list for unknown profiles
        """
        rows = (
            self.db.query(OperatingCounty.fips)
            .filter(OperatingCounty.profile_id == profile_id)
            .order_by(OperatingCounty.position, OperatingCounty.id)
            .all()
        )
        return normalize_fips_list(row.fips for row in rows)

    def set_fips(self, profile_id: str, fips_list: Iterable[str]) -> List[str]:
        """
        @brief Replace a profile's FIPS set atomically

        @details
        Deletes the old rows and inserts the normalised list inside one
        transaction; on failure the transaction is rolled back and the error
        propagates (the HTTP layer maps it to 503).

        @return The normalised list that was stored
        """
        codes = normalize_fips_list(fips_list)
        try:
            self.db.query(OperatingCounty).filter(
                OperatingCounty.profile_id == profile_id
            ).delete(synchronize_session=False)
            self.db.add_all(
                OperatingCounty(profile_id=profile_id, fips=code, position=i)
                for i, code in enumerate(codes)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"Failed to store coverage for profile {profile_id}")
            raise
        logger.info(f"Stored {len(codes)} operating counties for profile {profile_id}")
        return codes
