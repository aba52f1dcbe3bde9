"""
@file database.py
@brief Engine, session factory and request-scoped sessions for coverage storage

@details
Only the operating_counties table lives here. The engine is created lazily
by SQLAlchemy on first use, so importing this module never touches the
network; init_db() and get_db() are the first places a connection is made.

@author CountyZones Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0

@see models.operating_county
@see services.coverage_store
"""

import logging

from fastapi import HTTPException
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from countyzones.core.config import DATABASE_URL
from countyzones.db.base import Base

logger = logging.getLogger(__name__)

## @brief Shared engine; pre-ping drops connections killed by a DB restart
engine = create_engine(DATABASE_URL, pool_pre_ping=True)

## @brief Sessions commit explicitly (see services.coverage_store)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db() -> bool:
    """
    @brief Create the coverage tables; False when the database is unreachable
    """
    from countyzones.models import operating_county  # noqa: F401  registers the table

    try:
        Base.metadata.create_all(bind=engine)
    except OperationalError as e:
        logger.error(f"Coverage tables not created, database unreachable: {e}")
        return False
    return True


def get_db():
    """
    @brief FastAPI dependency yielding one session per request

    @throws HTTPException 503 when the connection check fails
    """
    session = SessionLocal()
    try:
        session.execute(text("SELECT 1"))
    except OperationalError as e:
        session.close()
        logger.warning(f"Coverage session refused: {e}")
        raise HTTPException(status_code=503, detail="Coverage storage is unavailable")
    try:
        yield session
    finally:
        session.close()
