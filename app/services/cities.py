from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import CITY_LOOKUP_LIMIT
from app.models.city import City

logger = logging.getLogger(__name__)

CONNECTION_FAILED_ERROR = {"error": "Database connection failed."}


def search_active_cities(db: Session, term: str) -> list[dict[str, Any]]:
    # autoescape keeps "%" and "_" in the term literal; the term is always bound.
    rows = (
        db.query(City.id, City.name)
        .filter(City.is_active.is_(True), City.name.contains(term, autoescape=True))
        .order_by(City.name.asc())
        .limit(CITY_LOOKUP_LIMIT)
        .all()
    )
    return [{"id": row.id, "name": row.name} for row in rows]


def lookup_cities(db: Session, term: str | None) -> list[dict[str, Any]] | dict[str, str]:
    """Autocomplete lookup that never fails the caller.

    A query error degrades to an empty list; only an unreachable store is
    reported, as ``{"error": ...}``.
    """
    if not term:
        return []

    try:
        db.connection()
    except SQLAlchemyError:
        logger.exception("Database connection failed during city lookup")
        return dict(CONNECTION_FAILED_ERROR)

    try:
        return search_active_cities(db, term)
    except SQLAlchemyError:
        logger.exception("City query failed")
        db.rollback()
        return []
