from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.services.cities import lookup_cities

router = APIRouter(prefix="/api/cities", tags=["cities"])


@router.get("")
def get_cities(
    term: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    return lookup_cities(db, term)
