from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import require_session_user
from app.models.user_log import UserLog

router = APIRouter(prefix="/api/audit", tags=["audit"])


class UserLogRead(BaseModel):
    id: int
    user_id: int
    action_type: str
    target_id: Optional[int]
    details: Optional[str]
    created_at: Optional[datetime]


@router.get("", response_model=List[UserLogRead])
def list_user_logs(
    action_type: Optional[str] = None,
    target_id: Optional[int] = None,
    user_id: Optional[int] = None,
    limit: int = Query(200, ge=1, le=500),
    _: int = Depends(require_session_user),
    db: Session = Depends(get_db),
):
    query = db.query(UserLog)

    if action_type:
        query = query.filter(UserLog.action_type == action_type)
    if target_id is not None:
        query = query.filter(UserLog.target_id == target_id)
    if user_id is not None:
        query = query.filter(UserLog.user_id == user_id)

    rows = query.order_by(UserLog.created_at.desc(), UserLog.id.desc()).limit(limit).all()

    results: List[Dict[str, Any]] = []
    for entry in rows:
        results.append(
            {
                "id": entry.id,
                "user_id": entry.user_id,
                "action_type": entry.action_type,
                "target_id": entry.target_id,
                "details": entry.details,
                "created_at": entry.created_at,
            }
        )
    return results
