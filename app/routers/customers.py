from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import get_submitted_fields, get_update_context
from app.services.customer_update import (
    CustomerUpdateRejected,
    CustomerUpdateResponse,
    UpdateRequestContext,
    update_customer,
)

router = APIRouter(prefix="/api/customers", tags=["customers"])

# Every verb is routed here so a wrong method is answered after the session check.
_ACCEPTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


@router.api_route("/update", methods=_ACCEPTED_METHODS, response_model=CustomerUpdateResponse)
def update_customer_record(
    context: UpdateRequestContext = Depends(get_update_context),
    fields: Dict[str, Any] = Depends(get_submitted_fields),
    db: Session = Depends(get_db),
):
    try:
        result = update_customer(db, context, fields)
    except CustomerUpdateRejected as exc:
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())
    return JSONResponse(status_code=result.status_code, content=result.content())
