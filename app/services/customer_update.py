from __future__ import annotations

import html
import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, field_validator
from sqlalchemy import func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import CUSTOMER_UPDATE_METHOD, LOGIN_REDIRECT_URL
from app.models.city import City
from app.models.customer import CUSTOMER_STATUSES, Customer
from app.services.audit import CUSTOMER_UPDATE_ACTION, log_user_action
from app.services.session import csrf_tokens_match

logger = logging.getLogger(__name__)

# Sri Lankan numbers: 0, 94 or +94 followed by nine digits.
PHONE_PATTERN = re.compile(r"(0|94|\+94)[0-9]{9}")
_LEADING_INT = re.compile(r"[+-]?\d+")

# Range of the INTEGER id columns; parsed ids are clamped into it.
ID_MAX = 2**31 - 1
ID_MIN = -(2**31)

DEFAULT_STATUS = "Active"
NO_CHANGES_MESSAGE = "No changes were made to the customer."
VALIDATION_FAILED_MESSAGE = "Please correct the errors and try again."
PHONE_FORMAT_HINT = "Please use 10 digits starting with 0, 94 or +94."

# (attribute, label used in the audit trail)
TRACKED_FIELDS = (
    ("name", "Name"),
    ("email", "Email"),
    ("phone", "Phone"),
    ("phone2", "Secondary Phone"),
    ("status", "Status"),
    ("address_line1", "Address Line 1"),
    ("address_line2", "Address Line 2"),
    ("city_id", "City ID"),
)


def coerce_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        parsed = value
    else:
        match = _LEADING_INT.match(str(value or "").strip())
        parsed = int(match.group(0)) if match else 0
    return max(ID_MIN, min(parsed, ID_MAX))


class CustomerData(BaseModel):
    id: int
    name: str
    email: Optional[str]
    phone: str
    phone2: Optional[str]
    status: str


class CustomerUpdateResponse(BaseModel):
    success: bool
    message: str
    errors: Optional[Dict[str, str]] = None
    customer_id: Optional[int] = None
    data: Optional[CustomerData] = None
    redirect: Optional[str] = None

    def to_content(self) -> Dict[str, Any]:
        # Only the keys that were given; None inside data stays as null.
        return self.model_dump(exclude_unset=True)


class CustomerUpdateRejected(Exception):
    """A terminal precondition failure with its HTTP status."""

    def __init__(self, status_code: int, message: str, redirect: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.redirect = redirect

    def to_body(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {"success": False, "message": self.message}
        if self.redirect:
            fields["redirect"] = self.redirect
        return CustomerUpdateResponse(**fields).to_content()


class UpdateRequestContext(BaseModel):
    authenticated: bool
    user_id: Optional[int] = None
    method: str
    session_csrf_token: Optional[str] = None
    submitted_csrf_token: Optional[str] = None


class CustomerUpdateResult(BaseModel):
    status_code: int
    body: CustomerUpdateResponse

    def content(self) -> Dict[str, Any]:
        return self.body.to_content()


class CustomerForm(BaseModel):
    """Submitted customer fields, normalized once at the boundary."""

    customer_id: int = 0
    name: str = ""
    email: Optional[str] = None
    phone: str = ""
    phone2: Optional[str] = None
    status: str = DEFAULT_STATUS
    address_line1: str = ""
    address_line2: Optional[str] = None
    city_id: int = 0

    @field_validator("customer_id", "city_id", mode="before")
    @classmethod
    def parse_leading_int(cls, value: Any) -> int:
        return coerce_int(value)

    @field_validator("name", "phone", "address_line1", mode="before")
    @classmethod
    def trim_required(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("email", "phone2", "address_line2", mode="before")
    @classmethod
    def trim_optional(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        candidate = str(value).strip()
        return candidate or None

    @field_validator("status", mode="before")
    @classmethod
    def fallback_status(cls, value: Any) -> str:
        candidate = "" if value is None else str(value).strip()
        if candidate not in CUSTOMER_STATUSES:
            return DEFAULT_STATUS
        return candidate

    def response_data(self) -> CustomerData:
        return CustomerData(
            id=self.customer_id,
            name=self.name,
            email=self.email,
            phone=self.phone,
            phone2=self.phone2,
            status=self.status,
        )


def stored_values(customer: Customer) -> Dict[str, Any]:
    """Stored record in the same shape as a normalized form."""
    return {
        "name": customer.name,
        "email": customer.email or None,
        "phone": customer.phone,
        "phone2": customer.phone2 or None,
        "status": customer.status,
        "address_line1": customer.address_line1,
        "address_line2": customer.address_line2 or None,
        "city_id": int(customer.city_id) if customer.city_id is not None else None,
    }


def is_valid_phone(value: str) -> bool:
    return PHONE_PATTERN.fullmatch(value) is not None


def check_preconditions(context: UpdateRequestContext) -> None:
    if not context.authenticated:
        raise CustomerUpdateRejected(401, "Unauthorized access. Please login again.", LOGIN_REDIRECT_URL)
    if not context.user_id:
        raise CustomerUpdateRejected(401, "User session not found. Please login again.", LOGIN_REDIRECT_URL)
    if context.method.upper() != CUSTOMER_UPDATE_METHOD:
        raise CustomerUpdateRejected(405, "Invalid request method.")
    if not csrf_tokens_match(context.submitted_csrf_token, context.session_csrf_token):
        raise CustomerUpdateRejected(403, "Invalid security token. Please refresh the page and try again.")


def _other_customer_exists(db: Session, customer_id: int, *criteria) -> bool:
    row = db.query(Customer.id).filter(*criteria, Customer.id != customer_id).first()
    return row is not None


def validate_customer_form(db: Session, form: CustomerForm, stored: Mapping[str, Any]) -> Dict[str, str]:
    errors: Dict[str, str] = {}

    if not form.name:
        errors["name"] = "Customer name is required"

    if not form.phone:
        errors["phone"] = "Phone number is required"
    elif not is_valid_phone(form.phone):
        errors["phone"] = f"Invalid primary phone number format. {PHONE_FORMAT_HINT}"

    if form.phone2 is not None and not is_valid_phone(form.phone2):
        errors["phone2"] = f"Invalid secondary phone number format. {PHONE_FORMAT_HINT}"

    if not form.address_line1:
        errors["address_line1"] = "Address Line 1 is required"

    if form.city_id <= 0:
        errors["city_id"] = "City selection is required"

    if form.email is not None and form.email != stored["email"]:
        if _other_customer_exists(db, form.customer_id, Customer.email == form.email):
            errors["email"] = "Email address already exists. Please use a different email."

    if form.phone and form.phone != stored["phone"]:
        duplicate = _other_customer_exists(db, form.customer_id, Customer.phone == form.phone)
        if not duplicate:
            duplicate = _other_customer_exists(db, form.customer_id, Customer.phone2 == form.phone)
        if duplicate:
            errors["phone"] = "Primary phone number already exists. Please use a different phone number."

    if form.phone2 is not None and form.phone2 != stored["phone2"]:
        if _other_customer_exists(
            db,
            form.customer_id,
            or_(Customer.phone == form.phone2, Customer.phone2 == form.phone2),
        ):
            errors["phone2"] = "Secondary phone number already exists. Please use a different phone number."

    if form.phone and form.phone2 is not None and form.phone == form.phone2:
        errors["phone2"] = "Primary and secondary phone numbers cannot be the same."

    if form.city_id > 0:
        city = db.query(City.id).filter(City.id == form.city_id, City.is_active.is_(True)).first()
        if city is None:
            errors["city_id"] = "Selected city is not valid"

    return errors


def _display(value: Any) -> str:
    return "NULL" if value is None else str(value)


def detect_changes(form: CustomerForm, stored: Mapping[str, Any]) -> List[str]:
    changes = []
    for attribute, label in TRACKED_FIELDS:
        old = stored[attribute]
        new = getattr(form, attribute)
        if old != new:
            changes.append(f"{label}: '{_display(old)}' → '{_display(new)}'")
    return changes


def _no_changes(form: CustomerForm) -> CustomerUpdateResult:
    return CustomerUpdateResult(
        status_code=200,
        body=CustomerUpdateResponse(
            success=True,
            message=NO_CHANGES_MESSAGE,
            customer_id=form.customer_id,
            data=form.response_data(),
        ),
    )


def _failure(status_code: int, message: str) -> CustomerUpdateResult:
    return CustomerUpdateResult(
        status_code=status_code,
        body=CustomerUpdateResponse(success=False, message=message, errors={}),
    )


def apply_customer_update(
    db: Session,
    *,
    user_id: int,
    form: CustomerForm,
    changes: List[str],
) -> CustomerUpdateResult:
    statement = (
        update(Customer)
        .where(Customer.id == form.customer_id)
        .values(
            name=form.name,
            email=form.email,
            phone=form.phone,
            phone2=form.phone2,
            status=form.status,
            address_line1=form.address_line1,
            address_line2=form.address_line2,
            city_id=form.city_id,
            updated_at=func.now(),
        )
        .execution_options(synchronize_session=False)
    )
    try:
        result = db.execute(statement)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to update customer", extra={"customer_id": form.customer_id})
        return _failure(500, "Failed to update customer. Please try again.")

    if not result.rowcount:
        # Row matched nothing new between the read and the write.
        db.commit()
        return _no_changes(form)

    details = "Customer updated - " + ", ".join(changes)
    if not log_user_action(
        db,
        user_id=user_id,
        action_type=CUSTOMER_UPDATE_ACTION,
        target_id=form.customer_id,
        details=details,
    ):
        logger.error(
            "Failed to log customer update action for customer ID: %s",
            form.customer_id,
            extra={"customer_id": form.customer_id},
        )

    db.commit()
    logger.info(
        "Customer updated successfully - ID: %s, Name: %s, Updated by User ID: %s",
        form.customer_id,
        form.name,
        user_id,
        extra={"customer_id": form.customer_id},
    )
    return CustomerUpdateResult(
        status_code=200,
        body=CustomerUpdateResponse(
            success=True,
            message=f'Customer "{html.escape(form.name)}" has been successfully updated.',
            customer_id=form.customer_id,
            data=form.response_data(),
        ),
    )


def update_customer(
    db: Session,
    context: UpdateRequestContext,
    fields: Mapping[str, Any],
) -> CustomerUpdateResult:
    """Validate a submitted customer form and persist it when it differs.

    Raises ``CustomerUpdateRejected`` for the terminal 401/405/403/400/404
    outcomes. Validation failures, no-op submissions and store failures are
    returned as results. There is no version check on the row: two editors
    saving the same customer concurrently end with the last write.
    """
    check_preconditions(context)

    form = CustomerForm.model_validate(dict(fields))
    if form.customer_id <= 0:
        raise CustomerUpdateRejected(400, "Invalid customer ID.")

    try:
        db.connection()
    except SQLAlchemyError:
        logger.exception("Database connection failed")
        return _failure(500, "Database connection failed. Please try again later.")

    try:
        customer = db.query(Customer).filter(Customer.id == form.customer_id).first()
        if customer is None:
            raise CustomerUpdateRejected(404, "Customer not found.")
        stored = stored_values(customer)

        errors = validate_customer_form(db, form, stored)
        if errors:
            return CustomerUpdateResult(
                status_code=200,
                body=CustomerUpdateResponse(success=False, message=VALIDATION_FAILED_MESSAGE, errors=errors),
            )

        changes = detect_changes(form, stored)
        if not changes:
            return _no_changes(form)

        return apply_customer_update(db, user_id=int(context.user_id), form=form, changes=changes)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error updating customer", extra={"customer_id": form.customer_id})
        return _failure(500, "An unexpected error occurred. Please try again.")
