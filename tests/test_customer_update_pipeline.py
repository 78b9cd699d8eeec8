from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from app.services.customer_update import (
    CustomerForm,
    CustomerUpdateRejected,
    CustomerUpdateResponse,
    UpdateRequestContext,
    apply_customer_update,
    check_preconditions,
    coerce_int,
    detect_changes,
    is_valid_phone,
    stored_values,
    update_customer,
)
from tests.fixtures_data import CSRF_TOKEN, CUSTOMER_42, form_for_42


def _context(**overrides):
    values = {
        "authenticated": True,
        "user_id": 5,
        "method": "POST",
        "session_csrf_token": CSRF_TOKEN,
        "submitted_csrf_token": CSRF_TOKEN,
    }
    values.update(overrides)
    return UpdateRequestContext(**values)


class FakeUpdateDb:
    def __init__(self, rowcount=1, fail_execute=False):
        self.rowcount = rowcount
        self.fail_execute = fail_execute
        self.committed = False
        self.rolled_back = False

    def execute(self, _statement):
        if self.fail_execute:
            raise OperationalError("UPDATE customers", {}, Exception("disk I/O error"))
        return SimpleNamespace(rowcount=self.rowcount)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True


class FakeUnreachableDb:
    def connection(self):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("42", 42),
        (" 7 ", 7),
        ("12abc", 12),
        ("abc", 0),
        ("", 0),
        (None, 0),
        ("-3", -3),
        (9, 9),
        ("99999999999999999999", 2**31 - 1),
        ("-99999999999999999999", -(2**31)),
        (10**30, 2**31 - 1),
    ],
)
def test_coerce_int_is_lenient(raw, expected):
    assert coerce_int(raw) == expected


@pytest.mark.parametrize("phone", ["0771234567", "94771234567", "+94771234567"])
def test_sri_lankan_phone_shapes_are_accepted(phone):
    assert is_valid_phone(phone) is True


@pytest.mark.parametrize("phone", ["771234567", "07712345678", "+9477123456", "0771234567\n", "+1771234567"])
def test_malformed_phones_are_rejected(phone):
    assert is_valid_phone(phone) is False


def test_form_normalizes_optional_fields_and_status():
    form = CustomerForm.model_validate(
        {"customer_id": "42", "name": " A ", "email": " ", "phone2": "", "status": "bogus", "city_id": "2x"}
    )

    assert form.name == "A"
    assert form.email is None
    assert form.phone2 is None
    assert form.address_line2 is None
    assert form.status == "Active"
    assert form.city_id == 2


def test_detect_changes_treats_stored_empty_string_as_absent():
    stored = stored_values(SimpleNamespace(**{**CUSTOMER_42, "phone2": "", "address_line2": ""}))
    form = CustomerForm.model_validate(form_for_42())

    assert detect_changes(form, stored) == []


def test_detect_changes_formats_transitions():
    stored = stored_values(SimpleNamespace(**CUSTOMER_42))
    form = CustomerForm.model_validate(form_for_42(phone2="0112223335", address_line2="Dehiwala"))

    assert detect_changes(form, stored) == [
        "Secondary Phone: 'NULL' → '0112223335'",
        "Address Line 2: 'NULL' → 'Dehiwala'",
    ]


@pytest.mark.parametrize(
    ("overrides", "status_code"),
    [
        ({"authenticated": False}, 401),
        ({"user_id": None}, 401),
        ({"method": "PUT"}, 405),
        ({"submitted_csrf_token": None}, 403),
        ({"session_csrf_token": None}, 403),
        ({"submitted_csrf_token": "other"}, 403),
    ],
)
def test_preconditions_reject_in_order(overrides, status_code):
    with pytest.raises(CustomerUpdateRejected) as exc:
        check_preconditions(_context(**overrides))

    assert exc.value.status_code == status_code


def test_unauthenticated_rejection_carries_redirect_hint():
    with pytest.raises(CustomerUpdateRejected) as exc:
        check_preconditions(_context(authenticated=False, method="GET"))

    body = exc.value.to_body()
    assert exc.value.status_code == 401
    assert body["success"] is False
    assert "redirect" in body


def test_zero_affected_rows_commits_and_reports_no_changes():
    db = FakeUpdateDb(rowcount=0)
    form = CustomerForm.model_validate(form_for_42(name="Nimal Silva"))

    result = apply_customer_update(db, user_id=5, form=form, changes=["Name: 'a' → 'b'"])

    assert db.committed is True
    assert result.status_code == 200
    assert result.body.success is True
    assert result.body.message == "No changes were made to the customer."


def test_update_failure_rolls_back_with_generic_message():
    db = FakeUpdateDb(fail_execute=True)
    form = CustomerForm.model_validate(form_for_42(name="Nimal Silva"))

    result = apply_customer_update(db, user_id=5, form=form, changes=["Name: 'a' → 'b'"])

    assert db.rolled_back is True
    assert db.committed is False
    assert result.status_code == 500
    assert result.body.success is False
    assert result.body.message == "Failed to update customer. Please try again."
    assert "disk" not in result.body.message


def test_unreachable_store_returns_500():
    result = update_customer(FakeUnreachableDb(), _context(), form_for_42())

    assert result.status_code == 500
    assert result.body.message == "Database connection failed. Please try again later."


def test_success_message_escapes_html_in_name():
    db = FakeUpdateDb(rowcount=1)
    form = CustomerForm.model_validate(form_for_42(name="<b>Nimal</b>"))

    with pytest.MonkeyPatch.context() as mp:
        mp.setattr("app.services.customer_update.log_user_action", lambda *args, **kwargs: True)
        result = apply_customer_update(db, user_id=5, form=form, changes=["Name"])

    assert result.body.message == 'Customer "&lt;b&gt;Nimal&lt;/b&gt;" has been successfully updated.'
    assert result.body.data.name == "<b>Nimal</b>"
    assert db.committed is True


def test_form_accepts_json_typed_values():
    form = CustomerForm.model_validate(
        {"customer_id": 42, "name": None, "phone": 771234567, "status": None, "city_id": "99999999999999999999"}
    )

    assert form.customer_id == 42
    assert form.name == ""
    assert form.phone == "771234567"
    assert form.status == "Active"
    assert form.city_id == 2**31 - 1


def test_validation_failure_body_omits_unset_keys():
    body = CustomerUpdateResponse(
        success=False,
        message="Please correct the errors and try again.",
        errors={},
    ).to_content()

    assert body == {"success": False, "message": "Please correct the errors and try again.", "errors": {}}


def test_no_changes_body_keeps_null_optionals_in_data():
    form = CustomerForm.model_validate(form_for_42())
    body = CustomerUpdateResponse(
        success=True,
        message="No changes were made to the customer.",
        customer_id=42,
        data=form.response_data(),
    ).to_content()

    assert set(body) == {"success", "message", "customer_id", "data"}
    assert body["data"] == {
        "id": 42,
        "name": "Nimal Perera",
        "email": "nimal@example.com",
        "phone": "0771234567",
        "phone2": None,
        "status": "Active",
    }
