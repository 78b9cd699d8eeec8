"""Reusable data for backend test scenarios."""

from app.core.config import SESSION_COOKIE_NAME
from app.models.city import City
from app.models.customer import Customer

CSRF_TOKEN = "csrf-token-123"
ACTING_USER_ID = 5

CITIES = [
    {"id": 1, "name": "Colombo", "is_active": True},
    {"id": 2, "name": "Kandy", "is_active": True},
    {"id": 3, "name": "Galle", "is_active": False},
    {"id": 4, "name": "Colombo 07", "is_active": True},
    {"id": 5, "name": "Colpetty", "is_active": False},
]

CUSTOMER_42 = {
    "id": 42,
    "name": "Nimal Perera",
    "email": "nimal@example.com",
    "phone": "0771234567",
    "phone2": None,
    "status": "Active",
    "address_line1": "12 Galle Road",
    "address_line2": None,
    "city_id": 1,
}

CUSTOMER_43 = {
    "id": 43,
    "name": "Kamal Fernando",
    "email": "kamal@example.com",
    "phone": "0712345678",
    "phone2": "0112223334",
    "status": "Active",
    "address_line1": "7 Temple Street",
    "address_line2": "Peradeniya",
    "city_id": 2,
}

# Form exactly matching CUSTOMER_42 as the edit page would submit it.
UNCHANGED_FORM_42 = {
    "csrf_token": CSRF_TOKEN,
    "customer_id": "42",
    "name": "Nimal Perera",
    "email": "nimal@example.com",
    "phone": "0771234567",
    "phone2": "",
    "status": "Active",
    "address_line1": "12 Galle Road",
    "address_line2": "",
    "city_id": "1",
}


def seed_customer_records(db) -> None:
    for city in CITIES:
        db.add(City(**city))
    db.add(Customer(**CUSTOMER_42))
    db.add(Customer(**CUSTOMER_43))
    db.commit()


def form_for_42(**overrides):
    form = dict(UNCHANGED_FORM_42)
    form.update(overrides)
    return form


def login(client, user_id: int = ACTING_USER_ID, csrf_token: str = CSRF_TOKEN) -> None:
    from app.services.session import create_session

    client.headers["Cookie"] = f"{SESSION_COOKIE_NAME}={create_session(user_id, csrf_token=csrf_token)}"
