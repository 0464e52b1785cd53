import pytest

from conftest import ALICE, BOB, KID, PASSWORD
from studio_pos.container import assemble
from studio_pos.main import create_app
from studio_pos.owners.model import OwnerRef


@pytest.fixture
def app(monkeypatch, clock, users, owners, card_types, cards, check_ins, gateway):
    monkeypatch.setenv("APP_ENV", "testing")
    container = assemble(
        clock=clock,
        users_repo=users,
        owners_repo=owners,
        card_types_repo=card_types,
        cards_repo=cards,
        check_ins_repo=check_ins,
        gateway=gateway,
    )
    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, email):
    resp = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200
    return resp.get_json()


def test_login_and_me(client):
    assert login(client, "desk@studio.local")["role"] == "staff"
    assert client.get("/api/auth/me").get_json()["user_id"] == 101
    client.post("/api/auth/logout")
    assert client.get("/api/auth/me").status_code == 401


def test_bad_login_is_401(client):
    resp = client.post("/api/auth/login", json={"email": "desk@studio.local", "password": "nope"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Invalid email or password"


def test_card_types_are_public(client):
    names = [t["name"] for t in client.get("/api/card-types").get_json()["card_types"]]
    assert "4 Classes Card" in names
    assert "Admin Pass" not in names


def test_check_in_by_code(client, give_card):
    give_card(ALICE, total=4)
    login(client, "desk@studio.local")

    resp = client.post("/api/check-ins", json={"identifier": "ab2c"})

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["allowed"] is True
    assert body["classes_remaining"] == 3
    assert body["check_in"]["checked_in_on"] == "2024-03-15"


def test_denied_check_in_is_a_normal_response(client):
    login(client, "desk@studio.local")
    resp = client.post("/api/check-ins", json={"user_id": BOB.owner_id})
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "no active card"


def test_check_in_needs_exactly_one_owner(client):
    login(client, "desk@studio.local")
    resp = client.post("/api/check-ins", json={"user_id": 1, "family_member_id": 10})
    assert resp.status_code == 400


def test_customer_cannot_check_in_or_read_analytics(client):
    login(client, "alice@example.com")
    assert client.post("/api/check-ins", json={"user_id": 1}).status_code == 403
    assert client.get("/api/analytics/dashboard").status_code == 403


def test_storage_failure_maps_to_409(client, give_card, check_ins):
    give_card(BOB)
    check_ins.fail_next = 2
    login(client, "desk@studio.local")
    resp = client.post("/api/check-ins", json={"user_id": BOB.owner_id})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "check-in failed, please retry"


def test_admin_pass_endpoint(client):
    login(client, "admin@studio.local")
    resp = client.post(
        "/api/admin/passes",
        json={"user_id": BOB.owner_id, "class_count": 6, "expiration_date": "2024-05-01", "amount_paid": "60"},
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["classes_remaining"] == 6
    assert body["issued_via"] == "admin_cash"

    same_day = client.post(
        "/api/admin/passes",
        json={"user_id": BOB.owner_id, "class_count": 6, "expiration_date": "2024-03-15"},
    )
    assert same_day.status_code == 400


def test_checkout_flow(client, gateway):
    login(client, "alice@example.com")
    quote = client.post("/api/checkout/quote", json={"card_type_id": 2, "tip_cents": 500}).get_json()
    assert quote["total_cents"] == 10629

    resp = client.post("/api/checkout", json={"user_id": 1, "card_type_id": 2, "source_id": "cnon:ok", "tip_cents": 500})
    assert resp.status_code == 201
    assert resp.get_json()["amount_paid"] == "101.29"

    cards = client.get("/api/owners/user/1/cards").get_json()
    assert cards["active_card"]["card_name"] == "4 Classes Card"


def test_declined_checkout_is_402(client, gateway):
    gateway.decline_with = "Card declined."
    login(client, "alice@example.com")
    resp = client.post("/api/checkout", json={"user_id": 1, "card_type_id": 2, "source_id": "cnon:bad"})
    assert resp.status_code == 402


def test_owner_search_and_qr(client):
    login(client, "desk@studio.local")
    found = client.get("/api/owners/search?q=bob").get_json()["owners"]
    assert [o["owner_id"] for o in found] == [2]

    resp = client.get("/api/owners/user/2/qr.png")
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"


def test_birthday_eligible_endpoint(client):
    login(client, "desk@studio.local")
    assert client.get("/api/owners/user/1/birthday-eligible").get_json() == {"eligible": True}
    assert client.get("/api/owners/bogus/1/birthday-eligible").status_code == 400


def test_analytics_for_admin(client, give_card):
    give_card(BOB)
    login(client, "admin@studio.local")
    assert client.get("/api/analytics/dashboard").get_json()["active_cards"] == 1
    assert len(client.get("/api/analytics/attendance?days=7").get_json()["days"]) == 7
    assert client.get("/api/analytics/revenue").get_json()["card_types"][0]["revenue"] == "95.00"
    assert len(client.get("/api/analytics/monthly?months=2").get_json()["months"]) == 2


def test_admin_pass_for_unknown_customer_is_400(client, cards):
    login(client, "admin@studio.local")
    resp = client.post("/api/admin/passes", json={"user_id": 404, "class_count": 5, "expiration_date": "2024-06-01"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Customer not found"
    assert cards.by_id == {}


def test_deactivated_staff_session_stops_working(app, give_card):
    give_card(BOB, total=4)
    desk = app.test_client()
    boss = app.test_client()
    login(desk, "desk@studio.local")
    login(boss, "admin@studio.local")

    resp = boss.post("/api/admin/users/101/active", json={"is_active": False})
    assert resp.status_code == 200
    assert resp.get_json() == {"user_id": 101, "is_active": False}

    resp = desk.post("/api/check-ins", json={"user_id": BOB.owner_id})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Session is no longer valid"
    assert desk.get("/api/auth/me").get_json()["error"] == "Please log in to continue"


def test_staff_listing_and_activation_are_admin_only(client):
    login(client, "admin@studio.local")
    staff = client.get("/api/admin/staff").get_json()["staff"]
    assert sorted(s["user_id"] for s in staff) == [100, 101]
    assert client.post("/api/admin/users/101/active", json={"is_active": "no"}).status_code == 400
    assert client.post("/api/admin/users/999/active", json={"is_active": True}).status_code == 400

    client.post("/api/auth/logout")
    login(client, "desk@studio.local")
    assert client.get("/api/admin/staff").status_code == 403
    assert client.post("/api/admin/users/100/active", json={"is_active": False}).status_code == 403


@pytest.mark.parametrize("tip", ["abc", None, [5]])
def test_quote_with_non_numeric_tip_is_400(client, tip):
    resp = client.post("/api/checkout/quote", json={"card_type_id": 2, "tip_cents": tip})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Tip must be a whole number of cents"


@pytest.mark.parametrize("flag", ["false", "true", 1])
def test_birthday_flag_must_be_a_boolean(client, check_ins, flag):
    login(client, "desk@studio.local")
    resp = client.post("/api/check-ins", json={"user_id": 1, "birthday": flag})
    assert resp.status_code == 400
    assert check_ins.records == []


def test_birthday_false_does_a_normal_check_in(client, give_card, check_ins):
    give_card(ALICE, total=4)
    login(client, "desk@studio.local")
    resp = client.post("/api/check-ins", json={"user_id": 1, "birthday": False})
    assert resp.status_code == 201
    assert resp.get_json()["classes_remaining"] == 3
    assert check_ins.birthday_uses == set()


def test_register_customer(client, owners):
    payload = {
        "email": "Zoe@Example.com",
        "password": "Dance2024",
        "first_name": "zoe",
        "last_name": "park",
        "phone": "555-010-7777",
        "birthday": "1995-08-01",
    }
    resp = client.post("/api/auth/register", json=payload)

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["owner_type"] == "user"
    assert body["full_name"] == "Zoe Park"
    assert body["email"] == "zoe@example.com"
    assert len(body["check_in_code"]) == 4
    assert owners.get(OwnerRef.user(body["owner_id"])) is not None

    again = client.post("/api/auth/register", json={**payload, "email": "zoe@example.com"})
    assert again.status_code == 400
    assert again.get_json()["error"] == "Email already registered"
    assert client.post("/api/auth/register", json={**payload, "password": "weak"}).status_code == 400


def test_family_member_routes(client, give_card):
    login(client, "alice@example.com")
    added = client.post("/api/owners/user/1/family", json={"first_name": "leo", "last_name": "nguyen"})
    assert added.status_code == 201
    member_id = added.get_json()["owner_id"]

    family = client.get("/api/owners/user/1/family").get_json()["family_members"]
    assert sorted(m["owner_id"] for m in family) == sorted([KID.owner_id, member_id])

    updated = client.put(f"/api/family-members/{member_id}", json={"birthday": "2016-09-09"})
    assert updated.get_json()["birthday"] == "2016-09-09"
    assert updated.get_json()["first_name"] == "Leo"

    assert client.post("/api/owners/user/2/family", json={"first_name": "X", "last_name": "Y"}).status_code == 403

    give_card(KID, total=4)
    assert client.delete(f"/api/family-members/{KID.owner_id}").status_code == 400
    assert client.delete(f"/api/family-members/{member_id}").get_json() == {"ok": True}


def test_profile_update_route(client):
    login(client, "alice@example.com")
    resp = client.patch("/api/owners/user/1", json={"first_name": "ALICIA", "birthday": None})
    assert resp.status_code == 200
    assert resp.get_json()["first_name"] == "Alicia"
    assert resp.get_json()["birthday"] == "--03-15"


def test_todays_birthdays_route(client):
    login(client, "desk@studio.local")
    names = sorted(o["full_name"] for o in client.get("/api/birthdays/today").get_json()["birthdays"])
    assert names == ["Alice Nguyen", "Kim Nguyen"]
