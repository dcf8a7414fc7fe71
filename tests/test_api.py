import io

import pytest
from PIL import Image
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from app.models.claim import Claim
from app.models.item import Item
from app.utils import s3_service


ITEM_PAYLOAD = {
    "title": "Black Leather Wallet",
    "category": "accessories",
    "location": "Central Library",
    "date_lost_found": "2024-05-01",
    "status": "lost",
    "contact_email": "alice@lostfound.org",
}


@pytest.fixture(autouse=True)
def public_urls(monkeypatch):
    monkeypatch.setattr(s3_service, "PUBLIC_URL_BASE", "https://cdn.lostfound.org")


def test_health(client):
    assert client.get("/").json() == {"status": "ok"}


def test_mutations_require_a_token(client):
    response = client.post("/items/", json=ITEM_PAYLOAD)

    assert response.status_code in (401, 403)


def test_invalid_token_is_rejected(client):
    response = client.get("/items/mine", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_token_for_unknown_profile_is_rejected(client, auth_headers):
    response = client.get("/items/mine", headers=auth_headers("ghost"))

    assert response.status_code == 401


def test_create_and_fetch_item(client, alice, auth_headers):
    response = client.post("/items/", json=ITEM_PAYLOAD, headers=auth_headers(alice.id))

    assert response.status_code == 201
    created = response.json()
    assert created["status"] == "lost"
    assert created["is_verified"] is False
    assert created["user_id"] == alice.id
    assert created["allowed_transitions"] == ["closed", "recovered"]

    detail = client.get(f"/items/{created['id']}").json()
    assert detail["item"]["title"] == "Black Leather Wallet"
    assert detail["owner"]["id"] == alice.id

    browse = client.get("/items/", params={"search": "wallet"}).json()
    assert [i["id"] for i in browse["items"]] == [created["id"]]


def test_create_item_reports_violations(client, alice, auth_headers):
    payload = dict(ITEM_PAYLOAD, title="no", status="claimed")

    response = client.post("/items/", json=payload, headers=auth_headers(alice.id))

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "ValidationError"
    assert {v["field"] for v in body["violations"]} == {"title", "status"}


def test_missing_item_is_404(client):
    assert client.get("/items/00000000-0000-0000-0000-000000000000").status_code == 404


def test_status_change_flow(client, alice, bob, make_item, auth_headers):
    item = make_item(alice.id, status="lost")

    denied = client.post(f"/items/{item.id}/status", json={"status": "recovered"}, headers=auth_headers(bob.id))
    assert denied.status_code == 403

    done = client.post(f"/items/{item.id}/status", json={"status": "recovered"}, headers=auth_headers(alice.id))
    assert done.status_code == 200
    assert done.json()["status"] == "recovered"
    assert done.json()["allowed_transitions"] == []

    again = client.post(f"/items/{item.id}/status", json={"status": "closed"}, headers=auth_headers(alice.id))
    assert again.status_code == 409


def test_patch_item(client, session, alice, bob, make_item, auth_headers):
    item = make_item(alice.id)

    ok = client.patch(f"/items/{item.id}", json={"location": "Main Hall"}, headers=auth_headers(alice.id))
    assert ok.status_code == 200
    assert ok.json()["location"] == "Main Hall"

    owner_change = client.patch(f"/items/{item.id}", json={"user_id": bob.id}, headers=auth_headers(alice.id))
    assert owner_change.status_code == 400

    denied = client.patch(f"/items/{item.id}", json={"location": "Elsewhere"}, headers=auth_headers(bob.id))
    assert denied.status_code == 403

    assert session.get(Item, item.id).user_id == alice.id


def test_stranger_cannot_delete_item(client, session, alice, carol, make_item, auth_headers):
    item = make_item(alice.id)

    response = client.delete(f"/items/{item.id}", headers=auth_headers(carol.id))

    assert response.status_code == 403
    assert client.get(f"/items/{item.id}").status_code == 200


def test_owner_deletes_item(client, alice, make_item, auth_headers, monkeypatch):
    deleted = []
    monkeypatch.setattr("app.routers.items.delete_object", deleted.append)
    item = make_item(alice.id, image_ref="items/alice/wallet-1.webp")

    assert client.delete(f"/items/{item.id}", headers=auth_headers(alice.id)).json() == {"ok": True}
    assert deleted == ["items/alice/wallet-1.webp"]
    assert client.delete(f"/items/{item.id}", headers=auth_headers(alice.id)).status_code == 404


def test_claim_flow(client, session, alice, bob, make_item, auth_headers):
    item = make_item(alice.id, status="found")

    own = client.post(f"/items/{item.id}/claims", json={"message": "mine"}, headers=auth_headers(alice.id))
    assert own.status_code == 400
    assert own.json()["error"] == "SelfClaimError"

    submitted = client.post(f"/items/{item.id}/claims", json={"message": "This is mine"}, headers=auth_headers(bob.id))
    assert submitted.status_code == 201
    claim_id = submitted.json()["claim"]["id"]

    received = client.get("/claims/received", headers=auth_headers(alice.id)).json()
    assert [c["id"] for c in received] == [claim_id]
    assert received[0]["claimer_email"] == "bob@lostfound.org"

    mine = client.get("/claims/mine", headers=auth_headers(bob.id)).json()
    assert [c["id"] for c in mine] == [claim_id]

    approved = client.post(f"/claims/{claim_id}/resolve", json={"decision": "approved"}, headers=auth_headers(alice.id))
    assert approved.status_code == 200
    assert approved.json()["claim"]["status"] == "approved"

    by_claimer = client.post(f"/claims/{claim_id}/resolve", json={"decision": "rejected"}, headers=auth_headers(bob.id))
    assert by_claimer.status_code == 403

    twice = client.post(f"/claims/{claim_id}/resolve", json={"decision": "rejected"}, headers=auth_headers(alice.id))
    assert twice.status_code == 409

    assert session.exec(select(Claim)).one().status == "approved"


def test_closed_item_refuses_claims(client, alice, bob, make_item, auth_headers):
    item = make_item(alice.id, status="found")
    client.post(f"/items/{item.id}/status", json={"status": "closed"}, headers=auth_headers(alice.id))

    response = client.post(f"/items/{item.id}/claims", json={"message": "mine"}, headers=auth_headers(bob.id))

    assert response.status_code == 409
    assert response.json()["error"] == "ItemNotClaimableError"


def test_admin_endpoints_are_forbidden_to_users(client, alice, auth_headers):
    for path in ["/admin/analytics", "/admin/items", "/admin/users"]:
        assert client.get(path, headers=auth_headers(alice.id)).status_code == 403


def test_admin_dashboard(client, alice, bob, admin, make_item, auth_headers):
    item = make_item(alice.id)
    headers = auth_headers(admin.id)

    analytics = client.get("/admin/analytics", headers=headers).json()
    assert analytics["total_items"] == 1

    verified = client.post(f"/admin/items/{item.id}/verify", json={"verified": True}, headers=headers)
    assert verified.json()["is_verified"] is True

    listed = client.get("/admin/items", headers=headers).json()["items"]
    assert listed[0]["owner"]["id"] == alice.id

    promoted = client.put(f"/admin/users/{bob.id}/role", json={"role": "admin"}, headers=headers)
    assert promoted.json()["role"] == "admin"
    users = {u["id"]: u["role"] for u in client.get("/admin/users", headers=headers).json()}
    assert users[bob.id] == "admin"

    removed = client.delete(f"/admin/users/{alice.id}", headers=headers)
    assert removed.status_code == 200
    assert client.get(f"/items/{item.id}").status_code == 404


def test_profile_endpoints(client, alice, auth_headers):
    me = client.get("/profile/me", headers=auth_headers(alice.id)).json()
    assert me["profile"]["email"] == "alice@lostfound.org"
    assert me["role"] == "user"

    updated = client.patch("/profile/me", json={"full_name": "Alice Liddell", "phone": ""}, headers=auth_headers(alice.id))
    assert updated.status_code == 200
    assert updated.json()["full_name"] == "Alice Liddell"
    assert updated.json()["phone"] is None

    bad = client.patch("/profile/me", json={"email": "new@lostfound.org"}, headers=auth_headers(alice.id))
    assert bad.status_code == 400

    public = client.get(f"/profile/{alice.id}").json()
    assert public["user"]["full_name"] == "Alice Liddell"
    assert "email" not in public["user"]


def test_image_upload(client, alice, auth_headers, monkeypatch):
    stored = {}

    def fake_upload(path, data):
        stored[path] = data
        return f"{path}.webp"

    monkeypatch.setattr("app.routers.items.upload", fake_upload)

    png = io.BytesIO()
    Image.new("RGB", (8, 8), "red").save(png, format="PNG")

    response = client.post(
        "/items/images",
        files={"image": ("wallet.png", png.getvalue(), "image/png")},
        headers=auth_headers(alice.id),
    )

    assert response.status_code == 201
    ref = response.json()["image_ref"]
    assert ref.startswith("items/alice/wallet-")
    assert response.json()["url"] == f"https://cdn.lostfound.org/{ref}"
    assert len(stored) == 1


def database_down(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("database is unavailable"))


def test_database_failure_on_mutation_is_503(client, session, alice, make_item, auth_headers, monkeypatch):
    item = make_item(alice.id, status="lost")
    headers = auth_headers(alice.id)
    monkeypatch.setattr(session, "commit", database_down)

    response = client.post(f"/items/{item.id}/status", json={"status": "recovered"}, headers=headers)

    assert response.status_code == 503
    assert response.json()["error"] == "PersistenceError"

    monkeypatch.undo()
    assert client.get(f"/items/{item.id}").json()["item"]["status"] == "lost"


def test_database_failure_while_authenticating_is_503(client, session, alice, auth_headers, monkeypatch):
    headers = auth_headers(alice.id)
    monkeypatch.setattr(session, "get", database_down)

    response = client.get("/items/mine", headers=headers)

    assert response.status_code == 503
    assert response.json()["error"] == "PersistenceError"
