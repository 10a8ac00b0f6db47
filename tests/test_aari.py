from datetime import datetime, timezone

import pytest

import main
from lifecycle import apply_work_order_status, new_work_order
from tests.conftest import CUSTOMER_ID

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
T1 = datetime(2024, 3, 5, 9, 0, tzinfo=timezone.utc)


def order_payload(**overrides):
    payload = {
        "customerId": CUSTOMER_ID,
        "orderId": "AARI-0001",
        "name": "Lakshmi",
        "phoneNumber": "9876543210",
        "submissionDate": "2024-03-01T10:00:00Z",
        "deliveryDate": "2024-03-10T10:00:00Z",
        "address": "12 Main Bazaar Road",
        "designs": ["https://cdn.example.com/designs/peacock.jpg"],
        "workType": "Bridal",
        "staffName": "Meena",
        "quotedPrice": 3500,
    }
    payload.update(overrides)
    return payload


def test_status_change_stamps_completed_date_once():
    patch = apply_work_order_status({"status": "pending", "completedDate": None}, "completed", T0)
    assert patch == {"status": "completed", "updatedAt": T0, "completedDate": T0}

    reopened = apply_work_order_status({"status": "completed", "completedDate": T0}, "pending", T1)
    assert reopened == {"status": "pending", "updatedAt": T1}

    again = apply_work_order_status({"status": "pending", "completedDate": T0}, "completed", T1)
    assert "completedDate" not in again


def test_same_status_is_no_change():
    assert apply_work_order_status({"status": "pending"}, "pending", T0) == {}


def test_new_completed_order_is_stamped():
    doc = new_work_order({"status": "completed"}, T0)
    assert doc["completedDate"] == T0
    assert new_work_order({"status": "pending"}, T0)["completedDate"] is None


def test_submit_order(client, db):
    r = client.post("/aari/submitOrder", json=order_payload())

    assert r.status_code == 201
    assert r.json()["orderId"] == "AARI-0001"
    stored = db["aari"].find_one({"orderId": "AARI-0001"})
    assert stored["status"] == "pending"
    assert stored["workType"] == "bridal"
    assert stored["phoneNumber"] == "+919876543210"
    assert stored["completedDate"] is None


def test_duplicate_order_id(client, db):
    client.post("/aari/submitOrder", json=order_payload())
    assert client.post("/aari/submitOrder", json=order_payload()).status_code == 409
    assert db["aari"].count_documents({}) == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"deliveryDate": "2024-03-01T10:00:00Z"},
        {"deliveryDate": "2024-02-01T10:00:00Z"},
        {"designs": []},
        {"designs": [f"https://cdn.example.com/{i}.jpg" for i in range(6)]},
        {"workType": "express"},
        {"quotedPrice": 0},
        {"workerPrice": -10},
    ],
)
def test_invalid_order_rejected(client, db, overrides):
    r = client.post("/aari/submitOrder", json=order_payload(**overrides))
    assert r.status_code == 400
    assert db["aari"].count_documents({}) == 0


def test_completed_date_never_moves(client, monkeypatch):
    client.post("/aari/submitOrder", json=order_payload())

    monkeypatch.setattr(main, "utcnow", lambda: T0)
    done = client.put("/aari/updateStatus/AARI-0001", json={"status": "completed", "workerPrice": 1500})
    assert done.status_code == 200
    first = done.json()["order"]
    assert first["completedDate"].startswith("2024-03-01T09:00:00")
    assert first["workerPrice"] == 1500

    monkeypatch.setattr(main, "utcnow", lambda: T1)
    client.put("/aari/updateStatus/AARI-0001", json={"status": "pending"})
    again = client.put("/aari/updateStatus/AARI-0001", json={"status": "Completed"}).json()["order"]

    assert again["status"] == "completed"
    assert again["completedDate"] == first["completedDate"]
    assert again["updatedAt"].startswith("2024-03-05T09:00:00")


def test_list_and_filter_orders(client):
    client.post("/aari/submitOrder", json=order_payload())
    client.post(
        "/aari/submitOrder",
        json=order_payload(orderId="AARI-0002", submissionDate="2024-03-02T10:00:00Z", workType="normal"),
    )
    client.put("/aari/updateStatus/AARI-0001", json={"status": "completed"})

    everything = client.get("/aari/getOrders").json()
    assert [o["orderId"] for o in everything["orders"]] == ["AARI-0002", "AARI-0001"]

    done = client.get("/aari/getOrders", params={"status": "completed"}).json()
    assert [o["orderId"] for o in done["orders"]] == ["AARI-0001"]


def test_get_and_delete_order(client, db):
    client.post("/aari/submitOrder", json=order_payload())

    assert client.get("/aari/getOrder/AARI-0001").json()["order"]["staffName"] == "Meena"
    assert client.delete("/aari/deleteOrder/AARI-0001").status_code == 200
    assert client.get("/aari/getOrder/AARI-0001").status_code == 404
    assert client.put("/aari/updateStatus/AARI-0001", json={"status": "completed"}).status_code == 404
