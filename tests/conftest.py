import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main

CUSTOMER_ID = "CUST-ABC-01/01/2024-0001"


@pytest.fixture
def db(monkeypatch):
    mock_db = mongomock.MongoClient()["tailorshop_test"]
    database.ensure_indexes(mock_db)
    monkeypatch.setattr(main, "db", mock_db)
    return mock_db


@pytest.fixture
def client(db):
    return TestClient(main.app)


def customer_payload(**overrides):
    payload = {
        "customerId": CUSTOMER_ID,
        "name": "Lakshmi",
        "phoneNumber": "+919876543210",
        "address": "12 Main Bazaar Road",
        "town": "Palani",
    }
    payload.update(overrides)
    return payload


def item_payload(item_id="ITEM-ABCDEFG", name="Blouse stitching", price=250):
    return {"itemId": item_id, "name": name, "price": price}


@pytest.fixture
def customer(client):
    r = client.post("/customer/submitCustomers", json=customer_payload())
    assert r.status_code == 201
    return r.json()["customerId"]


@pytest.fixture
def items(client):
    for payload in (item_payload(), item_payload("ITEM-ABC1234", "Aari border", 400)):
        assert client.post("/billing/submitItems", json=payload).status_code == 201
    return ["ITEM-ABCDEFG", "ITEM-ABC1234"]
