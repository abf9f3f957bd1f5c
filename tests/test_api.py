import pytest
from fastapi.testclient import TestClient

from main import app
from schemas import SETTINGS_COLLECTION
from store import SINGLETON_KEY


@pytest.fixture
def client():
    return TestClient(app)


def test_root(client):
    assert client.get("/").json() == {"message": "Rent Car Backend Running"}


def test_health_reports_database(client, fake_db):
    body = client.get("/test").json()
    assert body["database"] == "✅ Connected & Working"
    assert body["database_name"] == "rentcar_test"


def test_list_uses_seed_cars_when_collection_empty(client, fake_db):
    resp = client.get("/api/cars")

    assert resp.status_code == 200
    assert resp.headers["X-Data-Source"] == "fallback"
    assert [c["id"] for c in resp.json()] == ["c1", "c2"]


def test_unknown_collection(client, fake_db):
    assert client.get("/api/spaceships").status_code == 404


def test_put_then_list_reads_fresh(client, fake_db):
    resp = client.put("/api/drivers", json=[{"id": "d2", "name": "Pak Joko", "daily_rate": 175000}, {"name": "Pak Udin"}])

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "count": 2}

    listed = client.get("/api/drivers")
    assert listed.headers["X-Data-Source"] == "fresh"
    assert {d["name"] for d in listed.json()} == {"Pak Joko", "Pak Udin"}


def test_put_rejects_invalid_records(client, fake_db):
    resp = client.put("/api/drivers", json=[{"daily_rate": 100}])
    assert resp.status_code == 422


def test_write_without_database_is_queued_then_flushed(client, no_db, monkeypatch, outbox):
    resp = client.put("/api/partners", json=[{"id": "p2", "name": "Sari"}])

    assert resp.status_code == 202
    assert resp.json()["queued"] is True
    assert "partners" in outbox

    from tests.conftest import FakeDatabase
    import database
    db = FakeDatabase()
    monkeypatch.setattr(database, "db", db)

    flushed = client.post("/api/outbox/flush").json()

    assert flushed["partners"]["ok"] is True
    assert db["partners"].docs["p2"]["name"] == "Sari"


def test_settings_default_and_patch(client, fake_db):
    resp = client.get("/api/settings")
    assert resp.headers["X-Data-Source"] == "fallback"
    assert resp.json()["company_name"] == "Bersama Rent Car"

    patched = client.patch("/api/settings", json={"company_name": "Maju Rent", "dark_mode": True})
    assert patched.status_code == 200
    assert patched.json()["settings"]["tagline"] == "Solusi Perjalanan Anda"

    resp = client.get("/api/settings")
    assert resp.headers["X-Data-Source"] == "fresh"
    assert resp.json()["company_name"] == "Maju Rent"
    assert fake_db[SETTINGS_COLLECTION].docs[SINGLETON_KEY]["dark_mode"] is True


def test_settings_patch_validation(client, fake_db):
    assert client.patch("/api/settings", json={"email": "not-an-email"}).status_code == 422


def test_quote_includes_high_season(client, fake_db):
    resp = client.post("/api/pricing/quote", json={
        "car_id": "c1",
        "driver_id": "d1",
        "start_date": "2024-04-04T10:00:00",
        "end_date": "2024-04-06T10:00:00",
        "package_type": "24 Jam (Dalam Kota)",
    })

    assert resp.status_code == 200
    assert resp.json() == {
        "base_price": 900000,
        "driver_fee": 300000,
        "high_season_fee": 100000,
        "delivery_fee": 0,
        "total_price": 1300000,
    }


def test_quote_for_missing_car(client, fake_db):
    resp = client.post("/api/pricing/quote", json={
        "car_id": "nope",
        "start_date": "2024-04-04T10:00:00",
        "end_date": "2024-04-06T10:00:00",
        "package_type": "24 Jam (Dalam Kota)",
    })
    assert resp.status_code == 404


BOOKING = {
    "car_id": "c2",
    "customer_name": "John Doe",
    "start_date": "2024-08-01T09:00:00",
    "end_date": "2024-08-03T09:00:00",
    "package_type": "12 Jam (Dalam Kota)",
}


def test_create_booking_prices_and_stores(client, fake_db):
    resp = client.post("/api/bookings", json=BOOKING)

    assert resp.status_code == 200
    body = resp.json()
    assert body["total_price"] == 500000
    assert body["status"] == "booked"
    stored = fake_db["bookings"].docs[body["id"]]
    assert stored["car_id"] == "c2"
    assert stored["base_price"] == 500000


def test_overlapping_booking_is_rejected(client, fake_db):
    assert client.post("/api/bookings", json=BOOKING).status_code == 200

    overlapping = dict(BOOKING, start_date="2024-08-02T09:00:00", end_date="2024-08-05T09:00:00")
    resp = client.post("/api/bookings", json=overlapping)

    assert resp.status_code == 409

    check = client.post("/api/availability", json={
        "resource_id": "c2",
        "resource_type": "car",
        "start_date": "2024-08-03T09:00:00",
        "end_date": "2024-08-04T09:00:00",
    })
    assert check.json() == {"available": True}


def test_booking_end_before_start(client, fake_db):
    resp = client.post("/api/bookings", json=dict(BOOKING, end_date="2024-07-01T09:00:00"))
    assert resp.status_code == 400


def test_booking_refused_when_bookings_unreadable(client, broken_db):
    assert client.post("/api/bookings", json=BOOKING).status_code == 503


def test_export_csv(client, fake_db):
    resp = client.get("/api/customers/export")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert 'filename="customers_' in resp.headers["content-disposition"]
    lines = resp.text.split("\n")
    assert lines[0] == "id,name,phone,email,address"
    assert lines[1].startswith('"cust1","John Doe"')


def test_export_of_empty_collection(client, fake_db):
    assert client.get("/api/transactions/export").status_code == 404


def test_import_csv_merges_and_saves(client, fake_db):
    fake_db["cars"].docs["c1"] = {"_id": "c1", "name": "Avanza", "plate": "B 1234 ABC", "image": "a.png"}
    csv_text = (
        "id,name,plate,pricing\n"
        '"c1","Avanza Veloz","B 1234 ABC","{""24 Jam (Dalam Kota)"": 500000}"\n'
        '"","Daihatsu Xenia","B 9 XYZ",""\n'
    )

    resp = client.post("/api/cars/import", files={"file": ("cars.csv", csv_text, "text/csv")})

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "imported": 2, "total": 2}
    car = fake_db["cars"].docs["c1"]
    assert car["name"] == "Avanza Veloz"
    assert car["pricing"] == {"24 Jam (Dalam Kota)": 500000}
    assert car["image"] == "a.png"
    assert any(doc["name"] == "Daihatsu Xenia" for doc in fake_db["cars"].docs.values())


def test_mixed_timezone_requests_are_compared(client, fake_db):
    assert client.post("/api/bookings", json=BOOKING).status_code == 200

    overlapping = client.post("/api/availability", json={
        "resource_id": "c2",
        "start_date": "2024-08-02T00:00:00Z",
        "end_date": "2024-08-02T12:00:00Z",
    })
    later = client.post("/api/availability", json={
        "resource_id": "c2",
        "start_date": "2024-08-03T16:00:00+07:00",
        "end_date": "2024-08-04T16:00:00+07:00",
    })
    aware_booking = client.post("/api/bookings", json=dict(
        BOOKING, start_date="2024-08-02T10:00:00+07:00", end_date="2024-08-04T10:00:00+07:00",
    ))

    assert overlapping.json() == {"available": False}
    assert later.json() == {"available": True}
    assert aware_booking.status_code == 409


def test_legacy_status_bookings_still_block(client, fake_db):
    fake_db["bookings"].docs["b1"] = {
        "_id": "b1", "car_id": "c2", "status": "Active",
        "start_date": "2024-08-01T09:00:00", "end_date": "2024-08-03T09:00:00",
    }

    resp = client.post("/api/availability", json={
        "resource_id": "c2", "start_date": "2024-08-02T09:00:00", "end_date": "2024-08-02T18:00:00",
    })

    assert resp.json() == {"available": False}


def test_unreadable_booking_refuses_availability(client, fake_db):
    fake_db["bookings"].docs["b1"] = {"_id": "b1", "car_id": "c2", "status": "booked", "start_date": "soon"}

    resp = client.post("/api/availability", json={
        "resource_id": "c2", "start_date": "2024-08-02T09:00:00", "end_date": "2024-08-02T18:00:00",
    })

    assert resp.status_code == 503


def test_queued_writes_survive_until_flushed(client, no_db, monkeypatch, outbox):
    assert client.put("/api/partners", json=[{"id": "p2", "name": "Sari"}]).status_code == 202
    assert client.put("/api/partners", json=[{"id": "p3", "name": "Rudi"}]).status_code == 202

    from tests.conftest import FakeDatabase
    import database
    db = FakeDatabase()
    monkeypatch.setattr(database, "db", db)

    assert client.put("/api/partners", json=[{"id": "p9", "name": "Agus"}]).status_code == 200
    assert "partners" in outbox

    client.post("/api/outbox/flush")

    assert set(db["partners"].docs) == {"p2", "p3", "p9"}
    assert "partners" not in outbox
