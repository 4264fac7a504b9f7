import pytest
from starlette.testclient import TestClient

from config import Settings
from database import MemoryStorage
from main import create_app
from schemas import Patient


@pytest.fixture
def app(notifier):
    return create_app(Settings(STORAGE_BACKEND="memory"), storage=MemoryStorage(), notifier=notifier)


@pytest.fixture
def client(app):
    return TestClient(app)


def _create_patient(client, name="Ana Lopez", phone="+34 600 123 456"):
    r = client.post("/patients", json={"name": name, "phone": phone, "birthDate": "1990-04-02"})
    assert r.status_code == 200
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["clinic"] == "Optica Maxima G.E"


def test_patient_lifecycle(client, notifier):
    patient = _create_patient(client)
    assert patient["birthDate"] == "1990-04-02"
    assert patient["createdAt"]
    assert [n.message for n in notifier.active()] == ["Patient registered successfully"]

    r = client.put(f"/patients/{patient['id']}", json={"name": "Ana M. Lopez", "phone": "600"})
    assert r.status_code == 200
    assert r.json()["name"] == "Ana M. Lopez"

    assert client.delete(f"/patients/{patient['id']}").status_code == 400
    r = client.delete(f"/patients/{patient['id']}", params={"confirm": "true"})
    assert r.json() == {"deleted": True}
    assert client.get("/patients").json() == []


def test_missing_required_fields_rejected(client):
    r = client.post("/patients", json={"name": "No phone"})
    assert r.status_code == 422
    assert client.get("/patients").json() == []


def test_delete_unknown_is_noop(client):
    _create_patient(client)
    r = client.delete("/orders/missing", params={"confirm": "true"})
    assert r.status_code == 200
    assert r.json() == {"deleted": False}
    assert len(client.get("/patients").json()) == 1


def test_order_toggle(client):
    patient = _create_patient(client)
    r = client.post("/orders", json={"patientId": patient["id"], "lensType": "Progressive", "price": "150"})
    order = r.json()
    assert order["status"] == "active"
    assert order["price"] == 150.0

    assert client.post(f"/orders/{order['id']}/toggle").json()["status"] == "completed"
    assert client.post(f"/orders/{order['id']}/toggle").json()["status"] == "active"
    assert client.post("/orders/missing/toggle").json() is None


def test_invoices_and_print(client):
    patient = _create_patient(client)
    payload = {"patientId": patient["id"], "concept": "Frames", "amount": 120, "paymentMethod": "cash"}
    first = client.post("/invoices", json=payload).json()
    second = client.post("/invoices", json=payload).json()

    year = first["date"][:4]
    assert first["number"] == f"{year}-0001"
    assert second["number"] == f"{year}-0002"
    assert first["status"] == "paid"

    r = client.get(f"/invoices/{first['id']}/print")
    assert r.status_code == 200
    assert "text/html" in r.headers["content-type"]
    assert first["number"] in r.text
    assert client.get("/invoices/missing/print").status_code == 404

    report = client.get("/reports/daily").json()
    assert report == {"period": "daily", "count": 2, "total": "$240.00", "average": "$120.00"}
    assert client.get("/stats").json()["monthlyRevenue"] == "$240.00"


def test_empty_report(client):
    assert client.get("/reports/monthly").json()["average"] == "$0.00"
    assert client.get("/reports/yearly").status_code == 404


def test_whatsapp_send(client):
    patient = _create_patient(client)
    r = client.post(
        "/messages/whatsapp",
        json={"patientId": patient["id"], "message": "Hola Ana", "type": "ready"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["url"] == "https://wa.me/34600123456?text=Hola%20Ana"
    assert body["message"]["patientName"] == "Ana Lopez"
    assert len(client.get("/messages").json()) == 1


def test_whatsapp_without_phone(client, app, notifier):
    app.state.store.patients.append(Patient(id="p2", name="No Phone", phone=""))
    r = client.post("/messages/whatsapp", json={"patientId": "p2", "message": "Hi", "type": "followup"})

    assert r.status_code == 400
    assert client.get("/messages").json() == []
    assert [n.level for n in notifier.active()] == ["error"]
    assert client.get("/notifications").json()[0]["level"] == "error"


def test_appointment_reminder(client):
    patient = _create_patient(client)
    apt = client.post(
        "/appointments",
        json={"patientId": patient["id"], "date": "2030-01-10", "time": "09:30", "type": "Eye exam"},
    ).json()
    assert apt["status"] == "confirmed"

    r = client.post(f"/appointments/{apt['id']}/reminder")
    assert r.status_code == 200
    assert r.json()["url"].startswith("https://wa.me/34600123456?text=")
    assert client.post("/appointments/missing/reminder").status_code == 400


def test_sections(client):
    patient = _create_patient(client)
    client.post("/orders", json={"patientId": patient["id"], "lensType": "Bifocal", "price": 90})

    for name in ("home", "patients", "orders", "invoices", "appointments", "notifications"):
        r = client.get(f"/sections/{name}")
        assert r.status_code == 200
    assert "Bifocal" in client.get("/sections/orders").text
    assert "Ana Lopez" in client.get("/patients/options").text
    assert client.get("/sections/unknown").status_code == 404


def test_templates(client):
    r = client.get("/messages/templates/ready")
    assert r.status_code == 200
    assert "[Name]" in r.json()["text"]
    assert client.get("/messages/templates/nope").status_code == 404
