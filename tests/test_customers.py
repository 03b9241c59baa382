from __future__ import annotations

import uuid

from hairflow.db import SessionLocal
from hairflow.models import ChemicalRecord, Consultation, Customer, Recipe, Timeline
from tests.utils.auth import build_auth_headers


def _consultation(customer_id: str, designer_id: str, treatment_type="color") -> str:
    with SessionLocal() as session:
        row = Consultation(
            customer_id=customer_id,
            designer_id=designer_id,
            treatment_type=treatment_type,
            photos={"front": "https://cdn.example.com/front.jpg"},
            result={"summary": "ok"},
        )
        session.add(row)
        session.commit()
        return row.id


def test_customers_require_login(client):
    resp = client.get("/v1/customers")
    assert resp.status_code == 401
    assert resp.json() == {
        "data": None,
        "error": {"code": "UNAUTHORIZED", "message": "Login required"},
    }


def test_create_and_list_customers(client):
    headers = build_auth_headers()
    first = client.post(
        "/v1/customers",
        headers=headers,
        json={"name": "  Lee Jiwoo ", "phone": "010-1234-5678", "memo": ""},
    )
    assert first.status_code == 200
    created = first.json()["data"]
    assert created["name"] == "Lee Jiwoo"
    assert created["phone"] == "010-1234-5678"
    assert created["memo"] is None

    client.post("/v1/customers", headers=headers, json={"name": "Park Seoyeon"})

    resp = client.get("/v1/customers", headers=headers)
    assert resp.status_code == 200
    names = [c["name"] for c in resp.json()["data"]]
    assert names == ["Park Seoyeon", "Lee Jiwoo"]

    other = client.get("/v1/customers", headers=build_auth_headers())
    assert other.json()["data"] == []


def test_create_customer_requires_name(client):
    resp = client.post(
        "/v1/customers", headers=build_auth_headers(), json={"name": "   "}
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "MISSING_FIELDS"


def test_malformed_body_is_validation_error(client):
    resp = client.post(
        "/v1/customers",
        headers=build_auth_headers() | {"Content-Type": "application/json"},
        content="{not json",
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_customer_detail_with_consultations(client):
    user_id = uuid.uuid4().hex
    headers = build_auth_headers(user_id)
    customer_id = client.post(
        "/v1/customers", headers=headers, json={"name": "Choi Yuna"}
    ).json()["data"]["id"]
    consultation_id = _consultation(customer_id, user_id)

    resp = client.post(
        f"/v1/customers/{customer_id}/chemicals",
        headers=headers,
        json={
            "consultationId": consultation_id,
            "brand": "Milbon",
            "productName": "Ordeve 8-NB",
            "ratio": "1:1",
            "processingTime": "30 min",
        },
    )
    assert resp.status_code == 200
    record = resp.json()["data"]
    assert record["productName"] == "Ordeve 8-NB"
    assert record["mixingNotes"] == ""

    resp = client.get(f"/v1/customers/{customer_id}", headers=headers)
    assert resp.status_code == 200
    detail = resp.json()["data"]
    assert detail["customer"]["id"] == customer_id
    assert len(detail["consultations"]) == 1
    consultation = detail["consultations"][0]
    assert consultation["treatmentType"] == "color"
    assert consultation["photos"]["front"].endswith("front.jpg")
    assert [r["brand"] for r in consultation["chemicalRecords"]] == ["Milbon"]


def test_customer_detail_hidden_from_other_designers(client):
    headers = build_auth_headers()
    customer_id = client.post(
        "/v1/customers", headers=headers, json={"name": "Jung Hana"}
    ).json()["data"]["id"]

    resp = client.get(f"/v1/customers/{customer_id}", headers=build_auth_headers())
    assert resp.status_code == 404
    assert resp.json()["error"] == {"code": "NOT_FOUND", "message": "Customer not found"}


def test_chemical_record_validation(client):
    user_id = uuid.uuid4().hex
    headers = build_auth_headers(user_id)
    customer_id = client.post(
        "/v1/customers", headers=headers, json={"name": "Han Sora"}
    ).json()["data"]["id"]

    resp = client.post(
        f"/v1/customers/{customer_id}/chemicals",
        headers=headers,
        json={"brand": "Milbon", "productName": "Ordeve", "ratio": "1:1"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "MISSING_FIELDS"

    resp = client.post(
        f"/v1/customers/{customer_id}/chemicals",
        headers=headers,
        json={
            "consultationId": str(uuid.uuid4()),
            "brand": "Milbon",
            "productName": "Ordeve",
            "ratio": "1:1",
        },
    )
    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Consultation not found"


def test_chemical_record_for_foreign_consultation(client):
    owner_id = uuid.uuid4().hex
    owner = build_auth_headers(owner_id)
    customer_id = client.post(
        "/v1/customers", headers=owner, json={"name": "Yoon Dahye"}
    ).json()["data"]["id"]
    consultation_id = _consultation(customer_id, owner_id)

    resp = client.post(
        f"/v1/customers/{customer_id}/chemicals",
        headers=build_auth_headers(),
        json={
            "consultationId": consultation_id,
            "brand": "Wella",
            "productName": "Koleston",
            "ratio": "1:2",
        },
    )
    assert resp.status_code == 404


def test_delete_customer_cascades(client):
    user_id = uuid.uuid4().hex
    headers = build_auth_headers(user_id)
    customer_id = client.post(
        "/v1/customers", headers=headers, json={"name": "Kang Mina"}
    ).json()["data"]["id"]
    consultation_id = _consultation(customer_id, user_id)
    client.post(
        f"/v1/customers/{customer_id}/chemicals",
        headers=headers,
        json={
            "consultationId": consultation_id,
            "brand": "L'Oreal",
            "productName": "Majirel 6.1",
            "ratio": "1:1.5",
        },
    )

    stranger = client.delete(f"/v1/customers/{customer_id}", headers=build_auth_headers())
    assert stranger.status_code == 404

    resp = client.delete(f"/v1/customers/{customer_id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"data": {"deleted": True}, "error": None}

    with SessionLocal() as session:
        assert session.get(Customer, customer_id) is None
        assert session.get(Consultation, consultation_id) is None
        assert (
            session.query(ChemicalRecord)
            .filter_by(consultation_id=consultation_id)
            .count()
            == 0
        )

    again = client.get(f"/v1/customers/{customer_id}", headers=headers)
    assert again.status_code == 404


def test_delete_customer_removes_timelines_and_recipes(client):
    user_id = uuid.uuid4().hex
    headers = build_auth_headers(user_id)
    customer_id = client.post(
        "/v1/customers", headers=headers, json={"name": "Yoon Hana"}
    ).json()["data"]["id"]
    with SessionLocal() as session:
        session.add_all(
            [
                Timeline(
                    user_id=user_id,
                    customer_id=customer_id,
                    treatment_type="color",
                    result={},
                ),
                Recipe(user_id=user_id, customer_id=customer_id, result={}),
                Recipe(user_id=user_id, customer_id=None, result={}),
            ]
        )
        session.commit()

    resp = client.delete(f"/v1/customers/{customer_id}", headers=headers)
    assert resp.status_code == 200

    with SessionLocal() as session:
        assert session.query(Timeline).filter_by(customer_id=customer_id).count() == 0
        assert session.query(Recipe).filter_by(customer_id=customer_id).count() == 0
        assert session.query(Recipe).filter_by(user_id=user_id).count() == 1


def test_unknown_route_uses_envelope(client):
    resp = client.get("/v1/nowhere", headers=build_auth_headers())
    assert resp.status_code == 404
    assert resp.json()["data"] is None
    assert resp.json()["error"]["code"] == "NOT_FOUND"
