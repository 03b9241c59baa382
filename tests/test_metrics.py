import uuid
from datetime import datetime, timezone

from hairflow.db import SessionLocal
from hairflow.models import Profile
from hairflow.services import capability
from tests.utils.auth import build_auth_headers


def test_ai_metrics(client, monkeypatch):
    async def fake_upload(designer_id, customer_id, label, data, content_type):
        return f"designers/{designer_id}/unassigned/{label}.jpg"

    def fake_call(*args, **kwargs):
        return {"unexpected": True}

    monkeypatch.setattr(capability, "upload_photo", fake_upload)
    monkeypatch.setattr(capability, "call_gpt_json", fake_call)

    resp = client.post(
        "/v1/recipe",
        headers=build_auth_headers(uuid.uuid4().hex),
        files={
            "current": ("a.jpg", b"\xff\xd8data", "image/jpeg"),
            "reference": ("b.jpg", b"\xff\xd8data", "image/jpeg"),
        },
    )
    assert resp.status_code == 500

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    body = metrics.text
    assert 'ai_requests_total{capability="recipe"}' in body
    assert 'ai_failure_total{capability="recipe",reason="no_response"}' in body
    assert "ai_latency_seconds_bucket" in body


def test_quota_reject_metric(client):
    user_id = uuid.uuid4().hex
    with SessionLocal() as session:
        session.add(
            Profile(
                id=user_id,
                email="limit@example.com",
                plan="free",
                daily_usage=3,
                last_usage_date=datetime.now(timezone.utc).date(),
                specialties=[],
                portfolio_works=[],
            )
        )
        session.commit()

    resp = client.post("/v1/recipe", headers=build_auth_headers(user_id))
    assert resp.status_code == 429

    body = client.get("/metrics").text
    assert "quota_reject_total" in body
    assert "payment_fail_total" in body
