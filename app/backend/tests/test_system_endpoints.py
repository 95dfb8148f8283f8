from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from vast_finance.models.entities import User, UserRole


def _headers(email: str) -> dict[str, str]:
    return {"X-USER-EMAIL": email}


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}


def test_root_endpoint(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["service"] == "VAST Finance Backend"
    assert response.json()["status"] == "running"


def test_me_returns_resolved_user(client: TestClient, db_session: Session) -> None:
    db_session.add(User(email="sator@test.local", name="Sari", role=UserRole.SATOR))
    db_session.commit()

    response = client.get("/api/v1/me", headers=_headers("Sator@Test.local "))

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Sari"
    assert body["role"] == "sator"
    assert body["is_admin"] is False
