from __future__ import annotations

import uuid

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from vast_finance.core.auth import RequestUserContext, has_role
from vast_finance.models.entities import User, UserRole, UserStatus


def _context(role: UserRole, status: UserStatus = UserStatus.ACTIVE) -> RequestUserContext:
    return RequestUserContext(
        user_id=uuid.uuid4(),
        email=f"{role.value}@test.local",
        name=role.value.title(),
        role=role,
        status=status,
    )


def test_has_role_matches_expected_roles() -> None:
    context = _context(UserRole.ADMIN)

    assert context.is_admin is True
    assert has_role(context, {UserRole.ADMIN}) is True
    assert has_role(context, {UserRole.SPV, UserRole.MANAGER}) is False


def test_has_role_rejects_inactive_user() -> None:
    context = _context(UserRole.ADMIN, status=UserStatus.INACTIVE)

    assert has_role(context, {UserRole.ADMIN}) is False


def test_unknown_user_is_unauthorized(client: TestClient) -> None:
    response = client.get("/api/v1/targets/periods", headers={"X-USER-EMAIL": "ghost@test.local"})

    assert response.status_code == 401
    assert response.json()["detail"] == "User not found: ghost@test.local"


def test_non_admin_is_forbidden(client: TestClient, db_session: Session) -> None:
    db_session.add(User(email="spv@test.local", name="Budi", role=UserRole.SPV))
    db_session.commit()

    response = client.get("/api/v1/targets/periods", headers={"X-USER-EMAIL": "spv@test.local"})

    assert response.status_code == 403
    assert response.json()["detail"] == "Forbidden: admin only. Your role: spv"


def test_dev_principal_fallback_uses_configured_email(client: TestClient, db_session: Session) -> None:
    db_session.add(User(email="admin@vast.local", name="Dev Admin", role=UserRole.ADMIN))
    db_session.commit()

    response = client.get("/api/v1/me")

    assert response.status_code == 200
    assert response.json()["email"] == "admin@vast.local"
