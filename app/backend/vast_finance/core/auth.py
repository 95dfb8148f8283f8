"""Authentication context extraction and role guard utilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from vast_finance.core.config import get_settings
from vast_finance.db.dependencies import get_db_session
from vast_finance.models.entities import UserRole, UserStatus
from vast_finance.repositories.target_repository import TargetRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: UUID
    email: str
    name: str
    role: UserRole
    status: UserStatus

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


def _resolve_email(x_user_email: str | None) -> str:
    if x_user_email and x_user_email.strip():
        return x_user_email.strip().lower()

    settings = get_settings()
    if settings.auth_allow_dev_principal:
        return settings.auth_dev_email.strip().lower()

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized: Please login",
    )


def get_current_user_context(
    x_user_email: str | None = Header(default=None, alias="X-USER-EMAIL"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user from the trusted identity header.

    The session cookie is validated by the fronting web app, which forwards
    the authenticated email. Users are managed elsewhere and never created
    here.
    """

    email = _resolve_email(x_user_email)
    user = TargetRepository(db).get_user_by_email(email)
    if user is None:
        logger.warning("Rejected request for unknown user %s", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"User not found: {email}",
        )

    return RequestUserContext(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        status=user.status,
    )


def has_role(context: RequestUserContext, allowed_roles: set[UserRole]) -> bool:
    """Check whether an active user holds one of the allowed roles."""

    return context.status is UserStatus.ACTIVE and context.role in allowed_roles


def require_roles(*roles: UserRole):
    """Dependency factory requiring one of the provided roles."""

    allowed = set(roles)

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        if not has_role(context, allowed):
            logger.warning("Forbidden %s request from %s", context.role.value, context.email)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden: {', '.join(sorted(role.value for role in allowed))} only. "
                f"Your role: {context.role.value}",
            )
        return context

    return dependency


require_admin = require_roles(UserRole.ADMIN)
