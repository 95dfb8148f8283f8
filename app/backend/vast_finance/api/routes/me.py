"""Current user endpoint."""

from fastapi import APIRouter, Depends

from vast_finance.core.auth import RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return current authenticated user profile and role."""

    return {
        "id": str(context.user_id),
        "email": context.email,
        "name": context.name,
        "role": context.role.value,
        "status": context.status.value,
        "is_admin": context.is_admin,
    }
