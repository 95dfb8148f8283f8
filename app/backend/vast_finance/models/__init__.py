"""ORM model package."""

from vast_finance.models.entities import (
    Hierarchy,
    Target,
    TargetType,
    User,
    UserRole,
    UserStatus,
)

__all__ = [
    "Hierarchy",
    "Target",
    "TargetType",
    "User",
    "UserRole",
    "UserStatus",
]
