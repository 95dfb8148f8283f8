"""Repository helpers for users, hierarchy edges and stored targets."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from vast_finance.models.entities import Hierarchy, Target, TargetType, User, UserRole, UserStatus

logger = logging.getLogger(__name__)


class TargetRepository:
    """Persistence operations used by the target service."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Users ----------
    def get_user_by_email(self, email: str) -> User | None:
        return self.db.scalar(select(User).where(User.email == email))

    def fetch_users(
        self,
        *,
        role: UserRole | None = None,
        status: UserStatus | None = None,
    ) -> list[User]:
        conditions = []
        if role is not None:
            conditions.append(User.role == role)
        if status is not None:
            conditions.append(User.status == status)

        statement = select(User).order_by(User.name.asc())
        if conditions:
            statement = statement.where(and_(*conditions))
        return list(self.db.scalars(statement).all())

    # ---------- Hierarchy ----------
    def fetch_hierarchy_edges(
        self,
        *,
        user_ids: Iterable[UUID] | None = None,
        supervisor_ids: Iterable[UUID] | None = None,
        area: str | None = None,
    ) -> list[Hierarchy]:
        conditions = []
        if user_ids is not None:
            ids = set(user_ids)
            if not ids:
                return []
            conditions.append(Hierarchy.user_id.in_(ids))
        if supervisor_ids is not None:
            ids = set(supervisor_ids)
            if not ids:
                return []
            conditions.append(Hierarchy.atasan_id.in_(ids))
        if area is not None:
            conditions.append(Hierarchy.area == area)

        statement = select(Hierarchy)
        if conditions:
            statement = statement.where(and_(*conditions))
        return list(self.db.scalars(statement).all())

    # ---------- Targets ----------
    def fetch_targets(
        self,
        *,
        period_month: int,
        period_year: int,
        user_ids: Iterable[UUID] | None = None,
        target_type: TargetType | None = None,
    ) -> list[Target]:
        conditions = [
            Target.period_month == period_month,
            Target.period_year == period_year,
        ]
        if user_ids is not None:
            ids = set(user_ids)
            if not ids:
                return []
            conditions.append(Target.user_id.in_(ids))
        if target_type is not None:
            conditions.append(Target.target_type == target_type)

        return list(
            self.db.scalars(
                select(Target)
                .where(and_(*conditions))
                .order_by(Target.user_id.asc(), Target.target_type.asc())
            ).all()
        )

    def get_target(
        self,
        *,
        user_id: UUID,
        period_month: int,
        period_year: int,
        target_type: TargetType,
    ) -> Target | None:
        return self.db.scalar(
            select(Target).where(
                and_(
                    Target.user_id == user_id,
                    Target.period_month == period_month,
                    Target.period_year == period_year,
                    Target.target_type == target_type,
                )
            )
        )

    def add_target(self, target: Target) -> Target:
        self.db.add(target)
        self.db.flush()
        return target

    def upsert_targets(self, records: list[Target]) -> int:
        """Insert or overwrite targets keyed by (user, month, year, type).

        Records are transient ``Target`` instances. An existing row with the
        same key keeps its identity and creation time; value, admin and
        ``updated_at`` are overwritten.
        """

        for record in records:
            row = self.get_target(
                user_id=record.user_id,
                period_month=record.period_month,
                period_year=record.period_year,
                target_type=record.target_type,
            )
            if row is None:
                if record.created_at is None:
                    record.created_at = record.updated_at
                self.add_target(record)
            else:
                row.target_value = record.target_value
                row.month = record.month
                row.set_by_admin_id = record.set_by_admin_id
                row.updated_at = record.updated_at
        self.db.flush()
        logger.debug("Upserted %s target rows", len(records))
        return len(records)

    def list_target_periods(self) -> list[tuple[int, int]]:
        rows = self.db.execute(
            select(Target.period_year, Target.period_month)
            .distinct()
            .order_by(Target.period_year.desc(), Target.period_month.desc())
        ).all()
        return [(int(year), int(month)) for year, month in rows]
