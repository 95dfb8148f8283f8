"""Application service for hierarchical sales targets.

Covers the per-tier target lists (including SPVs that double as Sator),
the bottom-up sufficiency check between tiers, copy-forward from the
previous period and the bulk save of edited targets.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vast_finance.models.entities import Target, TargetType, User, UserRole, UserStatus
from vast_finance.repositories.target_repository import TargetRepository

logger = logging.getLogger(__name__)

TARGET_TIERS: tuple[UserRole, ...] = (UserRole.SPV, UserRole.SATOR, UserRole.PROMOTOR)


@dataclass(frozen=True, slots=True)
class Period:
    """Target period expressed as calendar year and month."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be between 1 and 12, got {self.month}")

    @classmethod
    def from_datetime(cls, value: datetime) -> Period:
        return cls(year=value.year, month=value.month)

    def previous(self) -> Period:
        if self.month == 1:
            return Period(year=self.year - 1, month=12)
        return Period(year=self.year, month=self.month - 1)

    @property
    def month_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def label(self) -> str:
        return f"{self.month}/{self.year}"


@dataclass(slots=True)
class TargetUser:
    """Editable target projection of one user for one period.

    ``current_*`` mirror stored values, ``new_*`` hold proposed edits.
    The ``*_as_sator`` pair is set for SPV rows only.
    """

    user_id: UUID
    name: str
    role: UserRole
    area: str | None
    atasan_id: UUID | None
    current_target: int
    new_target: int
    current_target_as_sator: int | None = None
    new_target_as_sator: int | None = None
    is_dual_role: bool = False


@dataclass(slots=True)
class TargetValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class FailureKind(str, enum.Enum):
    STORAGE = "storage"
    NO_PREVIOUS_TARGETS = "no_previous_targets"
    ALL_ZERO_PREVIOUS_TARGETS = "all_zero_previous_targets"


@dataclass(slots=True)
class ActionResult:
    success: bool
    message: str | None = None
    data: list[Any] = field(default_factory=list)
    failure_kind: FailureKind | None = None


@dataclass(slots=True)
class TargetBoard:
    spv: list[TargetUser]
    sator: list[TargetUser]
    promotor: list[TargetUser]


@dataclass(slots=True)
class BoardLoadResult:
    success: bool
    message: str | None = None
    board: TargetBoard | None = None
    validation: TargetValidation | None = None


@dataclass(slots=True)
class BoardSaveResult:
    save: ActionResult
    validation: TargetValidation


def _storage_message(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


def _group_by_supervisor(rows: list[TargetUser]) -> dict[UUID, list[TargetUser]]:
    grouped: dict[UUID, list[TargetUser]] = {}
    for row in rows:
        if row.atasan_id is None:
            continue
        grouped.setdefault(row.atasan_id, []).append(row)
    return grouped


def validate_hierarchical_targets(
    spv_targets: list[TargetUser],
    sator_targets: list[TargetUser],
    promotor_targets: list[TargetUser],
) -> TargetValidation:
    """Check that each parent target is covered by its direct children.

    The sator tier already contains dual-role SPVs. An SPV's own sator-tier
    row is matched by user id and counted towards that SPV's total.
    """

    errors: list[str] = []
    warnings: list[str] = []

    sators_by_spv = _group_by_supervisor(sator_targets)
    sator_by_user = {row.user_id: row for row in sator_targets}

    for spv in spv_targets:
        total = sum(row.new_target for row in sators_by_spv.get(spv.user_id, []))
        own_sator_row = sator_by_user.get(spv.user_id)
        if own_sator_row is not None:
            total += own_sator_row.new_target

        if total < spv.new_target:
            errors.append(
                f'SPV "{spv.name}": Target ({spv.new_target}) > Total target Sator ({total}). '
                f"Total target Sator harus ≥ {spv.new_target}"
            )

    promotors_by_sator = _group_by_supervisor(promotor_targets)

    for sator in sator_targets:
        total = sum(row.new_target for row in promotors_by_sator.get(sator.user_id, []))
        if total < sator.new_target:
            errors.append(
                f'Sator "{sator.name}": Target ({sator.new_target}) > Total target Promotor ({total}). '
                f"Total target Promotor harus ≥ {sator.new_target}"
            )

    return TargetValidation(is_valid=not errors, errors=errors, warnings=warnings)


def build_target_records(
    targets: list[TargetUser],
    *,
    period: Period,
    admin_user_id: UUID | None,
    now: datetime,
) -> list[Target]:
    """Turn edited rows into upsert records, skipping unchanged values."""

    records: list[Target] = []

    def _record(user_id: UUID, value: int, target_type: TargetType) -> Target:
        return Target(
            user_id=user_id,
            period_month=period.month,
            period_year=period.year,
            month=period.month_key,
            target_value=value,
            target_type=target_type,
            set_by_admin_id=admin_user_id,
            updated_at=now,
        )

    for row in targets:
        if row.new_target != row.current_target:
            records.append(_record(row.user_id, row.new_target, TargetType.PRIMARY))

        if row.role is UserRole.SPV and row.new_target_as_sator is not None:
            if row.new_target_as_sator != row.current_target_as_sator:
                records.append(_record(row.user_id, row.new_target_as_sator, TargetType.AS_SATOR))

    return records


def merge_tier_edits(
    spv_targets: list[TargetUser],
    sator_targets: list[TargetUser],
    promotor_targets: list[TargetUser],
) -> list[TargetUser]:
    """Flatten the three tiers into one save list.

    An edited sator-tier row of a dual-role SPV is carried into
    ``new_target_as_sator`` of its SPV row. The sator-tier copy is always
    dropped so no SPV is saved twice. An unedited sator-tier row leaves its SPV
    row as it is.
    """

    dual_role_rows = {
        row.user_id: row
        for row in sator_targets
        if row.role is UserRole.SPV and row.new_target != row.current_target
    }
    spv_ids = {row.user_id for row in spv_targets}

    merged: list[TargetUser] = []
    for row in spv_targets:
        sator_row = dual_role_rows.get(row.user_id)
        if sator_row is None:
            merged.append(row)
        else:
            merged.append(replace(row, new_target_as_sator=sator_row.new_target))

    # Edited SPV shown only in the sator tier (e.g. filtered out of the SPV tier):
    # keep its primary target untouched and save the sator-tier value.
    for user_id, sator_row in dual_role_rows.items():
        if user_id in spv_ids:
            continue
        merged.append(
            replace(
                sator_row,
                new_target=sator_row.current_target,
                new_target_as_sator=sator_row.new_target,
            )
        )

    merged.extend(row for row in sator_targets if row.role is not UserRole.SPV)
    merged.extend(promotor_targets)
    return merged


class TargetService:
    """Service implementing target lists, validation, copy-forward and save."""

    def __init__(self, db: Session, *, clock: Callable[[], datetime] = datetime.utcnow) -> None:
        self.db = db
        self.repo = TargetRepository(db)
        self.clock = clock

    def _storage_failure(self, exc: SQLAlchemyError, context: str) -> ActionResult:
        self.db.rollback()
        logger.exception("Storage error while %s", context)
        return ActionResult(
            success=False,
            message=_storage_message(exc),
            failure_kind=FailureKind.STORAGE,
        )

    # ---------- Target lists ----------
    def _dual_role_spv_ids(self, spv_ids: list[UUID]) -> set[UUID]:
        if not spv_ids:
            return set()
        promotor_ids = [
            user.id for user in self.repo.fetch_users(role=UserRole.PROMOTOR, status=UserStatus.ACTIVE)
        ]
        edges = self.repo.fetch_hierarchy_edges(user_ids=promotor_ids, supervisor_ids=spv_ids)
        return {edge.atasan_id for edge in edges if edge.atasan_id is not None}

    def _select_tier_users(self, role: UserRole) -> tuple[list[User], set[UUID]]:
        if role is UserRole.SATOR:
            sators = self.repo.fetch_users(role=UserRole.SATOR, status=UserStatus.ACTIVE)
            spvs = self.repo.fetch_users(role=UserRole.SPV, status=UserStatus.ACTIVE)
            dual_role_ids = self._dual_role_spv_ids([spv.id for spv in spvs])
            return sators + [spv for spv in spvs if spv.id in dual_role_ids], dual_role_ids

        users = self.repo.fetch_users(role=role, status=UserStatus.ACTIVE)
        if role is UserRole.SPV:
            return users, self._dual_role_spv_ids([user.id for user in users])
        return users, set()

    def _build_target_list(self, role: UserRole, period: Period, area: str | None) -> list[TargetUser]:
        users, dual_role_ids = self._select_tier_users(role)
        if not users:
            return []

        user_ids = [user.id for user in users]
        edge_by_user = {edge.user_id: edge for edge in self.repo.fetch_hierarchy_edges(user_ids=user_ids)}
        if area is not None:
            users = [
                user
                for user in users
                if user.id in edge_by_user and edge_by_user[user.id].area == area
            ]

        stored: dict[UUID, dict[TargetType, int]] = {}
        for target in self.repo.fetch_targets(
            period_month=period.month,
            period_year=period.year,
            user_ids=[user.id for user in users],
        ):
            stored.setdefault(target.user_id, {})[target.target_type] = target.target_value

        rows: list[TargetUser] = []
        for user in users:
            edge = edge_by_user.get(user.id)
            values = stored.get(user.id, {})
            primary = values.get(TargetType.PRIMARY, 0)

            current = primary
            if role is UserRole.SATOR and user.role is UserRole.SPV:
                current = values.get(TargetType.AS_SATOR, primary)

            row = TargetUser(
                user_id=user.id,
                name=user.name,
                role=user.role,
                area=edge.area if edge is not None else None,
                atasan_id=edge.atasan_id if edge is not None else None,
                current_target=current,
                new_target=current,
            )
            if user.role is UserRole.SPV:
                as_sator = values.get(TargetType.AS_SATOR, 0)
                row.current_target_as_sator = as_sator
                row.new_target_as_sator = as_sator
                row.is_dual_role = user.id in dual_role_ids
            rows.append(row)

        rows.sort(key=lambda row: row.name.casefold())
        return rows

    def get_target_list(self, role: UserRole, period: Period, *, area: str | None = None) -> ActionResult:
        if role not in TARGET_TIERS:
            raise ValueError(f"Targets are not managed for role {role.value!r}")

        try:
            rows = self._build_target_list(role, period, area)
        except SQLAlchemyError as exc:
            return self._storage_failure(exc, f"loading {role.value} targets for {period.month_key}")
        return ActionResult(success=True, data=rows)

    def load_target_board(self, period: Period, *, area: str | None = None) -> BoardLoadResult:
        tiers: dict[UserRole, list[TargetUser]] = {}
        for role in TARGET_TIERS:
            result = self.get_target_list(role, period, area=area)
            if not result.success:
                return BoardLoadResult(success=False, message=result.message)
            tiers[role] = result.data

        board = TargetBoard(
            spv=tiers[UserRole.SPV],
            sator=tiers[UserRole.SATOR],
            promotor=tiers[UserRole.PROMOTOR],
        )
        return BoardLoadResult(
            success=True,
            board=board,
            validation=validate_hierarchical_targets(board.spv, board.sator, board.promotor),
        )

    def list_available_periods(self) -> ActionResult:
        try:
            periods = self.repo.list_target_periods()
        except SQLAlchemyError as exc:
            return self._storage_failure(exc, "listing target periods")
        return ActionResult(
            success=True,
            data=[Period(year=year, month=month) for year, month in periods],
        )

    # ---------- Copy-forward ----------
    def copy_targets_from_previous_month(
        self,
        period: Period,
        *,
        target_type: TargetType | None = None,
    ) -> ActionResult:
        previous = period.previous()
        try:
            rows = self.repo.fetch_targets(
                period_month=previous.month,
                period_year=previous.year,
                target_type=target_type,
            )
        except SQLAlchemyError as exc:
            return self._storage_failure(exc, f"reading targets of {previous.month_key}")

        if not rows:
            logger.warning("No targets stored for %s, copy to %s refused", previous.month_key, period.month_key)
            return ActionResult(
                success=False,
                message=f"Target bulan sebelumnya ({previous.label}) tidak tersedia. Silakan set manual.",
                failure_kind=FailureKind.NO_PREVIOUS_TARGETS,
            )

        non_zero = [row for row in rows if row.target_value > 0]
        if not non_zero:
            logger.warning("All targets of %s are zero, copy to %s refused", previous.month_key, period.month_key)
            return ActionResult(
                success=False,
                message="Semua target bulan sebelumnya bernilai 0. Silakan set manual.",
                failure_kind=FailureKind.ALL_ZERO_PREVIOUS_TARGETS,
            )

        logger.info("Prepared %s targets from %s for %s", len(rows), previous.month_key, period.month_key)
        return ActionResult(
            success=True,
            message=f"{len(non_zero)} target berhasil di-copy dari bulan {previous.label}",
            data=rows,
        )

    # ---------- Save ----------
    def save_targets(
        self,
        targets: list[TargetUser],
        period: Period,
        admin_user_id: UUID | None,
    ) -> ActionResult:
        records = build_target_records(
            targets,
            period=period,
            admin_user_id=admin_user_id,
            now=self.clock(),
        )
        if not records:
            return ActionResult(success=True, message="Tidak ada perubahan target")

        try:
            self.repo.upsert_targets(records)
            self.db.commit()
        except SQLAlchemyError as exc:
            return self._storage_failure(exc, f"saving targets for {period.month_key}")

        logger.info("Saved %s targets for %s by admin %s", len(records), period.month_key, admin_user_id)
        return ActionResult(
            success=True,
            message=f"{len(records)} target berhasil disimpan",
            data=records,
        )

    def save_target_board(
        self,
        board: TargetBoard,
        period: Period,
        admin_user_id: UUID | None,
    ) -> BoardSaveResult:
        validation = validate_hierarchical_targets(board.spv, board.sator, board.promotor)
        if not validation.is_valid:
            logger.info(
                "Saving targets for %s with %s hierarchy violations",
                period.month_key,
                len(validation.errors),
            )
        result = self.save_targets(
            merge_tier_edits(board.spv, board.sator, board.promotor),
            period,
            admin_user_id,
        )
        return BoardSaveResult(save=result, validation=validation)
