"""Target management endpoints for the admin target board."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Path, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from vast_finance.core.auth import RequestUserContext, require_admin
from vast_finance.core.config import get_settings
from vast_finance.db.dependencies import get_db_session
from vast_finance.models.entities import Target, TargetType, UserRole
from vast_finance.services.target_service import (
    ActionResult,
    FailureKind,
    Period,
    TargetBoard,
    TargetService,
    TargetUser,
    TargetValidation,
    validate_hierarchical_targets,
)

router = APIRouter(prefix="/targets", tags=["targets"])

YearPath = Annotated[int, Path(ge=2000, le=2100)]
MonthPath = Annotated[int, Path(ge=1, le=12)]


class TargetUserPayload(BaseModel):
    user_id: UUID
    name: str = Field(min_length=1, max_length=255)
    role: UserRole
    area: str | None = None
    atasan_id: UUID | None = None
    current_target: int = Field(ge=0)
    new_target: int = Field(ge=0)
    current_target_as_sator: int | None = Field(default=None, ge=0)
    new_target_as_sator: int | None = Field(default=None, ge=0)
    is_dual_role: bool = False

    def to_target_user(self) -> TargetUser:
        return TargetUser(
            user_id=self.user_id,
            name=self.name,
            role=self.role,
            area=self.area,
            atasan_id=self.atasan_id,
            current_target=self.current_target,
            new_target=self.new_target,
            current_target_as_sator=self.current_target_as_sator,
            new_target_as_sator=self.new_target_as_sator,
            is_dual_role=self.is_dual_role,
        )


class TargetBoardPayload(BaseModel):
    spv: list[TargetUserPayload] = Field(default_factory=list)
    sator: list[TargetUserPayload] = Field(default_factory=list)
    promotor: list[TargetUserPayload] = Field(default_factory=list)

    def to_board(self) -> TargetBoard:
        return TargetBoard(
            spv=[row.to_target_user() for row in self.spv],
            sator=[row.to_target_user() for row in self.sator],
            promotor=[row.to_target_user() for row in self.promotor],
        )


def _target_service(db: Session) -> TargetService:
    return TargetService(db)


def _serialize_period(period: Period) -> dict[str, int]:
    return {"year": period.year, "month": period.month}


def _serialize_target_user(row: TargetUser) -> dict[str, object]:
    payload: dict[str, object] = {
        "user_id": str(row.user_id),
        "name": row.name,
        "role": row.role.value,
        "area": row.area,
        "atasan_id": str(row.atasan_id) if row.atasan_id else None,
        "current_target": row.current_target,
        "new_target": row.new_target,
    }
    if row.role is UserRole.SPV:
        payload["current_target_as_sator"] = row.current_target_as_sator
        payload["new_target_as_sator"] = row.new_target_as_sator
        payload["is_dual_role"] = row.is_dual_role
    return payload


def _serialize_validation(validation: TargetValidation) -> dict[str, object]:
    return {
        "is_valid": validation.is_valid,
        "errors": validation.errors,
        "warnings": validation.warnings,
    }


def _serialize_target(target: Target) -> dict[str, object]:
    return {
        "user_id": str(target.user_id),
        "period_month": target.period_month,
        "period_year": target.period_year,
        "target_value": target.target_value,
        "target_type": target.target_type.value,
    }


def _raise_on_storage_failure(result: ActionResult) -> None:
    if not result.success and result.failure_kind is FailureKind.STORAGE:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=result.message or "Target storage is unavailable.",
        )


def current_period() -> Period:
    """Period of the wall clock in the configured regional timezone."""

    settings = get_settings()
    return Period.from_datetime(datetime.now(ZoneInfo(settings.app_timezone)))


@router.get("/periods")
def list_target_periods(
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    result = _target_service(db).list_available_periods()
    _raise_on_storage_failure(result)
    return {
        "items": [_serialize_period(period) for period in result.data],
        "current": _serialize_period(current_period()),
    }


@router.get("/{year}/{month}")
def get_target_list(
    year: YearPath,
    month: MonthPath,
    role: Literal["spv", "sator", "promotor"] = "promotor",
    area: str | None = None,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    result = _target_service(db).get_target_list(
        UserRole(role),
        Period(year=year, month=month),
        area=area,
    )
    _raise_on_storage_failure(result)
    return {"items": [_serialize_target_user(row) for row in result.data]}


@router.get("/{year}/{month}/board")
def get_target_board(
    year: YearPath,
    month: MonthPath,
    area: str | None = None,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    result = _target_service(db).load_target_board(Period(year=year, month=month), area=area)
    if not result.success or result.board is None or result.validation is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=result.message or "Target storage is unavailable.",
        )
    return {
        "period": {"year": year, "month": month},
        "spv": [_serialize_target_user(row) for row in result.board.spv],
        "sator": [_serialize_target_user(row) for row in result.board.sator],
        "promotor": [_serialize_target_user(row) for row in result.board.promotor],
        "validation": _serialize_validation(result.validation),
    }


@router.post("/{year}/{month}/validate")
def validate_target_board(
    payload: TargetBoardPayload,
    year: YearPath,
    month: MonthPath,
    _: RequestUserContext = Depends(require_admin),
) -> dict[str, object]:
    board = payload.to_board()
    return _serialize_validation(validate_hierarchical_targets(board.spv, board.sator, board.promotor))


@router.post("/{year}/{month}/copy-previous")
def copy_targets_from_previous_month(
    year: YearPath,
    month: MonthPath,
    target_type: TargetType | None = None,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    period = Period(year=year, month=month)
    result = _target_service(db).copy_targets_from_previous_month(period, target_type=target_type)
    _raise_on_storage_failure(result)
    return {
        "success": result.success,
        "message": result.message,
        "previous_period": _serialize_period(period.previous()),
        "data": [_serialize_target(row) for row in result.data],
    }


@router.put("/{year}/{month}")
def save_target_board(
    payload: TargetBoardPayload,
    year: YearPath,
    month: MonthPath,
    context: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    result = _target_service(db).save_target_board(
        payload.to_board(),
        Period(year=year, month=month),
        context.user_id,
    )
    _raise_on_storage_failure(result.save)
    return {
        "success": result.save.success,
        "message": result.save.message,
        "saved_records": len(result.save.data),
        "validation": _serialize_validation(result.validation),
    }
