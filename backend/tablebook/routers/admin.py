from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_admin, get_session
from ..domain.errors import CancelNotAllowedError, InvalidRequestError, ReservationNotFoundError
from ..infrastructure.repositories import SqlAlchemyConfigurationRepository, SqlAlchemyReservationRepository
from ..models import ReservationStatus
from ..schemas import ConfigurationRead, ConfigurationUpdate, ReservationRead
from ..usecases import configuration as configuration_usecase
from ..usecases import reservations as reservation_usecase
from ..utils.audit_log import emit_audit_log
from .errors import audit_failed, invalid_request

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(get_current_admin)])


@router.get("/reservations", response_model=List[ReservationRead])
async def list_reservations(
    status_filter: Optional[ReservationStatus] = Query(default=None, alias="status"),
    reservation_date: Optional[date] = Query(default=None),
    session: AsyncSession = Depends(get_session),
) -> list[ReservationRead]:
    res_repo = SqlAlchemyReservationRepository(session)
    rows = await reservation_usecase.list_reservations(
        res_repo,
        status=status_filter,
        reservation_date=reservation_date,
    )
    return [ReservationRead.from_db(reservation=reservation) for reservation in rows]


@router.get("/reservations/{reservation_id}", response_model=ReservationRead)
async def get_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        reservation = await reservation_usecase.get_reservation(res_repo, reservation_id=reservation_id)
    except ReservationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="reservation not found")
    return ReservationRead.from_db(reservation=reservation)


@router.post("/reservations/{reservation_id}/cancel", response_model=ReservationRead)
async def cancel_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    admin: str = Depends(get_current_admin),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        try:
            updated, status_from = await reservation_usecase.cancel_reservation(
                res_repo,
                reservation_id=reservation_id,
            )
        except ReservationNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="reservation not found")
        except CancelNotAllowedError:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="reservation cannot be cancelled")

    if status_from != updated.status:
        try:
            emit_audit_log(
                action="reservation.cancelled",
                initiator="admin",
                reservation_id=updated.id,
                reservation_date=updated.reservation_date,
                slot=updated.slot,
                party_size=updated.party_size,
                status_from=status_from,
                status_to=updated.status,
                extra={"admin": admin},
            )
        except RuntimeError:
            raise audit_failed()
    return ReservationRead.from_db(reservation=updated)


@router.get("/configuration", response_model=ConfigurationRead)
async def get_configuration(session: AsyncSession = Depends(get_session)) -> ConfigurationRead:
    config = await configuration_usecase.current_configuration(SqlAlchemyConfigurationRepository(session))
    return ConfigurationRead.from_domain(config)


@router.put("/configuration", response_model=ConfigurationRead)
async def set_configuration(
    payload: ConfigurationUpdate,
    session: AsyncSession = Depends(get_session),
    admin: str = Depends(get_current_admin),
) -> ConfigurationRead:
    config_repo = SqlAlchemyConfigurationRepository(session)
    try:
        async with session.begin():
            config = await configuration_usecase.set_configuration(
                config_repo,
                max_capacity=payload.max_capacity,
                available_slots=payload.available_slots,
            )
    except InvalidRequestError as exc:
        raise invalid_request(exc)
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="configuration changed concurrently")

    try:
        emit_audit_log(
            action="configuration.updated",
            initiator="admin",
            extra={
                "admin": admin,
                "max_capacity": config.max_capacity,
                "available_slots": list(config.available_slots),
            },
        )
    except RuntimeError:
        raise audit_failed()
    return ConfigurationRead.from_domain(config)
