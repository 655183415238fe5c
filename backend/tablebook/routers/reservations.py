from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ..domain.errors import CapacityExceededError, InvalidRequestError
from ..infrastructure.repositories import SqlAlchemyConfigurationRepository, SqlAlchemyReservationRepository
from ..schemas import ReservationCreate, ReservationRead
from ..usecases import reservations as reservation_usecase
from ..utils.audit_log import emit_audit_log
from ..utils.time import local_today
from .errors import audit_failed, capacity_exceeded, invalid_request

router = APIRouter(prefix="", tags=["reservations"])


@router.post("/reservations", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    config_repo = SqlAlchemyConfigurationRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        try:
            reservation = await reservation_usecase.admit_reservation(
                config_repo,
                res_repo,
                reservation_date=payload.reservation_date,
                slot=payload.slot,
                party_size=payload.party_size,
                contact=payload.contact(),
                today=local_today(),
            )
        except CapacityExceededError as exc:
            raise capacity_exceeded(exc)
        except InvalidRequestError as exc:
            raise invalid_request(exc)

    try:
        emit_audit_log(
            action="reservation.created",
            initiator="guest",
            reservation_id=reservation.id,
            reservation_date=reservation.reservation_date,
            slot=reservation.slot,
            party_size=reservation.party_size,
            status_to=reservation.status,
        )
    except RuntimeError:
        raise audit_failed()
    return ReservationRead.from_db(reservation=reservation)
