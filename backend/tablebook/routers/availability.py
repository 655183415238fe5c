from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ..domain.errors import InvalidRequestError
from ..infrastructure.repositories import SqlAlchemyConfigurationRepository, SqlAlchemyReservationRepository
from ..schemas import DayAvailability, SlotAvailability, SlotCheckRead
from ..usecases import availability as availability_usecase
from ..utils.time import local_today, normalize_slot
from .errors import invalid_request

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("/dates", response_model=List[DayAvailability])
async def availability_calendar(
    party_size: int = Query(..., ge=1),
    start: date | None = Query(default=None, description="First day; defaults to today"),
    days: int = Query(default=14, ge=1, le=availability_usecase.MAX_CALENDAR_DAYS),
    session: AsyncSession = Depends(get_session),
) -> list[DayAvailability]:
    today = local_today()
    try:
        rows = await availability_usecase.availability_calendar(
            SqlAlchemyConfigurationRepository(session),
            SqlAlchemyReservationRepository(session),
            start=start or today,
            days=days,
            party_size=party_size,
            today=today,
        )
    except InvalidRequestError as exc:
        raise invalid_request(exc)
    return [DayAvailability(reservation_date=day, has_availability=available) for day, available in rows]


@router.get("/{reservation_date}", response_model=DayAvailability)
async def day_availability(
    reservation_date: date,
    party_size: int = Query(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> DayAvailability:
    available = await availability_usecase.has_any_availability(
        SqlAlchemyConfigurationRepository(session),
        SqlAlchemyReservationRepository(session),
        reservation_date=reservation_date,
        party_size=party_size,
        today=local_today(),
    )
    return DayAvailability(reservation_date=reservation_date, has_availability=available)


@router.get("/{reservation_date}/slots", response_model=List[SlotAvailability])
async def list_slots(
    reservation_date: date,
    party_size: int = Query(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> list[SlotAvailability]:
    items = await availability_usecase.list_available_slots(
        SqlAlchemyConfigurationRepository(session),
        SqlAlchemyReservationRepository(session),
        reservation_date=reservation_date,
        party_size=party_size,
        today=local_today(),
    )
    return [SlotAvailability.from_domain(item) for item in items]


@router.get("/{reservation_date}/slots/{slot}", response_model=SlotCheckRead)
async def check_slot(
    reservation_date: date,
    slot: str = Path(..., description="Time of day, HH:MM"),
    party_size: int = Query(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> SlotCheckRead:
    try:
        check = await availability_usecase.check_slot(
            SqlAlchemyConfigurationRepository(session),
            SqlAlchemyReservationRepository(session),
            reservation_date=reservation_date,
            slot=slot,
            party_size=party_size,
            today=local_today(),
        )
    except InvalidRequestError as exc:
        raise invalid_request(exc)
    return SlotCheckRead.from_domain(
        reservation_date=reservation_date,
        slot=normalize_slot(slot),
        party_size=party_size,
        check=check,
    )
