"""Advisory availability reads.

Nothing here locks; results may be stale by the time a guest acts on them.
Only `admit_reservation` decides whether a booking is accepted.
"""

from datetime import date, timedelta

from ..domain import services
from ..domain.errors import InvalidRequestError
from ..domain.repositories import ConfigurationRepository, ReservationRepository
from ..domain.services import SlotCheck, SlotRemaining
from ..utils.time import normalize_slot
from .configuration import current_configuration

MAX_CALENDAR_DAYS = 31


async def has_any_availability(
    config_repo: ConfigurationRepository,
    res_repo: ReservationRepository,
    *,
    reservation_date: date,
    party_size: int,
    today: date,
) -> bool:
    config = await current_configuration(config_repo)
    occupancy_by_slot = await res_repo.occupancy_by_slot(reservation_date)
    return services.has_any_availability(
        config,
        reservation_date=reservation_date,
        party_size=party_size,
        occupancy_by_slot=occupancy_by_slot,
        today=today,
    )


async def list_available_slots(
    config_repo: ConfigurationRepository,
    res_repo: ReservationRepository,
    *,
    reservation_date: date,
    party_size: int,
    today: date,
) -> list[SlotRemaining]:
    config = await current_configuration(config_repo)
    occupancy_by_slot = await res_repo.occupancy_by_slot(reservation_date)
    return services.available_slots(
        config,
        reservation_date=reservation_date,
        party_size=party_size,
        occupancy_by_slot=occupancy_by_slot,
        today=today,
    )


async def check_slot(
    config_repo: ConfigurationRepository,
    res_repo: ReservationRepository,
    *,
    reservation_date: date,
    slot: str,
    party_size: int,
    today: date,
) -> SlotCheck:
    try:
        slot_key = normalize_slot(slot)
    except ValueError as exc:
        raise InvalidRequestError("slot", str(exc)) from exc
    config = await current_configuration(config_repo)
    occupancy = await res_repo.occupancy(reservation_date, slot_key)
    return services.check_slot(
        config,
        reservation_date=reservation_date,
        slot=slot_key,
        party_size=party_size,
        occupancy=occupancy,
        today=today,
    )


async def availability_calendar(
    config_repo: ConfigurationRepository,
    res_repo: ReservationRepository,
    *,
    start: date,
    days: int,
    party_size: int,
    today: date,
) -> list[tuple[date, bool]]:
    """Per-day availability for `days` consecutive days from `start`."""
    if not 1 <= days <= MAX_CALENDAR_DAYS:
        raise InvalidRequestError("days", f"days must be between 1 and {MAX_CALENDAR_DAYS}")
    try:
        end = start + timedelta(days=days - 1)
    except OverflowError as exc:
        raise InvalidRequestError("start", "start is too late for the requested window") from exc
    config = await current_configuration(config_repo)
    occupancy = await res_repo.occupancy_by_date(start, end)
    items: list[tuple[date, bool]] = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        available = services.has_any_availability(
            config,
            reservation_date=day,
            party_size=party_size,
            occupancy_by_slot=occupancy.get(day, {}),
            today=today,
        )
        items.append((day, available))
    return items
