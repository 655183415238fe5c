import logging
from datetime import date

from ..domain.errors import CancelNotAllowedError, CapacityExceededError, InvalidRequestError, ReservationNotFoundError
from ..domain.repositories import ConfigurationRepository, ReservationRepository
from ..domain.services import ContactInfo, validate_admission
from ..models import Reservation, ReservationStatus
from ..utils.time import normalize_slot, utc_now_naive
from .configuration import current_configuration

logger = logging.getLogger(__name__)


async def admit_reservation(
    config_repo: ConfigurationRepository,
    res_repo: ReservationRepository,
    *,
    reservation_date: date,
    slot: str,
    party_size: int,
    contact: ContactInfo,
    today: date,
) -> Reservation:
    """Check capacity and insert a confirmed reservation.

    Must run inside a single transaction owned by the caller; any raised error
    leaves nothing written once that transaction rolls back.
    """
    try:
        slot_key = normalize_slot(slot)
    except ValueError as exc:
        raise InvalidRequestError("slot", str(exc)) from exc

    # Must stay the first statement of the transaction: every read below then
    # sees all admissions committed on this partition before the lock.
    await res_repo.lock_partition(reservation_date, slot_key)

    config = await current_configuration(config_repo)
    occupancy = await res_repo.occupancy(reservation_date, slot_key)
    try:
        admission = validate_admission(
            config,
            reservation_date=reservation_date,
            slot=slot_key,
            party_size=party_size,
            contact=contact,
            occupancy=occupancy,
            today=today,
        )
    except CapacityExceededError as exc:
        logger.info(
            "admission rejected for %s %s: party of %d, %d remaining",
            reservation_date,
            slot_key,
            party_size,
            exc.remaining,
        )
        raise

    cleaned = admission.contact
    return await res_repo.create(
        reservation_date=reservation_date,
        slot=slot_key,
        party_size=party_size,
        guest_name=cleaned.name,
        guest_email=cleaned.email,
        guest_phone=cleaned.phone,
    )


async def cancel_reservation(
    res_repo: ReservationRepository,
    *,
    reservation_id: int,
) -> tuple[Reservation, ReservationStatus]:
    """Returns the reservation and the status it had before the call."""
    reservation = await res_repo.get_for_update(reservation_id)
    if reservation is None:
        raise ReservationNotFoundError("reservation not found")
    previous = reservation.status
    # Idempotent: already cancelled returns as-is
    if previous == ReservationStatus.CANCELLED:
        return reservation, previous
    if previous != ReservationStatus.CONFIRMED:
        raise CancelNotAllowedError(f"reservation is {previous.value}")

    reservation.status = ReservationStatus.CANCELLED
    reservation.updated_at = utc_now_naive()
    updated = await res_repo.cancel(reservation)
    return updated, previous


async def list_reservations(
    res_repo: ReservationRepository,
    *,
    status: ReservationStatus | None = None,
    reservation_date: date | None = None,
) -> list[Reservation]:
    return await res_repo.list_all(status=status, reservation_date=reservation_date)


async def get_reservation(res_repo: ReservationRepository, *, reservation_id: int) -> Reservation:
    reservation = await res_repo.get(reservation_id)
    if reservation is None:
        raise ReservationNotFoundError("reservation not found")
    return reservation
