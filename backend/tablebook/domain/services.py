import re
from dataclasses import dataclass
from datetime import date
from typing import Mapping

from .errors import CapacityExceededError, InvalidRequestError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class CapacityConfig:
    max_capacity: int
    available_slots: tuple[str, ...]


@dataclass(frozen=True)
class ContactInfo:
    name: str
    email: str
    phone: str


@dataclass(frozen=True)
class SlotRemaining:
    slot: str
    remaining: int


@dataclass(frozen=True)
class SlotCheck:
    admissible: bool
    remaining: int


@dataclass(frozen=True)
class Admission:
    remaining: int
    contact: ContactInfo


def remaining_capacity(config: CapacityConfig, occupancy: int) -> int:
    """Unfloored remaining seats. Negative only if capacity was lowered below occupancy."""
    return config.max_capacity - occupancy


def is_admissible(
    config: CapacityConfig,
    *,
    reservation_date: date,
    slot: str,
    party_size: int,
    occupancy: int,
    today: date,
) -> bool:
    if party_size < 1 or reservation_date < today:
        return False
    if slot not in config.available_slots:
        return False
    return party_size <= remaining_capacity(config, occupancy)


def check_slot(
    config: CapacityConfig,
    *,
    reservation_date: date,
    slot: str,
    party_size: int,
    occupancy: int,
    today: date,
) -> SlotCheck:
    admissible = is_admissible(
        config,
        reservation_date=reservation_date,
        slot=slot,
        party_size=party_size,
        occupancy=occupancy,
        today=today,
    )
    return SlotCheck(admissible=admissible, remaining=max(remaining_capacity(config, occupancy), 0))


def available_slots(
    config: CapacityConfig,
    *,
    reservation_date: date,
    party_size: int,
    occupancy_by_slot: Mapping[str, int],
    today: date,
) -> list[SlotRemaining]:
    """Configured slots that can still take the party, ordered by slot."""
    items: list[SlotRemaining] = []
    for slot in sorted(config.available_slots):
        occupancy = occupancy_by_slot.get(slot, 0)
        if is_admissible(
            config,
            reservation_date=reservation_date,
            slot=slot,
            party_size=party_size,
            occupancy=occupancy,
            today=today,
        ):
            items.append(SlotRemaining(slot=slot, remaining=remaining_capacity(config, occupancy)))
    return items


def has_any_availability(
    config: CapacityConfig,
    *,
    reservation_date: date,
    party_size: int,
    occupancy_by_slot: Mapping[str, int],
    today: date,
) -> bool:
    return any(
        is_admissible(
            config,
            reservation_date=reservation_date,
            slot=slot,
            party_size=party_size,
            occupancy=occupancy_by_slot.get(slot, 0),
            today=today,
        )
        for slot in config.available_slots
    )


def validate_contact(contact: ContactInfo) -> ContactInfo:
    """Strip contact fields and reject empty ones or a malformed email."""
    cleaned = ContactInfo(
        name=contact.name.strip(),
        email=contact.email.strip(),
        phone=contact.phone.strip(),
    )
    for field in ("name", "email", "phone"):
        if not getattr(cleaned, field):
            raise InvalidRequestError(field, f"{field} is required")
    if not _EMAIL_RE.match(cleaned.email):
        raise InvalidRequestError("email", "email is not a valid address")
    return cleaned


def validate_admission(
    config: CapacityConfig,
    *,
    reservation_date: date,
    slot: str,
    party_size: int,
    contact: ContactInfo,
    occupancy: int,
    today: date,
) -> Admission:
    """
    Authoritative admission check against a locked snapshot.
    Input errors are reported before capacity, so a past-dated request is
    always invalid no matter how full the slot is.
    Returns remaining capacity after booking and the stripped contact if OK.
    Raises domain errors otherwise.
    """
    if party_size < 1:
        raise InvalidRequestError("party_size", "party_size must be at least 1")
    if reservation_date < today:
        raise InvalidRequestError("reservation_date", "reservation_date is in the past")
    if slot not in config.available_slots:
        raise InvalidRequestError("slot", "slot is not offered")
    cleaned = validate_contact(contact)

    remaining = remaining_capacity(config, occupancy)
    if party_size > remaining:
        raise CapacityExceededError(max(remaining, 0))
    return Admission(remaining=remaining - party_size, contact=cleaned)
