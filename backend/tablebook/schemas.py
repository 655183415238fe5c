from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel

from .domain.services import CapacityConfig, ContactInfo, SlotCheck, SlotRemaining
from .models import Reservation, ReservationStatus


class DayAvailability(BaseModel):
    reservation_date: date
    has_availability: bool


class SlotAvailability(BaseModel):
    slot: str
    remaining: int

    @classmethod
    def from_domain(cls, item: SlotRemaining) -> "SlotAvailability":
        return cls(slot=item.slot, remaining=item.remaining)


class SlotCheckRead(BaseModel):
    reservation_date: date
    slot: str
    party_size: int
    admissible: bool
    remaining: int

    @classmethod
    def from_domain(cls, *, reservation_date: date, slot: str, party_size: int, check: SlotCheck) -> "SlotCheckRead":
        return cls(
            reservation_date=reservation_date,
            slot=slot,
            party_size=party_size,
            admissible=check.admissible,
            remaining=check.remaining,
        )


class ReservationCreate(BaseModel):
    reservation_date: date
    slot: str
    party_size: int
    name: str
    email: str
    phone: str

    def contact(self) -> ContactInfo:
        return ContactInfo(name=self.name, email=self.email, phone=self.phone)


class ReservationRead(BaseModel):
    reservation_id: int
    reservation_date: date
    slot: str
    party_size: int
    name: str
    email: str
    phone: str
    status: ReservationStatus
    created_at: Optional[datetime] = None

    @classmethod
    def from_db(cls, *, reservation: Reservation) -> "ReservationRead":
        return cls(
            reservation_id=reservation.id,
            reservation_date=reservation.reservation_date,
            slot=reservation.slot,
            party_size=reservation.party_size,
            name=reservation.guest_name,
            email=reservation.guest_email,
            phone=reservation.guest_phone,
            status=reservation.status,
            created_at=reservation.created_at,
        )


class ConfigurationUpdate(BaseModel):
    max_capacity: int
    available_slots: list[str]


class ConfigurationRead(BaseModel):
    max_capacity: int
    available_slots: list[str]

    @classmethod
    def from_domain(cls, config: CapacityConfig) -> "ConfigurationRead":
        return cls(max_capacity=config.max_capacity, available_slots=list(config.available_slots))
