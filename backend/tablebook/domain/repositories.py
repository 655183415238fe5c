from __future__ import annotations

from datetime import date
from typing import Protocol

from ..models import Reservation, ReservationStatus, RestaurantConfig


class ConfigurationRepository(Protocol):
    async def get(self) -> RestaurantConfig | None: ...

    async def save(self, *, max_capacity: int, available_slots: list[str]) -> RestaurantConfig: ...


class ReservationRepository(Protocol):
    async def lock_partition(self, reservation_date: date, slot: str) -> None: ...

    async def occupancy(self, reservation_date: date, slot: str) -> int: ...

    async def occupancy_by_slot(self, reservation_date: date) -> dict[str, int]: ...

    async def occupancy_by_date(self, start: date, end: date) -> dict[date, dict[str, int]]: ...

    async def create(
        self,
        *,
        reservation_date: date,
        slot: str,
        party_size: int,
        guest_name: str,
        guest_email: str,
        guest_phone: str,
    ) -> Reservation: ...

    async def list_all(
        self,
        status: ReservationStatus | None = None,
        reservation_date: date | None = None,
    ) -> list[Reservation]: ...

    async def get(self, reservation_id: int) -> Reservation | None: ...

    async def get_for_update(self, reservation_id: int) -> Reservation | None: ...

    async def cancel(self, reservation: Reservation) -> Reservation: ...
