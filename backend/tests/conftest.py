import asyncio
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import AsyncIterator, Callable, Optional

import pytest
from tablebook.domain.errors import TransientStoreError
from tablebook.domain.services import ContactInfo
from tablebook.models import Reservation, ReservationStatus, RestaurantConfig
from tablebook.usecases import reservations as reservation_usecase

TODAY = date(2030, 6, 1)
GUEST = ContactInfo(name="Ana Ruiz", email="ana@example.com", phone="+34 600 000 000")


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class FakeConfigRepo:
    def __init__(self, store: "FakeStore") -> None:
        self.store = store

    async def get(self) -> Optional[RestaurantConfig]:
        self.store.check_reachable()
        return self.store.config_row

    async def save(self, *, max_capacity: int, available_slots: list[str]) -> RestaurantConfig:
        self.store.check_reachable()
        self.store.config_row = RestaurantConfig(
            id=1,
            max_capacity=max_capacity,
            available_slots=list(available_slots),
            updated_at=_now(),
        )
        return self.store.config_row


class FakeReservationRepo:
    """Mimics row-lock semantics: a partition lock is held until the transaction ends."""

    def __init__(self, store: "FakeStore") -> None:
        self.store = store
        self.held: list[asyncio.Lock] = []
        self.pending: list[Reservation] = []

    def _visible(self) -> list[Reservation]:
        return list(self.store.reservations.values()) + self.pending

    async def lock_partition(self, reservation_date: date, slot: str) -> None:
        self.store.check_reachable()
        self.store.lock_calls.append((reservation_date, slot))
        lock = self.store.locks.setdefault((reservation_date, slot), asyncio.Lock())
        await lock.acquire()
        self.held.append(lock)

    async def occupancy(self, reservation_date: date, slot: str) -> int:
        self.store.check_reachable()
        # Yield so that concurrent admissions interleave here.
        await asyncio.sleep(0)
        return sum(
            r.party_size
            for r in self._visible()
            if r.reservation_date == reservation_date and r.slot == slot and r.status == ReservationStatus.CONFIRMED
        )

    async def occupancy_by_slot(self, reservation_date: date) -> dict[str, int]:
        by_date = await self.occupancy_by_date(reservation_date, reservation_date)
        return by_date.get(reservation_date, {})

    async def occupancy_by_date(self, start: date, end: date) -> dict[date, dict[str, int]]:
        self.store.check_reachable()
        result: dict[date, dict[str, int]] = {}
        for r in self._visible():
            if start <= r.reservation_date <= end and r.status == ReservationStatus.CONFIRMED:
                per_slot = result.setdefault(r.reservation_date, {})
                per_slot[r.slot] = per_slot.get(r.slot, 0) + r.party_size
        return result

    async def create(
        self,
        *,
        reservation_date: date,
        slot: str,
        party_size: int,
        guest_name: str,
        guest_email: str,
        guest_phone: str,
    ) -> Reservation:
        now = _now()
        reservation = Reservation(
            id=self.store.next_id(),
            reservation_date=reservation_date,
            slot=slot,
            party_size=party_size,
            guest_name=guest_name,
            guest_email=guest_email,
            guest_phone=guest_phone,
            status=ReservationStatus.CONFIRMED,
            created_at=now,
            updated_at=now,
        )
        self.pending.append(reservation)
        return reservation

    async def list_all(
        self,
        status: Optional[ReservationStatus] = None,
        reservation_date: Optional[date] = None,
    ) -> list[Reservation]:
        rows = [
            r
            for r in self._visible()
            if (status is None or r.status == status)
            and (reservation_date is None or r.reservation_date == reservation_date)
        ]
        return sorted(rows, key=lambda r: (r.reservation_date, r.slot, r.id))

    async def get(self, reservation_id: int) -> Optional[Reservation]:
        return self.store.reservations.get(reservation_id)

    async def get_for_update(self, reservation_id: int) -> Optional[Reservation]:
        return self.store.reservations.get(reservation_id)

    async def cancel(self, reservation: Reservation) -> Reservation:
        self.store.cancel_calls += 1
        return reservation

    def commit(self) -> None:
        for reservation in self.pending:
            self.store.reservations[reservation.id] = reservation
        self.pending = []

    def release(self) -> None:
        for lock in self.held:
            lock.release()
        self.held = []


class FakeStore:
    def __init__(self, *, max_capacity: int = 10, slots: tuple[str, ...] = ("20:00", "20:30", "21:00")) -> None:
        self.config_row: Optional[RestaurantConfig] = RestaurantConfig(
            id=1,
            max_capacity=max_capacity,
            available_slots=list(slots),
            updated_at=_now(),
        )
        self.reservations: dict[int, Reservation] = {}
        self.locks: dict[tuple[date, str], asyncio.Lock] = {}
        self.lock_calls: list[tuple[date, str]] = []
        self.cancel_calls = 0
        self.unreachable = False
        self._next_id = 1

    def next_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def check_reachable(self) -> None:
        if self.unreachable:
            raise TransientStoreError("storage unavailable")

    def repos(self) -> tuple[FakeConfigRepo, FakeReservationRepo]:
        return FakeConfigRepo(self), FakeReservationRepo(self)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[tuple[FakeConfigRepo, FakeReservationRepo]]:
        config_repo, res_repo = self.repos()
        try:
            yield config_repo, res_repo
            res_repo.commit()
        finally:
            res_repo.release()

    def occupancy(self, reservation_date: date, slot: str) -> int:
        return sum(
            r.party_size
            for r in self.reservations.values()
            if r.reservation_date == reservation_date and r.slot == slot and r.status == ReservationStatus.CONFIRMED
        )

    async def admit(
        self,
        *,
        party_size: int,
        reservation_date: date,
        slot: str = "20:00",
        contact: ContactInfo = GUEST,
        today: date = TODAY,
    ) -> Reservation:
        async with self.transaction() as (config_repo, res_repo):
            return await reservation_usecase.admit_reservation(
                config_repo,
                res_repo,
                reservation_date=reservation_date,
                slot=slot,
                party_size=party_size,
                contact=contact,
                today=today,
            )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def guest() -> ContactInfo:
    return GUEST


@pytest.fixture
def make_store() -> Callable[..., FakeStore]:
    return FakeStore
