from __future__ import annotations

import functools
from collections import defaultdict
from datetime import date
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy import Insert, func, select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import TransientStoreError
from ..domain.repositories import ConfigurationRepository, ReservationRepository
from ..models import CONFIG_ROW_ID, Reservation, ReservationStatus, RestaurantConfig, SlotLedger
from ..utils.time import utc_now_naive

T = TypeVar("T")

TRANSIENT_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


def _store_call(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await fn(*args, **kwargs)
        except TRANSIENT_ERRORS as exc:
            raise TransientStoreError("storage unavailable") from exc

    return wrapper


def _partition_upsert(dialect_name: str, values: dict[str, Any]) -> Insert:
    """INSERT of a ledger row that updates the existing row on conflict.

    Either branch leaves the row write-locked until the transaction ends.
    """
    if dialect_name == "mysql":
        my_stmt = mysql.insert(SlotLedger).values(**values)
        return my_stmt.on_duplicate_key_update(touched_at=my_stmt.inserted.touched_at)
    if dialect_name == "postgresql":
        pg_stmt = postgresql.insert(SlotLedger).values(**values)
        return pg_stmt.on_conflict_do_update(
            index_elements=["reservation_date", "slot"],
            set_={"touched_at": pg_stmt.excluded.touched_at},
        )
    if dialect_name == "sqlite":
        lite_stmt = sqlite.insert(SlotLedger).values(**values)
        return lite_stmt.on_conflict_do_update(
            index_elements=["reservation_date", "slot"],
            set_={"touched_at": lite_stmt.excluded.touched_at},
        )
    raise NotImplementedError(f"partition locking is not supported on {dialect_name}")


class SqlAlchemyConfigurationRepository(ConfigurationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @_store_call
    async def get(self) -> RestaurantConfig | None:
        result = await self.session.scalar(select(RestaurantConfig).where(RestaurantConfig.id == CONFIG_ROW_ID))
        return result if isinstance(result, RestaurantConfig) else None

    @_store_call
    async def save(self, *, max_capacity: int, available_slots: list[str]) -> RestaurantConfig:
        stmt = select(RestaurantConfig).where(RestaurantConfig.id == CONFIG_ROW_ID).with_for_update()
        config = await self.session.scalar(stmt)
        now = utc_now_naive()
        if config is None:
            config = RestaurantConfig(id=CONFIG_ROW_ID)
            self.session.add(config)
        config.max_capacity = max_capacity
        config.available_slots = list(available_slots)
        config.updated_at = now
        await self.session.flush()
        return config


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @_store_call
    async def lock_partition(self, reservation_date: date, slot: str) -> None:
        dialect_name = self.session.get_bind().dialect.name
        stmt = _partition_upsert(
            dialect_name,
            {"reservation_date": reservation_date, "slot": slot, "touched_at": utc_now_naive()},
        )
        await self.session.execute(stmt)

    @_store_call
    async def occupancy(self, reservation_date: date, slot: str) -> int:
        stmt = select(func.coalesce(func.sum(Reservation.party_size), 0)).where(
            Reservation.reservation_date == reservation_date,
            Reservation.slot == slot,
            Reservation.status == ReservationStatus.CONFIRMED,
        )
        return int(await self.session.scalar(stmt) or 0)

    @_store_call
    async def occupancy_by_slot(self, reservation_date: date) -> dict[str, int]:
        by_date = await self.occupancy_by_date(reservation_date, reservation_date)
        return by_date.get(reservation_date, {})

    @_store_call
    async def occupancy_by_date(self, start: date, end: date) -> dict[date, dict[str, int]]:
        stmt = (
            select(
                Reservation.reservation_date,
                Reservation.slot,
                func.coalesce(func.sum(Reservation.party_size), 0).label("occupied"),
            )
            .where(
                Reservation.reservation_date >= start,
                Reservation.reservation_date <= end,
                Reservation.status == ReservationStatus.CONFIRMED,
            )
            .group_by(Reservation.reservation_date, Reservation.slot)
        )
        rows = await self.session.execute(stmt)
        result: dict[date, dict[str, int]] = defaultdict(dict)
        for reservation_date, slot, occupied in rows.all():
            result[reservation_date][slot] = int(occupied)
        return dict(result)

    @_store_call
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
        now = utc_now_naive()
        reservation = Reservation(
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
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    @_store_call
    async def list_all(
        self,
        status: ReservationStatus | None = None,
        reservation_date: date | None = None,
    ) -> List[Reservation]:
        stmt = select(Reservation).order_by(Reservation.reservation_date, Reservation.slot, Reservation.id)
        if status is not None:
            stmt = stmt.where(Reservation.status == status)
        if reservation_date is not None:
            stmt = stmt.where(Reservation.reservation_date == reservation_date)
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    @_store_call
    async def get(self, reservation_id: int) -> Optional[Reservation]:
        result = await self.session.scalar(select(Reservation).where(Reservation.id == reservation_id))
        return result if isinstance(result, Reservation) else None

    @_store_call
    async def get_for_update(self, reservation_id: int) -> Optional[Reservation]:
        stmt = select(Reservation).where(Reservation.id == reservation_id).with_for_update()
        result = await self.session.scalar(stmt)
        return result if isinstance(result, Reservation) else None

    @_store_call
    async def cancel(self, reservation: Reservation) -> Reservation:
        self.session.add(reservation)
        await self.session.flush()
        return reservation
