from datetime import date, datetime, timedelta, timezone
from typing import Any, cast

import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from tablebook.domain.errors import CapacityExceededError, InvalidRequestError
from tablebook.models import Reservation, ReservationStatus
from tablebook.routers import admin as admin_router
from tablebook.routers import reservations as router
from tablebook.schemas import ReservationCreate, ReservationRead


class DummySession:
    async def __aenter__(self) -> "DummySession":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        return False

    def begin(self) -> "DummySession":
        return self


def _reservation(status: ReservationStatus = ReservationStatus.CONFIRMED) -> Reservation:
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return Reservation(
        id=100,
        reservation_date=date.today() + timedelta(days=1),
        slot="20:30",
        party_size=2,
        guest_name="Ana",
        guest_email="ana@example.com",
        guest_phone="600",
        status=status,
        created_at=now,
        updated_at=now,
    )


def _payload(reservation: Reservation) -> ReservationCreate:
    return ReservationCreate(
        reservation_date=reservation.reservation_date,
        slot=reservation.slot,
        party_size=reservation.party_size,
        name="Ana",
        email="ana@example.com",
        phone="600",
    )


@pytest.fixture
def patched_repos(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(router, "SqlAlchemyConfigurationRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(router, "SqlAlchemyReservationRepository", lambda s: s)  # type: ignore[assignment]


@pytest.mark.asyncio
async def test_create_reservation_emits_audit(monkeypatch: pytest.MonkeyPatch, patched_repos: None) -> None:
    reservation = _reservation()
    seen: dict[str, Any] = {}

    async def fake_admit(*args: object, **kwargs: Any) -> Reservation:
        seen.update(kwargs)
        return reservation

    calls: list[dict[str, Any]] = []

    def fake_emit(**kwargs: Any) -> None:
        calls.append(kwargs)

    monkeypatch.setattr(router.reservation_usecase, "admit_reservation", fake_admit)  # type: ignore[attr-defined]
    monkeypatch.setattr(router, "emit_audit_log", fake_emit)

    result: ReservationRead = await router.create_reservation(
        payload=_payload(reservation),
        session=cast(AsyncSession, DummySession()),
    )

    assert result.reservation_id == reservation.id
    assert result.status == ReservationStatus.CONFIRMED
    assert seen["contact"].email == "ana@example.com"
    assert isinstance(seen["today"], date)
    assert len(calls) == 1
    assert calls[0]["action"] == "reservation.created"
    assert calls[0]["initiator"] == "guest"
    assert calls[0]["reservation_id"] == reservation.id


@pytest.mark.asyncio
async def test_capacity_exceeded_maps_to_409_with_remaining(
    monkeypatch: pytest.MonkeyPatch, patched_repos: None
) -> None:
    async def fake_admit(*args: object, **kwargs: object) -> Reservation:
        raise CapacityExceededError(remaining=4)

    monkeypatch.setattr(router.reservation_usecase, "admit_reservation", fake_admit)  # type: ignore[attr-defined]

    with pytest.raises(HTTPException) as excinfo:
        await router.create_reservation(payload=_payload(_reservation()), session=cast(AsyncSession, DummySession()))
    assert excinfo.value.status_code == 409
    assert excinfo.value.detail == {"code": "capacity_exceeded", "remaining": 4}


@pytest.mark.asyncio
async def test_invalid_request_maps_to_422_with_field(monkeypatch: pytest.MonkeyPatch, patched_repos: None) -> None:
    async def fake_admit(*args: object, **kwargs: object) -> Reservation:
        raise InvalidRequestError("reservation_date", "reservation_date is in the past")

    monkeypatch.setattr(router.reservation_usecase, "admit_reservation", fake_admit)  # type: ignore[attr-defined]

    with pytest.raises(HTTPException) as excinfo:
        await router.create_reservation(payload=_payload(_reservation()), session=cast(AsyncSession, DummySession()))
    assert excinfo.value.status_code == 422
    assert cast(dict, excinfo.value.detail)["field"] == "reservation_date"


@pytest.mark.asyncio
async def test_cancel_reservation_log_failure_returns_500(monkeypatch: pytest.MonkeyPatch) -> None:
    reservation = _reservation(status=ReservationStatus.CANCELLED)

    async def fake_cancel(*args: object, **kwargs: object) -> tuple[Reservation, ReservationStatus]:
        return reservation, ReservationStatus.CONFIRMED

    def fake_emit(**kwargs: Any) -> None:
        raise RuntimeError("fail log")

    monkeypatch.setattr(admin_router, "SqlAlchemyReservationRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(admin_router.reservation_usecase, "cancel_reservation", fake_cancel)  # type: ignore[attr-defined]
    monkeypatch.setattr(admin_router, "emit_audit_log", fake_emit)

    with pytest.raises(HTTPException) as excinfo:
        await admin_router.cancel_reservation(
            reservation_id=reservation.id,
            session=cast(AsyncSession, DummySession()),
            admin="staff-1",
        )
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_repeated_cancel_does_not_emit_again(monkeypatch: pytest.MonkeyPatch) -> None:
    reservation = _reservation(status=ReservationStatus.CANCELLED)

    async def fake_cancel(*args: object, **kwargs: object) -> tuple[Reservation, ReservationStatus]:
        return reservation, ReservationStatus.CANCELLED

    calls: list[dict[str, Any]] = []

    monkeypatch.setattr(admin_router, "SqlAlchemyReservationRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(admin_router.reservation_usecase, "cancel_reservation", fake_cancel)  # type: ignore[attr-defined]
    monkeypatch.setattr(admin_router, "emit_audit_log", lambda **kwargs: calls.append(kwargs))

    result = await admin_router.cancel_reservation(
        reservation_id=reservation.id,
        session=cast(AsyncSession, DummySession()),
        admin="staff-1",
    )
    assert result.status == ReservationStatus.CANCELLED
    assert calls == []


@pytest.mark.asyncio
async def test_zero_party_size_reports_invalid_request_field(monkeypatch: pytest.MonkeyPatch, store: Any) -> None:
    config_repo, res_repo = store.repos()
    monkeypatch.setattr(router, "SqlAlchemyConfigurationRepository", lambda s: config_repo)  # type: ignore[assignment]
    monkeypatch.setattr(router, "SqlAlchemyReservationRepository", lambda s: res_repo)  # type: ignore[assignment]
    payload = _payload(_reservation()).model_copy(update={"party_size": 0})

    with pytest.raises(HTTPException) as excinfo:
        await router.create_reservation(payload=payload, session=cast(AsyncSession, DummySession()))
    assert excinfo.value.status_code == 422
    assert excinfo.value.detail == {
        "code": "invalid_request",
        "field": "party_size",
        "message": "party_size must be at least 1",
    }
    assert store.reservations == {}
