from ..config import get_settings
from ..domain.errors import InvalidRequestError
from ..domain.repositories import ConfigurationRepository
from ..domain.services import CapacityConfig
from ..models import RestaurantConfig
from ..utils.time import normalize_slot


def normalize_slots(slots: list[str]) -> tuple[str, ...]:
    """Canonical, unique, ascending slot values."""
    normalized: set[str] = set()
    for raw in slots:
        try:
            normalized.add(normalize_slot(raw))
        except ValueError as exc:
            raise InvalidRequestError("available_slots", str(exc)) from exc
    return tuple(sorted(normalized))


def default_configuration() -> CapacityConfig:
    settings = get_settings()
    return CapacityConfig(
        max_capacity=settings.default_max_capacity,
        available_slots=normalize_slots(settings.default_slots),
    )


def to_capacity_config(row: RestaurantConfig) -> CapacityConfig:
    return CapacityConfig(
        max_capacity=row.max_capacity,
        available_slots=tuple(sorted(row.available_slots)),
    )


async def current_configuration(config_repo: ConfigurationRepository) -> CapacityConfig:
    """Read the configuration fresh from the store; defaults until an admin saves one."""
    row = await config_repo.get()
    if row is None:
        return default_configuration()
    return to_capacity_config(row)


async def set_configuration(
    config_repo: ConfigurationRepository,
    *,
    max_capacity: int,
    available_slots: list[str],
) -> CapacityConfig:
    if max_capacity < 1:
        raise InvalidRequestError("max_capacity", "max_capacity must be at least 1")
    slots = normalize_slots(available_slots)
    row = await config_repo.save(max_capacity=max_capacity, available_slots=list(slots))
    return to_capacity_config(row)
