from __future__ import annotations

from pydantic import BaseModel, ConfigDict, PositiveInt

from salon.errors import NotFound


class Service(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    price: str
    duration_minutes: PositiveInt


SERVICES: tuple[Service, ...] = (
    Service(
        id="anatomical-gel",
        title="Anatomical structure - builder gel",
        price="150 ₪",
        duration_minutes=90,
    ),
    Service(
        id="anatomical-gel-extended",
        title="Anatomical structure - builder gel (extended)",
        price="250 ₪",
        duration_minutes=150,
    ),
    Service(
        id="gel-pedicure",
        title="Gel polish - feet",
        price="100 ₪",
        duration_minutes=40,
    ),
    Service(
        id="eyebrows-mustache",
        title="Eyebrows / mustache",
        price="60 ₪",
        duration_minutes=20,
    ),
)

_BY_ID = {service.id: service for service in SERVICES}


def get_service(service_id: str) -> Service:
    try:
        return _BY_ID[service_id]
    except KeyError:
        raise NotFound(f"Unknown service {service_id!r}") from None
