import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from server_dashboard.config import get_settings
from server_dashboard.models.service import Service
from server_dashboard.services import prober
from server_dashboard.services.errors import NotFoundError, ValidationError
from server_dashboard.services.service_store import JsonServiceStore

logger = logging.getLogger(__name__)


def _get_store() -> JsonServiceStore:
    return JsonServiceStore(get_settings().services_file)


def _require(**fields: Optional[str]) -> None:
    missing = [name for name, value in fields.items() if not value or not str(value).strip()]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required")


def _new_service_id(existing: Iterable[str]) -> str:
    """Millisecond timestamp, bumped until it does not collide with an existing id."""
    taken = set(existing)
    candidate = int(time.time() * 1000)
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)


def list_services() -> List[Service]:
    return _get_store().read()


async def create_service(name: Optional[str], url: Optional[str]) -> Service:
    """
    Register a new service.

    The url is probed once before the record is stored, so a new entry always
    carries a measured status.
    """
    _require(name=name, url=url)

    store = _get_store()
    services = await asyncio.to_thread(store.read)
    result = await prober.probe(url)

    service = Service(
        id=_new_service_id(s.id for s in services),
        name=name,
        url=url,
        status=result.status,
        response_time=result.response_time,
        created_at=datetime.now(timezone.utc),
    )
    services.append(service)
    await asyncio.to_thread(store.write, services)

    logger.info("Created service %s (%s) with status %s", service.id, url, service.status.value)
    return service


async def update_service(service_id: Optional[str], name: Optional[str], url: Optional[str]) -> Service:
    """Replace name and url of a service and re-probe it. id and created_at are kept."""
    _require(id=service_id, name=name, url=url)

    store = _get_store()
    services = await asyncio.to_thread(store.read)
    index = next((i for i, s in enumerate(services) if s.id == service_id), None)
    if index is None:
        raise NotFoundError(f"Service {service_id} not found")

    result = await prober.probe(url)
    updated = services[index].model_copy(
        update={
            "name": name,
            "url": url,
            "status": result.status,
            "response_time": result.response_time,
        }
    )
    services[index] = updated
    await asyncio.to_thread(store.write, services)

    logger.info("Updated service %s with status %s", service_id, updated.status.value)
    return updated


def delete_service(service_id: Optional[str]) -> None:
    _require(id=service_id)

    store = _get_store()
    services = store.read()
    remaining = [s for s in services if s.id != service_id]
    if len(remaining) == len(services):
        raise NotFoundError(f"Service {service_id} not found")

    store.write(remaining)
    logger.info("Deleted service %s", service_id)


async def check_all_services() -> List[Service]:
    """
    Probe every registered service concurrently and persist the new states.

    The list is written once, after all probes have finished.
    """
    store = _get_store()
    services = await asyncio.to_thread(store.read)
    results = await prober.probe_all(s.url for s in services)

    updated = [
        service.model_copy(update={"status": result.status, "response_time": result.response_time})
        for service, result in zip(services, results)
    ]
    await asyncio.to_thread(store.write, updated)

    logger.info("Checked %d services", len(updated))
    return updated
