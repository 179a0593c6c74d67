from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status

from server_dashboard.models.service import (
    MessageResponse,
    Service,
    ServiceCreate,
    ServiceUpdate,
)
from server_dashboard.services import service_registry
from server_dashboard.services.errors import (
    NotFoundError,
    RegistryError,
    StorageError,
    ValidationError,
)

router = APIRouter()


def _to_http_error(exc: RegistryError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("", response_model=List[Service], summary="List services")
def list_services() -> List[Service]:
    """Return all registered services in insertion order."""
    try:
        return service_registry.list_services()
    except StorageError as exc:
        raise _to_http_error(exc) from exc


@router.post(
    "",
    response_model=Service,
    status_code=status.HTTP_201_CREATED,
    summary="Register a service",
)
async def create_service(body: Optional[ServiceCreate] = None) -> Service:
    """
    Register a new service. The url is probed once, so the returned record
    already carries a measured status and response time.
    """
    body = body or ServiceCreate()
    try:
        return await service_registry.create_service(body.name, body.url)
    except RegistryError as exc:
        raise _to_http_error(exc) from exc


@router.put("", response_model=Service, summary="Update a service")
async def update_service(body: Optional[ServiceUpdate] = None) -> Service:
    body = body or ServiceUpdate()
    try:
        return await service_registry.update_service(body.id, body.name, body.url)
    except RegistryError as exc:
        raise _to_http_error(exc) from exc


@router.delete("", response_model=MessageResponse, summary="Delete a service")
def delete_service(service_id: Optional[str] = Query(None, alias="id")) -> MessageResponse:
    try:
        service_registry.delete_service(service_id)
    except RegistryError as exc:
        raise _to_http_error(exc) from exc
    return MessageResponse(message="Service deleted successfully")


@router.post("/check", response_model=List[Service], summary="Re-probe all services")
async def check_services() -> List[Service]:
    """Probe every service concurrently and return the updated list."""
    try:
        return await service_registry.check_all_services()
    except RegistryError as exc:
        raise _to_http_error(exc) from exc
