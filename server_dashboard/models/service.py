from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ServiceStatus(str, Enum):
    """Reachability classification of a monitored service."""

    ONLINE = "online"
    OFFLINE = "offline"
    WARNING = "warning"


class Service(BaseModel):
    """A user-registered HTTP endpoint and the result of its last probe."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Unique, time-based identifier")
    name: str = Field(..., min_length=1, description="Display label")
    url: str = Field(..., min_length=1, description="HTTP(S) endpoint that gets probed")
    status: ServiceStatus = Field(..., description="Result of the most recent probe")
    response_time: Optional[int] = Field(
        None,
        ge=0,
        description="Duration of the most recent probe in milliseconds; 0 if it failed",
    )
    created_at: datetime = Field(..., description="Creation time, never changed afterwards")


class ServiceCreate(BaseModel):
    """Request body for POST /services. Presence is checked by the registry."""

    name: Optional[str] = None
    url: Optional[str] = None


class ServiceUpdate(BaseModel):
    """Request body for PUT /services."""

    id: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None


class ProbeResult(BaseModel):
    """Outcome of a single reachability probe."""

    status: ServiceStatus
    response_time: int = Field(..., ge=0, description="Elapsed milliseconds, 0 on failure")


class MessageResponse(BaseModel):
    message: str
