from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DiskInfo(BaseModel):
    """A single mounted volume as reported by the platform listing command."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(..., description="Mount point or drive letter, e.g. / or C:")
    type: str = Field(..., description="Filesystem type or volume description")
    total: int = Field(..., ge=0, description="Capacity in bytes")
    used: int = Field(..., ge=0, description="Used bytes")
    free: int = Field(..., ge=0, description="Free bytes")
    percent: float = Field(..., ge=0, le=100, description="Usage in percent")
    disk_model: Optional[str] = Field(
        None,
        description="Model of the physical drive, if the platform can resolve it",
    )


class ServerStats(BaseModel):
    """
    Point-in-time host snapshot shown by the dashboard.

    Some values are display placeholders rather than measurements: 'network'
    is always randomized, and 'cpu_temp' / 'disk' are randomized when the
    platform cannot provide them.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    cpu: int = Field(..., ge=0, le=100, description="CPU usage in percent")
    memory: int = Field(..., ge=0, le=100, description="RAM usage in percent")
    disk: int = Field(..., ge=0, le=100, description="Usage of the primary volume in percent")
    network: int = Field(..., ge=0, description="Placeholder throughput value")
    uptime: str = Field(..., description="Human readable uptime, e.g. '1天 1小时'")

    cpu_temp: int = Field(..., description="CPU temperature in degrees Celsius")
    cpu_model: str = Field(..., description="CPU model name")
    cpu_cores: int = Field(..., ge=0, description="Approximate physical core count")
    cpu_threads: int = Field(..., ge=0, description="Logical processor count")
    cpu_speed: float = Field(..., ge=0, description="Clock speed in GHz")

    memory_model: str = Field(..., description="Memory module part number")
    memory_speed: int = Field(..., ge=0, description="Memory speed in MHz")
    memory_total: int = Field(..., ge=0, description="Total memory in bytes")
    memory_used: int = Field(..., ge=0, description="Used memory in bytes")

    disks: List[DiskInfo] = Field(default_factory=list)
    disk_count: int = Field(0, ge=0, description="Number of entries in 'disks'")
