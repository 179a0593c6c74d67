from fastapi import APIRouter

from server_dashboard.models.server_stats import ServerStats
from server_dashboard.services import host_telemetry

router = APIRouter()


@router.get("", response_model=ServerStats, summary="Host telemetry")
async def server_stats() -> ServerStats:
    """
    Return a fresh host snapshot.

    Always answers 200: probes that fail on this host fall back to defaults or
    display placeholders, and the failures are logged instead of surfaced.
    """
    return await host_telemetry.collect_server_stats()
