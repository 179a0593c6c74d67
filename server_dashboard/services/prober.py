import asyncio
import logging
import time
from typing import Iterable, List, Optional

import httpx

from server_dashboard.config import get_settings
from server_dashboard.models.service import ProbeResult, ServiceStatus

logger = logging.getLogger(__name__)


def classify_probe(
    threw: bool,
    status_code: Optional[int],
    elapsed_ms: int,
    warning_ms: int = 1000,
) -> ProbeResult:
    """
    Turn the raw outcome of a HEAD request into a status and response time.

    - request failed or timed out      -> offline, 0
    - non-2xx response                 -> offline, elapsed
    - 2xx slower than warning_ms       -> warning, elapsed
    - 2xx within warning_ms            -> online, elapsed
    """
    if threw or status_code is None:
        return ProbeResult(status=ServiceStatus.OFFLINE, response_time=0)

    elapsed_ms = max(int(elapsed_ms), 0)
    if not 200 <= status_code < 300:
        return ProbeResult(status=ServiceStatus.OFFLINE, response_time=elapsed_ms)

    status = ServiceStatus.WARNING if elapsed_ms > warning_ms else ServiceStatus.ONLINE
    return ProbeResult(status=status, response_time=elapsed_ms)


async def probe(url: str, client: Optional[httpx.AsyncClient] = None) -> ProbeResult:
    """
    Send a single HEAD request to url and classify the outcome.

    Never raises for network problems; those are reported as offline. There
    are no retries, a failed attempt is final for this call.
    """
    settings = get_settings()

    threw = False
    status_code: Optional[int] = None
    started = time.perf_counter()
    try:
        if client is None:
            async with httpx.AsyncClient(
                timeout=settings.probe_timeout_seconds,
                follow_redirects=True,
            ) as own_client:
                response = await own_client.head(url)
        else:
            response = await client.head(url, timeout=settings.probe_timeout_seconds)
        status_code = response.status_code
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.info("Probe of %s failed: %s", url, exc)
        threw = True
    elapsed_ms = int((time.perf_counter() - started) * 1000)

    return classify_probe(threw, status_code, elapsed_ms, settings.probe_warning_ms)


async def probe_all(urls: Iterable[str]) -> List[ProbeResult]:
    """Probe every url concurrently. Results keep the order of urls."""
    settings = get_settings()
    async with httpx.AsyncClient(
        timeout=settings.probe_timeout_seconds,
        follow_redirects=True,
    ) as client:
        return list(await asyncio.gather(*(probe(url, client) for url in urls)))
