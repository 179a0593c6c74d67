import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError as ModelValidationError

from server_dashboard.models.service import Service, ServiceStatus
from server_dashboard.services.errors import StorageError

logger = logging.getLogger(__name__)


def default_services() -> List[Service]:
    """Example entries written when no services document exists yet."""
    now = datetime.now(timezone.utc)
    return [
        Service(
            id="1",
            name="API 服务",
            url="https://api.example.com",
            status=ServiceStatus.ONLINE,
            response_time=120,
            created_at=now,
        ),
        Service(
            id="2",
            name="前端应用",
            url="https://app.example.com",
            status=ServiceStatus.ONLINE,
            response_time=85,
            created_at=now,
        ),
        Service(
            id="3",
            name="数据库监控",
            url="https://db.example.com",
            status=ServiceStatus.WARNING,
            response_time=350,
            created_at=now,
        ),
    ]


class JsonServiceStore:
    """
    Keeps the list of services in a single JSON document.

    Every read loads the whole document and every write replaces it. There is
    no locking: with several concurrent writers the last one wins.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def _ensure_dir(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create data directory {self.path.parent}: {exc}") from exc

    def read(self) -> List[Service]:
        """
        Return all services in insertion order.

        If the document does not exist yet it is seeded with example entries,
        which are persisted before being returned.
        """
        self._ensure_dir()
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No services document at %s, writing example entries", self.path)
            services = default_services()
            self.write(services)
            return services
        except OSError as exc:
            raise StorageError(f"Failed to read services from {self.path}: {exc}") from exc

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise StorageError(f"Services document {self.path} is not a JSON array")
            return [Service.model_validate(item) for item in data]
        except (json.JSONDecodeError, ModelValidationError) as exc:
            raise StorageError(f"Services document {self.path} is corrupt: {exc}") from exc

    def write(self, services: List[Service]) -> None:
        """Replace the document with services (pretty-printed, 2-space indent)."""
        self._ensure_dir()
        payload = [service.model_dump(mode="json", by_alias=True) for service in services]
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp_path.write_text(
                json.dumps(payload, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageError(f"Failed to write services to {self.path}: {exc}") from exc
