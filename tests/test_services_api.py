from datetime import datetime, timezone

from fastapi.testclient import TestClient

from server_dashboard.main import app
from server_dashboard.models.service import Service, ServiceStatus
from server_dashboard.services import service_registry
from server_dashboard.services.errors import NotFoundError, StorageError, ValidationError

client = TestClient(app)


def _service(**overrides) -> Service:
    data = dict(
        id="1700000000000",
        name="Wiki",
        url="https://wiki.local",
        status=ServiceStatus.ONLINE,
        response_time=35,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    data.update(overrides)
    return Service(**data)


def test_list_services_uses_camel_case_keys(monkeypatch):
    monkeypatch.setattr(service_registry, "list_services", lambda: [_service()])

    response = client.get("/services")
    assert response.status_code == 200

    data = response.json()
    assert len(data) == 1
    assert data[0]["id"] == "1700000000000"
    assert data[0]["status"] == "online"
    assert data[0]["responseTime"] == 35
    assert data[0]["createdAt"].startswith("2024-01-01T00:00:00")


def test_create_service_returns_201(monkeypatch):
    calls = []

    async def fake_create(name, url):
        calls.append((name, url))
        return _service(name=name, url=url)

    monkeypatch.setattr(service_registry, "create_service", fake_create)

    response = client.post("/services", json={"name": "Wiki", "url": "https://wiki.local"})

    assert response.status_code == 201
    assert response.json()["name"] == "Wiki"
    assert calls == [("Wiki", "https://wiki.local")]


def test_create_service_missing_field_maps_to_400(tmp_path, monkeypatch):
    """The registry rejects the request before touching storage or network."""

    class DummySettings:
        services_file = str(tmp_path / "services.json")

    monkeypatch.setattr(service_registry, "get_settings", lambda: DummySettings())

    response = client.post("/services", json={"name": "Wiki"})

    assert response.status_code == 400
    assert "url" in response.json()["detail"]
    assert not (tmp_path / "services.json").exists()


def test_create_service_storage_error_maps_to_500(monkeypatch):
    async def fake_create(name, url):
        raise StorageError("disk full")

    monkeypatch.setattr(service_registry, "create_service", fake_create)

    response = client.post("/services", json={"name": "Wiki", "url": "https://wiki.local"})

    assert response.status_code == 500
    assert response.json()["detail"] == "disk full"


def test_update_unknown_service_maps_to_404(monkeypatch):
    async def fake_update(service_id, name, url):
        raise NotFoundError(f"Service {service_id} not found")

    monkeypatch.setattr(service_registry, "update_service", fake_update)

    response = client.put("/services", json={"id": "42", "name": "x", "url": "https://x.local"})

    assert response.status_code == 404
    assert "42" in response.json()["detail"]


def test_update_service_returns_record(monkeypatch):
    async def fake_update(service_id, name, url):
        return _service(id=service_id, name=name, url=url, status=ServiceStatus.WARNING)

    monkeypatch.setattr(service_registry, "update_service", fake_update)

    response = client.put("/services", json={"id": "7", "name": "x", "url": "https://x.local"})

    assert response.status_code == 200
    assert response.json()["id"] == "7"
    assert response.json()["status"] == "warning"


def test_delete_service_passes_query_id(monkeypatch):
    deleted = []
    monkeypatch.setattr(service_registry, "delete_service", deleted.append)

    response = client.delete("/services", params={"id": "3"})

    assert response.status_code == 200
    assert response.json() == {"message": "Service deleted successfully"}
    assert deleted == ["3"]


def test_delete_without_id_maps_to_400(monkeypatch):
    def fake_delete(service_id):
        raise ValidationError("id required")

    monkeypatch.setattr(service_registry, "delete_service", fake_delete)

    response = client.delete("/services")

    assert response.status_code == 400


def test_delete_unknown_id_maps_to_404(monkeypatch):
    def fake_delete(service_id):
        raise NotFoundError("Service nope not found")

    monkeypatch.setattr(service_registry, "delete_service", fake_delete)

    response = client.delete("/services", params={"id": "nope"})

    assert response.status_code == 404


def test_check_services_returns_all(monkeypatch):
    async def fake_check():
        return [_service(id="1"), _service(id="2", status=ServiceStatus.OFFLINE, response_time=0)]

    monkeypatch.setattr(service_registry, "check_all_services", fake_check)

    response = client.post("/services/check")

    assert response.status_code == 200
    data = response.json()
    assert [item["id"] for item in data] == ["1", "2"]
    assert data[1]["status"] == "offline"
    assert data[1]["responseTime"] == 0


def test_create_service_without_body_maps_to_400(tmp_path, monkeypatch):
    class DummySettings:
        services_file = str(tmp_path / "services.json")

    monkeypatch.setattr(service_registry, "get_settings", lambda: DummySettings())

    response = client.post("/services")

    assert response.status_code == 400
    assert response.json()["detail"] == "name, url required"


def test_update_service_without_body_maps_to_400(tmp_path, monkeypatch):
    class DummySettings:
        services_file = str(tmp_path / "services.json")

    monkeypatch.setattr(service_registry, "get_settings", lambda: DummySettings())

    response = client.put("/services")

    assert response.status_code == 400
    assert response.json()["detail"] == "id, name, url required"


def test_update_service_with_wrongly_typed_id_maps_to_400():
    response = client.put("/services", json={"id": 1, "name": "x", "url": "https://x.local"})

    assert response.status_code == 400
    assert isinstance(response.json()["detail"], list)
