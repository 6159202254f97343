from unittest.mock import AsyncMock
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from pendant import asgi
from pendant.schemas.config import PendantConfig

def test_lifespan_starts_and_closes_service(monkeypatch):
    """
    Test that the lifespan starts the pendant service and closes it on shutdown.
    """
    service = MagicMock()
    service.close = AsyncMock()
    service.running = True
    service.grbl_connection.port = "/dev/ttyUSB0"
    created = []

    def fake_create(config):
        created.append(config)
        return service

    monkeypatch.setattr(asgi, "create_pendant_service", fake_create)
    config = PendantConfig(log_level="DEBUG")
    app = asgi.factory(config)

    with TestClient(app) as client:
        assert client.get("/health/").json()["status"] == "ok"
        assert app.state.pendant_service is service
        service.start.assert_called_once()

    assert created == [config]
    service.close.assert_awaited_once()
    assert not hasattr(app.state, "pendant_service")

def test_factory_reads_env_config(monkeypatch, tmp_path):
    """
    Test that the factory loads the configuration named by PENDANT_CONFIG.
    """
    path = tmp_path / "pendant.yaml"
    path.write_text("grbl:\n  port: /dev/ttyS3\n")
    monkeypatch.setenv("PENDANT_CONFIG", str(path))
    app = asgi.factory()
    assert app.state.config.grbl.port == "/dev/ttyS3"
