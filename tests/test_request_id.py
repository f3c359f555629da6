# Nombre de archivo: test_request_id.py
# Ubicación de archivo: tests/test_request_id.py
# Descripción: Verifica que la API genere o respete X-Request-ID

import logging
import uuid

from fastapi.testclient import TestClient

from api.app.main import create_app
from core.logging import RequestIdFilter, request_id_var


def test_request_id_generated(settings) -> None:
    client = TestClient(create_app(settings))
    resp = client.get("/health")
    assert resp.status_code == 200
    header = resp.headers.get("X-Request-ID")
    assert header is not None
    uuid.UUID(header)


def test_request_id_propagated(settings) -> None:
    client = TestClient(create_app(settings))
    resp = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"


def test_filter_injects_active_request_id() -> None:
    record = logging.LogRecord("api", logging.INFO, __file__, 1, "msg", None, None)
    token = request_id_var.set("rid-1")
    try:
        assert RequestIdFilter().filter(record)
    finally:
        request_id_var.reset(token)
    assert record.request_id == "rid-1"
