import json
import logging

from backend.app.core.logging import JsonFormatter


def test_health_endpoint_returns_ok_status(client) -> None:
    response = client.get("/v1/health")
    assert response.status_code == 200
    payload = response.json()

    assert payload["status"] == "ok"
    assert payload["service"] == "Moana Procurement"
    assert payload["environment"] in {"dev", "prod", "test"}


def test_request_id_is_echoed_or_generated(client) -> None:
    response = client.get("/v1/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"

    generated = client.get("/v1/health").headers["X-Request-ID"]
    assert len(generated) == 36


def test_json_formatter_merges_extra_fields() -> None:
    record = logging.LogRecord("moana.test", logging.INFO, __file__, 1, "order created", None, None)
    record.extra = {"order_id": 7}

    payload = json.loads(JsonFormatter().format(record))

    assert payload == {"level": "INFO", "logger": "moana.test", "message": "order created", "order_id": 7}
