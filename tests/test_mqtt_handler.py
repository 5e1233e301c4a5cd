"""Tests del handler MQTT (JSON → coordinador)."""

from unittest.mock import MagicMock

import orjson
import pytest

from ingest_api.core.transport import MessageHandler
from ingest_api.errors import ValidationError


@pytest.fixture
def coordinator():
    coordinator = MagicMock()
    coordinator.ingest.return_value = MagicMock(ok=True)
    return coordinator


@pytest.fixture
def handler(coordinator):
    return MessageHandler(coordinator)


def test_valid_message_forwarded(handler, coordinator):
    payload = {"deviceId": "motor-1", "temperature": 70.0, "vibration": 0.2, "pressure": 35.0}

    handler.handle("iot/sensors/motor-1", orjson.dumps(payload))

    coordinator.ingest.assert_called_once_with(payload)
    assert handler.stats.accepted == 1


def test_device_id_taken_from_topic(handler, coordinator):
    handler.handle("iot/sensors/pump-3", b'{"temperature": 70.0, "vibration": 0.2, "pressure": 35.0}')

    assert coordinator.ingest.call_args.args[0]["deviceId"] == "pump-3"


def test_payload_device_id_wins_over_topic(handler, coordinator):
    handler.handle("iot/sensors/pump-3", b'{"deviceId": "motor-1"}')

    assert coordinator.ingest.call_args.args[0]["deviceId"] == "motor-1"


def test_invalid_json_rejected(handler, coordinator):
    handler.handle("iot/sensors/motor-1", b"{not json")

    coordinator.ingest.assert_not_called()
    assert handler.stats.rejected == 1


def test_non_object_rejected(handler, coordinator):
    handler.handle("iot/sensors/motor-1", b"[1, 2]")

    coordinator.ingest.assert_not_called()
    assert handler.stats.rejected == 1


def test_validation_error_counted_not_raised(handler, coordinator):
    coordinator.ingest.side_effect = ValidationError("vibration is required", field="vibration")

    handler.handle("iot/sensors/motor-1", b'{"deviceId": "motor-1"}')

    assert handler.stats.rejected == 1
    assert handler.stats.failed == 0


def test_unexpected_error_counted_not_raised(handler, coordinator):
    coordinator.ingest.side_effect = RuntimeError("boom")

    handler.handle("iot/sensors/motor-1", b'{"deviceId": "motor-1"}')

    assert handler.stats.failed == 1


def test_side_effect_failure_counted_as_degraded(handler, coordinator):
    coordinator.ingest.return_value = MagicMock(ok=False)

    handler.handle("iot/sensors/motor-1", b'{"deviceId": "motor-1"}')

    assert handler.stats.degraded == 1
    assert handler.stats.received == 1
