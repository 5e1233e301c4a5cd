"""Tests del validador de lecturas crudas."""

from datetime import datetime, timezone

import pytest

from ingest_api.core.validation import ReadingValidator
from ingest_api.errors import ValidationError
from ingest_api.schemas import SensorReadingIn

from conftest import T0, make_reading


@pytest.fixture
def validator(clock):
    return ReadingValidator(clock)


def _payload(**overrides):
    payload = {"deviceId": "motor-1", "temperature": 70.0, "vibration": 0.2, "pressure": 35.0}
    payload.update(overrides)
    return payload


class TestRequiredFields:
    def test_valid_payload(self, validator):
        reading = validator.validate(_payload())

        assert reading.device_id == "motor-1"
        assert reading.vibration == 0.2
        assert not reading.normalized
        assert reading.timestamp == T0

    def test_snake_case_device_id_accepted(self, validator):
        payload = _payload()
        payload["device_id"] = payload.pop("deviceId")

        assert validator.validate(payload).device_id == "motor-1"

    @pytest.mark.parametrize("missing", ["deviceId", "temperature", "vibration", "pressure"])
    def test_missing_field_rejected(self, validator, missing):
        payload = _payload()
        del payload[missing]

        with pytest.raises(ValidationError) as exc:
            validator.validate(payload)
        assert exc.value.field == missing

    @pytest.mark.parametrize("value", [None, "70", True, float("nan"), float("inf")])
    def test_bad_numeric_value_rejected(self, validator, value):
        with pytest.raises(ValidationError):
            validator.validate(_payload(temperature=value))

    def test_huge_integer_rejected(self, validator):
        """Un entero que no entra en un float es un error de validación."""
        with pytest.raises(ValidationError) as exc:
            validator.validate(_payload(vibration=10**400))
        assert exc.value.field == "vibration"

    def test_blank_device_id_rejected(self, validator):
        with pytest.raises(ValidationError):
            validator.validate(_payload(deviceId="   "))

    def test_non_object_rejected(self, validator):
        with pytest.raises(ValidationError):
            validator.validate([1, 2, 3])

    def test_integers_coerced_to_float(self, validator):
        reading = validator.validate(_payload(temperature=70, pressure=35))
        assert isinstance(reading.temperature, float)


class TestTimestamps:
    def test_iso_with_z(self, validator):
        reading = validator.validate(_payload(timestamp="2026-01-01T12:00:05Z"))
        assert reading.timestamp == datetime(2026, 1, 1, 12, 0, 5, tzinfo=timezone.utc)

    def test_epoch_seconds_and_millis(self, validator):
        seconds = validator.validate(_payload(timestamp=T0.timestamp()))
        millis = validator.validate(_payload(timestamp=int(T0.timestamp() * 1000)))

        assert seconds.timestamp == T0
        assert millis.timestamp == T0

    def test_naive_datetime_assumed_utc(self, validator):
        reading = validator.validate(_payload(timestamp=datetime(2026, 1, 1, 12, 0)))
        assert reading.timestamp == T0

    def test_garbage_timestamp_rejected(self, validator):
        with pytest.raises(ValidationError) as exc:
            validator.validate(_payload(timestamp="yesterday"))
        assert exc.value.field == "timestamp"


class TestInputShapes:
    def test_pydantic_model(self, validator):
        model = SensorReadingIn(deviceId="motor-1", temperature=70.0, vibration=0.2, pressure=35.0)
        reading = validator.validate(model)

        assert reading.device_id == "motor-1"
        assert reading.timestamp == T0

    def test_sensor_reading_passthrough(self, validator):
        original = make_reading(normalized=False)
        assert validator.validate(original) is original
