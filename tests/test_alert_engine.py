"""Tests del motor de alertas: dedup, reglas de umbral y ciclo de vida."""

from dataclasses import replace
from datetime import timedelta
from itertools import count

import pytest

from health_service.scoring import compute_health
from ingest_api.alerts import AlertEngine, evaluate_thresholds
from ingest_api.core.domain.alert import (
    AlertSeverity,
    AlertStatus,
    AlertTriggerType,
    SensorSnapshot,
)
from ingest_api.core.domain.device import AlertThresholds
from ingest_api.core.domain.health import DeviceHealthState, FailureRisk, HealthStatus
from ingest_api.errors import NotFoundError
from ingest_api.infrastructure.persistence import SqlAlertRepository

from conftest import T0, degrading_window, healthy_window, make_reading


@pytest.fixture
def repository(engine):
    return SqlAlertRepository(engine)


@pytest.fixture
def alert_engine(repository, publisher, clock):
    ids = count(1)
    return AlertEngine(repository, publisher, clock, id_factory=lambda: f"alert-{next(ids)}")


def _state(window, device_id="motor-1"):
    return DeviceHealthState.from_assessment(
        device_id,
        compute_health(window),
        computed_at=T0,
        window_size=len(window),
    )


def _create(engine, trigger=AlertTriggerType.TEMPERATURE, device_id="motor-1"):
    return engine.create_alert(
        device_id=device_id,
        severity=AlertSeverity.WARNING,
        trigger_type=trigger,
        message="Temperature exceeds threshold: 92°C",
    )


# =============================================================================
# DEDUPLICACIÓN
# =============================================================================

class TestDeduplication:
    def test_duplicate_within_window_returns_existing(self, alert_engine, clock, repository):
        first = _create(alert_engine)
        clock.advance(30)
        second = _create(alert_engine)

        assert second.id == first.id
        assert len(repository.list_for_device("motor-1", 10)) == 1

    def test_new_alert_after_window(self, alert_engine, clock, repository):
        first = _create(alert_engine)
        clock.advance(61)
        second = _create(alert_engine)

        assert second.id != first.id
        assert len(repository.list_for_device("motor-1", 10)) == 2

    def test_acknowledged_alert_still_suppresses(self, alert_engine, clock):
        first = _create(alert_engine)
        alert_engine.acknowledge(first.id, "operator")
        clock.advance(10)

        assert _create(alert_engine).id == first.id

    def test_resolved_alert_does_not_suppress(self, alert_engine, clock):
        first = _create(alert_engine)
        alert_engine.resolve(first.id)
        clock.advance(10)

        assert _create(alert_engine).id != first.id

    def test_different_trigger_or_device_not_deduplicated(self, alert_engine):
        a = _create(alert_engine, AlertTriggerType.TEMPERATURE)
        b = _create(alert_engine, AlertTriggerType.PRESSURE)
        c = _create(alert_engine, AlertTriggerType.TEMPERATURE, device_id="motor-2")

        assert len({a.id, b.id, c.id}) == 3

    def test_duplicate_not_republished(self, alert_engine, publisher):
        _create(alert_engine)
        _create(alert_engine)

        assert len(publisher.events("alerts", "alert:new")) == 1


# =============================================================================
# ALERTAS POR INFERENCIA
# =============================================================================

class TestInferenceAlerts:
    def test_healthy_state_creates_nothing(self, alert_engine):
        window = healthy_window()
        assert alert_engine.on_health_computed(_state(window), window) is None

    def test_high_risk_creates_prediction_alert(self, alert_engine, publisher):
        window = degrading_window()
        state = _state(window)

        alert = alert_engine.on_health_computed(state, window)

        assert state.failure_risk == FailureRisk.HIGH
        assert alert.trigger_type == AlertTriggerType.FORMULA_PREDICTION
        assert alert.message == f"Health Analysis: {state.reason}"
        assert alert.reason == state.reason
        assert alert.sensor_snapshot.temperature == window[-1].temperature
        assert alert.sensor_snapshot.vibration == window[-1].vibration

        # Fan-out a ambos topics
        assert len(publisher.events("alerts", "alert:new")) == 1
        assert len(publisher.events("device:motor-1", "alert:new")) == 1

    def test_repeated_inference_deduplicated(self, alert_engine, clock):
        window = degrading_window()
        first = alert_engine.on_health_computed(_state(window), window)
        clock.advance(20)
        second = alert_engine.on_health_computed(_state(window), window)

        assert first.id == second.id

    def test_critical_status_alone_triggers_alert(self, alert_engine):
        """CRITICAL sin riesgo HIGH también cuenta como dispositivo en riesgo."""
        window = healthy_window()
        state = replace(_state(window), status=HealthStatus.CRITICAL, failure_risk=FailureRisk.MEDIUM)

        assert state.is_at_risk
        alert = alert_engine.on_health_computed(state, window)
        assert alert.severity == AlertSeverity.CRITICAL

    def test_medium_risk_degrading_is_not_at_risk(self, alert_engine):
        window = healthy_window()
        state = replace(_state(window), status=HealthStatus.DEGRADING, failure_risk=FailureRisk.MEDIUM)

        assert not state.is_at_risk
        assert alert_engine.on_health_computed(state, window) is None


# =============================================================================
# REGLAS DE UMBRAL
# =============================================================================

class TestThresholdRules:
    def test_no_violation_for_nominal_values(self):
        reading = make_reading(temperature=70.0, vibration=0.2, pressure=35.0)
        assert evaluate_thresholds(
            AlertThresholds(), health_score=95, failure_risk=FailureRisk.LOW, reading=reading
        ) == []

    def test_temperature_warning_and_critical(self):
        warn = evaluate_thresholds(AlertThresholds(), reading=make_reading(temperature=90.0))
        crit = evaluate_thresholds(AlertThresholds(), reading=make_reading(temperature=96.0))

        assert [(v.trigger_type, v.severity) for v in warn] == [
            (AlertTriggerType.TEMPERATURE, AlertSeverity.WARNING)
        ]
        assert crit[0].severity == AlertSeverity.CRITICAL
        assert crit[0].message == "Temperature exceeds threshold: 96°C"

    def test_vibration_compared_on_raw_scale(self):
        # 0.9 cruda = 90 normalizada; umbral 0.8 en escala cruda
        violations = evaluate_thresholds(AlertThresholds(), reading=make_reading(vibration=0.9))

        assert len(violations) == 1
        assert violations[0].trigger_type == AlertTriggerType.VIBRATION
        assert violations[0].severity == AlertSeverity.WARNING

    def test_vibration_critical_margin(self):
        violations = evaluate_thresholds(AlertThresholds(), reading=make_reading(vibration=1.1))
        assert violations[0].severity == AlertSeverity.CRITICAL

    def test_health_and_risk_rules(self):
        violations = evaluate_thresholds(
            AlertThresholds(), health_score=45, failure_risk=FailureRisk.HIGH
        )
        by_type = {v.trigger_type: v for v in violations}

        assert by_type[AlertTriggerType.HEALTH_SCORE].severity == AlertSeverity.WARNING
        assert by_type[AlertTriggerType.HEALTH_SCORE].message == "Device health score critically low: 45%"
        assert by_type[AlertTriggerType.FAILURE_RISK].severity == AlertSeverity.CRITICAL

    def test_medium_risk_is_warning(self):
        violations = evaluate_thresholds(AlertThresholds(), failure_risk=FailureRisk.MEDIUM)
        assert violations[0].severity == AlertSeverity.WARNING
        assert violations[0].message == "Medium failure risk detected"

    def test_engine_creates_one_alert_per_violation(self, alert_engine):
        reading = make_reading(temperature=92.0, pressure=45.0)
        alerts = alert_engine.evaluate_thresholds(
            "motor-1", AlertThresholds(), health_score=80, reading=reading
        )

        assert {a.trigger_type for a in alerts} == {
            AlertTriggerType.TEMPERATURE,
            AlertTriggerType.PRESSURE,
        }
        assert all(a.sensor_snapshot.pressure == 45.0 for a in alerts)


# =============================================================================
# CICLO DE VIDA
# =============================================================================

class TestLifecycle:
    def test_acknowledge_records_actor_and_time(self, alert_engine, clock, publisher):
        alert = _create(alert_engine)
        clock.advance(5)

        acked = alert_engine.acknowledge(alert.id, "operator-7")

        assert acked.status == AlertStatus.ACKNOWLEDGED
        assert acked.acknowledged_by == "operator-7"
        assert acked.acknowledged_at == T0 + timedelta(seconds=5)
        assert alert_engine.get(alert.id).status == AlertStatus.ACKNOWLEDGED
        assert len(publisher.events("alerts", "alert:acknowledged")) == 1

    def test_re_acknowledge_is_noop(self, alert_engine, clock, publisher):
        alert = _create(alert_engine)
        alert_engine.acknowledge(alert.id, "first")
        clock.advance(5)

        again = alert_engine.acknowledge(alert.id, "second")

        assert again.acknowledged_by == "first"
        assert len(publisher.events("alerts", "alert:acknowledged")) == 1

    def test_resolve_from_active_and_acknowledged(self, alert_engine, clock):
        a = _create(alert_engine, AlertTriggerType.TEMPERATURE)
        b = _create(alert_engine, AlertTriggerType.PRESSURE)
        alert_engine.acknowledge(b.id)
        clock.advance(1)

        assert alert_engine.resolve(a.id).status == AlertStatus.RESOLVED
        resolved = alert_engine.resolve(b.id)
        assert resolved.status == AlertStatus.RESOLVED
        assert resolved.resolved_at == T0 + timedelta(seconds=1)

    def test_resolved_never_goes_back(self, alert_engine):
        alert = _create(alert_engine)
        alert_engine.resolve(alert.id)

        assert alert_engine.acknowledge(alert.id, "late").status == AlertStatus.RESOLVED
        assert alert_engine.get(alert.id).acknowledged_by is None

    def test_unknown_alert_raises_not_found(self, alert_engine):
        with pytest.raises(NotFoundError):
            alert_engine.acknowledge("missing")
        with pytest.raises(NotFoundError):
            alert_engine.resolve("missing")
        with pytest.raises(NotFoundError):
            alert_engine.get("missing")

    def test_list_active_excludes_resolved(self, alert_engine):
        a = _create(alert_engine, AlertTriggerType.TEMPERATURE)
        b = _create(alert_engine, AlertTriggerType.PRESSURE)
        alert_engine.resolve(a.id)

        assert [x.id for x in alert_engine.list_active()] == [b.id]


# =============================================================================
# LIMPIEZA
# =============================================================================

class TestCleanup:
    def test_cleanup_deletes_only_old_resolved(self, alert_engine, clock, repository):
        old_resolved = _create(alert_engine, AlertTriggerType.TEMPERATURE)
        old_active = _create(alert_engine, AlertTriggerType.PRESSURE)
        alert_engine.resolve(old_resolved.id)
        clock.advance(25 * 3600)
        recent = _create(alert_engine, AlertTriggerType.VIBRATION)
        alert_engine.resolve(recent.id)

        deleted = alert_engine.cleanup()

        assert deleted == 1
        assert repository.get(old_resolved.id) is None
        assert repository.get(old_active.id) is not None
        assert repository.get(recent.id) is not None

    def test_cleanup_custom_retention(self, alert_engine, clock):
        alert = _create(alert_engine)
        alert_engine.resolve(alert.id)
        clock.advance(2 * 3600)

        assert alert_engine.cleanup(older_than_hours=1) == 1

    def test_snapshot_defaults_to_empty(self, alert_engine):
        alert = _create(alert_engine)
        assert alert_engine.get(alert.id).sensor_snapshot == SensorSnapshot()
