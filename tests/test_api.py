"""
Tests for the HTTP API
=======================
Routers are exercised with FastAPI's TestClient against fresh stores.
"""
import pytest
from fastapi.testclient import TestClient

from alerts import AlertLog, RuleStore, default_rules, get_alert_log, get_rule_store
from core.config import FeedConfig
from services import SensorMonitor, get_monitor
from main import app


@pytest.fixture
def store():
    return RuleStore(seed=default_rules())


@pytest.fixture
def log():
    return AlertLog(capacity=50)


@pytest.fixture
def client(store, log):
    monitor = SensorMonitor(rules=store, alert_log=log, config=FeedConfig(autostart=False))
    app.dependency_overrides[get_rule_store] = lambda: store
    app.dependency_overrides[get_alert_log] = lambda: log
    app.dependency_overrides[get_monitor] = lambda: monitor
    # No context manager: the lifespan (and its simulator) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================
# RULES
# =============================================

def test_list_rules(client):
    response = client.get("/api/rules")

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 5
    assert body["rules"][0]["name"] == "High Temperature Warning"


def test_list_rules_by_sensor_type(client):
    body = client.get("/api/rules", params={"sensor_type": "pressure"}).json()

    assert body["count"] == 2
    assert {r["sensor_type"] for r in body["rules"]} == {"pressure"}


def test_create_rule(client, store):
    response = client.post("/api/rules", json={
        "name": "Cold",
        "sensor_type": "temperature",
        "condition": "lt",
        "threshold": 5,
        "severity": "info",
    })

    assert response.status_code == 201
    rule = response.json()["rule"]
    assert rule["id"].startswith("rule_")
    assert store.list()[-1].name == "Cold"


def test_create_rule_rejects_bad_condition(client):
    response = client.post("/api/rules", json={
        "name": "Bad",
        "sensor_type": "temperature",
        "condition": "between",
        "threshold": 5,
        "severity": "info",
    })

    assert response.status_code == 422


def test_update_rule(client, store):
    rule = store.list()[0]

    response = client.patch(f"/api/rules/{rule.id}", json={"threshold": 95})

    assert response.status_code == 200
    assert response.json()["rule"]["threshold"] == 95
    assert store.get(rule.id).name == rule.name


def test_toggle_and_delete_rule(client, store):
    rule = store.list()[0]

    toggled = client.post(f"/api/rules/{rule.id}/toggle").json()
    assert toggled["rule"]["enabled"] is False

    assert client.delete(f"/api/rules/{rule.id}").status_code == 200
    assert client.get(f"/api/rules/{rule.id}").status_code == 404


@pytest.mark.parametrize("method, path", [
    ("get", "/api/rules/rule_missing"),
    ("delete", "/api/rules/rule_missing"),
    ("post", "/api/rules/rule_missing/toggle"),
])
def test_unknown_rule_is_404(client, method, path):
    assert getattr(client, method)(path).status_code == 404


def test_patch_unknown_rule_is_404(client):
    assert client.patch("/api/rules/rule_missing", json={"threshold": 1}).status_code == 404


# =============================================
# ALERTS
# =============================================

@pytest.fixture
def logged(store, log, make_reading):
    """Two temperature alerts and one vibration alert in the log"""
    from alerts import evaluate

    for value, sensor_type, unit in [(105, "temperature", "°C"), (125, "temperature", "°C"), (75, "vibration", "Hz")]:
        log.insert(evaluate(make_reading(value, sensor_type=sensor_type, unit=unit), store.list()))
    return log


def test_test_endpoint_is_a_dry_run(client, log):
    response = client.post("/api/alerts/test", json={"sensor_type": "temperature", "value": 125, "unit": "°C"})

    body = response.json()
    assert body["triggered"] is True
    assert body["alert"]["severity"] == "critical"
    assert body["alert"]["message"] == "TEMPERATURE: 125°C ≥ 120°C"
    assert len(log) == 0


def test_test_endpoint_no_match(client):
    body = client.post("/api/alerts/test", json={"sensor_type": "temperature", "value": 50}).json()

    assert body["triggered"] is False
    assert body["alert"] is None


def test_list_alerts_with_filters(client, logged):
    body = client.get("/api/alerts", params={"severity": "critical"}).json()

    assert body["count"] == 2
    assert [a["sensor_type"] for a in body["alerts"]] == ["vibration", "temperature"]

    body = client.get("/api/alerts", params={"sensor_type": "temperature", "severity": "warning"}).json()
    assert body["count"] == 1
    assert body["alerts"][0]["value"] == 105


def test_recent_and_counts(client, logged):
    recent = client.get("/api/alerts/recent", params={"n": 2}).json()
    counts = client.get("/api/alerts/counts").json()

    assert recent["count"] == 2
    assert counts["by_severity"] == {"info": 0, "warning": 1, "critical": 2}
    assert counts["unacknowledged"] == 3


def test_acknowledge_flow(client, logged):
    alert_id = logged.list()[0].id

    assert client.post(f"/api/alerts/{alert_id}/acknowledge").status_code == 200
    assert client.post("/api/alerts/evt_missing/acknowledge").status_code == 404

    acknowledged = client.get("/api/alerts", params={"acknowledged": True}).json()
    assert [a["id"] for a in acknowledged["alerts"]] == [alert_id]

    removed = client.delete("/api/alerts/acknowledged").json()["removed"]
    assert removed == 1
    assert len(logged) == 2


def test_acknowledge_all_and_clear(client, logged):
    assert client.post("/api/alerts/acknowledge-all").json()["acknowledged"] == 3
    assert client.get("/api/alerts/counts").json()["unacknowledged"] == 0

    assert client.delete("/api/alerts").json()["removed"] == 3
    assert client.get("/api/alerts").json()["count"] == 0


def test_export_csv(client, logged):
    response = client.get("/api/alerts/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.strip().splitlines()
    assert lines[0].startswith("id,rule_id,rule_name")
    assert len(lines) == 4


# =============================================
# SENSORS / HEALTH
# =============================================

def test_list_sensors(client):
    body = client.get("/api/sensors").json()

    assert body["count"] == 3
    assert body["sensors"][0]["id"] == "temp-001"
    assert body["sensors"][0]["active"] is True


def test_toggle_sensor(client):
    assert client.post("/api/sensors/vib-001/toggle").json() == {"sensor_id": "vib-001", "active": False}
    assert client.post("/api/sensors/missing/toggle").status_code == 404


def test_ingest_reading_for_stopped_monitor(client, log):
    response = client.post("/api/sensors/temp-001/readings", json={"value": 130})

    assert response.status_code == 202
    body = response.json()
    assert body["reading"]["unit"] == "°C"
    assert body["dispatching"] is False
    assert len(log) == 0


def test_ingest_unknown_sensor(client):
    assert client.post("/api/sensors/missing/readings", json={"value": 1}).status_code == 404


def test_health(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["rules"]["total"] == 5
    assert body["alerts"]["capacity"] == 50
    assert body["monitor"]["is_running"] is False


def test_date_filter_with_offset_stamped_alert(client, store, log, make_reading):
    from alerts import evaluate

    log.insert(evaluate(make_reading(125, timestamp="2024-01-01T12:00:00Z"), store.list()))
    log.insert(evaluate(make_reading(105), store.list()))

    response = client.get("/api/alerts", params={"start_date": "2023-12-31T00:00:00"})
    export = client.get("/api/alerts/export", params={"end_date": "2023-12-30T00:00:00Z"})

    assert response.status_code == 200
    assert response.json()["count"] == 2
    assert export.status_code == 200
    assert len(export.text.strip().splitlines()) == 1


def test_recent_is_not_capped_below_capacity(client, logged):
    response = client.get("/api/alerts/recent", params={"n": 10_000})

    assert response.status_code == 200
    assert response.json()["count"] == 3
