import pytest

from granted_relay.health import HealthReporter


@pytest.mark.asyncio
async def test_health_reporter_snapshot():
    reporter = HealthReporter()

    await reporter.update("mqtt", True)
    await reporter.update("http", False, "address in use")

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "degraded"
    component_list = snapshot.get("components", [])
    assert isinstance(component_list, list)
    components = {item["name"]: item for item in component_list}
    assert components["mqtt"]["healthy"] is True
    assert components["http"]["healthy"] is False
    assert components["http"]["detail"] == "address in use"


@pytest.mark.asyncio
async def test_health_reporter_app_state_affects_status():
    reporter = HealthReporter()

    await reporter.update("mqtt", True)
    await reporter.set_app_state("awaiting_mqtt", healthy=False)

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "degraded"
    app_state = snapshot.get("appState")
    assert app_state is not None
    assert app_state["state"] == "awaiting_mqtt"
    assert app_state["healthy"] is False


@pytest.mark.asyncio
async def test_health_reporter_ok_when_everything_healthy():
    reporter = HealthReporter()

    await reporter.update("mqtt", True)
    await reporter.set_app_state("active", healthy=True, detail="relay ready")

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "ok"
    assert snapshot["appState"]["detail"] == "relay ready"
