"""
Device registry tests.
"""
from datetime import datetime, timedelta, timezone

from app.storage.device_store import DeviceRegistry


def test_record_overwrites_previous_values():
    """Recording the same device twice keeps one entry with the latest values."""
    registry = DeviceRegistry()
    first = datetime(2026, 2, 16, 8, 0, tzinfo=timezone.utc)

    registry.record("D1", "2.2.0", -70, first)
    registry.record("D1", "2.3.0", None, first + timedelta(minutes=5))

    devices = registry.list()
    assert list(devices) == ["D1"]
    assert devices["D1"].current_version == "2.3.0"
    assert devices["D1"].rssi is None
    assert devices["D1"].last_check == first + timedelta(minutes=5)


def test_record_accepts_unknown_versions():
    registry = DeviceRegistry()

    registry.record("D2", "not-a-version", 12, datetime.now(timezone.utc))

    assert registry.get("D2").current_version == "not-a-version"
    assert len(registry) == 1


def test_list_is_a_snapshot():
    registry = DeviceRegistry()
    registry.record("D1", "1.0.0", None, datetime.now(timezone.utc))

    snapshot = registry.list()
    registry.record("D2", "1.0.0", None, datetime.now(timezone.utc))

    assert list(snapshot) == ["D1"]
    assert len(registry) == 2


def test_admin_devices_lists_checked_in_devices(client, auth_headers):
    for device, version in [("D1", "2.2.0"), ("D2", "3.1.0"), ("D1", "2.3.0")]:
        client.get(
            "/api/v1/firmware/check",
            params={"device": device, "version": version, "rssi": "-55"},
            headers=auth_headers,
        )

    response = client.get("/admin/devices", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total_devices"] == 2
    assert data["devices"]["D1"]["current_version"] == "2.3.0"
    assert data["devices"]["D2"]["rssi"] == -55
    assert "last_check" in data["devices"]["D1"]


def test_admin_devices_empty(client, auth_headers):
    response = client.get("/admin/devices", headers=auth_headers)

    assert response.json() == {"total_devices": 0, "devices": {}}
