import threading
from datetime import datetime
from typing import Optional

from app.models.device import DeviceRecord


class DeviceRegistry:
    """Last-seen telemetry per device id. Observational only, last write wins."""

    def __init__(self):
        self._devices: dict[str, DeviceRecord] = {}
        self._lock = threading.Lock()

    def record(
        self,
        device_id: str,
        version: str,
        rssi: Optional[int],
        timestamp: datetime,
    ) -> DeviceRecord:
        record = DeviceRecord(last_check=timestamp, current_version=version, rssi=rssi)
        with self._lock:
            self._devices[device_id] = record
        return record

    def get(self, device_id: str) -> Optional[DeviceRecord]:
        with self._lock:
            return self._devices.get(device_id)

    def list(self) -> dict[str, DeviceRecord]:
        with self._lock:
            return dict(self._devices)

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)
