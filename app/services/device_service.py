from app.models.device import DeviceListing
from app.storage.device_store import DeviceRegistry


class DeviceService:
    def __init__(self, registry: DeviceRegistry):
        self.registry = registry

    def list_devices(self) -> DeviceListing:
        devices = self.registry.list()
        return DeviceListing(total_devices=len(devices), devices=devices)
