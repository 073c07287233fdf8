from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class DeviceRecord(BaseModel):
    last_check: datetime
    current_version: str
    rssi: Optional[int] = None


class DeviceListing(BaseModel):
    total_devices: int
    devices: dict[str, DeviceRecord] = Field(default_factory=dict)
