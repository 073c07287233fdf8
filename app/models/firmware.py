from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FirmwareRelease(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str
    filename: str
    release_date: str
    changelog: str
    mandatory: bool = False


class CheckRequest(BaseModel):
    device: Optional[str] = None
    version: Optional[str] = None
    model: str = "ESP32"
    rssi: Optional[int] = None


class UpdateDecision(BaseModel):
    update_available: bool
    latest_version: str
    download_url: str = ""
    checksum: str = ""
    mandatory: bool = False
    changelog: Optional[str] = None
    file_size: Optional[int] = None


class ReleaseRequest(BaseModel):
    version: Optional[str] = None
    filename: Optional[str] = None
    changelog: Optional[str] = None
    mandatory: bool = False


class ReleaseResult(BaseModel):
    status: str = "success"
    message: str
    version: str
    file_size: int


@dataclass
class DownloadTarget:
    release: FirmwareRelease
    size: int
    redirect_url: Optional[str] = None
