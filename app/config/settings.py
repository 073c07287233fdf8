from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    server_name: str = "ESP32 OTA Cloud Server"
    log_level: str = "INFO"

    api_keys: set[str] = {"test123", "prod456"}

    blob_backend: Literal["s3", "local"] = "s3"
    blob_base_url: str = "https://esp32--firmware.s3.us-east-1.amazonaws.com"
    blob_local_dir: str = "./firmware"
    blob_timeout_seconds: float = 30.0
    blob_chunk_size: int = 65536

    download_mode: Literal["direct", "proxy"] = "direct"
    public_base_url: Optional[str] = None

    checksum_algorithm: str = "md5"
    default_device_model: str = "ESP32"

    catalog_seed_file: Optional[str] = None

    circuit_breaker_failure_threshold: int = 5
    circuit_breaker_timeout_seconds: int = 30
    circuit_breaker_half_open_max_calls: int = 1

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
