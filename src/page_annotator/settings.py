from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    ANNOTATOR_ENV: str = "development"
    ANNOTATOR_API_BASE_URL: str = "http://localhost:8000"
    ANNOTATOR_API_PREFIX: str = "/comics-analyzer"
    ANNOTATOR_HTTP_TIMEOUT_S: float = 30.0
    ANNOTATOR_DRAFT_NAMESPACE: str = "comics-analyzer"
    ANNOTATOR_DRAFT_DRIVER: str = "local"
    ANNOTATOR_DRAFT_LOCAL_DIR: str = ".drafts"
    ANNOTATOR_DRAFT_DEBOUNCE_MS: int = 450
    ANNOTATOR_NOTICE_TTL_MS: int = 3500
    ANNOTATOR_STORAGE_DRIVER: str = "local"
    ANNOTATOR_STORAGE_LOCAL_DIR: str = ".data"
    ANNOTATOR_S3_BUCKET: Optional[str] = None
    ANNOTATOR_S3_REGION: Optional[str] = None
    ANNOTATOR_S3_ACCESS_KEY: Optional[str] = None
    ANNOTATOR_S3_SECRET_KEY: Optional[str] = None
    ANNOTATOR_S3_ENDPOINT: Optional[str] = None
    ANNOTATOR_S3_PREFIX: Optional[str] = None
    ANNOTATOR_ANALYZER_ENGINE: str = "mock"
    ANNOTATOR_BUILD_VERSION: Optional[str] = None
    WEB_ORIGIN: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    @model_validator(mode="after")
    def _validate_s3(self) -> "Settings":
        storage_driver = self.ANNOTATOR_STORAGE_DRIVER.lower()
        draft_driver = self.ANNOTATOR_DRAFT_DRIVER.lower()
        if storage_driver == "s3" or draft_driver == "s3":
            missing = [
                name
                for name, value in {
                    "ANNOTATOR_S3_BUCKET": self.ANNOTATOR_S3_BUCKET,
                    "ANNOTATOR_S3_ACCESS_KEY": self.ANNOTATOR_S3_ACCESS_KEY,
                    "ANNOTATOR_S3_SECRET_KEY": self.ANNOTATOR_S3_SECRET_KEY,
                }.items()
                if not value
            ]
            if missing:
                raise ValueError(f"Missing required S3 settings: {', '.join(missing)}")
        if self.ANNOTATOR_DRAFT_DEBOUNCE_MS < 0:
            raise ValueError("ANNOTATOR_DRAFT_DEBOUNCE_MS must be non-negative")
        return self

    @property
    def api_prefix(self) -> str:
        prefix = self.ANNOTATOR_API_PREFIX.strip()
        if not prefix or prefix == "/":
            return ""
        return "/" + prefix.strip("/")


@lru_cache
def get_settings() -> Settings:
    return Settings()
