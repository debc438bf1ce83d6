import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    log_level: str = Field(default="INFO", alias="SCOPELOG_LOG_LEVEL")
    renderer: Literal["json", "console"] = Field(default="json", alias="SCOPELOG_RENDERER")
    output: Literal["stdout", "stderr"] = Field(default="stdout", alias="SCOPELOG_OUTPUT")
    reentrant_frames: bool = Field(default=True, alias="SCOPELOG_REENTRANT_FRAMES")
    request_id_header: str = Field(default="X-Request-ID", alias="SCOPELOG_REQUEST_ID_HEADER")

    @property
    def log_level_value(self) -> int:
        value = logging.getLevelName(self.log_level.upper())
        if not isinstance(value, int):
            raise ValueError(f"Unknown log level: {self.log_level}")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
