from __future__ import annotations
from pathlib import Path
from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    mc_dir: Path = Field(default=Path("/minecraft"), alias="MC_DIR")
    mc_version: str = Field(default="", alias="MC_VERSION")
    forge_version: str = Field(default="1.12.2-14.23.5.2847", alias="FORGE_VERSION")

    java_binary: str = Field(default="java", alias="JAVA_BINARY")
    java_args: List[str] = Field(default_factory=list, alias="JAVA_ARGS")

    listeners_json: Path = Field(default=Path("/minecraft/listeners.json"), alias="MC_LISTENERS_JSON")

    skip_install: bool = Field(default=False, alias="SKIP_INSTALL")
    accept_eula: bool = Field(default=True, alias="ACCEPT_EULA")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    console_line_buffered: bool = Field(default=True, alias="CONSOLE_LINE_BUFFERED")
    hash_workers: int = Field(default=4, alias="HASH_WORKERS")
    webhook_workers: int = Field(default=4, alias="WEBHOOK_WORKERS")
    webhook_timeout: float = Field(default=10.0, alias="WEBHOOK_TIMEOUT")

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    @property
    def is_forge(self) -> bool:
        return not self.mc_version
