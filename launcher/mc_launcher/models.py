from __future__ import annotations
from typing import FrozenSet, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ModRecord(BaseModel):
    """One file of the mods directory, identified by filename."""
    filename: str
    hash: str = Field(..., description="SHA-512 hex digest of the file bytes")


class WebhookSubscription(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = Field(default="webhook", description="Delivery mechanism; only 'webhook' is supported")
    uri: str
    events: FrozenSet[str] = Field(default_factory=frozenset)


class ListenersFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_listeners: List[WebhookSubscription] = Field(default_factory=list, alias="eventListeners")


class VersionRecord(BaseModel):
    """
    Persisted in version.json.

    `version` is the vanilla Minecraft version, or False for a Forge server
    (which is then identified by `forge`).
    """
    version: Union[str, bool] = False
    forge: str = ""

    @field_validator("version", mode="before")
    @classmethod
    def _empty_is_false(cls, v):
        if v is None or v == "":
            return False
        return v

    @property
    def is_forge(self) -> bool:
        return not self.version

    @property
    def label(self) -> str:
        return f"forge-{self.forge}" if self.is_forge else str(self.version)

    def server_jar(self) -> str:
        if self.is_forge:
            return f"forge-{self.forge}-universal.jar"
        return f"minecraft_server.{self.version}.jar"


class WorldResult(BaseModel):
    success: bool
    reason: Optional[str] = None
