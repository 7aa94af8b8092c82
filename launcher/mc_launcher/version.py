from __future__ import annotations
import json
import os
from pathlib import Path
from typing import Optional
from pydantic import ValidationError
from .models import VersionRecord
from .settings import Settings
from .logging_setup import get_logger

log = get_logger("mc.launcher.version")


def configured_version(settings: Settings) -> VersionRecord:
    return VersionRecord(version=settings.mc_version or False, forge=settings.forge_version)


class VersionStore:
    """version.json: which server build is installed in the server directory."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> Optional[VersionRecord]:
        if not self.path.exists():
            return None
        try:
            return VersionRecord.model_validate_json(self.path.read_text(encoding="utf-8"))
        except ValidationError as e:
            log.warning("Ignoring unreadable %s: %s", self.path, e)
            return None

    def save(self, record: VersionRecord) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(record.model_dump()), encoding="utf-8")
        os.replace(tmp, self.path)
