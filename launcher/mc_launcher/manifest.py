"""
Persistence of the mod inventory (mods.json).

The manifest is a JSON array of ``{"filename": ..., "hash": ...}`` objects.
It is loaded once per scan and rewritten as a whole; writes go through a
temporary file and ``os.replace`` so a crash never leaves a truncated file.
"""

from __future__ import annotations
import json
import os
import time
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional
from pydantic import TypeAdapter, ValidationError

from .errors import ManifestWriteError
from .models import ModRecord
from .logging_setup import get_logger

log = get_logger("mc.launcher.manifest")

_RECORDS = TypeAdapter(List[ModRecord])


class ModManifest:
    """Filename -> ModRecord mapping. Filenames are unique."""

    def __init__(self, records: Iterable[ModRecord] = ()):
        self._records: Dict[str, ModRecord] = {}
        for rec in records:
            self.add(rec)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ModRecord]:
        return iter(list(self._records.values()))

    def __contains__(self, filename: object) -> bool:
        return filename in self._records

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModManifest):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def get(self, filename: str) -> Optional[ModRecord]:
        return self._records.get(filename)

    def add(self, record: ModRecord) -> None:
        if record.filename in self._records:
            raise ValueError(f"duplicate mod filename in manifest: {record.filename!r}")
        self._records[record.filename] = record

    def remove(self, filename: str) -> ModRecord:
        return self._records.pop(filename)

    def set_hash(self, filename: str, digest: str) -> ModRecord:
        rec = self._records[filename].model_copy(update={"hash": digest})
        self._records[filename] = rec
        return rec

    def copy(self) -> "ModManifest":
        return ModManifest(self._records.values())

    def as_dict(self) -> Dict[str, str]:
        return {r.filename: r.hash for r in self._records.values()}

    def to_list(self) -> List[dict]:
        return [r.model_dump() for r in self._records.values()]


class ManifestStore:
    def __init__(self, path: Path, *, write_attempts: int = 3, retry_delay: float = 0.5):
        self.path = path
        self.write_attempts = write_attempts
        self.retry_delay = retry_delay

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[ModManifest]:
        """Return the stored manifest, or None on first run (no file yet)."""
        if not self.path.exists():
            log.info("%s will be initialized.", self.path.name)
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return ModManifest(_RECORDS.validate_python(raw))
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            log.error("Corrupt manifest %s: %s (remove it to rebuild)", self.path, e)
            raise

    def save(self, manifest: ModManifest) -> None:
        """Replace the manifest on disk atomically, retrying transient failures."""
        data = json.dumps(manifest.to_list(), indent=2)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        last_err: Optional[OSError] = None
        for attempt in range(1, self.write_attempts + 1):
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp, "w", encoding="utf-8") as fh:
                    fh.write(data)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp, self.path)
                log.debug("Wrote %d mod(s) to %s", len(manifest), self.path)
                return
            except OSError as e:
                last_err = e
                log.warning("Failed to save mods (attempt %d/%d): %s", attempt, self.write_attempts, e)
                if attempt < self.write_attempts:
                    time.sleep(self.retry_delay)
        raise ManifestWriteError(f"could not write {self.path}: {last_err}") from last_err
