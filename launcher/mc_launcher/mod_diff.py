"""
mod_diff.py — change detection for the server's mods directory
--------------------------------------------------------------
Compares the files in ``<mc_dir>/mods`` against the persisted manifest
(mods.json) by SHA-512 content hash and reports additions, updates and
deletions as one batch per kind.

Hashing fans out over a thread pool; merging into the manifest happens on the
scanning thread only. Scans are serialized: starting a scan while another one
is running raises ScanInProgressError.

Known edge case: deletions are computed before the directory is listed, so a
file that is removed and recreated while a scan is running may be reported
as an update, as an addition, or not at all. A file that disappears
between listing and hashing is reported as a deletion if mods.json knew it,
and ignored otherwise.
"""

from __future__ import annotations
import hashlib
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from .errors import ModScanError, ScanInProgressError
from .events import EventBus
from .manifest import ManifestStore, ModManifest
from .models import ModRecord
from .logging_setup import get_logger

log = get_logger("mc.launcher.mods")

_READ_CHUNK = 1 << 20


class ChangeKind(str, Enum):
    ADDITION = "modAddition"
    UPDATE = "modUpdated"
    DELETION = "modDeletion"


# order in which batches are published
PUBLISH_ORDER = (ChangeKind.ADDITION, ChangeKind.DELETION, ChangeKind.UPDATE)


@dataclass
class ModChangeEvent:
    kind: ChangeKind
    mods: List[ModRecord]

    def payload(self) -> Dict[str, Any]:
        return {"mods": [m.model_dump() for m in self.mods]}


@dataclass
class ScanResult:
    manifest: ModManifest
    events: List[ModChangeEvent] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.events)

    def mods(self, kind: ChangeKind) -> List[ModRecord]:
        for ev in self.events:
            if ev.kind is kind:
                return list(ev.mods)
        return []

    def to_dict(self) -> Dict[str, Any]:
        return {ev.kind.value: ev.payload()["mods"] for ev in self.events}


def hash_file(path: Path) -> str:
    digest = hashlib.sha512()
    with open(path, "rb") as fh:
        for block in iter(lambda: fh.read(_READ_CHUNK), b""):
            digest.update(block)
    return digest.hexdigest()


class ModDiffEngine:
    def __init__(self, store: ManifestStore, mod_dir: Path, *, workers: int = 4):
        self.store = store
        self.mod_dir = mod_dir
        self.workers = max(1, workers)
        self._scan_lock = threading.Lock()

    # ---------------------------------------------------------------------- #
    def scan(self, mod_dir: Path, manifest: ModManifest) -> ScanResult:
        """
        Diff `mod_dir` against `manifest`.

        The given manifest is not modified; the returned ScanResult carries the
        updated copy and at most one event per ChangeKind.
        """
        if not self._scan_lock.acquire(blocking=False):
            raise ScanInProgressError("a mod scan is already running")
        try:
            return self._scan(mod_dir, manifest)
        finally:
            self._scan_lock.release()

    def _scan(self, mod_dir: Path, manifest: ModManifest) -> ScanResult:
        log.info("Checking for mod changes in %s ...", mod_dir)
        working = manifest.copy()
        batches: Dict[ChangeKind, List[ModRecord]] = {k: [] for k in ChangeKind}

        # deletion pass
        for rec in working:
            if not (mod_dir / rec.filename).is_file():
                log.info("Removed mod: %s", rec.filename)
                batches[ChangeKind.DELETION].append(working.remove(rec.filename))

        # addition / update pass
        digests, vanished = self._hash_all(self._list_files(mod_dir))
        for name in sorted(vanished):
            if name in working:
                log.info("Removed mod: %s", name)
                batches[ChangeKind.DELETION].append(working.remove(name))
        for name in sorted(digests):
            digest = digests[name]
            current = working.get(name)
            if current is None:
                rec = ModRecord(filename=name, hash=digest)
                working.add(rec)
                batches[ChangeKind.ADDITION].append(rec)
                log.info("New mod: %s", name)
            elif current.hash != digest:
                batches[ChangeKind.UPDATE].append(working.set_hash(name, digest))
                log.info("Updated mod: %s", name)

        events = [ModChangeEvent(kind, batches[kind]) for kind in PUBLISH_ORDER if batches[kind]]
        log.info(
            "Mod scan done: %d mod(s), +%d ~%d -%d",
            len(working),
            len(batches[ChangeKind.ADDITION]),
            len(batches[ChangeKind.UPDATE]),
            len(batches[ChangeKind.DELETION]),
        )
        return ScanResult(manifest=working, events=events)

    def _list_files(self, mod_dir: Path) -> List[Path]:
        try:
            with os.scandir(mod_dir) as it:
                entries = list(it)
        except OSError as e:
            raise ModScanError(f"Failed to enumerate mod directory {mod_dir}: {e}") from e

        files = []
        for entry in entries:
            try:
                if entry.is_dir() or not entry.is_file():
                    continue
            except OSError as e:
                log.warning("Skipping unreadable entry %s: %s", entry.path, e)
                continue
            files.append(Path(entry.path))
        return files

    def _hash_all(self, files: List[Path]) -> Tuple[Dict[str, str], Set[str]]:
        """Hash `files` in parallel; returns the digests and the names that vanished meanwhile."""
        digests: Dict[str, str] = {}
        vanished: Set[str] = set()
        if not files:
            return digests, vanished
        with ThreadPoolExecutor(max_workers=min(self.workers, len(files)), thread_name_prefix="modhash") as pool:
            futures = {pool.submit(hash_file, p): p for p in files}
            for fut in as_completed(futures):
                path = futures[fut]
                try:
                    digests[path.name] = fut.result()
                except FileNotFoundError:
                    log.warning("Mod %s disappeared while hashing", path.name)
                    vanished.add(path.name)
                except OSError as e:
                    raise ModScanError(f"Failed to read mod {path}: {e}") from e
        return digests, vanished

    # ---------------------------------------------------------------------- #
    def reconcile(self, bus: Optional[EventBus] = None) -> ScanResult:
        """
        Load mods.json, scan, persist on change and publish the batches.

        Without a manifest on disk the current directory becomes the baseline:
        it is written but not announced.
        """
        try:
            previous = self.store.load()
        except ValueError as e:
            raise ModScanError(f"Cannot read {self.store.path}; remove it to rebuild the mod database") from e

        if previous is None:
            log.info("Building initial mod database from %s", self.mod_dir)
            result = self.scan(self.mod_dir, ModManifest())
            self.store.save(result.manifest)
            return ScanResult(manifest=result.manifest)

        result = self.scan(self.mod_dir, previous)
        if result.changed:
            self.store.save(result.manifest)
        if bus is not None:
            for ev in result.events:
                bus.publish(ev.kind.value, ev.payload())
        return result
