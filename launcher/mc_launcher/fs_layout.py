from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from .settings import Settings
from .logging_setup import get_logger

log = get_logger("mc.launcher.fs")

@dataclass(frozen=True)
class Layout:
    server_dir: Path
    mods_dir: Path
    logs_dir: Path
    mods_json: Path
    version_json: Path
    eula_txt: Path
    console_log: Path

def build_layout(settings: Settings) -> Layout:
    root = settings.mc_dir
    return Layout(
        server_dir=root,
        mods_dir=root / "mods",
        logs_dir=root / "logs",
        mods_json=root / "mods.json",
        version_json=root / "version.json",
        eula_txt=root / "eula.txt",
        console_log=root / "mc_launcher.log",
    )

def ensure_dirs(layout: Layout) -> None:
    for p in [layout.server_dir, layout.mods_dir, layout.logs_dir]:
        if not p.exists():
            log.info("Creating %s", p)
        p.mkdir(parents=True, exist_ok=True)

def accept_eula(layout: Layout) -> None:
    layout.eula_txt.write_text("eula=true", encoding="utf-8")
    log.info("EULA set to true in %s. You have been warned.", layout.eula_txt)
