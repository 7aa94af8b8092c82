from __future__ import annotations
from typing import Any, Dict, List, Optional
from .settings import Settings
from .logging_setup import get_logger
from .fs_layout import build_layout, ensure_dirs, accept_eula
from .config_loader import load_listeners
from .events import WebhookDispatcher
from .installer import ServerInstaller
from .mod_diff import ScanResult
from .supervisor import ServerSupervisor
from .version import configured_version

log = get_logger("mc.launcher.orch")

class Orchestrator:
    """Wires settings, bootstrap and the supervisor together for CLI and API."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.layout = build_layout(settings)
        self.installer = ServerInstaller(settings.java_binary)
        self.dispatcher = WebhookDispatcher(
            load_listeners(settings.listeners_json),
            workers=settings.webhook_workers,
            timeout=settings.webhook_timeout,
        )
        self.supervisor = ServerSupervisor(
            settings,
            self.layout,
            dispatcher=self.dispatcher,
            installer=self.installer,
        )

    def prepare_environment(self) -> None:
        """Create directories, accept the EULA and install the server on a fresh directory."""
        fresh = not self.layout.server_dir.exists()
        if fresh:
            log.info("Running initial setup phase in %s", self.layout.server_dir)
        ensure_dirs(self.layout)
        if self.settings.accept_eula:
            accept_eula(self.layout)

        record = configured_version(self.settings)
        jar = self.layout.server_dir / record.server_jar()
        if jar.exists():
            return
        if self.settings.skip_install:
            log.warning("Server jar %s not found and SKIP_INSTALL=true.", jar)
            return
        log.info("Server jar %s missing, installing %s", jar.name, record.label)
        self.installer.install(record, self.layout.server_dir)
        self.supervisor.versions.save(record)

    def start(self, command_args: Optional[List[str]] = None) -> None:
        self.supervisor.start(command_args)

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        return self.supervisor.wait(timeout)

    def stop(self) -> bool:
        return self.supervisor.stop()

    def scan_mods(self) -> ScanResult:
        return self.supervisor.mods.reconcile(self.supervisor.events)

    def status(self) -> Dict[str, Any]:
        st = self.supervisor.status()
        st["version"] = configured_version(self.settings).label
        return st

    def close(self) -> None:
        self.dispatcher.close(wait=True)
