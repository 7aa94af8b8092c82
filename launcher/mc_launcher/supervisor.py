"""
supervisor.py — lifecycle of the Minecraft server process
---------------------------------------------------------
State machine::

    STOPPED/EXITED --start()--> STARTING --"Done (Ns)!"--> RUNNING
    STARTING/RUNNING --process exit--> EXITED

Events published on the supervisor's bus:
    status         "starting" | "up" | "down"
    console        {"tags": [...], "message": "..."}
    modAddition / modUpdated / modDeletion   {"mods": [...]}
    versionChange  {"newVersion": ..., "oldVersion": ...}

The bus is rebuilt by every start() and dropped when the process exits.
Anything subscribed on ``supervisor.events`` therefore lives for one server
run only; configured webhooks are registered again by the next start().
"""

from __future__ import annotations
import os
import shutil
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, IO, List, Optional

from .console_parser import ConsoleParser, ParsedLine
from .errors import SpawnError, SupervisorError
from .events import EventBus, WebhookDispatcher
from .fs_layout import Layout
from .installer import ServerInstaller
from .manifest import ManifestStore
from .mod_diff import ModDiffEngine
from .models import WorldResult
from .process_runner import PtyProcess
from .settings import Settings
from .version import VersionStore, configured_version
from .logging_setup import CONSOLE_LOGGER, get_logger

log = get_logger("mc.launcher.supervisor")
console_log = get_logger(CONSOLE_LOGGER)

# Enter key on the server's terminal
LINE_TERMINATOR = "\r"


class ServerState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    EXITED = "exited"


class ServerSupervisor:
    def __init__(self, settings: Settings, layout: Layout, *,
                 dispatcher: Optional[WebhookDispatcher] = None,
                 installer: Optional[ServerInstaller] = None,
                 process_factory: Callable[..., Any] = PtyProcess):
        self.settings = settings
        self.layout = layout
        self.dispatcher = dispatcher
        self.installer = installer
        self.process_factory = process_factory

        self.versions = VersionStore(layout.version_json)
        self.mods = ModDiffEngine(ManifestStore(layout.mods_json), layout.mods_dir, workers=settings.hash_workers)

        self.events = EventBus()
        self.state = ServerState.STOPPED
        self.last_exit_code: Optional[int] = None

        self._lock = threading.RLock()
        self._proc = None
        self._parser: Optional[ConsoleParser] = None
        self._log_fh: Optional[IO[str]] = None
        self._exited = threading.Event()
        self._exited.set()
        # held closed while start() runs so output never overtakes "starting"
        self._started = threading.Event()
        self._started.set()

    # ---------------------------------------------------------------------- #
    def default_command(self) -> List[str]:
        record = configured_version(self.settings)
        log.info("Using server jar %s", record.server_jar())
        return [self.settings.java_binary, *self.settings.java_args, "-jar", record.server_jar(), "nogui"]

    def start(self, command_args: Optional[List[str]] = None, working_dir: Optional[Path] = None) -> None:
        """
        Rebuild the bus, check the installed version, reconcile mods and spawn
        the server. Raises SpawnError if the executable cannot be started.
        """
        with self._lock:
            if self._proc is not None:
                raise SupervisorError(f"server is already {self.state.value}")

            self.events = EventBus()
            if self.dispatcher is not None:
                self.dispatcher.register(self.events)

            self._check_version()
            if self.settings.is_forge:
                self.mods.reconcile(self.events)

            cmd = list(command_args) if command_args else self.default_command()
            cwd = working_dir or self.layout.server_dir
            self._parser = ConsoleParser(line_buffered=self.settings.console_line_buffered)
            self._open_console_log()

            proc = self.process_factory(
                name="minecraft",
                cmd=cmd,
                cwd=cwd,
                on_output=self._handle_output,
                on_exit=self._handle_exit,
            )
            self._started.clear()
            try:
                proc.spawn()
            except SpawnError:
                log.error("Server executable %r could not be started", cmd[0])
                self._close_console_log(rotate=False)
                raise
            else:
                self._proc = proc
                self._exited.clear()
                self.state = ServerState.STARTING
                self.events.publish("status", "starting")
            finally:
                self._started.set()

    def _check_version(self) -> None:
        current = configured_version(self.settings)
        stored = self.versions.load()
        if stored is None:
            log.info("Recording installed version %s", current.label)
            self.versions.save(current)
            return
        if stored == current:
            return

        log.info("Version change requested: %s -> %s", stored.label, current.label)
        if self.installer is not None and not self.settings.skip_install:
            self.installer.install(current, self.layout.server_dir)
        else:
            log.warning("Not installing %s (installer disabled)", current.label)
        self.versions.save(current)
        self.events.publish("versionChange", {"newVersion": current.label, "oldVersion": stored.label})

    # ---------------------------------------------------------------------- #
    def is_running(self) -> bool:
        return self.state is ServerState.RUNNING

    @property
    def process_alive(self) -> bool:
        return self._proc is not None

    def send_command(self, text: str) -> bool:
        with self._lock:
            if self.state is not ServerState.RUNNING or self._proc is None:
                return False
            proc = self._proc
        try:
            proc.write((text + LINE_TERMINATOR).encode("utf-8"))
        except OSError as e:
            log.warning("Failed to write %r to server console: %s", text, e)
            return False
        log.debug("> %s", text)
        return True

    def stop(self) -> bool:
        return self.send_command("stop")

    def op(self, player: str) -> bool:
        if not self.is_running():
            return False
        return self.send_command(f"op {player}")

    def deop(self, player: str) -> bool:
        if not self.is_running():
            return False
        return self.send_command(f"deop {player}")

    def remove_world(self, name: str) -> WorldResult:
        if not name:
            return WorldResult(success=False, reason="INVOKE")
        if self.process_alive:
            return WorldResult(success=False, reason="PTY")

        server_dir = self.layout.server_dir.resolve()
        world_dir = (server_dir / name).resolve()
        if world_dir == server_dir or server_dir not in world_dir.parents:
            log.warning("Refusing to remove %r: outside of %s", name, server_dir)
            return WorldResult(success=False, reason="INVOKE")
        if not world_dir.is_dir():
            return WorldResult(success=False, reason="NOTEXIST")

        log.info("Removing world: %s", name)
        shutil.rmtree(world_dir)
        log.info("World %s destroyed.", name)
        return WorldResult(success=True)

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Block until the current server process has exited; returns its rc."""
        self._exited.wait(timeout)
        return self.last_exit_code

    def status(self) -> Dict[str, Any]:
        proc = self._proc
        return {
            "state": self.state.value,
            "running": self.is_running(),
            "pid": getattr(proc, "pid", None),
            "last_exit_code": self.last_exit_code,
            "listeners": self.events.listener_count(),
        }

    # ---------------------------------------------------------------------- #
    def _handle_output(self, data: bytes) -> None:
        self._started.wait()
        parser = self._parser
        if parser is None:
            return
        for line in parser.feed(data):
            self._handle_line(line)

    def _handle_line(self, line: ParsedLine) -> None:
        fh = self._log_fh
        if fh is not None:
            fh.write(line.raw + "\n")
        console_log.debug("%s", line.raw)

        if line.event is not None:
            self.events.publish("console", line.event.to_dict())
        if line.ready:
            self._mark_ready(line.ready_after)

    def _mark_ready(self, seconds: Optional[float]) -> None:
        with self._lock:
            if self.state is not ServerState.STARTING:
                return
            self.state = ServerState.RUNNING
            log.info("Server is up (startup took %ss)", seconds)
            self.events.publish("status", "up")

    def _handle_exit(self, rc: int) -> None:
        self._started.wait()
        if self._parser is not None:
            for line in self._parser.flush():
                self._handle_line(line)
        with self._lock:
            self._close_console_log(rotate=True)
            self._proc = None
            self._parser = None
            self.last_exit_code = rc
            self.state = ServerState.EXITED
            log.info("Server stopped (rc=%s)", rc)
            self.events.publish("status", "down")
            self.events = EventBus()
            self._exited.set()

    def _open_console_log(self) -> None:
        path = self.layout.console_log
        path.parent.mkdir(parents=True, exist_ok=True)
        self._log_fh = open(path, "a", encoding="latin-1", buffering=1)

    def _close_console_log(self, rotate: bool) -> None:
        fh, self._log_fh = self._log_fh, None
        if fh is not None:
            fh.close()
        path = self.layout.console_log
        if rotate and path.exists():
            os.replace(path, path.with_name(path.name + ".1"))
