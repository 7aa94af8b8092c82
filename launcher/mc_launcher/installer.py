"""
installer.py — fetches and installs the server build
----------------------------------------------------
Forge: downloads the Forge installer jar and runs ``java -jar <installer>
--installServer`` in the server directory. Vanilla: downloads the plain
server jar. Both are one-shot operations; any failure raises InstallError.
"""

from __future__ import annotations
import subprocess
import urllib.error
import urllib.request
from pathlib import Path
from .errors import InstallError
from .models import VersionRecord
from .logging_setup import get_logger

log = get_logger("mc.launcher.installer")

FORGE_INSTALLER = "https://maven.minecraftforge.net/net/minecraftforge/forge/{version}/forge-{version}-installer.jar"
MINECRAFT_JAR = "https://s3.amazonaws.com/Minecraft.Download/versions/{version}/minecraft_server.{version}.jar"


class ServerInstaller:
    def __init__(self, java_binary: str = "java", *, timeout: float = 120.0):
        self.java_binary = java_binary
        self.timeout = timeout

    def install(self, record: VersionRecord, cwd: Path) -> None:
        cwd.mkdir(parents=True, exist_ok=True)
        if record.is_forge:
            self.install_forge(record.forge, cwd)
        else:
            self.install_vanilla(str(record.version), cwd)

    def _download(self, url: str, dest: Path) -> None:
        log.info("Fetching %s", url)
        try:
            with urllib.request.urlopen(url, timeout=self.timeout) as resp:
                dest.write_bytes(resp.read())
        except (urllib.error.URLError, OSError) as e:
            raise InstallError(f"Download of {url} failed: {e}") from e

    def install_vanilla(self, version: str, cwd: Path) -> None:
        self._download(MINECRAFT_JAR.format(version=version), cwd / f"minecraft_server.{version}.jar")
        log.info("Minecraft server %s downloaded.", version)

    def install_forge(self, version: str, cwd: Path) -> None:
        installer = cwd / f"forge-{version}-installer.jar"
        self._download(FORGE_INSTALLER.format(version=version), installer)

        cmd = [self.java_binary, "-jar", installer.name, "--installServer"]
        log.info("Installing Forge server: %s", " ".join(cmd))
        try:
            proc = subprocess.run(cmd, cwd=str(cwd), capture_output=True, text=True)
        except OSError as e:
            raise InstallError(f"Cannot run {self.java_binary}: {e}") from e
        finally:
            installer.unlink(missing_ok=True)
        if proc.stdout:
            log.debug("forge installer stdout: %s", proc.stdout[-4000:])
        if proc.returncode != 0:
            log.debug("forge installer stderr: %s", proc.stderr[-4000:])
            raise InstallError(f"Forge installer failed (rc={proc.returncode}). See launcher.log for details.")
        log.info("Forge %s installed.", version)
