from __future__ import annotations


class LauncherError(Exception):
    """Base class for every error raised by mc_launcher."""


class SupervisorError(LauncherError):
    pass


class SpawnError(SupervisorError):
    """The server executable could not be started."""


class ModScanError(LauncherError):
    """The mod directory could not be enumerated or read."""


class ScanInProgressError(LauncherError):
    pass


class ManifestWriteError(LauncherError):
    """mods.json could not be written, even after retrying."""


class InstallError(LauncherError):
    pass
