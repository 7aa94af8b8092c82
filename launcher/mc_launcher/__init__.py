"""
mc_launcher package
-------------------
Supervisor for a Minecraft / Minecraft Forge dedicated server on Linux.
Contains modules for configuration, bootstrap, mod tracking, console parsing,
webhook notifications and server process management via CLI and API.
"""

__version__ = "1.2.0"
