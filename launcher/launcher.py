#!/usr/bin/env python3
"""
Minecraft / Forge dedicated server launcher.

Thin entry point for container images that don't install the package:
    python launcher.py run
    python launcher.py api --autostart
"""

import sys
from mc_launcher.cli import main

if __name__ == "__main__":
    sys.exit(main())
