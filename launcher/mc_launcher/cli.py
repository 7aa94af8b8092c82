from __future__ import annotations
import argparse
import json
import uvicorn
from .settings import Settings
from .logging_setup import setup_logging, get_logger
from .errors import LauncherError
from .orchestrator import Orchestrator
from .api import create_app

log = get_logger("mc.launcher.cli")

def _run(orch: Orchestrator, args: argparse.Namespace) -> int:
    orch.prepare_environment()
    orch.start(args.command or None)
    try:
        rc = orch.wait()
    except KeyboardInterrupt:
        log.info("Interrupted, sending 'stop' to the server ...")
        if not orch.stop():
            log.warning("Server is not running yet; waiting for it to exit.")
        rc = orch.wait()
    return int(rc or 0)

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="mc-launcher")
    sub = parser.add_subparsers(dest="cmd", required=True)

    run_p = sub.add_parser("run", help="Prepare, start the server and block until it exits")
    run_p.add_argument("command", nargs=argparse.REMAINDER,
                       help="Override the server command line (default: java -jar <server jar> nogui)")

    sub.add_parser("scan", help="Reconcile the mods directory with mods.json once and print the changes")

    api_p = sub.add_parser("api", help="Run REST API (FastAPI)")
    api_p.add_argument("--host", default="0.0.0.0")
    api_p.add_argument("--port", type=int, default=8000)
    api_p.add_argument("--autostart", action="store_true", help="Start the server when the API comes up")

    args = parser.parse_args(argv)
    settings = Settings()
    setup_logging(settings)
    log.info("=== Starting Minecraft launcher ===")

    try:
        orch = Orchestrator(settings)
    except (OSError, ValueError) as e:
        log.exception("Failed to load configuration: %s", e)
        return 1

    try:
        if args.cmd == "run":
            return _run(orch, args)

        if args.cmd == "scan":
            orch.prepare_environment()
            result = orch.scan_mods()
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
            return 0

        if args.cmd == "api":
            orch.prepare_environment()
            app = create_app(settings, orch)
            if args.autostart:
                orch.start()
            uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())
            return 0
    except LauncherError as e:
        log.exception("Fatal: %s", e)
        return 1
    finally:
        orch.close()

    return 2
