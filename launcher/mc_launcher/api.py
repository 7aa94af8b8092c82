from __future__ import annotations
from typing import Optional
from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel
from . import __version__
from .errors import LauncherError, ScanInProgressError, SupervisorError, SpawnError
from .log_reader import read_tail, read_from_cursor
from .settings import Settings
from .orchestrator import Orchestrator

class ActionResult(BaseModel):
    ok: bool
    detail: str | None = None
    data: dict | None = None

class CommandRequest(BaseModel):
    command: str

def create_app(settings: Settings, orch: Optional[Orchestrator] = None) -> FastAPI:
    app = FastAPI(title="Minecraft Launcher API", version=__version__)
    if orch is None:
        orch = Orchestrator(settings)
        orch.prepare_environment()
    app.state.orch = orch
    sup = orch.supervisor

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/status", response_model=ActionResult)
    def status():
        return ActionResult(ok=True, data=orch.status())

    @app.post("/start", response_model=ActionResult)
    def start():
        try:
            orch.start()
        except SupervisorError as e:
            if isinstance(e, SpawnError):
                raise HTTPException(status_code=500, detail=str(e))
            raise HTTPException(status_code=409, detail=str(e))
        except LauncherError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return ActionResult(ok=True, detail="starting", data=orch.status())

    @app.post("/stop", response_model=ActionResult)
    def stop():
        if not orch.stop():
            raise HTTPException(status_code=409, detail="server_not_running")
        return ActionResult(ok=True, detail="stopping")

    @app.post("/command", response_model=ActionResult)
    def command(req: CommandRequest):
        if not sup.send_command(req.command):
            raise HTTPException(status_code=409, detail="server_not_running")
        return ActionResult(ok=True, detail="sent")

    @app.post("/op/{player}", response_model=ActionResult)
    def op(player: str):
        if not sup.op(player):
            raise HTTPException(status_code=409, detail="server_not_running")
        return ActionResult(ok=True, detail=f"op {player}")

    @app.post("/deop/{player}", response_model=ActionResult)
    def deop(player: str):
        if not sup.deop(player):
            raise HTTPException(status_code=409, detail="server_not_running")
        return ActionResult(ok=True, detail=f"deop {player}")

    @app.delete("/worlds/{name}", response_model=ActionResult)
    def remove_world(name: str):
        res = sup.remove_world(name)
        if res.success:
            return ActionResult(ok=True, detail="removed")
        code = {"INVOKE": 400, "PTY": 409, "NOTEXIST": 404}.get(res.reason or "", 400)
        raise HTTPException(status_code=code, detail=res.reason)

    @app.get("/mods")
    def mods():
        manifest = sup.mods.store.load()
        return {"ok": True, "mods": manifest.to_list() if manifest is not None else []}

    @app.post("/mods/scan", response_model=ActionResult)
    def scan_mods():
        try:
            result = orch.scan_mods()
        except ScanInProgressError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except LauncherError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return ActionResult(ok=True, detail="scanned", data=result.to_dict())

    @app.get("/logs/console")
    def console_log(
        tail: int = Query(default=200, ge=0, le=5000),
        cursor: str | None = None,
        max_lines: int = Query(default=200, ge=1, le=5000),
    ):
        path = orch.layout.console_log
        if not path.exists():
            raise HTTPException(status_code=404, detail="log_not_found")

        if cursor:
            chunk = read_from_cursor(path, cursor=cursor, max_lines=max_lines)
        else:
            chunk = read_tail(path, tail_lines=tail)

        return {
            "ok": True,
            "cursor": chunk.cursor,
            "entries": [{"n": i + 1, "line": line} for i, line in enumerate(chunk.entries)],
            "truncated": chunk.truncated,
        }

    return app
