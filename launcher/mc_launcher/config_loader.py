from __future__ import annotations
import json
from pathlib import Path
from typing import Any, List
from .models import ListenersFile, WebhookSubscription
from .logging_setup import get_logger

log = get_logger("mc.launcher.config")

def load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))

def load_listeners(path: Path) -> List[WebhookSubscription]:
    """
    Read webhook listeners from `path`.

    Accepts ``{"eventListeners": [...]}`` or a bare list of
    ``{"type": "webhook", "uri": ..., "events": [...]}`` objects.
    A missing file means no listeners.
    """
    if not path.exists():
        log.info("No listeners file at %s, webhooks disabled.", path)
        return []
    log.info("Loading listeners: %s", path)
    data = load_json(path)
    if isinstance(data, list):
        data = {"eventListeners": data}
    if not isinstance(data, dict):
        raise ValueError("Listeners file must be an object or a list")
    listeners = ListenersFile.model_validate(data).event_listeners
    log.info("Loaded %d listener(s)", len(listeners))
    return listeners
