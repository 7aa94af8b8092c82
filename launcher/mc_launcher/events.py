"""
events.py — in-process event bus and webhook fan-out
----------------------------------------------------
The supervisor owns one EventBus per server run. Components publish named
events (``status``, ``console``, ``modAddition``, ...) on it; the
WebhookDispatcher subscribes one callback per configured (listener, event)
pair and POSTs ``{"event": name, "data": payload}`` to the listener URI.

Delivery is fire-and-forget: POSTs run on a small thread pool, failures are
logged and never retried.
"""

from __future__ import annotations
import json
import threading
import urllib.error
import urllib.request
from collections import defaultdict
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional

from .models import WebhookSubscription
from .logging_setup import get_logger

log = get_logger("mc.launcher.events")

Listener = Callable[[Any], None]

WEBHOOK = "webhook"


class EventBus:
    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event: str, listener: Listener) -> None:
        with self._lock:
            self._listeners[event].append(listener)

    def unsubscribe(self, event: str, listener: Listener) -> None:
        with self._lock:
            try:
                self._listeners[event].remove(listener)
            except ValueError:
                pass

    def listener_count(self, event: Optional[str] = None) -> int:
        with self._lock:
            if event is not None:
                return len(self._listeners.get(event, ()))
            return sum(len(v) for v in self._listeners.values())

    def publish(self, event: str, payload: Any = None) -> None:
        with self._lock:
            listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                # one broken subscriber must not stop the publisher
                log.exception("Listener for %r failed", event)


class WebhookDispatcher:
    def __init__(self, subscriptions: Iterable[WebhookSubscription], *, workers: int = 4, timeout: float = 10.0):
        self.subscriptions = list(subscriptions)
        self.timeout = timeout
        self._pool = ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="webhook")

    def register(self, bus: EventBus) -> None:
        """Subscribe every configured listener on a (fresh) bus."""
        log.info("Event listener init (%d listener(s))", len(self.subscriptions))
        for sub in self.subscriptions:
            log.info("type=%s uri=%s", sub.type, sub.uri)
            for event in sorted(sub.events):
                log.debug(" - event subscribed to %s", event)
                bus.subscribe(event, self._make_listener(sub, event))
        log.info("Event listeners finalized.")

    def _make_listener(self, sub: WebhookSubscription, event: str) -> Listener:
        def _listener(payload: Any) -> None:
            self.send_event(sub, {"event": event, "data": payload})
        return _listener

    def send_event(self, sub: WebhookSubscription, body: Dict[str, Any]) -> Optional[Future]:
        log.debug("send event type=%s to=%s event=%s", sub.type, sub.uri, body.get("event"))
        if sub.type != WEBHOOK:
            log.warning("Failed to send event. Unknown type %r (uri=%s)", sub.type, sub.uri)
            return None
        return self._pool.submit(self._post, sub.uri, body)

    def _post(self, uri: str, body: Dict[str, Any]) -> bool:
        data = json.dumps(body).encode("utf-8")
        req = urllib.request.Request(
            uri,
            data=data,
            method="POST",
            headers={"Content-Type": "application/json"},
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                status = resp.status
        except urllib.error.HTTPError as e:
            log.warning("Failed to send event %r to %s: HTTP %s", body.get("event"), uri, e.code)
            return False
        except (urllib.error.URLError, OSError, ValueError) as e:
            log.warning("Failed to send event %r to %s: %s", body.get("event"), uri, e)
            return False
        if not 200 <= status < 300:
            log.warning("Failed to send event %r to %s: HTTP %s", body.get("event"), uri, status)
            return False
        return True

    def close(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)
