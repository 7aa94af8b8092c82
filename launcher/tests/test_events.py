"""
Tests for the event bus and webhook delivery.
"""

import json
import logging
import urllib.error
import pytest
from unittest.mock import MagicMock, Mock, patch

from mc_launcher.events import EventBus, WebhookDispatcher
from mc_launcher.models import WebhookSubscription


def _response(status=200):
    resp = MagicMock()
    resp.status = status
    resp.__enter__.return_value = resp
    return resp


@pytest.fixture
def hook():
    return WebhookSubscription(type="webhook", uri="http://hooks.example/mc", events={"status", "console"})


class TestEventBus:

    def test_publish_reaches_matching_listeners_only(self):
        bus = EventBus()
        status, console = Mock(), Mock()
        bus.subscribe("status", status)
        bus.subscribe("console", console)

        bus.publish("status", "up")

        status.assert_called_once_with("up")
        console.assert_not_called()

    def test_failing_listener_does_not_stop_others(self):
        bus = EventBus()
        after = Mock()
        bus.subscribe("status", Mock(side_effect=RuntimeError("boom")))
        bus.subscribe("status", after)

        bus.publish("status", "down")

        after.assert_called_once_with("down")

    def test_unsubscribe_and_count(self):
        bus = EventBus()
        listener = Mock()
        bus.subscribe("status", listener)
        bus.subscribe("console", Mock())
        assert bus.listener_count() == 2
        assert bus.listener_count("status") == 1

        bus.unsubscribe("status", listener)
        bus.unsubscribe("status", listener)

        assert bus.listener_count("status") == 0

    def test_publish_without_listeners(self):
        EventBus().publish("nobody-listens", {"x": 1})


class TestWebhookDispatcher:

    def test_register_subscribes_each_event(self, hook):
        bus = EventBus()
        WebhookDispatcher([hook]).register(bus)

        assert bus.listener_count("status") == 1
        assert bus.listener_count("console") == 1
        assert bus.listener_count("modAddition") == 0

    def test_publish_posts_event_envelope(self, hook):
        bus = EventBus()
        dispatcher = WebhookDispatcher([hook])
        dispatcher.register(bus)

        with patch("mc_launcher.events.urllib.request.urlopen", return_value=_response()) as urlopen:
            bus.publish("status", "up")
            dispatcher.close(wait=True)

        urlopen.assert_called_once()
        req = urlopen.call_args[0][0]
        assert req.full_url == "http://hooks.example/mc"
        assert req.get_method() == "POST"
        assert req.get_header("Content-type") == "application/json"
        assert json.loads(req.data) == {"event": "status", "data": "up"}

    def test_every_subscriber_gets_a_delivery(self, hook):
        other = WebhookSubscription(uri="http://other.example/", events={"status"})
        bus = EventBus()
        dispatcher = WebhookDispatcher([hook, other])
        dispatcher.register(bus)

        with patch("mc_launcher.events.urllib.request.urlopen", return_value=_response()) as urlopen:
            bus.publish("status", "starting")
            dispatcher.close(wait=True)

        urls = sorted(c[0][0].full_url for c in urlopen.call_args_list)
        assert urls == ["http://hooks.example/mc", "http://other.example/"]

    def test_unknown_type_is_not_delivered(self, caplog):
        sub = WebhookSubscription(type="discord", uri="http://x.example/", events={"status"})
        dispatcher = WebhookDispatcher([sub])

        with patch("mc_launcher.events.urllib.request.urlopen") as urlopen, \
             caplog.at_level(logging.WARNING, logger="mc.launcher.events"):
            fut = dispatcher.send_event(sub, {"event": "status", "data": "up"})
            dispatcher.close(wait=True)

        assert fut is None
        urlopen.assert_not_called()
        assert "Unknown type" in caplog.text

    def test_network_error_is_logged_only(self, hook, caplog):
        dispatcher = WebhookDispatcher([hook])

        with patch("mc_launcher.events.urllib.request.urlopen",
                   side_effect=urllib.error.URLError("connection refused")), \
             caplog.at_level(logging.WARNING, logger="mc.launcher.events"):
            ok = dispatcher.send_event(hook, {"event": "status", "data": "up"}).result(timeout=5)

        dispatcher.close()
        assert ok is False
        assert "Failed to send event" in caplog.text

    def test_http_error_is_logged_only(self, hook, caplog):
        dispatcher = WebhookDispatcher([hook])
        err = urllib.error.HTTPError(hook.uri, 500, "Server Error", {}, None)

        with patch("mc_launcher.events.urllib.request.urlopen", side_effect=err), \
             caplog.at_level(logging.WARNING, logger="mc.launcher.events"):
            ok = dispatcher.send_event(hook, {"event": "status", "data": "up"}).result(timeout=5)

        dispatcher.close()
        assert ok is False
        assert "HTTP 500" in caplog.text

    def test_non_2xx_status_counts_as_failure(self, hook):
        dispatcher = WebhookDispatcher([hook])

        with patch("mc_launcher.events.urllib.request.urlopen", return_value=_response(302)):
            ok = dispatcher.send_event(hook, {"event": "status", "data": "up"}).result(timeout=5)

        dispatcher.close()
        assert ok is False
