import threading
import unittest
from unittest.mock import MagicMock

import requests

from ssdeck.commands import TwitchAction, TwitchCommand
from ssdeck.errors import IntegrationAuthError, IntegrationNetworkError, IntegrationRequestError
from ssdeck.settings import TwitchSettings
from ssdeck.twitch import HELIX_URL, TwitchClient


def response(status=200, body=None):
    resp = MagicMock()
    resp.status_code = status
    resp.content = b"{}" if body is not None else b""
    resp.json.return_value = body
    return resp


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestTwitchClient(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.session.headers = {}
        self.routes = {
            ("GET", "/users"): response(body={"data": [{"id": "1234", "login": "mychannel"}]}),
            ("GET", "/streams"): response(body={"data": [{"viewer_count": 87}]}),
            ("GET", "/channels/followers"): response(body={"total": 4321, "data": []}),
            ("POST", "/clips"): response(202, {"data": [{"id": "ClipId", "edit_url": "x"}]}),
            ("POST", "/channels/commercial"): response(body={"data": [{"length": 60}]}),
            ("POST", "/chat/messages"): response(body={"data": [{"message_id": "m", "is_sent": True}]}),
        }
        self.session.request.side_effect = self.route
        self.clock = FakeClock()
        self.client = TwitchClient(
            TwitchSettings(True, "client-id", "token", "mychannel"), self.session, clock=self.clock)

    def route(self, method, url, params=None, json=None, timeout=None):
        return self.routes[(method, url[len(HELIX_URL):])]

    def calls(self, method, path):
        return [c for c in self.session.request.call_args_list
                if c.args[0] == method and c.args[1] == HELIX_URL + path]

    def test_headers(self):
        self.assertEqual(self.session.headers["Client-Id"], "client-id")
        self.assertEqual(self.session.headers["Authorization"], "Bearer token")

    def test_viewers(self):
        self.assertEqual(self.client.viewers(), 87)
        self.assertEqual(self.calls("GET", "/streams")[0].kwargs["params"], {"user_login": "mychannel"})

    def test_viewers_offline(self):
        self.routes[("GET", "/streams")] = response(body={"data": []})
        self.assertEqual(self.client.viewers(), 0)

    def test_followers_looks_up_broadcaster_once(self):
        self.assertEqual(self.client.followers(), 4321)
        self.client.followers()
        self.assertEqual(len(self.calls("GET", "/users")), 1)
        self.assertEqual(self.calls("GET", "/channels/followers")[0].kwargs["params"], {"broadcaster_id": "1234"})

    def test_clip(self):
        self.client.execute(TwitchCommand(TwitchAction.CLIP))
        self.assertEqual(self.calls("POST", "/clips")[0].kwargs["params"], {"broadcaster_id": "1234"})

    def test_ad_lengths(self):
        self.client.execute(TwitchCommand(TwitchAction.AD, "60"))
        self.assertEqual(self.calls("POST", "/channels/commercial")[0].kwargs["json"],
                         {"broadcaster_id": "1234", "length": 60})
        with self.assertRaises(IntegrationRequestError):
            self.client.start_commercial(45)

    def test_chat(self):
        self.client.execute(TwitchCommand(TwitchAction.CHAT, "hello chat"))
        body = self.calls("POST", "/chat/messages")[0].kwargs["json"]
        self.assertEqual(body, {"broadcaster_id": "1234", "sender_id": "1234", "message": "hello chat"})

    def test_chat_dropped(self):
        self.routes[("POST", "/chat/messages")] = response(body={"data": [
            {"is_sent": False, "drop_reason": {"message": "slow mode"}}]})
        with self.assertRaises(IntegrationRequestError):
            self.client.send_chat("hi")

    def test_unauthorized_is_auth_error(self):
        self.routes[("GET", "/streams")] = response(401, {"message": "Invalid OAuth token"})
        with self.assertRaises(IntegrationAuthError):
            self.client.viewers()

    def test_http_error(self):
        self.routes[("POST", "/clips")] = response(404, {"message": "channel offline"})
        with self.assertRaises(IntegrationRequestError):
            self.client.create_clip()

    def test_network_error(self):
        self.session.request.side_effect = requests.ConnectionError("down")
        with self.assertRaises(IntegrationNetworkError):
            self.client.viewers()

    def test_malformed_body(self):
        broken = response(body={})
        broken.json.side_effect = ValueError("Expecting value")
        self.routes[("GET", "/streams")] = broken
        with self.assertRaises(IntegrationNetworkError):
            self.client.viewers()

    def test_malformed_body_keeps_old_values(self):
        self.client.refresh_metrics()
        broken = response(body={})
        broken.json.side_effect = ValueError("Expecting value")
        self.routes[("GET", "/streams")] = broken
        with self.assertLogs("ssdeck.twitch", "WARNING"):
            self.client.refresh_metrics()
        self.assertEqual(self.client.cached_metric("viewers"), 87)

    def test_cached_metric_refreshes_in_background(self):
        self.assertIsNone(self.client.cached_metric("viewers"))
        for thread in threading.enumerate():
            if thread.name == "twitch-metrics":
                thread.join(2)
        self.assertEqual(self.client.cached_metric("viewers"), 87)
        self.assertEqual(self.client.cached_metric("followers"), 4321)
        self.assertEqual(len(self.calls("GET", "/streams")), 1)

    def test_cache_expires(self):
        self.client.refresh_metrics()
        self.routes[("GET", "/streams")] = response(body={"data": [{"viewer_count": 90}]})
        self.clock.now = 31
        self.assertEqual(self.client.cached_metric("viewers"), 87)
        for thread in threading.enumerate():
            if thread.name == "twitch-metrics":
                thread.join(2)
        self.assertEqual(self.client.cached_metric("viewers"), 90)

    def test_failed_refresh_keeps_old_values(self):
        self.client.refresh_metrics()
        self.routes[("GET", "/streams")] = response(401, {"message": "expired"})
        self.client.refresh_metrics()
        self.assertEqual(self.client.cached_metric("viewers"), 87)


if __name__ == '__main__':
    unittest.main()
