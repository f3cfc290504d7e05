###############################################################
#
# ssdeck – Redragon SS-550 stream deck driver for Linux
#
# Copyright (C) 2026 the ssdeck authors
#
# This project is based on HalDeck by Peter Damerau
# https://www.talla83.de
#
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
###############################################################

"""Twitch Helix client: stream metrics, clips, ads and chat"""

import logging
import threading
import time

import requests

from .commands import TwitchAction
from .errors import IntegrationAuthError, IntegrationError, IntegrationNetworkError, IntegrationRequestError

logger = logging.getLogger(__name__)

HELIX_URL = "https://api.twitch.tv/helix"
AD_LENGTHS = (30, 60, 90, 120, 150, 180)
METRICS_INTERVAL = 30.0
REQUEST_TIMEOUT = 10


class TwitchClient:
    """
    Args:
        settings: TwitchSettings
        session: requests.Session (one is created if omitted)
        clock: monotonic clock for the metric cache
        interval: minimum seconds between metric refreshes
    """

    def __init__(self, settings, session=None, clock=time.monotonic, interval=METRICS_INTERVAL):
        self.settings = settings
        self.session = session or requests.Session()
        self.session.headers.update({
            "Client-Id": settings.client_id,
            "Authorization": "Bearer {}".format(settings.access_token),
        })
        self.clock = clock
        self.interval = interval

        self._broadcaster_id = None
        self._sender_id = None
        self._metrics = {}
        self._fetched_at = None
        self._refreshing = False
        self._lock = threading.Lock()

    def close(self):
        self.session.close()

    def _request(self, method, path, params=None, json=None):
        try:
            response = self.session.request(method, HELIX_URL + path, params=params, json=json,
                                            timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            raise IntegrationNetworkError("{} {}: {}".format(method, path, e)) from e

        if response.status_code == 401:
            raise IntegrationAuthError("Twitch token rejected, re-authentication needed")
        if response.status_code >= 400:
            try:
                message = response.json().get("message", "")
            except ValueError:
                message = response.text
            raise IntegrationRequestError("{} {} returned {}: {}".format(
                method, path, response.status_code, message))
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise IntegrationNetworkError("{} {}: malformed response: {}".format(method, path, e)) from e

    # Identity

    def user_id(self, login=None):
        """
        Numeric id of a user; without a login, of the token's owner
        """
        params = {"login": login} if login else None
        data = self._request("GET", "/users", params=params).get("data", [])
        if not data:
            raise IntegrationRequestError("Twitch user {!r} not found".format(login))
        return data[0]["id"]

    @property
    def broadcaster_id(self):
        if self._broadcaster_id is None:
            self._broadcaster_id = self.user_id(self.settings.channel)
        return self._broadcaster_id

    @property
    def sender_id(self):
        if self._sender_id is None:
            self._sender_id = self.user_id()
        return self._sender_id

    # Metrics

    def viewers(self):
        """Current viewer count, 0 while offline"""
        data = self._request("GET", "/streams", params={"user_login": self.settings.channel}).get("data", [])
        return data[0]["viewer_count"] if data else 0

    def followers(self):
        data = self._request("GET", "/channels/followers", params={"broadcaster_id": self.broadcaster_id})
        return data.get("total", 0)

    def refresh_metrics(self):
        try:
            metrics = {"viewers": self.viewers(), "followers": self.followers()}
        except IntegrationAuthError as e:
            logger.error("Twitch metrics: %s", e)
        except IntegrationError as e:
            logger.warning("Twitch metrics not updated: %s", e)
        else:
            with self._lock:
                self._metrics = metrics
            logger.debug("Twitch metrics %s", metrics)
        finally:
            with self._lock:
                self._fetched_at = self.clock()
                self._refreshing = False

    def cached_metric(self, name):
        """
        Last known value of "viewers" or "followers"

        Never blocks; a stale cache starts a refresh in the background and
        the old value (or None) is returned meanwhile.
        """
        with self._lock:
            stale = self._fetched_at is None or self.clock() - self._fetched_at >= self.interval
            start = stale and not self._refreshing
            if start:
                self._refreshing = True
            value = self._metrics.get(name)
        if start:
            threading.Thread(target=self.refresh_metrics, name="twitch-metrics", daemon=True).start()
        return value

    # Actions

    def create_clip(self):
        data = self._request("POST", "/clips", params={"broadcaster_id": self.broadcaster_id}).get("data", [])
        clip_id = data[0]["id"] if data else None
        logger.info("Clip created: %s", clip_id)
        return clip_id

    def start_commercial(self, length):
        length = int(length)
        if length not in AD_LENGTHS:
            raise IntegrationRequestError("Ad length must be one of {}, not {}".format(AD_LENGTHS, length))
        self._request("POST", "/channels/commercial",
                      json={"broadcaster_id": self.broadcaster_id, "length": length})
        logger.info("Started a %d second ad break", length)

    def send_chat(self, message):
        data = self._request("POST", "/chat/messages", json={
            "broadcaster_id": self.broadcaster_id,
            "sender_id": self.sender_id,
            "message": message,
        }).get("data", [])
        if data and not data[0].get("is_sent", True):
            reason = data[0].get("drop_reason") or {}
            raise IntegrationRequestError("Chat message dropped: {}".format(reason.get("message", "unknown reason")))

    def execute(self, command):
        match command.action:
            case TwitchAction.CLIP:
                self.create_clip()
            case TwitchAction.AD:
                self.start_commercial(command.argument)
            case TwitchAction.CHAT:
                self.send_chat(command.argument)
