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


"""
OBS WebSocket client

Requests go through an obsws-python ReqClient and stream/record state
changes arrive on an EventClient. A background thread opens both, checks
the output state every few seconds and reconnects with exponential backoff
once the connection is gone. While disconnected every request fails at once
with IntegrationNetworkError.
"""

import logging
import threading
from dataclasses import dataclass

import obsws_python as obs
from obsws_python.error import OBSSDKError, OBSSDKRequestError, OBSSDKTimeoutError
from obsws_python.subs import Subs
from websocket import WebSocketException

from .commands import ObsAction
from .errors import (
    IntegrationAuthError, IntegrationError, IntegrationNetworkError, IntegrationRequestError,
)

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 5
CHECK_INTERVAL = 5.0
MIN_BACKOFF = 1.0
MAX_BACKOFF = 30.0

CONNECTION_ERRORS = (OSError, WebSocketException, OBSSDKTimeoutError)


@dataclass(frozen=True)
class ObsStatus:
    connected: bool = False
    streaming: bool = False
    recording: bool = False


class ObsClient:
    """
    Args:
        settings: ObsSettings
        req_client: request client factory, obsws_python.ReqClient
        event_client: event client factory, obsws_python.EventClient
        request_timeout: seconds to wait for a response
        check_interval: seconds between output state checks
    """

    def __init__(self, settings, req_client=obs.ReqClient, event_client=obs.EventClient,
                 request_timeout=REQUEST_TIMEOUT, check_interval=CHECK_INTERVAL,
                 min_backoff=MIN_BACKOFF, max_backoff=MAX_BACKOFF):
        self.settings = settings
        self._req_client = req_client
        self._event_client = event_client
        self.request_timeout = request_timeout
        self.check_interval = check_interval
        self.min_backoff = min_backoff
        self.max_backoff = max_backoff

        self._lock = threading.Lock()
        # ReqClient sends and receives on one socket
        self._request_lock = threading.Lock()
        self._req = None
        self._events = None
        self._streaming = False
        self._recording = False
        self._stop = threading.Event()
        self._thread = None

    # Connection

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="obs", daemon=True)
        self._thread.start()

    def close(self, timeout=2.0):
        self._stop.set()
        self._disconnected()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    @property
    def connected(self):
        with self._lock:
            return self._req is not None

    def status(self):
        with self._lock:
            return ObsStatus(self._req is not None, self._streaming, self._recording)

    def _run(self):
        delay = self.min_backoff
        while not self._stop.is_set():
            try:
                self.connect()
            except IntegrationAuthError as e:
                logger.error("OBS authentication failed: %s", e)
                delay = self.max_backoff
            except IntegrationError as e:
                logger.warning("OBS at %s not reachable: %s", self.settings.url, e)
            else:
                delay = self.min_backoff
                self._watch()
            if self._stop.wait(delay):
                break
            delay = min(delay * 2, self.max_backoff)

    def connect(self):
        """
        Open the request and event connections

        Raises:
            IntegrationAuthError: OBS wants a password we do not have or
                rejected the one we sent
            IntegrationNetworkError: anything else going wrong
        """
        options = dict(host=self.settings.host, port=self.settings.port, password=self.settings.password)
        try:
            req = self._req_client(timeout=self.request_timeout, **options)
        except CONNECTION_ERRORS as e:
            raise IntegrationNetworkError(str(e) or type(e).__name__) from e
        except OBSSDKError as e:
            # only the identify step raises plain SDK errors
            raise IntegrationAuthError(str(e)) from e
        except ValueError as e:
            raise IntegrationNetworkError("Handshake failed: {}".format(e)) from e

        try:
            events = self._event_client(subs=Subs.OUTPUTS, **options)
        except CONNECTION_ERRORS + (OBSSDKError, ValueError) as e:
            self._close_clients(req, None)
            raise IntegrationNetworkError("Event connection failed: {}".format(e)) from e
        events.callback.register([self.on_stream_state_changed, self.on_record_state_changed])

        with self._lock:
            self._req = req
            self._events = events
        logger.info("Connected to OBS at %s", self.settings.url)
        self._load_status()

    def _watch(self):
        while not self._stop.wait(self.check_interval) and self.connected:
            self._load_status()

    def _disconnected(self, req=None):
        with self._lock:
            if req is not None and req is not self._req:
                return
            old_req, old_events = self._req, self._events
            self._req = self._events = None
            self._streaming = self._recording = False
        self._close_clients(old_req, old_events)
        if old_req is not None and not self._stop.is_set():
            logger.info("Disconnected from OBS")

    @staticmethod
    def _close_clients(req, events):
        for client in (events, req):
            if client is None:
                continue
            try:
                client.disconnect()
            except CONNECTION_ERRORS + (OBSSDKError,) as e:
                logger.debug("Closing OBS connection: %s", e)

    def _load_status(self):
        try:
            streaming = self.request("GetStreamStatus").get("outputActive", False)
            recording = self.request("GetRecordStatus").get("outputActive", False)
        except IntegrationError as e:
            logger.warning("Could not read OBS output state: %s", e)
            return
        with self._lock:
            self._streaming = bool(streaming)
            self._recording = bool(recording)

    # Events, looked up by name by the EventClient

    def on_stream_state_changed(self, data):
        active = bool(getattr(data, "output_active", False))
        with self._lock:
            self._streaming = active
        logger.info("OBS stream %s", "started" if active else "stopped")

    def on_record_state_changed(self, data):
        active = bool(getattr(data, "output_active", False))
        with self._lock:
            self._recording = active
        logger.info("OBS recording %s", "started" if active else "stopped")

    # Requests

    def request(self, request_type, data=None):
        """
        Send one request and wait for its response

        Returns:
            the responseData dict (empty if OBS sent none)

        Raises:
            IntegrationNetworkError: not connected, connection lost or timeout
            IntegrationRequestError: OBS answered with a failure status
        """
        with self._lock:
            req = self._req
        if req is None:
            raise IntegrationNetworkError("OBS is not connected")
        try:
            with self._request_lock:
                response = req.send(request_type, data, raw=True)
        except OBSSDKRequestError as e:
            raise IntegrationRequestError("{} failed: {}".format(request_type, e)) from e
        except CONNECTION_ERRORS + (OBSSDKError, ValueError) as e:
            self._disconnected(req)
            raise IntegrationNetworkError("{} failed: {}".format(request_type, str(e) or type(e).__name__)) from e
        return response or {}

    def toggle_stream(self):
        active = self.request("GetStreamStatus").get("outputActive", False)
        self.request("StopStream" if active else "StartStream")
        return not active

    def toggle_record(self):
        active = self.request("GetRecordStatus").get("outputActive", False)
        self.request("StopRecord" if active else "StartRecord")
        return not active

    def toggle_mute(self, input_name=None):
        name = input_name or self.settings.mic_input
        muted = self.request("GetInputMute", {"inputName": name}).get("inputMuted", False)
        self.request("SetInputMute", {"inputName": name, "inputMuted": not muted})
        return not muted

    def set_scene(self, name):
        self.request("SetCurrentProgramScene", {"sceneName": name})

    def execute(self, command):
        match command.action:
            case ObsAction.STREAM:
                self.toggle_stream()
            case ObsAction.RECORD:
                self.toggle_record()
            case ObsAction.MUTE:
                self.toggle_mute()
            case ObsAction.SCENE:
                self.set_scene(command.scene)
