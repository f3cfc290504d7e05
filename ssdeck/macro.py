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
Multi-step macros

A macro never sleeps on a thread. Each execution is a small state machine;
a __DELAY_<ms> step schedules the rest of the sequence on the shared
TaskScheduler and returns, so any number of macros can be waiting at once
while key presses keep being handled.
"""

import heapq
import itertools
import logging
import threading
import time
from enum import Enum

from .commands import Delay, Invalid

logger = logging.getLogger(__name__)


class TaskScheduler:
    """One thread running callbacks at their due time"""

    def __init__(self, clock=time.monotonic, name="task-scheduler"):
        self.clock = clock
        self.name = name
        self._queue = []
        self._counter = itertools.count()
        self._cond = threading.Condition()
        self._running = False
        self._thread = None

    def start(self):
        with self._cond:
            if self._running:
                return
            self._running = True
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout=1.0):
        with self._cond:
            self._running = False
            self._queue.clear()
            self._cond.notify_all()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def call_later(self, delay, callback, *args):
        """Run callback(*args) after delay seconds"""
        with self._cond:
            heapq.heappush(self._queue, (self.clock() + max(0.0, delay), next(self._counter), callback, args))
            self._cond.notify()

    def call_soon(self, callback, *args):
        self.call_later(0, callback, *args)

    def _run(self):
        while True:
            with self._cond:
                while self._running and (not self._queue or self._queue[0][0] > self.clock()):
                    timeout = self._queue[0][0] - self.clock() if self._queue else None
                    self._cond.wait(timeout)
                if not self._running:
                    return
                _, _, callback, args = heapq.heappop(self._queue)
            try:
                callback(*args)
            except Exception:
                logger.exception("Scheduled task failed")


class MacroState(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MacroExecution:
    """One in-flight run of a MULTI command"""

    def __init__(self, steps, origin=None):
        self.steps = tuple(steps)
        self.origin = origin
        self.index = 0
        self.state = MacroState.PENDING
        self.finished = threading.Event()
        self._lock = threading.Lock()

    def _transition(self, allowed, state):
        with self._lock:
            if self.state not in allowed:
                return False
            self.state = state
        return True

    def begin(self):
        """Mark running; False once cancelled or finished"""
        return self._transition((MacroState.PENDING, MacroState.RUNNING), MacroState.RUNNING)

    def complete(self):
        if self._transition((MacroState.RUNNING,), MacroState.COMPLETED):
            self.finished.set()

    def cancel(self):
        if self._transition((MacroState.PENDING, MacroState.RUNNING), MacroState.CANCELLED):
            self.finished.set()

    @property
    def done(self):
        return self.state in (MacroState.COMPLETED, MacroState.CANCELLED)


class MacroSequencer:
    """
    Runs MacroExecutions on a TaskScheduler

    Args:
        scheduler: TaskScheduler that owns the timing
        execute: callable(command, origin) run for every non-delay step
    """

    def __init__(self, scheduler, execute):
        self.scheduler = scheduler
        self.execute = execute
        self._active = set()
        self._lock = threading.Lock()

    def start(self, multi, origin=None):
        execution = MacroExecution(multi.steps, origin)
        with self._lock:
            self._active.add(execution)
        logger.debug("Macro with %d steps started", len(execution.steps))
        self.scheduler.call_soon(self._advance, execution)
        return execution

    def active(self):
        with self._lock:
            return [e for e in self._active if not e.done]

    def cancel_all(self):
        with self._lock:
            executions, self._active = list(self._active), set()
        for execution in executions:
            execution.cancel()
        if executions:
            logger.info("Cancelled %d running macro(s)", len(executions))

    def _advance(self, execution):
        if not execution.begin():
            return

        while execution.index < len(execution.steps):
            if execution.state is MacroState.CANCELLED:
                return
            step = execution.steps[execution.index]
            execution.index += 1

            if isinstance(step, Delay):
                self.scheduler.call_later(step.ms / 1000.0, self._advance, execution)
                return
            if isinstance(step, Invalid):
                logger.warning("Skipping macro step %d: %s (%s)", execution.index, step.text, step.reason)
                continue
            try:
                self.execute(step, execution.origin)
            except Exception:
                logger.exception("Macro step %d failed", execution.index)

        execution.complete()
        with self._lock:
            self._active.discard(execution)
        logger.debug("Macro finished")
