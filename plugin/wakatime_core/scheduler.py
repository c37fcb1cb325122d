"""
Heartbeat throttling and dispatch.

An editor event becomes a heartbeat when:
  - it is a write (save), always, or
  - it is for a different file than the last heartbeat, or
  - more than HEARTBEAT_INTERVAL_MS passed since the last heartbeat.

Only the throttle decision and the claim of the slot run under the
state lock. The claim records the heartbeat before wakatime-cli starts,
so a second event for the same file is suppressed while the first is
in flight, and toggling tracking never waits on the subprocess.
Throttling state advances after every dispatch attempt, even when
wakatime-cli fails: a failed heartbeat is not retried.
"""

import queue
import threading
import time
from dataclasses import dataclass, field

from .config import log
from .constants import HEARTBEAT_INTERVAL_MS, PLUGIN_USER_AGENT, EDITOR_ID
from .process import SPAWN_ERRORS


@dataclass(frozen=True)
class HeartbeatEvent:
    file_path: str
    is_write: bool = False
    observed_at: float = field(default_factory=time.time)


def should_send(event, last_file, last_at, interval_ms=HEARTBEAT_INTERVAL_MS) -> bool:
    """Throttle rule. ``last_at`` and ``event.observed_at`` are epoch seconds."""
    if event.is_write:
        return True
    if event.file_path != last_file:
        return True
    return last_at * 1000 + interval_ms < event.observed_at * 1000


def build_heartbeat_args(file_path, is_write, api_key):
    args = [
        "--api-key", api_key,
        "--entity", file_path,
        "--plugin", f"{PLUGIN_USER_AGENT} {EDITOR_ID}",
    ]
    if is_write:
        args.append("--write")
    return args


class HeartbeatScheduler:
    """
    Owns the throttle decision and the wakatime-cli call.

    ``on_event`` runs synchronously on the caller's thread. ``start`` /
    ``submit`` / ``stop`` provide a single background consumer for hosts
    that must not block their event loop on a subprocess.
    """

    def __init__(self, state, credentials, installer, invoker,
                 interval_ms=HEARTBEAT_INTERVAL_MS, clock=time.time):
        self._state = state
        self._credentials = credentials
        self._installer = installer
        self._invoker = invoker
        self._interval_ms = interval_ms
        self._clock = clock
        self._queue = queue.Queue()
        self._worker = None

    # ─── Synchronous path ────────────────────────────────────

    def on_event(self, event):
        """Handle one editor event. Never raises."""
        try:
            self._handle(event)
        except Exception as e:
            log.error("Heartbeat handler error: %s", e, exc_info=True)

    def _wants(self, event) -> bool:
        with self._state.lock:
            if not self._state.enabled or not event.file_path:
                return False
            return should_send(event, self._state.last_reported_file,
                               self._state.last_reported_at, self._interval_ms)

    def _handle(self, event):
        if self._wants(event):
            self.dispatch(event, throttled=True)

    def _claim(self, event, throttled):
        """Record the attempt up front so concurrent events see it. None if lost."""
        with self._state.lock:
            if throttled and not self._wants(event):
                return None
            claimed_at = self._clock()
            self._state.record_heartbeat(event.file_path, claimed_at)
            return claimed_at

    def _finish(self, event, claimed_at):
        with self._state.lock:
            if (self._state.last_reported_file == event.file_path
                    and self._state.last_reported_at == claimed_at):
                self._state.record_heartbeat(event.file_path, self._clock())

    def dispatch(self, event, throttled=False) -> bool:
        """Run wakatime-cli for ``event``. True when the CLI accepted it.

        With ``throttled`` the throttle rule is checked again when the slot
        is claimed, and the event is dropped if another one got there first.
        """
        api_key = self._credentials.resolve()
        if not api_key:
            log.debug("No API key found, heartbeat skipped")
            return False

        cli_path = self._installer.executable_path()
        if not cli_path:
            log.debug("wakatime-cli not found (not on PATH and no local install)")
            return False

        args = build_heartbeat_args(event.file_path, event.is_write, api_key)
        claimed_at = self._claim(event, throttled)
        if claimed_at is None:
            return False

        sent = False
        try:
            result = self._invoker.run(cli_path, args)
            if result.ok:
                sent = True
                log.debug("Heartbeat sent: %s%s", event.file_path, " (write)" if event.is_write else "")
            else:
                log.warning("Heartbeat failed (exit %d): %s", result.exit_code, result.stderr.strip())
        except SPAWN_ERRORS as e:
            log.warning("Heartbeat error: %s", e)
        finally:
            self._finish(event, claimed_at)
        return sent

    # ─── Background consumer ─────────────────────────────────

    def start(self):
        if self._worker is not None and self._worker.is_alive():
            return
        self._worker = threading.Thread(target=self._run, name="wakatime-heartbeats", daemon=True)
        self._worker.start()
        log.debug("Heartbeat worker started")

    def submit(self, event):
        """Queue an event for the background worker (or handle it inline if none)."""
        if self._worker is None or not self._worker.is_alive():
            self.on_event(event)
            return
        self._queue.put(event)

    def stop(self, timeout=None):
        """Finish queued events and stop the worker."""
        if self._worker is None:
            return
        self._queue.put(None)
        self._worker.join(timeout)
        self._worker = None
        log.debug("Heartbeat worker stopped")

    def _run(self):
        while True:
            event = self._queue.get()
            try:
                if event is None:
                    return
                self.on_event(event)
            finally:
                self._queue.task_done()
