"""
PluginState — single source of truth for all plugin state.

One instance per process, owned by WakaTimePlugin and shared with the
platform probe, the installer and the scheduler. The throttle fields
are only read and written while holding ``lock``.
"""

import threading
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class PluginState:
    # ── Tracking switch ───────────────────────────────────────
    enabled: bool = False

    # ── Throttling (epoch seconds) ────────────────────────────
    last_reported_file: str = ""
    last_reported_at: float = 0.0

    # ── Detected once per process ─────────────────────────────
    cached_os: Optional[str] = None
    cached_arch: Optional[str] = None

    # ── wakatime-cli found on PATH (reused once set) ──────────
    resolved_executable_path: Optional[str] = None

    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def record_heartbeat(self, file_path, when):
        """Advance throttling state after a dispatch attempt."""
        with self.lock:
            self.last_reported_file = file_path
            self.last_reported_at = when

    def set_enabled(self, value):
        with self.lock:
            self.enabled = bool(value)
        return self.enabled

    def toggle(self):
        with self.lock:
            self.enabled = not self.enabled
            return self.enabled
