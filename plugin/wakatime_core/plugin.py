"""
WakaTimePlugin — wires credentials, platform probe, installer and
scheduler together and exposes what the editor host calls into.

The host subscribes ``EVENT_HANDLERS`` names to its own events and
forwards them to ``handle()``; user commands go through
``run_command()``. The plugin only talks back through the small Editor
protocol below (buffer path lookup, status line, prompt).
"""

from typing import Optional, Protocol

from .config import log, save_api_key
from .credentials import CredentialResolver, is_valid_api_key
from .http_client import create_session
from .installer import CliInstaller
from .platform_probe import PlatformProbe
from .process import SubprocessInvoker
from .scheduler import HeartbeatEvent, HeartbeatScheduler
from .state import PluginState


class Editor(Protocol):
    def get_buffer_path(self, buffer_id: int) -> Optional[str]: ...

    def set_status(self, message: str) -> None: ...

    def prompt(self, label: str, initial: str = "") -> Optional[str]: ...


# event name → (payload carries a path directly, is write)
EVENT_HANDLERS = {
    "buffer_save": (True, True),
    "after_file_open": (True, False),
    "after_insert": (False, False),
    "after_delete": (False, False),
    "buffer_activated": (False, False),
    "cursor_moved": (False, False),
    "lines_changed": (False, False),
}

COMMANDS = {
    "wakatime.toggle": ("Toggle WakaTime tracking", "toggle"),
    "wakatime.setApiKey": ("Set WakaTime API key", "set_api_key"),
    "wakatime.status": ("Show WakaTime status", "status"),
}

STATUS_ACTIVE = "WakaTime: Active"
STATUS_NO_API_KEY = "WakaTime: No API key (set WAKATIME_API_KEY or run :wakatime.setApiKey)"
STATUS_CLI_FAILED = "WakaTime: CLI install failed"


class WakaTimePlugin:

    def __init__(self, editor, state=None, invoker=None, http=None,
                 credentials=None, installer=None, config_path=None, clock=None):
        self._editor = editor
        self._config_path = config_path
        self.state = state or PluginState()
        self._invoker = invoker or SubprocessInvoker()
        self.probe = PlatformProbe(self.state, self._invoker)
        self.credentials = credentials or CredentialResolver(config_path=config_path)
        self.installer = installer or CliInstaller(
            self.state, self.probe, self._invoker, http or create_session(),
        )
        kwargs = {"clock": clock} if clock is not None else {}
        self.scheduler = HeartbeatScheduler(
            self.state, self.credentials, self.installer, self._invoker, **kwargs,
        )

    # ─── Startup ─────────────────────────────────────────────

    def initialize(self) -> bool:
        """Resolve key + CLI and enable tracking if both are usable."""
        log.info("Initializing...")

        api_key = self.credentials.resolve()
        if not api_key:
            self._editor.set_status(STATUS_NO_API_KEY)
            log.info("No API key found")

        self.probe.detect_os()
        self.probe.detect_arch()

        cli_ok = self.installer.ensure_executable()
        if not cli_ok:
            self._editor.set_status(STATUS_CLI_FAILED)
            log.error("wakatime-cli installation failed")

        if api_key and cli_ok:
            self.state.set_enabled(True)
            self._editor.set_status(STATUS_ACTIVE)

        log.info("Initialization complete (enabled=%s)", self.state.enabled)
        return self.state.enabled

    def start(self):
        """Move heartbeat dispatch off the caller's thread."""
        self.scheduler.start()

    def shutdown(self):
        self.scheduler.stop()

    # ─── Events ──────────────────────────────────────────────

    def handle(self, event_name, payload):
        """Dispatch a named editor event. Unknown names are ignored."""
        entry = EVENT_HANDLERS.get(event_name)
        if entry is None:
            log.debug("Ignoring unknown event %r", event_name)
            return
        has_path, is_write = entry
        payload = payload or {}
        if has_path:
            path = payload.get("path")
        else:
            buffer_id = payload.get("buffer_id")
            path = self._editor.get_buffer_path(buffer_id) if buffer_id is not None else None
        if path:
            self.on_event(path, is_write)

    def on_event(self, file_path, is_write=False):
        self.scheduler.submit(HeartbeatEvent(file_path, is_write))

    # ─── Commands ────────────────────────────────────────────

    def run_command(self, name):
        entry = COMMANDS.get(name)
        if entry is None:
            log.warning("Unknown command %r", name)
            return None
        return getattr(self, entry[1])()

    def toggle(self):
        enabled = self.state.toggle()
        self._editor.set_status("WakaTime enabled" if enabled else "WakaTime disabled")
        log.info("Tracking %s", "enabled" if enabled else "disabled")
        return enabled

    def set_api_key(self):
        current = self.credentials.resolve()
        value = self._editor.prompt("Enter WakaTime API Key:", current or "")

        if not value:
            self._editor.set_status("API key not changed")
            return False

        value = value.strip()
        if not is_valid_api_key(value):
            self._editor.set_status("Invalid API key format")
            return False

        if not save_api_key(value, self._config_path):
            self._editor.set_status("Failed to save API key")
            return False

        self._editor.set_status("API key saved to ~/.wakatime.cfg")
        return True

    def status(self):
        has_key = self.credentials.resolve() is not None
        message = " | ".join([
            f"WakaTime: {'enabled' if self.state.enabled else 'disabled'}",
            f"CLI: {self.installer.source_label()}",
            f"API: {'set' if has_key else 'missing'}",
        ])
        self._editor.set_status(message)
        return message
