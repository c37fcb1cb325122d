"""
Platform detection for picking the right wakatime-cli build.

Runs ``uname -s`` / ``uname -m`` once per process and caches the answer
in PluginState. Always yields one of the known labels: detection
failures fall back to linux / amd64.
"""

from .config import log
from .constants import (
    OS_WINDOWS, OS_DARWIN, OS_LINUX, ARCH_AMD64, ARCH_ARM64, ARCH_X86,
    DEFAULT_OS, DEFAULT_ARCH, PROBE_TIMEOUT_SEC,
)
from .process import SPAWN_ERRORS

_OS_MAP = {
    "windowsnt": OS_WINDOWS,
    "mingw": OS_WINDOWS,
    "darwin": OS_DARWIN,
}

_ARCH_MAP = {
    "x86_64": ARCH_AMD64,
    "amd64": ARCH_AMD64,
    "aarch64": ARCH_ARM64,
    "arm64": ARCH_ARM64,
    "i386": ARCH_X86,
    "i686": ARCH_X86,
}


def map_os(uname_s):
    """Map ``uname -s`` output to an OS label. Unknown → linux."""
    return _OS_MAP.get((uname_s or "").strip().lower(), OS_LINUX)


def map_arch(uname_m):
    """Map ``uname -m`` output to an arch label. Unknown → amd64."""
    return _ARCH_MAP.get((uname_m or "").strip().lower(), DEFAULT_ARCH)


class PlatformProbe:

    def __init__(self, state, invoker):
        self._state = state
        self._invoker = invoker

    def _uname(self, flag):
        """stdout of ``uname <flag>``, or None on spawn failure / non-zero exit."""
        try:
            result = self._invoker.run("uname", [flag], timeout=PROBE_TIMEOUT_SEC)
        except SPAWN_ERRORS as e:
            log.debug("uname %s failed: %s", flag, e)
            return None
        if not result.ok:
            log.debug("uname %s exited with %d", flag, result.exit_code)
            return None
        return result.stdout

    def detect_os(self) -> str:
        if self._state.cached_os:
            return self._state.cached_os
        output = self._uname("-s")
        self._state.cached_os = map_os(output) if output is not None else DEFAULT_OS
        log.debug("Detected OS: %s", self._state.cached_os)
        return self._state.cached_os

    def detect_arch(self) -> str:
        if self._state.cached_arch:
            return self._state.cached_arch
        output = self._uname("-m")
        self._state.cached_arch = map_arch(output) if output is not None else DEFAULT_ARCH
        log.debug("Detected arch: %s", self._state.cached_arch)
        return self._state.cached_arch

    @property
    def os_name(self) -> str:
        """Cached OS label without probing (default until detect_os runs)."""
        return self._state.cached_os or DEFAULT_OS

    @property
    def arch(self) -> str:
        return self._state.cached_arch or DEFAULT_ARCH

    def is_windows(self) -> bool:
        return self.os_name == OS_WINDOWS
