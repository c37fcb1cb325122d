"""
Constants: version, plugin identity, release URLs, throttling and timeouts.
"""

PLUGIN_VERSION = "0.1.0"
PLUGIN_USER_AGENT = f"fresh-wakatime/{PLUGIN_VERSION}"
EDITOR_ID = f"fresh/{PLUGIN_VERSION}"

# ─── Credentials ─────────────────────────────────────────────────
API_KEY_ENV_VAR = "WAKATIME_API_KEY"
HOME_ENV_VAR = "WAKATIME_HOME"   # Overrides the home directory, same as wakatime-cli

# ─── wakatime-cli ────────────────────────────────────────────────
CLI_NAME_ON_PATH = "wakatime"
CLI_BASENAME = "wakatime-cli"
GITHUB_RELEASES_URL = "https://api.github.com/repos/wakatime/wakatime-cli/releases/latest"
GITHUB_DOWNLOAD_BASE = "https://github.com/wakatime/wakatime-cli/releases/download"

# ─── Platform labels ─────────────────────────────────────────────
OS_WINDOWS = "windows"
OS_DARWIN = "darwin"
OS_LINUX = "linux"
ARCH_AMD64 = "amd64"
ARCH_ARM64 = "arm64"
ARCH_X86 = "386"

DEFAULT_OS = OS_LINUX
DEFAULT_ARCH = ARCH_AMD64

# ─── Throttling ──────────────────────────────────────────────────
HEARTBEAT_INTERVAL_MS = 2 * 60 * 1000   # Same file, non-write: at most one heartbeat per 2 min

# ─── Timeouts ────────────────────────────────────────────────────
PROBE_TIMEOUT_SEC = 10         # uname / --version probes
HTTP_TIMEOUT_SEC = 15          # Release tag lookup
DOWNLOAD_TIMEOUT_SEC = 120     # Archive download (per read, not total)
DOWNLOAD_CHUNK_SIZE = 64 * 1024

# ─── Logging ─────────────────────────────────────────────────────
LOG_MAX_BYTES = 1_000_000      # Log file is truncated on startup past this size
