"""
Paths, logging setup, ~/.wakatime.cfg read/write.
"""

import os
import sys
import logging
from pathlib import Path

from .constants import HOME_ENV_VAR, LOG_MAX_BYTES


log = logging.getLogger("wakatime")

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


# ─── Paths ───────────────────────────────────────────────────────
# Everything lives under the user's home directory, like wakatime-cli:
#   ~/.wakatime.cfg                       config (shared with other plugins)
#   ~/.wakatime/                          cli install dir
#   ~/.wakatime/fresh-wakatime.log        plugin log

def home_dir():
    override = os.environ.get(HOME_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home()


def wakatime_dir():
    return home_dir() / ".wakatime"


def config_file():
    return home_dir() / ".wakatime.cfg"


def log_file():
    return wakatime_dir() / "fresh-wakatime.log"


# ─── Logging ─────────────────────────────────────────────────────

def setup_logging(path=None, debug=False, console=True):
    """Attach file + console handlers to the plugin logger.

    Safe to call more than once: handlers installed by a previous call
    are replaced, not duplicated.
    """
    level = logging.DEBUG if debug else logging.INFO
    log.setLevel(level)
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT)

    if path is not None:
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if path.exists() and path.stat().st_size > LOG_MAX_BYTES:
                path.write_text("")
            file_handler = logging.FileHandler(str(path), encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            log.addHandler(file_handler)
        except OSError as e:
            # Console logging still works; a read-only home must not break the plugin.
            sys.stderr.write(f"wakatime: cannot open log file {path}: {e}\n")

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        log.addHandler(console_handler)

    return log


# ─── Config file ─────────────────────────────────────────────────

def read_config_text(path=None):
    """Return the raw text of ~/.wakatime.cfg, or None if it can't be read."""
    path = Path(path) if path is not None else config_file()
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        log.debug("No config file at %s", path)
    except (OSError, UnicodeDecodeError) as e:
        log.warning("Cannot read config file %s: %s", path, e)
    return None


def _is_section_header(line):
    return line.startswith("[") and line.endswith("]")


def _split_entry(line):
    """Split 'key = value' into (lowercased key, value); None if not an entry."""
    eq_index = line.find("=")
    if eq_index <= 0:
        return None
    return line[:eq_index].strip().lower(), line[eq_index + 1:].strip()


def get_setting(text, name):
    """First non-empty value of ``name`` in the first [settings] section.

    Matching is line based and lenient on purpose: section headers and
    keys compare case-insensitively after trimming, values keep their
    case. Entries in any other section are ignored.
    """
    if not text:
        return None

    name = name.lower()
    in_settings = False

    for raw in text.splitlines():
        line = raw.strip()
        if _is_section_header(line):
            if in_settings:
                # Only the first [settings] section counts.
                return None
            in_settings = line.lower() == "[settings]"
            continue
        if not in_settings:
            continue
        entry = _split_entry(line)
        if entry and entry[0] == name and entry[1]:
            return entry[1]
    return None


def debug_enabled(text=None):
    """Whether ``debug = true`` is set in [settings]."""
    if text is None:
        text = read_config_text()
    value = get_setting(text, "debug")
    return (value or "").lower() in ("true", "1", "yes", "on")


def save_api_key(api_key, path=None):
    """Write ``api_key`` into the [settings] section, keeping every other line.

    Replaces the existing api_key line of the first [settings] section,
    appends one to that section if missing, or creates the section.
    Returns True on success.
    """
    path = Path(path) if path is not None else config_file()
    text = read_config_text(path) or ""
    lines = text.splitlines()

    settings_start = None
    settings_end = len(lines)
    replaced = False

    for i, raw in enumerate(lines):
        line = raw.strip()
        if _is_section_header(line):
            if settings_start is not None:
                settings_end = i
                break
            if line.lower() == "[settings]":
                settings_start = i
            continue
        if settings_start is None:
            continue
        entry = _split_entry(line)
        if entry and entry[0] == "api_key":
            lines[i] = f"api_key = {api_key}"
            replaced = True
            break

    if not replaced:
        if settings_start is None:
            if lines and lines[-1].strip():
                lines.append("")
            lines.extend(["[settings]", f"api_key = {api_key}"])
        else:
            insert_at = settings_end
            # Keep the blank line that separates sections below the new entry.
            while insert_at > settings_start + 1 and not lines[insert_at - 1].strip():
                insert_at -= 1
            lines.insert(insert_at, f"api_key = {api_key}")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    except OSError as e:
        log.error("Failed to save API key to %s: %s", path, e)
        return False

    log.info("API key saved to %s", path)
    return True
