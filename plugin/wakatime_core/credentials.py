"""
API key validation and lookup.

Lookup order, first valid match wins:
  1. WAKATIME_API_KEY environment variable
  2. api_key in the [settings] section of ~/.wakatime.cfg

A missing or malformed key is not an error: resolve() returns None and
the caller keeps heartbeats disabled.
"""

import os
import re

from .config import log, read_config_text, get_setting
from .constants import API_KEY_ENV_VAR

# Optional waka_ prefix, then a version-4 / variant-1 UUID.
_API_KEY_RE = re.compile(
    r"^(waka_)?[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_api_key(key) -> bool:
    if not key or not isinstance(key, str):
        return False
    return _API_KEY_RE.match(key) is not None


def parse_api_key(text):
    """api_key from the first [settings] section of config text, unvalidated."""
    return get_setting(text, "api_key")


class CredentialResolver:

    def __init__(self, environ=None, config_path=None):
        self._environ = environ if environ is not None else os.environ
        self._config_path = config_path

    def from_environment(self):
        value = (self._environ.get(API_KEY_ENV_VAR) or "").strip()
        return value or None

    def from_config_file(self):
        return parse_api_key(read_config_text(self._config_path))

    def resolve(self):
        """Return a validated API key, or None."""
        env_key = self.from_environment()
        if env_key:
            if is_valid_api_key(env_key):
                return env_key
            log.warning("%s is set but is not a valid API key, ignoring", API_KEY_ENV_VAR)

        config_key = self.from_config_file()
        if config_key:
            if is_valid_api_key(config_key):
                return config_key
            log.warning("api_key in config file is not a valid API key, ignoring")

        log.debug("No API key found")
        return None
