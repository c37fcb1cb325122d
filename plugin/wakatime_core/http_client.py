"""
HTTP session with connection pooling and a certifi CA bundle.

No automatic retries: a failed release lookup or download is reported
once and the operation is abandoned for that invocation.
"""

import os

import certifi
import requests
from requests.adapters import HTTPAdapter

from .constants import PLUGIN_USER_AGENT


def _get_ca_bundle():
    """CA bundle path. Priority: env var → certifi."""
    env_ca = os.environ.get("REQUESTS_CA_BUNDLE") or os.environ.get("SSL_CERT_FILE")
    if env_ca and os.path.isfile(env_ca):
        return env_ca
    return certifi.where()


def create_session():
    """Create a requests.Session with pooling, SSL, and the plugin User-Agent."""
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=1, pool_maxsize=2, max_retries=0)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = _get_ca_bundle()
    session.headers["User-Agent"] = PLUGIN_USER_AGENT
    return session

