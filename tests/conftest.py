"""Shared fixtures and test doubles for wakatime_core tests."""

import io
import shutil
import zipfile
from pathlib import PurePath

import pytest
import requests

from wakatime_core.process import ProcessResult
from wakatime_core.state import PluginState

VALID_KEY = "waka_a1b2c3d4-e5f6-4a5b-8c9d-0e1f2a3b4c5d"
OTHER_VALID_KEY = "12345678-1234-4234-9234-123456789012"


class RecordingInvoker:
    """ProcessInvoker double: records calls, replays canned results.

    ``responses`` maps a command (full string or basename) to a
    ProcessResult, an exception instance to raise, or a callable taking
    the argument list.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def run(self, command, args=(), timeout=None):
        args = list(args)
        self.calls.append((command, args))
        response = self.responses.get(command, self.responses.get(PurePath(command).name))
        if callable(response) and not isinstance(response, ProcessResult):
            response = response(args)
        if isinstance(response, BaseException):
            raise response
        return response if response is not None else ProcessResult(0)

    def commands(self):
        return [command for command, _ in self.calls]


class FakeEditor:

    def __init__(self, buffers=None, prompt_answer=None):
        self.buffers = dict(buffers or {})
        self.prompt_answer = prompt_answer
        self.statuses = []
        self.prompts = []

    def get_buffer_path(self, buffer_id):
        return self.buffers.get(buffer_id)

    def set_status(self, message):
        self.statuses.append(message)

    def prompt(self, label, initial=""):
        self.prompts.append((label, initial))
        return self.prompt_answer


class FakeResponse:

    def __init__(self, status_code=200, text="", content=b""):
        self.status_code = status_code
        self.text = text
        self.content = content

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    """requests.Session double keyed by URL."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requested = []

    def get(self, url, **kwargs):
        self.requested.append(url)
        route = self.routes.get(url)
        if route is None:
            raise requests.ConnectionError(f"no route for {url}")
        if isinstance(route, BaseException):
            raise route
        return route


def release_body(tag):
    return '{"url": "https://api.github.com/x", "tag_name": "%s", "name": "%s"}' % (tag, tag)


def make_cli_zip(member="wakatime-cli-linux-amd64", payload=b"#!/bin/sh\necho ok\n"):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr(member, payload)
    return buf.getvalue()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point home at a temp dir and hide any real key or wakatime on PATH."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("WAKATIME_HOME", str(home))
    monkeypatch.delenv("WAKATIME_API_KEY", raising=False)
    monkeypatch.setattr(shutil, "which", lambda name, *a, **kw: None)
    return home


@pytest.fixture()
def home(isolated_env):
    return isolated_env


@pytest.fixture()
def state():
    return PluginState(cached_os="linux", cached_arch="amd64")


@pytest.fixture()
def invoker():
    return RecordingInvoker()


@pytest.fixture()
def editor():
    return FakeEditor()
