"""Tests for wakatime-cli lookup, version check and install pipeline."""

import io
import os
import shutil
import zipfile

import pytest

from wakatime_core.constants import GITHUB_RELEASES_URL, GITHUB_DOWNLOAD_BASE
from wakatime_core.installer import CliInstaller, CliSource, extract_tag_name
from wakatime_core.platform_probe import PlatformProbe
from wakatime_core.process import ProcessResult

from conftest import FakeResponse, FakeSession, RecordingInvoker, make_cli_zip, release_body

ZIP_URL = f"{GITHUB_DOWNLOAD_BASE}/v1.90.0/wakatime-cli-linux-amd64.zip"


@pytest.fixture()
def install_dir(tmp_path):
    return tmp_path / ".wakatime"


def _installer(state, install_dir, invoker=None, routes=None):
    invoker = invoker or RecordingInvoker()
    session = FakeSession(routes)
    probe = PlatformProbe(state, invoker)
    return CliInstaller(state, probe, invoker, session, base_dir=install_dir), invoker, session


def _write_local_cli(install_dir):
    install_dir.mkdir(parents=True, exist_ok=True)
    cli = install_dir / "wakatime-cli-linux-amd64"
    cli.write_text("#!/bin/sh\n")
    return cli


def test_extract_tag_name():
    assert extract_tag_name(release_body("v1.2.3")) == "v1.2.3"
    assert extract_tag_name('{"tag_name":"v2"} {"tag_name": "v3"}') == "v2"
    assert extract_tag_name('{"name": "x"}') == ""
    assert extract_tag_name(None) == ""


def test_paths(state, install_dir):
    installer, _, _ = _installer(state, install_dir)
    assert installer.local_path() == install_dir / "wakatime-cli-linux-amd64"
    assert installer.archive_url("v1.90.0") == ZIP_URL


def test_windows_local_path_has_exe(install_dir):
    from wakatime_core.state import PluginState
    state = PluginState(cached_os="windows", cached_arch="386")
    installer, _, _ = _installer(state, install_dir)
    assert installer.local_path().name == "wakatime-cli-windows-386.exe"
    assert installer.archive_url("v1").endswith("/v1/wakatime-cli-windows-386.zip")


def test_path_binary_is_trusted_without_version_check(state, install_dir, monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name, *a, **kw: "/usr/bin/wakatime")
    installer, invoker, session = _installer(state, install_dir)

    assert installer.ensure_executable()
    assert installer.source is CliSource.PATH
    assert state.resolved_executable_path == "/usr/bin/wakatime"
    assert invoker.calls == []
    assert session.requested == []
    assert installer.executable_path() == "/usr/bin/wakatime"
    assert installer.source_label() == "PATH"


def test_path_lookup_is_cached(state, install_dir, monkeypatch):
    lookups = []

    def which(name, *a, **kw):
        lookups.append(name)
        return "/opt/bin/wakatime"

    monkeypatch.setattr(shutil, "which", which)
    installer, _, _ = _installer(state, install_dir)
    installer.find_on_path()
    installer.find_on_path()
    assert lookups == ["wakatime"]


def test_local_current(state, install_dir):
    cli = _write_local_cli(install_dir)
    invoker = RecordingInvoker({str(cli): ProcessResult(0, "v1.90.0\n")})
    routes = {GITHUB_RELEASES_URL: FakeResponse(200, release_body("v1.90.0"))}
    installer, invoker, session = _installer(state, install_dir, invoker, routes)

    assert installer.ensure_executable()
    assert installer.source is CliSource.LOCAL_CURRENT
    assert invoker.calls == [(str(cli), ["--version"])]
    assert session.requested == [GITHUB_RELEASES_URL]
    assert installer.executable_path() == str(cli)
    assert installer.source_label() == "local"


def test_local_stale_is_upgraded(state, install_dir):
    cli = _write_local_cli(install_dir)
    invoker = RecordingInvoker({str(cli): ProcessResult(0, "v1.80.0\n")})
    routes = {
        GITHUB_RELEASES_URL: FakeResponse(200, release_body("v1.90.0")),
        ZIP_URL: FakeResponse(200, content=make_cli_zip(payload=b"new build")),
    }
    installer, _, session = _installer(state, install_dir, invoker, routes)

    assert installer.ensure_executable()
    assert installer.source is CliSource.LOCAL_CURRENT
    assert cli.read_bytes() == b"new build"
    assert os.access(cli, os.X_OK)
    # tag fetched once, reused for the download
    assert session.requested == [GITHUB_RELEASES_URL, ZIP_URL]


def test_local_with_failed_tag_fetch_still_attempts_install(state, install_dir):
    cli = _write_local_cli(install_dir)
    invoker = RecordingInvoker({str(cli): ProcessResult(0, "v1.80.0\n")})
    installer, _, session = _installer(state, install_dir, invoker, routes={})

    assert not installer.ensure_executable()
    assert installer.source is CliSource.LOCAL_STALE
    # one lookup for the version check, one more by the install step
    assert session.requested == [GITHUB_RELEASES_URL, GITHUB_RELEASES_URL]
    assert cli.exists()


def test_empty_versions_are_not_treated_as_current(state, install_dir):
    cli = _write_local_cli(install_dir)
    invoker = RecordingInvoker({str(cli): ProcessResult(1, "")})
    routes = {GITHUB_RELEASES_URL: FakeResponse(200, '{"message": "rate limited"}')}
    installer, _, _ = _installer(state, install_dir, invoker, routes)

    assert not installer.ensure_executable()


def test_missing_is_installed(state, install_dir):
    routes = {
        GITHUB_RELEASES_URL: FakeResponse(200, release_body("v1.90.0")),
        ZIP_URL: FakeResponse(200, content=make_cli_zip()),
    }
    installer, _, _ = _installer(state, install_dir, routes=routes)

    assert installer.ensure_executable()
    assert installer.local_exists()
    assert (install_dir / "wakatime-cli.zip").exists()


def test_missing_with_failed_release_lookup(state, install_dir):
    routes = {GITHUB_RELEASES_URL: FakeResponse(500, "")}
    installer, _, session = _installer(state, install_dir, routes=routes)

    assert not installer.ensure_executable()
    assert installer.source is CliSource.MISSING
    assert session.requested == [GITHUB_RELEASES_URL]
    assert installer.executable_path() is None
    assert installer.source_label() == "missing"


def test_download_failure_aborts(state, install_dir):
    routes = {
        GITHUB_RELEASES_URL: FakeResponse(200, release_body("v1.90.0")),
        ZIP_URL: FakeResponse(404),
    }
    installer, _, _ = _installer(state, install_dir, routes=routes)
    assert not installer.install()
    assert not installer.local_exists()


def test_bad_archive_aborts(state, install_dir):
    routes = {
        GITHUB_RELEASES_URL: FakeResponse(200, release_body("v1.90.0")),
        ZIP_URL: FakeResponse(200, content=b"not a zip"),
    }
    installer, _, _ = _installer(state, install_dir, routes=routes)
    assert not installer.install()
    # no cleanup of partial state
    assert (install_dir / "wakatime-cli.zip").exists()


def test_archive_without_binary_aborts(state, install_dir):
    routes = {ZIP_URL: FakeResponse(200, content=make_cli_zip(member="README.md"))}
    installer, _, _ = _installer(state, install_dir, routes=routes)
    assert not installer.install("v1.90.0")


def _zip_with(members):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, payload in members:
            zf.writestr(name, payload)
    return buf.getvalue()


def test_archive_with_only_similar_names_aborts(state, install_dir):
    content = _zip_with([("wakatime-cli-linux-amd64.sha256", b"abc123\n")])
    routes = {ZIP_URL: FakeResponse(200, content=content)}
    installer, _, _ = _installer(state, install_dir, routes=routes)
    assert not installer.install("v1.90.0")
    assert not installer.local_exists()


def test_extract_picks_exact_binary_name(state, install_dir):
    content = _zip_with([
        ("wakatime-cli-linux-amd64.sha256", b"abc123\n"),
        ("wakatime-cli-linux-amd64", b"real binary"),
    ])
    routes = {ZIP_URL: FakeResponse(200, content=content)}
    installer, _, _ = _installer(state, install_dir, routes=routes)

    assert installer.install("v1.90.0")
    assert installer.local_path().read_bytes() == b"real binary"


def test_describe(state, install_dir):
    cli = _write_local_cli(install_dir)
    invoker = RecordingInvoker({str(cli): ProcessResult(0, "v1.90.0\n")})
    installer, _, _ = _installer(state, install_dir, invoker)
    descriptor = installer.describe()
    assert descriptor.path == str(cli)
    assert descriptor.reported_version == "v1.90.0"
    assert descriptor.source is CliSource.LOCAL_CURRENT


def test_describe_missing(state, install_dir):
    installer, _, _ = _installer(state, install_dir)
    descriptor = installer.describe()
    assert descriptor.source is CliSource.MISSING
    assert descriptor.path == ""
