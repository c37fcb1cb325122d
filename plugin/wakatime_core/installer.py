"""
wakatime-cli discovery, version check and install/upgrade.

Resolution order:
  1. ``wakatime`` on PATH: trusted as-is, never version-checked
  2. ~/.wakatime/wakatime-cli-<os>-<arch>[.exe]: compared to the latest
     GitHub release tag, upgraded when the strings differ
  3. not found: downloaded from the latest GitHub release

Every failure is logged and turned into a False return; nothing here
raises into the editor.
"""

import enum
import os
import re
import shutil
import stat
import zipfile
from dataclasses import dataclass
from pathlib import Path

import requests

from .config import log, wakatime_dir
from .constants import (
    CLI_NAME_ON_PATH, CLI_BASENAME, GITHUB_RELEASES_URL, GITHUB_DOWNLOAD_BASE,
    HTTP_TIMEOUT_SEC, DOWNLOAD_TIMEOUT_SEC, DOWNLOAD_CHUNK_SIZE, PROBE_TIMEOUT_SEC,
)
from .process import SPAWN_ERRORS

_TAG_NAME_RE = re.compile(r'"tag_name":\s*"([^"]+)"')


class CliSource(enum.Enum):
    UNRESOLVED = "unresolved"
    PATH = "PATH"
    LOCAL_CURRENT = "local"
    LOCAL_STALE = "local (outdated)"
    MISSING = "missing"


@dataclass(frozen=True)
class ExecutableDescriptor:
    path: str
    reported_version: str = ""
    source: CliSource = CliSource.UNRESOLVED


def extract_tag_name(body):
    """First ``"tag_name": "..."`` value in a release JSON body, or ""."""
    match = _TAG_NAME_RE.search(body or "")
    return match.group(1) if match else ""


class CliInstaller:

    def __init__(self, state, probe, invoker, http, base_dir=None):
        self._state = state
        self._probe = probe
        self._invoker = invoker
        self._http = http
        self._base_dir = Path(base_dir) if base_dir is not None else None
        self.source = CliSource.UNRESOLVED

    # ─── Paths ───────────────────────────────────────────────

    @property
    def install_dir(self):
        return self._base_dir if self._base_dir is not None else wakatime_dir()

    def build_name(self):
        return f"{CLI_BASENAME}-{self._probe.os_name}-{self._probe.arch}"

    def local_path(self):
        ext = ".exe" if self._probe.is_windows() else ""
        return self.install_dir / f"{self.build_name()}{ext}"

    def archive_url(self, version):
        return f"{GITHUB_DOWNLOAD_BASE}/{version}/{self.build_name()}.zip"

    # ─── Lookup ──────────────────────────────────────────────

    def find_on_path(self):
        """wakatime on PATH, cached in state once found."""
        if self._state.resolved_executable_path:
            return self._state.resolved_executable_path
        path = shutil.which(CLI_NAME_ON_PATH)
        if path:
            self._state.resolved_executable_path = path
            log.info("Found wakatime on PATH: %s", path)
        return path

    def local_exists(self) -> bool:
        return self.local_path().is_file()

    def executable_path(self):
        """Path to run for a heartbeat: PATH instance first, then local install."""
        path = self.find_on_path()
        if path:
            return path
        if self.local_exists():
            return str(self.local_path())
        return None

    def source_label(self):
        if self.find_on_path():
            return CliSource.PATH.value
        if self.local_exists():
            return CliSource.LOCAL_CURRENT.value
        return CliSource.MISSING.value

    def describe(self):
        path = self.executable_path()
        if path is None:
            return ExecutableDescriptor("", "", CliSource.MISSING)
        source = CliSource.PATH if path == self._state.resolved_executable_path else CliSource.LOCAL_CURRENT
        if self.source is CliSource.LOCAL_STALE and source is not CliSource.PATH:
            source = CliSource.LOCAL_STALE
        return ExecutableDescriptor(path, self.version_of(path), source)

    # ─── Versions ────────────────────────────────────────────

    def version_of(self, path):
        """``<cli> --version`` output, or "" if it can't be run."""
        try:
            result = self._invoker.run(str(path), ["--version"], timeout=PROBE_TIMEOUT_SEC)
        except SPAWN_ERRORS as e:
            log.debug("%s --version failed: %s", path, e)
            return ""
        if not result.ok:
            return ""
        return result.stdout.strip()

    def local_version(self):
        return self.version_of(self.local_path())

    def latest_version(self):
        """Latest release tag from GitHub, or "" on any failure."""
        try:
            resp = self._http.get(GITHUB_RELEASES_URL, timeout=HTTP_TIMEOUT_SEC)
        except requests.RequestException as e:
            log.warning("Release lookup failed: %s", e)
            return ""
        if resp.status_code != 200:
            log.warning("Release lookup failed: HTTP %d", resp.status_code)
            return ""
        tag = extract_tag_name(resp.text)
        if not tag:
            log.warning("Release lookup: no tag_name in response")
        return tag

    # ─── Install pipeline ────────────────────────────────────

    def _download(self, url, dest):
        log.info("Downloading %s", url)
        try:
            with self._http.get(url, stream=True, timeout=DOWNLOAD_TIMEOUT_SEC) as resp:
                if resp.status_code != 200:
                    log.warning("Download failed: HTTP %d", resp.status_code)
                    return False
                with open(dest, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except (requests.RequestException, OSError) as e:
            log.warning("Download error: %s", e)
            return False
        return True

    def _extract(self, archive):
        try:
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(self.install_dir)
                names = zf.namelist()
        except (zipfile.BadZipFile, OSError) as e:
            log.warning("Failed to unzip %s: %s", archive, e)
            return None
        build = self.build_name()
        wanted = (build, build + ".exe")
        for name in names:
            if Path(name).name in wanted:
                return self.install_dir / name
        log.warning("Archive %s has no %s binary", archive, build)
        return None

    def _place(self, extracted):
        target = self.local_path()
        try:
            if extracted != target:
                os.replace(extracted, target)
            mode = target.stat().st_mode
            target.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as e:
            log.warning("Failed to install %s: %s", target, e)
            return False
        return True

    def install(self, version=None):
        """Download, unzip and install the latest wakatime-cli. True on success.

        Steps run in order and the first failure aborts the rest.
        Partially written files are left in place.
        """
        version = version or self.latest_version()
        if not version:
            log.error("Failed to get latest wakatime-cli version")
            return False

        try:
            self.install_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log.error("Cannot create %s: %s", self.install_dir, e)
            return False

        archive = self.install_dir / f"{CLI_BASENAME}.zip"
        url = self.archive_url(version)
        log.info("Installing wakatime-cli %s", version)

        if not self._download(url, archive):
            log.error("Failed to download wakatime-cli")
            return False

        extracted = self._extract(archive)
        if extracted is None:
            log.error("Failed to extract wakatime-cli")
            return False

        if not self._place(extracted):
            log.error("Failed to install wakatime-cli")
            return False

        log.info("wakatime-cli %s installed at %s", version, self.local_path())
        return True

    def ensure_executable(self) -> bool:
        """Make sure a usable wakatime-cli exists. Returns True on success."""
        if self.find_on_path():
            log.info("Using wakatime from PATH")
            self.source = CliSource.PATH
            return True

        latest = ""
        if self.local_exists():
            current = self.local_version()
            latest = self.latest_version()
            if latest and current == latest:
                log.debug("wakatime-cli is up to date (%s)", current)
                self.source = CliSource.LOCAL_CURRENT
                return True
            log.info("wakatime-cli outdated: %s -> %s", current or "?", latest or "?")
            self.source = CliSource.LOCAL_STALE
        else:
            self.source = CliSource.MISSING

        if self.install(latest or None):
            self.source = CliSource.LOCAL_CURRENT
            return True
        return False
