"""
wakatime_core — WakaTime heartbeat plugin for the Fresh editor
==============================================================
Architecture: editor events → throttle → wakatime-cli subprocess.

  constants.py      → Version, plugin id, release URLs, interval, timeouts
  config.py         → Paths, logging, ~/.wakatime.cfg read/write
  http_client.py    → HTTP session (pooling, certifi CA, no retries)
  process.py        → ProcessInvoker seam + subprocess implementation
  state.py          → PluginState dataclass (single source of truth)
  platform_probe.py → OS / arch detection (uname, cached)
  credentials.py    → API key validation + env/config lookup
  installer.py      → wakatime-cli lookup, version check, install/upgrade
  scheduler.py      → HeartbeatScheduler (throttle rule, dispatch, worker)
  plugin.py         → WakaTimePlugin (init, event handlers, commands)
  runner.py         → main() console host
"""
