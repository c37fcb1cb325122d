"""
WakaTime for Fresh — console host
=================================
Reports coding activity to WakaTime through wakatime-cli.

The editor embeds wakatime_core.plugin.WakaTimePlugin directly; this
script runs the same plugin from a terminal (status, install, one-off
heartbeats).

Usage:
    python fresh_wakatime.py status
    python fresh_wakatime.py heartbeat path/to/file.py --write
"""

import sys

from wakatime_core.runner import main


if __name__ == "__main__":
    sys.exit(main())
