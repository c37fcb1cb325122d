"""
Console entry point: drives WakaTimePlugin from the command line with a
terminal standing in for the editor.

    fresh-wakatime status
    fresh-wakatime install
    fresh-wakatime set-api-key
    fresh-wakatime heartbeat <file> [--write]
"""

import argparse
import sys

from .config import log, setup_logging, log_file, debug_enabled
from .constants import PLUGIN_VERSION
from .plugin import WakaTimePlugin
from .scheduler import HeartbeatEvent


def safe_print(*args, **kwargs):
    try:
        print(*args, **kwargs)
    except (OSError, ValueError):
        pass


class ConsoleEditor:
    """Editor stand-in: status goes to stdout, prompts read stdin."""

    def get_buffer_path(self, buffer_id):
        return None

    def set_status(self, message):
        safe_print(message)

    def prompt(self, label, initial=""):
        try:
            return input(f"{label} ")
        except EOFError:
            return None


def build_parser():
    parser = argparse.ArgumentParser(prog="fresh-wakatime")
    parser.add_argument("--version", action="version", version=f"%(prog)s {PLUGIN_VERSION}")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show tracking, wakatime-cli and API key status")
    sub.add_parser("install", help="Install or upgrade wakatime-cli")
    sub.add_parser("set-api-key", help="Prompt for an API key and save it")

    p_hb = sub.add_parser("heartbeat", help="Send one heartbeat for a file")
    p_hb.add_argument("file")
    p_hb.add_argument("--write", action="store_true", help="Mark the heartbeat as a save")

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(log_file(), debug=args.debug or debug_enabled(), console=args.debug)

    plugin = WakaTimePlugin(ConsoleEditor())

    if args.command == "status":
        plugin.probe.detect_os()
        plugin.probe.detect_arch()
        plugin.status()
        descriptor = plugin.installer.describe()
        if descriptor.path:
            safe_print(f"wakatime-cli: {descriptor.path} {descriptor.reported_version}".rstrip())
        return 0

    if args.command == "install":
        plugin.probe.detect_os()
        plugin.probe.detect_arch()
        ok = plugin.installer.ensure_executable()
        safe_print("wakatime-cli ready" if ok else "wakatime-cli install failed")
        return 0 if ok else 1

    if args.command == "set-api-key":
        return 0 if plugin.set_api_key() else 1

    if args.command == "heartbeat":
        if not plugin.initialize():
            return 1
        sent = plugin.scheduler.dispatch(HeartbeatEvent(args.file, args.write))
        return 0 if sent else 1

    log.error("Unknown command %s", args.command)
    return 2


if __name__ == "__main__":
    sys.exit(main())
