"""
InfiniBand Device Plugin — Main Daemon
======================================

The entry point the DaemonSet container runs.

Startup sequence:
  1. Resolve config (defaults ← --config file ← IB_PLUGIN_* env ← flags)
  2. Enumerate /dev/infiniband and build the unit pool
  3. Serve the device-plugin socket and register with the kubelet
  4. Block until SIGINT / SIGTERM

Safe shutdown:
  SIGTERM → end health streams → stop gRPC server → remove socket file → exit 0
  Any startup failure → log → exit 1 (the kubelet restarts the pod)
"""

from __future__ import annotations
import argparse
import logging
import os
import signal
import sys
import threading
from typing import Optional, Sequence

from .config import PluginConfig
from .errors import PluginError
from .plugin import IbDevicePlugin

log = logging.getLogger("ib.agent")

# ─── Logging ──────────────────────────────────────────────────────────────────

def configure_logging(level: str) -> None:
    logging.basicConfig(
        level  = getattr(logging, level.upper(), logging.INFO),
        format = "[%(asctime)s] %(levelname)s %(name)s — %(message)s",
        datefmt= "%Y-%m-%dT%H:%M:%S",
    )

# ─── Config ───────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="InfiniBand Kubernetes device plugin")
    parser.add_argument("--config",          default=os.getenv("IB_PLUGIN_CONFIG"),
                        help="JSON config file (keys are PluginConfig field names)")
    parser.add_argument("--resource-name",   default=os.getenv("IB_PLUGIN_RESOURCE_NAME"),
                        help="Define the resource name (default: ib.plugin/infiniband)")
    parser.add_argument("--resource-amount", type=int, default=os.getenv("IB_PLUGIN_RESOURCE_AMOUNT"),
                        help="Define the resource amount (default: 1)")
    parser.add_argument("--device-dir",      default=os.getenv("IB_PLUGIN_DEVICE_DIR"),
                        help="Directory holding the device files (default: /dev/infiniband)")
    parser.add_argument("--plugin-dir",      default=os.getenv("IB_PLUGIN_PLUGIN_DIR"),
                        help="Kubelet device-plugin directory for our socket")
    parser.add_argument("--kubelet-socket",  default=os.getenv("IB_PLUGIN_KUBELET_SOCKET"),
                        help="Kubelet registration socket")
    parser.add_argument("--dial-timeout",    type=float, default=os.getenv("IB_PLUGIN_DIAL_TIMEOUT"),
                        help="Seconds to wait when dialing a socket (default: 5)")
    parser.add_argument("--health-interval", type=float, default=os.getenv("IB_PLUGIN_HEALTH_INTERVAL"),
                        help="Seconds between ListAndWatch updates (default: 10)")
    parser.add_argument("--log-level",       default=os.getenv("IB_PLUGIN_LOG_LEVEL", "INFO"),
                        help="Logging level (default: INFO)")
    return parser


def resolve_config(args: argparse.Namespace) -> PluginConfig:
    base = PluginConfig.from_file(args.config) if args.config else PluginConfig()
    return base.with_overrides(
        resource_name   = args.resource_name,
        resource_amount = args.resource_amount,
        device_dir      = args.device_dir,
        plugin_dir      = args.plugin_dir,
        kubelet_socket  = args.kubelet_socket,
        health_interval = args.health_interval,
        dial_timeout    = args.dial_timeout,
    ).validate()

# ─── Signals ──────────────────────────────────────────────────────────────────

def install_signal_handlers(stop_event: threading.Event) -> None:
    def _handle(signum, frame):
        log.info(f"Received shutdown signal {signal.Signals(signum).name}")
        stop_event.set()

    signal.signal(signal.SIGTERM, _handle)
    signal.signal(signal.SIGINT,  _handle)

# ─── Entry Point ──────────────────────────────────────────────────────────────

def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    stop_event = threading.Event()
    install_signal_handlers(stop_event)

    try:
        config = resolve_config(args)
        log.info(f"Resource: {config.resource_name} × {config.resource_amount}")
        log.info(f"Socket:   {config.socket_path}")
        log.info(f"Devices:  {config.device_dir}")

        plugin = IbDevicePlugin(config)
        plugin.start()
    except PluginError as e:
        log.critical(f"Failed to start InfiniBand device plugin: {e}")
        return 1

    log.info("InfiniBand device plugin running (Ctrl+C to stop)")
    plugin.run(stop_event)
    log.info("InfiniBand device plugin exited cleanly")
    return 0


if __name__ == "__main__":
    sys.exit(main())
