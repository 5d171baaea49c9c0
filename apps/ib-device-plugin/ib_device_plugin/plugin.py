"""
InfiniBand Device Plugin
========================

Ties the pieces together and owns the startup order:

  1. Build the inventory (constructor)
  2. Bind the plugin socket and start the gRPC server
  3. Dial our own socket until it connects, so the server is provably live
  4. Register with the kubelet, which immediately dials back

Shutdown: end health streams → stop server → remove socket file.
"""

from __future__ import annotations
import logging
import threading
from concurrent import futures
from typing import Optional

import grpc

from .api import add_DevicePluginServicer_to_server
from .config import PluginConfig
from .errors import PluginError, StartupError
from .inventory import DeviceInventory, build_inventory
from .registration import register
from .service import DevicePluginService
from .transport import UnixSocketTransport, dial

log = logging.getLogger(__name__)


class IbDevicePlugin:
    def __init__(self, config: PluginConfig, inventory: Optional[DeviceInventory] = None):
        self.config    = config
        self.inventory = inventory if inventory is not None else build_inventory(
            count     = config.resource_amount,
            scan_path = config.device_dir,
            id_prefix = config.unit_id_prefix,
        )
        self.service   = DevicePluginService(self.inventory, config.health_interval)
        self.transport = UnixSocketTransport(config.socket_path)

        self._start_attempted = False
        self._registered      = False

    @property
    def registered(self) -> bool:
        return self._registered

    def _new_server(self) -> grpc.Server:
        server = grpc.server(
            futures.ThreadPoolExecutor(
                max_workers        = self.config.max_workers,
                thread_name_prefix = "ib-plugin-rpc",
            )
        )
        add_DevicePluginServicer_to_server(self.service, server)
        return server

    def start(self) -> None:
        """
        Serve and register. Raises a PluginError subclass on any failure,
        after undoing whatever was already set up.
        """
        if self._start_attempted:
            raise StartupError("Device plugin can only be started once")
        self._start_attempted = True

        log.info("[plugin] Starting InfiniBand device plugin")
        try:
            self.transport.start(self._new_server())

            # Blocks until the server accepts connections
            dial(self.config.socket_path, self.config.dial_timeout).close()
            log.info("[plugin] InfiniBand device plugin started")

            register(
                kubelet_socket = self.config.kubelet_socket,
                endpoint       = self.config.socket_path,
                resource_name  = self.config.resource_name,
                timeout        = self.config.dial_timeout,
            )
        except PluginError:
            self.stop()
            raise

        self._registered = True
        log.info(f"[plugin] InfiniBand device plugin registered as {self.config.resource_name!r}")

    def stop(self) -> Optional[OSError]:
        """Safe to call repeatedly and without a prior start()."""
        self.service.stop()
        return self.transport.stop(grace=self.config.stop_grace)

    def run(self, stop_event: threading.Event) -> Optional[OSError]:
        """Block until stop_event is set, then shut down."""
        stop_event.wait()
        log.info("[plugin] Stop requested")
        return self.stop()
