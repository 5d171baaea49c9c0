"""
Device Plugin Service
=====================

The v1beta1.DevicePlugin servicer the kubelet talks to after registration.

RPCs:
  GetDevicePluginOptions  static: no PreStart hook, no preferred allocation
  ListAndWatch            unit list now, then again every health_interval
  GetPreferredAllocation  always an empty hint
  Allocate                every device file for any container asking for >= 1 unit
  PreStartContainer       no-op

All RPCs may run concurrently on the server's thread pool. The only shared
state is the inventory, which guards itself.
"""

from __future__ import annotations
import logging
import threading

from .api import DevicePluginServicer, api_pb2
from .inventory import DeviceInventory

log = logging.getLogger(__name__)

DEVICE_PERMISSIONS = "rw"


class DevicePluginService(DevicePluginServicer):
    def __init__(self, inventory: DeviceInventory, health_interval: float = 10.0):
        self.inventory       = inventory
        self.health_interval = health_interval

        self._streams: set[threading.Event] = set()
        self._streams_lock = threading.Lock()
        self._stopped = False

    # ─── Options ──────────────────────────────────────────────────────────────

    def GetDevicePluginOptions(self, request, context):
        return api_pb2.DevicePluginOptions(
            pre_start_required                 = False,
            get_preferred_allocation_available = False,
        )

    # ─── Health Stream ────────────────────────────────────────────────────────

    def _list_response(self):
        return api_pb2.ListAndWatchResponse(
            devices=[unit.to_proto() for unit in self.inventory.snapshot()]
        )

    def ListAndWatch(self, request, context):
        """
        Push the unit list immediately, then every health_interval seconds.
        Ends when the kubelet goes away or the service is stopped; the kubelet
        reconnects on its own.
        """
        done = threading.Event()
        with self._streams_lock:
            if self._stopped:
                done.set()
            self._streams.add(done)
        if not context.add_callback(done.set):
            done.set()

        log.info(f"[service] ListAndWatch stream opened ({len(self.inventory)} unit(s))")
        try:
            yield self._list_response()
            while not done.wait(self.health_interval):
                self.inventory.mark_all_healthy()
                yield self._list_response()
        finally:
            with self._streams_lock:
                self._streams.discard(done)
            log.info("[service] ListAndWatch stream closed")

    def active_streams(self) -> int:
        with self._streams_lock:
            return len(self._streams)

    def stop(self) -> None:
        """End every open health stream and refuse to keep new ones open."""
        with self._streams_lock:
            self._stopped = True
            for done in self._streams:
                done.set()

    # ─── Allocation ───────────────────────────────────────────────────────────

    def GetPreferredAllocation(self, request, context):
        return api_pb2.PreferredAllocationResponse()

    def _device_specs(self) -> list:
        return [
            api_pb2.DeviceSpec(
                host_path      = path,
                container_path = path,
                permissions    = DEVICE_PERMISSIONS,
            )
            for path in self.inventory.device_paths
        ]

    def Allocate(self, request, context):
        """
        One response per container request, in request order.

        Any container asking for at least one unit gets the full device set,
        whichever unit IDs it named and however many. Unknown IDs are accepted.
        """
        responses = []
        for container_req in request.container_requests:
            response = api_pb2.ContainerAllocateResponse()
            if container_req.devices_ids:
                log.info(
                    f"[service] Allocate InfiniBand devices for container "
                    f"requesting {list(container_req.devices_ids)}"
                )
                response.devices.extend(self._device_specs())
            responses.append(response)
        return api_pb2.AllocateResponse(container_responses=responses)

    def PreStartContainer(self, request, context):
        return api_pb2.PreStartContainerResponse()
