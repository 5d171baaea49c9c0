"""
Device Inventory
================

The fixed pool of resource units this plugin advertises, plus the InfiniBand
device files found on the host at startup.

Units and device files are deliberately decoupled: the kubelet sees
`resource_amount` units, and any container that is allocated at least one of
them gets every device file under the device directory. The directory is
listed once; devices that appear later are not picked up.
"""

from __future__ import annotations
import logging
import os
import stat
import threading
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Union

from .api import api_pb2, constants
from .errors import InventoryError

log = logging.getLogger(__name__)

# ─── Resource Unit ────────────────────────────────────────────────────────────

class Health(str, Enum):
    HEALTHY   = constants.HEALTHY
    UNHEALTHY = constants.UNHEALTHY


@dataclass
class ResourceUnit:
    id:     str                      # Stable for the process lifetime
    health: Health = Health.HEALTHY

    def to_proto(self):
        return api_pb2.Device(ID=self.id, health=self.health.value)


# ─── Inventory ────────────────────────────────────────────────────────────────

class DeviceInventory:
    """
    Lock-guarded unit list plus the immutable device path list.

    The health stream rewrites unit health while Allocate and other streams
    read concurrently; every access goes through the lock and readers get
    copies, never the live records.
    """

    def __init__(self, units: list[ResourceUnit], device_paths: tuple[str, ...] = ()):
        ids = [u.id for u in units]
        if len(set(ids)) != len(ids):
            raise InventoryError(f"Duplicate resource unit IDs: {ids}")
        self._units = [replace(u) for u in units]
        self._lock  = threading.Lock()
        self.device_paths = tuple(device_paths)

    def __len__(self) -> int:
        return len(self._units)

    def unit_ids(self) -> list[str]:
        return [u.id for u in self._units]

    def snapshot(self) -> list[ResourceUnit]:
        """Consistent copy of every unit and its current health."""
        with self._lock:
            return [replace(u) for u in self._units]

    def mark_all_healthy(self) -> None:
        # No hardware checks: units are reported healthy unconditionally
        with self._lock:
            for unit in self._units:
                unit.health = Health.HEALTHY


# ─── Discovery ────────────────────────────────────────────────────────────────

def make_units(count: int, id_prefix: str) -> list[ResourceUnit]:
    if count < 0:
        raise InventoryError(f"Resource unit count must be >= 0, got {count}")
    return [ResourceUnit(id=f"{id_prefix}-{i}") for i in range(count)]


def discover_device_paths(scan_path: Union[str, Path]) -> tuple[str, ...]:
    """
    List the device directory once.

    Returns an empty tuple when the path is missing or is not a directory.
    Raises InventoryError when it exists but cannot be inspected or read.
    """
    scan_path = os.path.abspath(str(scan_path))
    try:
        st = os.stat(scan_path)
    except FileNotFoundError:
        log.info(f"[inventory] InfiniBand device path {scan_path} does not exist")
        return ()
    except OSError as e:
        raise InventoryError(f"Failed to stat InfiniBand device path {scan_path}: {e}") from e

    if not stat.S_ISDIR(st.st_mode):
        log.info(f"[inventory] InfiniBand device path {scan_path} is not a directory")
        return ()

    try:
        names = sorted(os.listdir(scan_path))
    except OSError as e:
        raise InventoryError(f"Failed to read InfiniBand device path {scan_path}: {e}") from e

    paths = tuple(os.path.join(scan_path, name) for name in names)
    log.info(f"[inventory] InfiniBand devices found: {list(paths)}")
    return paths


def build_inventory(count: int, scan_path: Union[str, Path], id_prefix: str) -> DeviceInventory:
    units = make_units(count, id_prefix)
    inventory = DeviceInventory(units, discover_device_paths(scan_path))
    log.info(f"[inventory] {len(units)} resource unit(s), {len(inventory.device_paths)} device file(s)")
    return inventory
