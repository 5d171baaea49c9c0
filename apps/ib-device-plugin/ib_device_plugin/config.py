"""
Plugin Configuration
====================

All tunables of the device plugin in one place, with the defaults the
DaemonSet runs with. Values are layered, lowest priority first:

  1. PluginConfig defaults
  2. Optional JSON config file (keys are field names)
  3. IB_PLUGIN_* environment variables
  4. Command-line flags

Layers 3 and 4 are resolved by the entry point (agent.py); this module only
knows about defaults, the file and overrides.
"""

from __future__ import annotations
import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from .api import constants
from .errors import ConfigError

DEFAULT_RESOURCE_NAME   = "ib.plugin/infiniband"
DEFAULT_RESOURCE_AMOUNT = 1
DEFAULT_UNIT_ID_PREFIX  = "ib-plugin/infiniband"
DEFAULT_DEVICE_DIR      = Path("/dev/infiniband")
DEFAULT_PLUGIN_DIR      = Path(constants.DEVICE_PLUGIN_PATH)
DEFAULT_SOCKET_NAME     = "ib-device-plugin.sock"
DEFAULT_KUBELET_SOCKET  = Path(constants.KUBELET_SOCKET)

_PATH_FIELDS = {"device_dir", "plugin_dir", "kubelet_socket"}


@dataclass(frozen=True)
class PluginConfig:
    resource_name:   str   = DEFAULT_RESOURCE_NAME    # Name reported to the scheduler
    resource_amount: int   = DEFAULT_RESOURCE_AMOUNT  # Number of advertised units
    unit_id_prefix:  str   = DEFAULT_UNIT_ID_PREFIX   # Units are <prefix>-<index>
    device_dir:      Path  = DEFAULT_DEVICE_DIR       # Scanned once at startup
    plugin_dir:      Path  = DEFAULT_PLUGIN_DIR
    socket_name:     str   = DEFAULT_SOCKET_NAME
    kubelet_socket:  Path  = DEFAULT_KUBELET_SOCKET
    dial_timeout:    float = 5.0                      # Seconds, self-check and registration
    health_interval: float = 10.0                     # Seconds between ListAndWatch updates
    max_workers:     int   = 10                       # gRPC server thread pool
    stop_grace:      float = 0.0                      # Seconds granted to in-flight RPCs

    @property
    def socket_path(self) -> Path:
        return self.plugin_dir / self.socket_name

    def validate(self) -> "PluginConfig":
        """Raise ConfigError on values the plugin cannot run with; return self."""
        if not self.resource_name:
            raise ConfigError("resource_name must not be empty")
        if self.resource_amount < 0:
            raise ConfigError(f"resource_amount must be >= 0, got {self.resource_amount}")
        if not self.socket_name or "/" in self.socket_name:
            raise ConfigError(f"socket_name must be a plain file name, got {self.socket_name!r}")
        if self.dial_timeout <= 0:
            raise ConfigError(f"dial_timeout must be positive, got {self.dial_timeout}")
        if self.health_interval <= 0:
            raise ConfigError(f"health_interval must be positive, got {self.health_interval}")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.stop_grace < 0:
            raise ConfigError(f"stop_grace must be >= 0, got {self.stop_grace}")
        return self

    def with_overrides(self, **overrides: Any) -> "PluginConfig":
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        unknown = set(values) - {f.name for f in fields(self)}
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        for key in _PATH_FIELDS & set(values):
            values[key] = Path(values[key])
        return replace(self, **values)

    @classmethod
    def from_file(cls, path: Path) -> "PluginConfig":
        """Load a JSON config file on top of the defaults."""
        try:
            data = json.loads(Path(path).read_text())
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        return cls().with_overrides(**data)
