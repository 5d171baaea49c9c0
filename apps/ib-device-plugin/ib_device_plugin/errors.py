"""
Error taxonomy.

Everything raised here is fatal to startup: the daemon logs it and exits
non-zero, and the kubelet's supervision of the DaemonSet pod restarts it.
Non-fatal conditions (missing device directory, failed socket cleanup on
stop, a dropped health stream) are logged instead of raised.
"""


class PluginError(Exception):
    """Base class for all device plugin exceptions."""


class ConfigError(PluginError):
    """Raised when configuration values or the config file are invalid."""


class InventoryError(PluginError):
    """Raised when the device directory exists but cannot be read."""


class StartupError(PluginError):
    """Raised when the plugin cannot reach a serving, registered state."""


class TransportError(StartupError):
    """Raised when the plugin socket cannot be prepared, bound or dialed."""


class RegistrationError(StartupError):
    """Raised when the kubelet cannot be reached or rejects registration."""
