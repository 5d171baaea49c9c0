"""
Unix-Socket Transport
=====================

Binds the plugin's gRPC server to a Unix-domain socket under the kubelet's
device-plugin directory and tears it down again. Access control is the
filesystem permissions of that directory; there is no other authentication.
"""

from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Optional, Union

import grpc

from .errors import TransportError

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


def unix_target(socket_path: PathLike) -> str:
    """gRPC target string for a Unix socket; works for relative and absolute paths."""
    return f"unix:{socket_path}"


def remove_stale_socket(socket_path: PathLike) -> None:
    """Remove whatever is left at socket_path from a previous run."""
    try:
        os.remove(socket_path)
        log.info(f"[transport] Removed pre-existing socket file {socket_path}")
    except FileNotFoundError:
        pass
    except OSError as e:
        raise TransportError(f"Failed to remove pre-existing socket file {socket_path}: {e}") from e


def dial(socket_path: PathLike, timeout: float) -> grpc.Channel:
    """
    Open a channel to a Unix socket and block until it is connected.
    Raises TransportError if the peer is not accepting within `timeout` seconds.
    """
    channel = grpc.insecure_channel(unix_target(socket_path))
    try:
        grpc.channel_ready_future(channel).result(timeout=timeout)
    except grpc.FutureTimeoutError as e:
        channel.close()
        raise TransportError(f"Timed out after {timeout}s dialing {socket_path}") from e
    return channel


class UnixSocketTransport:
    def __init__(self, socket_path: PathLike):
        self.socket_path = Path(socket_path)
        self._server: Optional[grpc.Server] = None

    @property
    def server(self) -> Optional[grpc.Server]:
        return self._server

    def start(self, server: grpc.Server) -> str:
        """Clear the socket path, bind `server` to it and start serving."""
        remove_stale_socket(self.socket_path)

        target = unix_target(self.socket_path)
        try:
            server.add_insecure_port(target)
        except RuntimeError as e:
            raise TransportError(f"Failed to listen on {self.socket_path}: {e}") from e

        server.start()
        self._server = server
        log.info(f"[transport] Serving on {target}")
        return target

    def stop(self, grace: Optional[float] = None) -> Optional[OSError]:
        """
        Stop the server (if started) and remove the socket file.
        A failed removal is logged and returned, never raised.
        """
        if self._server is not None:
            self._server.stop(grace).wait()
            self._server = None
            log.info("[transport] Server stopped")

        try:
            os.remove(self.socket_path)
        except FileNotFoundError:
            return None
        except OSError as e:
            log.warning(f"[transport] Failed to remove socket file {self.socket_path}: {e}")
            return e
        log.info(f"[transport] Removed socket file {self.socket_path}")
        return None
