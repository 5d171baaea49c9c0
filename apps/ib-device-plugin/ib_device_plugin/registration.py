"""
Kubelet Registration
====================

One-shot v1beta1.Registration/Register call that tells the kubelet our
socket name and resource name. The kubelet then dials the plugin socket
back and opens ListAndWatch.
"""

from __future__ import annotations
import logging
import os

import grpc

from .api import RegistrationStub, api_pb2, constants
from .errors import RegistrationError, TransportError
from .transport import PathLike, dial

log = logging.getLogger(__name__)


def register(
    kubelet_socket: PathLike,
    endpoint:       PathLike,
    resource_name:  str,
    timeout:        float = 5.0,
):
    """
    Register with the kubelet. Not retried: any failure raises
    RegistrationError and the process is expected to exit.

    `endpoint` may be a full socket path; only its base name is sent, the
    kubelet resolves it against its own device-plugin directory.
    """
    request = api_pb2.RegisterRequest(
        version       = constants.VERSION,
        endpoint      = os.path.basename(str(endpoint)),
        resource_name = resource_name,
    )

    log.info(f"[registration] Registering {resource_name!r} (endpoint {request.endpoint}) with kubelet at {kubelet_socket}")
    try:
        channel = dial(kubelet_socket, timeout)
    except TransportError as e:
        raise RegistrationError(f"Cannot reach kubelet registration socket: {e}") from e

    try:
        RegistrationStub(channel).Register(request, timeout=timeout)
    except grpc.RpcError as e:
        raise RegistrationError(f"Kubelet registration failed: {e.code().name} {e.details()}") from e
    finally:
        channel.close()

    log.info(f"[registration] Registered {resource_name!r} with kubelet")
    return request
