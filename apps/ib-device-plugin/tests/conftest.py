from __future__ import annotations

import threading
from concurrent import futures
from pathlib import Path

import grpc
import pytest

from ib_device_plugin.api import (
    DevicePluginStub,
    RegistrationServicer,
    add_RegistrationServicer_to_server,
    api_pb2,
)
from ib_device_plugin.config import PluginConfig


class FakeKubelet(RegistrationServicer):
    """
    Registration server standing in for the kubelet. Like the real one it
    dials the announced endpoint back before answering, so a plugin that
    registers before serving is caught.
    """

    def __init__(self, socket_path: Path, plugin_dir: Path):
        self.socket_path = socket_path
        self.plugin_dir  = plugin_dir
        self.requests: list = []
        self.dial_backs: list = []
        self.reject = False
        self._lock = threading.Lock()
        self._server = None

    def Register(self, request, context):
        with self._lock:
            self.requests.append(request)
        if self.reject:
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, "resource name rejected")

        endpoint = self.plugin_dir / request.endpoint
        with grpc.insecure_channel(f"unix:{endpoint}") as channel:
            options = DevicePluginStub(channel).GetDevicePluginOptions(api_pb2.Empty(), timeout=5)
        with self._lock:
            self.dial_backs.append(options)
        return api_pb2.Empty()

    def start(self) -> None:
        self._server = grpc.server(futures.ThreadPoolExecutor(max_workers=4))
        add_RegistrationServicer_to_server(self, self._server)
        self._server.add_insecure_port(f"unix:{self.socket_path}")
        self._server.start()

    def stop(self) -> None:
        if self._server is not None:
            self._server.stop(None).wait()


class FakeContext:
    """Minimal grpc.ServicerContext for calling servicer methods directly."""

    def __init__(self):
        self.active = True
        self.callbacks: list = []

    def add_callback(self, callback) -> bool:
        if not self.active:
            return False
        self.callbacks.append(callback)
        return True

    def disconnect(self) -> None:
        self.active = False
        for callback in self.callbacks:
            callback()


@pytest.fixture
def plugin_dir(tmp_path: Path) -> Path:
    d = tmp_path / "plugins"
    d.mkdir()
    return d


@pytest.fixture
def kubelet(plugin_dir: Path):
    fake = FakeKubelet(plugin_dir / "kubelet.sock", plugin_dir)
    fake.start()
    yield fake
    fake.stop()


@pytest.fixture
def device_dir(tmp_path: Path) -> Path:
    d = tmp_path / "infiniband"
    d.mkdir()
    for name in ("mlx5_0", "mlx5_1"):
        (d / name).touch()
    return d


@pytest.fixture
def make_config(tmp_path: Path, plugin_dir: Path):
    def _make(**overrides) -> PluginConfig:
        defaults = dict(
            resource_amount = 2,
            device_dir      = tmp_path / "missing",
            plugin_dir      = plugin_dir,
            socket_name     = "plugin.sock",
            kubelet_socket  = plugin_dir / "kubelet.sock",
            dial_timeout    = 2.0,
            health_interval = 0.05,
        )
        defaults.update(overrides)
        return PluginConfig().with_overrides(**defaults).validate()
    return _make


@pytest.fixture
def fake_context() -> FakeContext:
    return FakeContext()
