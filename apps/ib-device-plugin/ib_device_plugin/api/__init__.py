"""
Kubelet device-plugin wire schema (v1beta1).

api.proto is the upstream schema; grpcio-tools compiles it on first import
into `api_pb2` (messages) and `api_pb2_grpc` (stubs, servicers,
add_*_to_server), the same modules `python -m grpc_tools.protoc` emits.
"""

import grpc

from . import constants

api_pb2, api_pb2_grpc = grpc.protos_and_services("ib_device_plugin/api/api.proto")

RegistrationStub                   = api_pb2_grpc.RegistrationStub
RegistrationServicer               = api_pb2_grpc.RegistrationServicer
add_RegistrationServicer_to_server = api_pb2_grpc.add_RegistrationServicer_to_server
DevicePluginStub                   = api_pb2_grpc.DevicePluginStub
DevicePluginServicer               = api_pb2_grpc.DevicePluginServicer
add_DevicePluginServicer_to_server = api_pb2_grpc.add_DevicePluginServicer_to_server

__all__ = [
    "api_pb2",
    "api_pb2_grpc",
    "constants",
    "RegistrationStub",
    "RegistrationServicer",
    "add_RegistrationServicer_to_server",
    "DevicePluginStub",
    "DevicePluginServicer",
    "add_DevicePluginServicer_to_server",
]
