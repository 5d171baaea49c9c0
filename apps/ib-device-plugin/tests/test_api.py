from ib_device_plugin.api import api_pb2, constants


def test_service_names_match_kubelet():
    services = api_pb2.DESCRIPTOR.services_by_name
    assert services["Registration"].full_name == "v1beta1.Registration"
    assert services["DevicePlugin"].full_name == "v1beta1.DevicePlugin"
    assert [m.name for m in services["DevicePlugin"].methods] == [
        "GetDevicePluginOptions",
        "ListAndWatch",
        "GetPreferredAllocation",
        "Allocate",
        "PreStartContainer",
    ]
    assert constants.VERSION == "v1beta1"
    assert constants.KUBELET_SOCKET == "/var/lib/kubelet/device-plugins/kubelet.sock"


def test_list_and_watch_is_server_streaming():
    method = api_pb2.DESCRIPTOR.services_by_name["DevicePlugin"].methods_by_name["ListAndWatch"]
    assert method.server_streaming
    assert not method.client_streaming


def test_device_wire_format():
    # field 1 (ID), field 2 (health), both length-delimited
    data = api_pb2.Device(ID="a", health="Healthy").SerializeToString()
    assert data == b"\x0a\x01a\x12\x07Healthy"


def test_device_spec_wire_format():
    spec = api_pb2.DeviceSpec(container_path="/c", host_path="/h", permissions="rw")
    assert spec.SerializeToString() == b"\x0a\x02/c\x12\x02/h\x1a\x02rw"


def test_register_request_wire_format():
    req = api_pb2.RegisterRequest(version="v1beta1", endpoint="e.sock", resource_name="r")
    assert req.SerializeToString() == b"\x0a\x07v1beta1\x12\x06e.sock\x1a\x01r"


def test_container_allocate_response_field_numbers():
    fields = api_pb2.ContainerAllocateResponse.DESCRIPTOR.fields_by_name
    assert {name: f.number for name, f in fields.items()} == {
        "envs":        1,
        "mounts":      2,
        "devices":     3,
        "annotations": 4,
        "cdi_devices": 5,
    }


def test_allocate_response_maps_and_nested_messages():
    resp = api_pb2.ContainerAllocateResponse()
    resp.envs["IB"] = "1"
    resp.annotations["k"] = "v"
    resp.devices.add(host_path="/dev/infiniband/uverbs0", container_path="/dev/infiniband/uverbs0", permissions="rw")

    decoded = api_pb2.ContainerAllocateResponse.FromString(resp.SerializeToString())
    assert dict(decoded.envs) == {"IB": "1"}
    assert dict(decoded.annotations) == {"k": "v"}
    assert decoded.devices[0].permissions == "rw"


def test_allocate_request_field_names():
    req = api_pb2.AllocateRequest()
    req.container_requests.add(devices_ids=["x", "y"])
    assert list(req.container_requests[0].devices_ids) == ["x", "y"]
