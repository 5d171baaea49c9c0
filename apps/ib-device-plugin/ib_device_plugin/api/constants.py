"""
Kubelet device plugin constants (v1beta1), as in the upstream constants.go.
"""

VERSION            = "v1beta1"
HEALTHY            = "Healthy"
UNHEALTHY          = "Unhealthy"
DEVICE_PLUGIN_PATH = "/var/lib/kubelet/device-plugins/"
KUBELET_SOCKET     = DEVICE_PLUGIN_PATH + "kubelet.sock"
