"""
InfiniBand Device Plugin
========================

The daemon that runs on every InfiniBand-equipped Kubernetes node.

What it does:
  1. List /dev/infiniband once at startup
  2. Serve the kubelet device-plugin API (v1beta1) on a Unix socket
  3. Register the resource (default ib.plugin/infiniband) with the kubelet
  4. Stream unit health to the kubelet every 10s (always Healthy)
  5. On Allocate, bind-mount every InfiniBand device file into the container

Requirements:
  pip install grpcio grpcio-tools protobuf

Usage:
  python -m ib_device_plugin.agent --resource-name ib.plugin/infiniband --resource-amount 8
"""
