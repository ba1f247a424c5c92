"""
Shared module to hold constant values for the library
"""

# Prefix applied to device-plugin resource names
RESOURCE_NAME_PREFIX = "nvidia.com/"

# Node labels published by node-feature-discovery
NODE_LABEL_HOSTNAME = "kubernetes.io/hostname"
NODE_LABEL_CPU_ARCH = "kubernetes.io/arch"
NODE_LABEL_OS_NAME = "feature.node.kubernetes.io/system-os_release.ID"
NODE_LABEL_KERNEL_VERSION_FULL = "feature.node.kubernetes.io/kernel-version.full"
NODE_LABEL_MLNX_NIC = "feature.node.kubernetes.io/pci-15b3.present"

# Custom resource identity
CR_API_VERSION = "mellanox.com/v1alpha1"
HOST_DEVICE_NETWORK_KIND = "HostDeviceNetwork"
NIC_CLUSTER_POLICY_KIND = "NicClusterPolicy"

# Kinds of objects managed by the states
NET_ATTACH_DEF_API_VERSION = "k8s.cni.cncf.io/v1"
NET_ATTACH_DEF_KIND = "NetworkAttachmentDefinition"
DAEMON_SET_KIND = "DaemonSet"

# Manifest template suffixes picked up by the renderer
MANIFEST_FILE_SUFFIXES = (".yaml", ".yml", ".json")

# Delimiter used for nested dict keys
NESTED_DICT_DELIM = "."
