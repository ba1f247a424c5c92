"""
Node information provider. Turns the labels published on cluster nodes into
a small set of typed attributes that states use when building render data.
"""

# Standard
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

# First Party
import alog

# Local
from . import constants
from .deploy_manager import DeployManagerBase
from .exceptions import assert_cluster

log = alog.use_channel("NODEI")


class AttributeType(Enum):
    """The node attributes that can be derived from node labels"""

    HOSTNAME = "hostname"
    CPU_ARCH = "cpu.architecture"
    OS_NAME = "os.name"
    KERNEL_VERSION_FULL = "kernel.version.full"


# Label that each attribute is read from
_ATTRIBUTE_LABELS = {
    AttributeType.HOSTNAME: constants.NODE_LABEL_HOSTNAME,
    AttributeType.CPU_ARCH: constants.NODE_LABEL_CPU_ARCH,
    AttributeType.OS_NAME: constants.NODE_LABEL_OS_NAME,
    AttributeType.KERNEL_VERSION_FULL: constants.NODE_LABEL_KERNEL_VERSION_FULL,
}


@dataclass(frozen=True)
class NodeAttributes:
    """The attributes of a single node"""

    name: str
    attributes: Dict[AttributeType, str] = field(default_factory=dict)

    @classmethod
    def from_node(cls, node: dict) -> "NodeAttributes":
        metadata = node.get("metadata", {})
        labels = metadata.get("labels") or {}
        return cls(
            name=metadata.get("name"),
            attributes={
                attr: labels[label]
                for attr, label in _ATTRIBUTE_LABELS.items()
                if label in labels
            },
        )


## Filters #####################################################################


@dataclass(frozen=True)
class NodeLabelFilter:
    """A conjunction of label equality predicates"""

    labels: Tuple[Tuple[str, str], ...] = ()

    def matches(self, node: dict) -> bool:
        node_labels = node.get("metadata", {}).get("labels") or {}
        return all(node_labels.get(key) == value for key, value in self.labels)


class NodeLabelFilterBuilder:
    """Builder for NodeLabelFilter

    Example:
        NodeLabelFilterBuilder().with_label(NODE_LABEL_MLNX_NIC, "true").build()
    """

    def __init__(self):
        self._labels = {}

    def with_label(self, key: str, value: str) -> "NodeLabelFilterBuilder":
        self._labels[key] = value
        return self

    def build(self) -> NodeLabelFilter:
        return NodeLabelFilter(labels=tuple(sorted(self._labels.items())))


## Provider ####################################################################


class NodeInfoProvider:
    """Provides node attributes for a fixed snapshot of cluster nodes"""

    def __init__(self, nodes: Iterable[dict]):
        self._nodes = sorted(
            nodes,
            key=lambda node: node.get("metadata", {}).get("name") or "",
        )

    @classmethod
    def from_cluster(
        cls,
        deploy_manager: DeployManagerBase,
        label_selector: Optional[str] = None,
    ) -> "NodeInfoProvider":
        """Snapshot the nodes currently in the cluster"""
        success, nodes = deploy_manager.filter_objects_current_state(
            kind="Node", api_version="v1", label_selector=label_selector
        )
        assert_cluster(success, "Failed to list cluster nodes")
        log.debug("Loaded %d nodes", len(nodes))
        return cls(nodes)

    def get_nodes_attributes(
        self, node_filter: Optional[NodeLabelFilter] = None
    ) -> List[NodeAttributes]:
        """Get the attributes of every node passing the filter, ordered by node
        name
        """
        node_filter = node_filter or NodeLabelFilter()
        attrs = [
            NodeAttributes.from_node(node)
            for node in self._nodes
            if node_filter.matches(node)
        ]
        log.debug2("%d of %d nodes matched %s", len(attrs), len(self._nodes), node_filter)
        return attrs
