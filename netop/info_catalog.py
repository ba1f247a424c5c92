"""
The InfoCatalog is a read-only directory of the providers that supply cluster
facts to states
"""

# Standard
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Optional

# Local
from .nodeinfo import NodeInfoProvider


class InfoType(Enum):
    """The kinds of provider a catalog can hold"""

    NODE_INFO = "node-info"


class InfoCatalog:
    """Holds one provider per InfoType. The catalog is filled at construction
    and is never mutated afterwards, so it is safe to share between
    concurrent syncs.
    """

    def __init__(self, providers: Optional[Dict[InfoType, Any]] = None):
        self._providers = MappingProxyType(dict(providers or {}))

    def get(self, info_type: InfoType) -> Optional[Any]:
        return self._providers.get(info_type)

    def get_node_info_provider(self) -> Optional[NodeInfoProvider]:
        return self.get(InfoType.NODE_INFO)
