"""
Helper object to represent a schema-agnostic cluster object produced by the
renderer and handled by the applier and the status aggregator
"""
# Standard
from typing import Any, Optional
import copy

# Local
from .utils import nested_get


class StructuredObject:
    """Thin wrapper over the dict form of a cluster resource with typed
    accessors for the few fields the engine needs. The wrapped definition is
    the source of truth; accessors always read through to it.
    """

    def __init__(self, definition: dict):
        assert isinstance(definition, dict), "Object definition must be a dict"
        self.definition = definition
        assert self.kind is not None, "No kind found"
        assert self.api_version is not None, "No apiVersion found"
        assert self.name is not None, "No name found"

    ## Identity ################################################################

    @property
    def kind(self) -> Optional[str]:
        return self.definition.get("kind")

    @property
    def api_version(self) -> Optional[str]:
        return self.definition.get("apiVersion")

    @property
    def metadata(self) -> dict:
        return self.definition.setdefault("metadata", {})

    @property
    def name(self) -> Optional[str]:
        return self.metadata.get("name")

    @property
    def namespace(self) -> Optional[str]:
        """The namespace of the object or None for cluster-scoped objects"""
        return self.metadata.get("namespace") or None

    @property
    def uid(self) -> Optional[str]:
        return self.metadata.get("uid")

    @property
    def owner_references(self) -> list:
        return self.metadata.get("ownerReferences") or []

    ## Field access ############################################################

    def get(self, *args, **kwargs):
        """Pass get calls to the object's definition"""
        return self.definition.get(*args, **kwargs)

    def get_nested(self, key: str, dflt: Any = None) -> Any:
        """Get a value using 'status.numberReady' key notation"""
        return nested_get(self.definition, key, dflt)

    def deepcopy(self) -> "StructuredObject":
        return StructuredObject(copy.deepcopy(self.definition))

    def to_dict(self) -> dict:
        return self.definition

    ## Dunders #################################################################

    def __str__(self):
        if self.namespace:
            return f"{self.api_version}/{self.kind}/{self.namespace}/{self.name}"
        return f"{self.api_version}/{self.kind}/{self.name}"

    def __repr__(self):
        return str(self)

    def __eq__(self, other):
        if not isinstance(other, StructuredObject):
            return NotImplemented
        return self.definition == other.definition
