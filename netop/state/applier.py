"""
The ObjectApplier performs idempotent create-or-update of rendered objects
"""

# Standard
from typing import Callable, Iterable, Optional
import copy

# First Party
import alog

# Local
from ..deploy_manager import DeployManagerBase
from ..exceptions import AlreadyExistsError, ApplyError, NetopError, assert_cluster
from ..structured_object import StructuredObject

# Hook run against every object before it is written. It mutates the object in
# place and raises to abort the batch.
MutateHook = Callable[[StructuredObject], None]

# Metadata fields that are set by the API server and never rendered
_SERVER_MANAGED_METADATA = (
    "uid",
    "resourceVersion",
    "generation",
    "creationTimestamp",
    "managedFields",
    "selfLink",
)


class ObjectApplier:
    """Creates rendered objects that do not exist yet and updates the ones that
    do, keeping the fields the renderer does not own
    """

    def __init__(
        self,
        deploy_manager: DeployManagerBase,
        log_channel=None,
    ):
        self.deploy_manager = deploy_manager
        self.log = log_channel or alog.use_channel("APPLY")

    def apply_all(self, mutate: MutateHook, objects: Iterable[StructuredObject]):
        """Apply every object in order, stopping on the first failure. Retrying
        always starts over from the full rendered set.

        Args:
            mutate:  MutateHook
                Run on each object before it is written
            objects:  Iterable[StructuredObject]
                The rendered objects

        Raises:
            ApplyError wrapping the failure of the hook or the cluster write
        """
        for obj in objects:
            self.log.info("Handling manifest object %s", obj)
            try:
                mutate(obj)
            except NetopError as err:
                raise ApplyError(
                    f"failed to set controller reference for {obj}: {err}"
                ) from err
            try:
                self.apply(obj)
            except NetopError as err:
                raise ApplyError(f"failed to create/update {obj}: {err}") from err

    def apply(self, obj: StructuredObject) -> dict:
        """Create or update a single object

        Returns:
            live:  dict
                The object as stored in the cluster after the apply
        """
        current = self._get_current(obj)
        if current is None:
            try:
                self.log.debug("Creating %s", obj)
                return self.deploy_manager.create_object(copy.deepcopy(obj.definition))
            except AlreadyExistsError:
                # Someone else created it between the read and the create
                self.log.debug("Lost create race for %s, updating", obj)
                current = self._get_current(obj)
                assert_cluster(
                    current is not None, f"{obj} reported as existing but not found"
                )

        merged = merge_objects(obj.definition, current)
        if is_subset(_strip_server_fields(merged), _strip_server_fields(current)):
            self.log.debug("No change for %s", obj)
            return current
        self.log.debug("Object already exists, updating %s", obj)
        return self.deploy_manager.update_object(merged)

    def _get_current(self, obj: StructuredObject) -> Optional[dict]:
        success, current = self.deploy_manager.get_object_current_state(
            kind=obj.kind,
            name=obj.name,
            namespace=obj.namespace,
            api_version=obj.api_version,
        )
        assert_cluster(success, f"Failed to fetch current state of {obj}")
        return current


## Merging #####################################################################


def merge_objects(desired: dict, current: dict) -> dict:
    """Build the object to write on update from the rendered object and the
    live one. The rendered content wins; the live resourceVersion, status,
    labels and annotations added by others, and for ServiceAccounts the token
    secrets populated by the cluster are kept.
    """
    merged = copy.deepcopy(desired)
    metadata = merged.setdefault("metadata", {})
    current_metadata = current.get("metadata", {})

    if current_metadata.get("resourceVersion") is not None:
        metadata["resourceVersion"] = current_metadata["resourceVersion"]

    for field in ("labels", "annotations"):
        current_values = current_metadata.get(field) or {}
        if current_values:
            metadata[field] = {**current_values, **(metadata.get(field) or {})}

    if "status" in current:
        merged["status"] = copy.deepcopy(current["status"])

    if merged.get("kind") == "ServiceAccount":
        for field in ("secrets", "imagePullSecrets"):
            if field in current and field not in merged:
                merged[field] = copy.deepcopy(current[field])

    return merged


def is_subset(desired, current) -> bool:
    """True when every field of desired is present with the same value in
    current. Dicts are compared key by key so that fields defaulted by the
    server do not count as a change.
    """
    if isinstance(desired, dict) and isinstance(current, dict):
        return all(
            key in current and is_subset(val, current[key])
            for key, val in desired.items()
        )
    return desired == current


def _strip_server_fields(obj: dict) -> dict:
    stripped = copy.deepcopy(obj)
    metadata = stripped.get("metadata", {})
    for field in _SERVER_MANAGED_METADATA:
        metadata.pop(field, None)
    return stripped
