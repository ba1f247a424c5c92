"""
This module holds the logic for stamping a controller reference that ties a
child object to the custom resource it was rendered for
"""

# First Party
import alog

# Local
from ..exceptions import OwnershipError, assert_cluster
from .base import DeployManagerBase

log = alog.use_channel("OWNRF")


def set_controller_reference(
    deploy_manager: DeployManagerBase,
    owner_cr: dict,
    child_obj: dict,
):
    """Merge a controller reference for owner_cr into child_obj in place.

    The current ownerReferences of the live child (if any) are kept so that
    references placed by other owners survive the update. The owner reference
    is refused if the owner is namespaced and the child is cluster-scoped or in
    another namespace, or if the child is already controlled by another owner.

    Args:
        deploy_manager:  DeployManagerBase
            Used to look up the current ownerReferences of the child
        owner_cr:  dict
            The full manifest of the owning custom resource
        child_obj:  dict
            The rendered child object to stamp

    Raises:
        OwnershipError if the reference is not allowed
        ClusterError if the child's current state cannot be read
    """
    _validate_owner(owner_cr)
    _validate_child(child_obj)

    kind = child_obj["kind"]
    api_version = child_obj["apiVersion"]
    name = child_obj["metadata"]["name"]
    child_namespace = child_obj["metadata"].get("namespace") or None
    owner_namespace = owner_cr["metadata"].get("namespace") or None

    # Namespaced owners can only own objects in their own namespace
    if owner_namespace is not None:
        if child_namespace is None:
            raise OwnershipError(
                f"cluster-scoped resource {kind}/{name} must not have a "
                f"namespace-scoped owner, owner's namespace {owner_namespace}"
            )
        if child_namespace != owner_namespace:
            raise OwnershipError(
                f"cross-namespace owner references are disallowed, owner's "
                f"namespace {owner_namespace}, obj's namespace {child_namespace}"
            )

    # Start from the references currently held by the live object
    success, content = deploy_manager.get_object_current_state(
        kind=kind, name=name, api_version=api_version, namespace=child_namespace
    )
    assert_cluster(
        success, f"Failed to fetch current state of {api_version}.{kind}/{name}"
    )
    owner_refs = list(child_obj["metadata"].get("ownerReferences") or [])
    if content is not None:
        live_refs = content.get("metadata", {}).get("ownerReferences") or []
        known_uids = {ref.get("uid") for ref in owner_refs}
        owner_refs.extend(ref for ref in live_refs if ref.get("uid") not in known_uids)
        log.debug3("Current owner refs: %s", owner_refs)

    new_ref = make_controller_reference(owner_cr)
    for ref in owner_refs:
        if ref.get("controller") and not _refers_to_same_object(ref, new_ref):
            raise OwnershipError(
                f"Object {kind}/{name} is already owned by another "
                f"{ref.get('kind')} controller {ref.get('name')}"
            )

    # Replace any existing reference to the same owner, otherwise append
    owner_refs = [ref for ref in owner_refs if not _refers_to_same_object(ref, new_ref)]
    owner_refs.append(new_ref)
    log.debug2(
        "Setting controller reference %s/%s on %s.%s/%s",
        new_ref["kind"],
        new_ref["name"],
        api_version,
        kind,
        name,
    )
    log.debug4("Final owner refs: %s", owner_refs)
    child_obj["metadata"]["ownerReferences"] = owner_refs


def make_controller_reference(owner_cr: dict) -> dict:
    """Make a controller owner reference for the given CR instance

    Args:
        owner_cr:  dict
            The full CR manifest for the owning resource

    Returns:
        owner_reference:  dict
            The dict entry for the `metadata.ownerReferences` entry of the owned
            object
    """
    metadata = owner_cr.get("metadata", {})
    return {
        "apiVersion": owner_cr.get("apiVersion"),
        "kind": owner_cr.get("kind"),
        "name": metadata.get("name"),
        "uid": metadata.get("uid"),
        "controller": True,
        # The parent will not be deleted until this object completes its
        # deletion
        "blockOwnerDeletion": True,
    }


## Implementation Details ######################################################


def _group(api_version: str) -> str:
    return api_version.split("/")[0] if "/" in (api_version or "") else ""


def _refers_to_same_object(ref_a: dict, ref_b: dict) -> bool:
    """Two references point at the same object when group, kind and name match"""
    return (
        _group(ref_a.get("apiVersion")) == _group(ref_b.get("apiVersion"))
        and ref_a.get("kind") == ref_b.get("kind")
        and ref_a.get("name") == ref_b.get("name")
    )


def _validate_owner(obj: dict):
    """The owner needs enough identity to build a reference from"""
    if "kind" not in obj or "apiVersion" not in obj:
        raise OwnershipError("Owner is missing 'kind' or 'apiVersion'")
    metadata = obj.get("metadata")
    if not isinstance(metadata, dict) or not metadata.get("name"):
        raise OwnershipError("Owner is missing 'metadata.name'")
    if not metadata.get("uid"):
        raise OwnershipError(f"Owner {metadata['name']} has no 'metadata.uid'")


def _validate_child(obj: dict):
    if "kind" not in obj or "apiVersion" not in obj:
        raise OwnershipError("Got object without 'kind' or 'apiVersion'")
    metadata = obj.get("metadata")
    if not isinstance(metadata, dict) or not metadata.get("name"):
        raise OwnershipError("Got object without 'metadata.name'")
