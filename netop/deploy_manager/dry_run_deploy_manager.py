"""
The DryRunDeployManager implements the DeployManager interface but does not
actually interact with the cluster and instead holds the state of the cluster in
a local map.
"""

# Standard
from datetime import datetime
from threading import RLock
from typing import List, Optional, Tuple
import copy
import uuid

# First Party
import alog

# Local
from ..exceptions import AlreadyExistsError, ClusterError, ConflictError
from .base import DeployManagerBase

log = alog.use_channel("DRY-RUN")

# Metadata fields populated by the (fake) API server
_SERVER_MANAGED_METADATA = (
    "uid",
    "resourceVersion",
    "generation",
    "creationTimestamp",
    "managedFields",
)


class DryRunDeployManager(DeployManagerBase):
    """
    Deploy manager which doesn't actually deploy!
    """

    def __init__(self, resources=None):
        """Construct with an optional list of objects that are already present
        in the cluster
        """
        self._cluster_content = {}
        self._lock = RLock()
        for resource in resources or []:
            self.create_object(resource)

    ## Interface ###############################################################

    def get_object_current_state(self, kind, name, namespace=None, api_version=None):
        log.debug(
            "DRY RUN get_object_current_state of [%s/%s] in [%s]", kind, name, namespace
        )
        matches = []
        with self._lock:
            kind_entries = self._cluster_content.get(namespace, {}).get(kind, {})
            for api_ver, entries in kind_entries.items():
                log.debug3("Checking api_version [%s // %s]", api_ver, api_version)
                if name in entries and (api_version is None or api_ver == api_version):
                    matches.append(entries[name])
        log.debug2(
            "Found %d matches for [%s/%s] in %s", len(matches), kind, name, namespace
        )
        if len(matches) == 1:
            return True, copy.deepcopy(matches[0])
        return True, None

    def filter_objects_current_state(
        self,
        kind,
        namespace=None,
        api_version=None,
        label_selector=None,
    ):
        log.debug(
            "DRY RUN filter_objects_current_state of [%s] in [%s]", kind, namespace
        )
        selector = _parse_label_selector(label_selector)
        matches = []
        with self._lock:
            namespaces = (
                [namespace] if namespace is not None else list(self._cluster_content)
            )
            for nspace in namespaces:
                kind_entries = self._cluster_content.get(nspace, {}).get(kind, {})
                for api_ver, entries in kind_entries.items():
                    if api_version is not None and api_ver != api_version:
                        continue
                    for resource in entries.values():
                        labels = resource.get("metadata", {}).get("labels") or {}
                        if _labels_match(labels, selector):
                            matches.append(copy.deepcopy(resource))
        return True, matches

    def create_object(self, resource_definition):
        api_version, kind, name, namespace = _identifiers(resource_definition)
        log.debug("DRY RUN create [%s/%s/%s/%s]", namespace, kind, api_version, name)
        with self._lock:
            entries = (
                self._cluster_content.setdefault(namespace, {})
                .setdefault(kind, {})
                .setdefault(api_version, {})
            )
            if name in entries:
                raise AlreadyExistsError(
                    f"{kind} {name} already exists in namespace {namespace}"
                )
            stored = copy.deepcopy(resource_definition)
            metadata = stored.setdefault("metadata", {})
            metadata.pop("resourceVersion", None)
            metadata.setdefault("uid", str(uuid.uuid4()))
            metadata["creationTimestamp"] = datetime.now().strftime(
                "%Y-%m-%dT%H:%M:%SZ"
            )
            metadata["resourceVersion"] = "1"
            metadata["generation"] = 1
            entries[name] = stored
            return copy.deepcopy(stored)

    def update_object(self, resource_definition):
        api_version, kind, name, namespace = _identifiers(resource_definition)
        log.debug("DRY RUN update [%s/%s/%s/%s]", namespace, kind, api_version, name)
        with self._lock:
            entries = self._cluster_content.get(namespace, {}).get(kind, {}).get(
                api_version, {}
            )
            current = entries.get(name)
            if current is None:
                raise ClusterError(
                    f"{kind} {name} not found in namespace {namespace}"
                )

            current_metadata = current["metadata"]
            requested_version = resource_definition.get("metadata", {}).get(
                "resourceVersion"
            )
            if (
                requested_version is not None
                and requested_version != current_metadata["resourceVersion"]
            ):
                raise ConflictError(
                    f"Operation cannot be fulfilled on {kind} {name}: the object "
                    "has been modified"
                )

            updated = copy.deepcopy(resource_definition)
            metadata = updated.setdefault("metadata", {})
            for field in _SERVER_MANAGED_METADATA:
                if field in current_metadata:
                    metadata[field] = current_metadata[field]
                else:
                    metadata.pop(field, None)

            # Only a meaningful change bumps the resourceVersion
            if updated != current:
                metadata["resourceVersion"] = str(
                    int(current_metadata["resourceVersion"]) + 1
                )
                if updated.get("spec") != current.get("spec"):
                    metadata["generation"] = current_metadata.get("generation", 1) + 1
                entries[name] = updated
                log.debug2("Updated [%s/%s] to %s", kind, name, metadata["resourceVersion"])
            return copy.deepcopy(entries[name])

    ## Dry Run Methods #########################################################

    def set_status(
        self,
        kind: str,
        name: str,
        namespace: Optional[str],
        status: dict,
        api_version: Optional[str] = None,
    ) -> bool:
        """Overwrite the status of an object, standing in for the controller
        that would own it in a live cluster
        """
        with self._lock:
            _, content = self.get_object_current_state(
                kind, name, namespace, api_version
            )
            if content is None:
                log.debug("Did not find [%s/%s] in %s", kind, name, namespace)
                return False
            content["status"] = status
            self._cluster_content[namespace][kind][content["apiVersion"]][
                name
            ] = content
            return True

    def delete_object(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> bool:
        """Remove an object, standing in for an external actor"""
        with self._lock:
            kind_entries = self._cluster_content.get(namespace, {}).get(kind, {})
            for api_ver, entries in kind_entries.items():
                if name in entries and (api_version is None or api_ver == api_version):
                    del entries[name]
                    return True
        return False


## Implementation Details ######################################################


def _identifiers(resource_definition: dict) -> Tuple[str, str, str, Optional[str]]:
    api_version = resource_definition.get("apiVersion")
    kind = resource_definition.get("kind")
    metadata = resource_definition.get("metadata", {})
    name = metadata.get("name")
    assert None not in [
        api_version,
        kind,
        name,
    ], "Cannot deploy resource without apiVersion, kind or name"
    return api_version, kind, name, metadata.get("namespace") or None


def _parse_label_selector(label_selector: Optional[str]) -> List[tuple]:
    """Parse an equality-based label selector (k=v, k==v, k!=v, k, !k) into
    a list of (key, op, value) tuples
    """
    parsed = []
    for term in (label_selector or "").split(","):
        term = term.strip()
        if not term:
            continue
        if "!=" in term:
            key, value = term.split("!=", 1)
            parsed.append((key.strip(), "!=", value.strip()))
        elif "==" in term:
            key, value = term.split("==", 1)
            parsed.append((key.strip(), "=", value.strip()))
        elif "=" in term:
            key, value = term.split("=", 1)
            parsed.append((key.strip(), "=", value.strip()))
        elif term.startswith("!"):
            parsed.append((term[1:].strip(), "!", None))
        else:
            parsed.append((term, "", None))
    return parsed


def _labels_match(labels: dict, selector: List[tuple]) -> bool:
    for key, op, value in selector:
        actual = labels.get(key)
        actual = str(actual) if actual is not None else None
        if op == "=" and actual != value:
            return False
        if op == "!=" and actual == value:
            return False
        if op == "!" and actual is not None:
            return False
        if op == "" and actual is None:
            return False
    return True
