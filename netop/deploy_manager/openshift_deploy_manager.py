"""
This DeployManager is responsible for delegating cluster operations to the
openshift library. It is the one that will be used when the states run in the
cluster or outside the cluster making live changes.
"""
# Standard
from collections import namedtuple
from typing import List, Optional, Tuple
import copy

# Third Party
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import ConflictError as DynamicConflictError
from openshift.dynamic.exceptions import (
    DynamicApiError,
    ForbiddenError,
    NotFoundError,
    ResourceNotFoundError,
    ResourceNotUniqueError,
)
from openshift.dynamic.resource import Resource
import kubernetes

# First Party
import alog

# Local
from .. import config
from ..exceptions import AlreadyExistsError, ClusterError, ConflictError, assert_cluster
from .base import DeployManagerBase

log = alog.use_channel("OSFTD")


class OpenshiftDeployManager(DeployManagerBase):
    """This DeployManager uses the openshift DynamicClient to interact with the
    cluster
    """

    def __init__(self, dynamic_client: Optional[DynamicClient] = None):
        """
        Args:
            dynamic_client:  Optional[DynamicClient]
                A preconfigured client. If not given, one is created lazily from
                the in-cluster config or the local kubeconfig.
        """
        log.debug("Initializing openshift client")
        self._client = dynamic_client

    @property
    def client(self):
        """Lazy property access to the client"""
        if self._client is None:
            self._client = self._setup_client()
        return self._client

    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Tuple[bool, Optional[dict]]:
        resources = self._get_resource_handle(kind, api_version)
        if not resources:
            return True, None

        try:
            resource = resources.get(name=name, namespace=namespace)
        except ForbiddenError:
            log.debug(
                "Fetching objects of kind [%s] forbidden in namespace [%s]",
                kind,
                namespace,
            )
            return False, None
        except NotFoundError:
            log.debug(
                "No object named [%s/%s] found in namespace [%s]", kind, name, namespace
            )
            return True, None

        # If the resource was found, return it's dict representation
        return True, resource.to_dict()

    def filter_objects_current_state(
        self,
        kind: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> Tuple[bool, List[dict]]:
        resources = self._get_resource_handle(kind, api_version)
        if not resources:
            return True, []

        try:
            list_obj = resources.get(namespace=namespace, label_selector=label_selector)
        except ForbiddenError:
            log.debug(
                "Listing objects of kind [%s] forbidden in namespace [%s]",
                kind,
                namespace,
            )
            return False, []
        except NotFoundError:
            log.debug("No objects of kind [%s] found in [%s]", kind, namespace)
            return True, []

        return True, list_obj.to_dict().get("items", [])

    @alog.logged_function(log.debug)
    def create_object(self, resource_definition: dict) -> dict:
        res_id = self._get_resource_identifiers(resource_definition)
        resource_handle = self._require_resource_handle(res_id)
        log.debug2(
            "Attempting to create [%s/%s/%s] in %s",
            res_id.api_version,
            res_id.kind,
            res_id.name,
            res_id.namespace,
        )
        try:
            return resource_handle.create(
                body=resource_definition,
                namespace=res_id.namespace,
                field_manager=config.field_manager,
            ).to_dict()
        except DynamicConflictError as err:
            raise AlreadyExistsError(
                f"{res_id.kind} {res_id.name} already exists"
            ) from err
        except DynamicApiError as err:
            raise ClusterError(
                f"Failed to create {res_id.kind} {res_id.name}: {err.summary()}"
            ) from err

    @alog.logged_function(log.debug)
    def update_object(self, resource_definition: dict) -> dict:
        """Replace the object. The body carries the resourceVersion it was
        merged against, so a concurrent write surfaces as a ConflictError
        instead of being overwritten.
        """
        resource_definition = copy.deepcopy(resource_definition)
        res_id = self._get_resource_identifiers(resource_definition)
        resource_handle = self._require_resource_handle(res_id)

        # Strip out managedFields to let the sever set them
        resource_definition.setdefault("metadata", {})["managedFields"] = None

        try:
            return resource_handle.replace(
                body=resource_definition,
                name=res_id.name,
                namespace=res_id.namespace,
                field_manager=config.field_manager,
            ).to_dict()
        except DynamicConflictError as err:
            log.debug2("Handling ConflictError: %s", err)
            raise ConflictError(
                f"Conflict updating {res_id.kind} {res_id.name}"
            ) from err
        except DynamicApiError as err:
            raise ClusterError(
                f"Failed to update {res_id.kind} {res_id.name}: {err.summary()}"
            ) from err

    ## Implementation Helpers ##################################################

    @staticmethod
    def _setup_client():
        """Create a DynamicClient that will work based on where the process is
        running
        """
        # Try in-cluster config
        try:
            log.debug2("Running with in-cluster config")
            kube_config = kubernetes.client.Configuration()
            kubernetes.config.load_incluster_config(client_configuration=kube_config)
            api_client = kubernetes.client.ApiClient(kube_config)
            return DynamicClient(api_client)

        # Fall back to out-of-cluster config
        except kubernetes.config.ConfigException:
            log.debug2("Running with out-of-cluster config")
            return DynamicClient(kubernetes.config.new_client_from_config())

    def _get_resource_handle(self, kind: str, api_version: str) -> Optional[Resource]:
        """Get the openshift resource handle for a specified kind and api_version"""
        resources = None
        try:
            resources = self.client.resources.get(kind=kind, api_version=api_version)
        except (ResourceNotFoundError, ResourceNotUniqueError):
            log.debug(
                "No objects of kind [%s] found or multiple objects matching request found",
                kind,
            )
        return resources

    def _require_resource_handle(self, res_id) -> Resource:
        resource_handle = self._get_resource_handle(
            api_version=res_id.api_version, kind=res_id.kind
        )
        assert_cluster(
            resource_handle,
            f"Failed to fetch resource handle for {res_id.api_version}/{res_id.kind}",
        )
        return resource_handle

    # Internal struct to hold the key resource identifier elements
    _ResourceIdentifiers = namedtuple(
        "ResourceIdentifiers", ["api_version", "kind", "name", "namespace"]
    )

    @classmethod
    def _get_resource_identifiers(cls, resource_definition):
        """Helper for getting the required parts of a single resource definition"""
        api_version = resource_definition.get("apiVersion")
        kind = resource_definition.get("kind")
        name = resource_definition.get("metadata", {}).get("name")
        namespace = resource_definition.get("metadata", {}).get("namespace") or None
        assert None not in [
            api_version,
            kind,
            name,
        ], "Cannot apply resource without apiVersion, kind or name"
        return cls._ResourceIdentifiers(api_version, kind, name, namespace)
