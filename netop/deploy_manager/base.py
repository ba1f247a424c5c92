"""
This defines the base class for all DeployManager types.
"""

# Standard
from typing import List, Optional, Tuple
import abc


class DeployManagerBase(abc.ABC):
    """
    Base class for deploy managers which carry out the reads and writes that a
    state performs against the cluster. Implementations must be safe to share
    between threads.
    """

    @abc.abstractmethod
    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Tuple[bool, Optional[dict]]:
        """Fetch the current state of a given object by name

        Args:
            kind:  str
                The kind of the object to fetch
            name:  str
                The full name of the object to fetch
            namespace:  Optional[str]
                The namespace to search for the object or None for
                cluster-scoped objects
            api_version:  Optional[str]
                The api_version of the resource kind to fetch

        Returns:
            success:  bool
                Whether or not the state fetch operation succeeded
            current_state:  dict or None
                The dict representation of the current object's configuration,
                or None if not present
        """

    @abc.abstractmethod
    def filter_objects_current_state(
        self,
        kind: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> Tuple[bool, List[dict]]:
        """Fetch the list of objects of a kind that match the label selector

        Args:
            kind:  str
                The kind of the objects to fetch
            namespace:  Optional[str]
                The namespace to search or None to search cluster wide
            api_version:  Optional[str]
                The api_version of the resource kind to fetch
            label_selector:  Optional[str]
                The label_selector to filter the resources

        Returns:
            success:  bool
                Whether or not the fetch operation succeeded
            current_state:  List[dict]
                A list of dict representations of the matching objects, or an
                empty list if no objects match
        """

    @abc.abstractmethod
    def create_object(self, resource_definition: dict) -> dict:
        """Create a new object in the cluster

        Args:
            resource_definition:  dict
                The full manifest of the object to create

        Returns:
            created:  dict
                The object as stored by the cluster

        Raises:
            AlreadyExistsError if an object with the same identity exists
        """

    @abc.abstractmethod
    def update_object(self, resource_definition: dict) -> dict:
        """Replace an existing object in the cluster. If the definition holds
        a metadata.resourceVersion it is used for optimistic locking.

        Args:
            resource_definition:  dict
                The full manifest of the object to update

        Returns:
            updated:  dict
                The object as stored by the cluster

        Raises:
            ConflictError if the resourceVersion is stale
            ClusterError if the object does not exist or the write fails
        """
