"""
The StatusAggregator reads back the live state of a rendered set and reduces
it to a single SyncState
"""

# Standard
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional

# Third Party
import dateutil.parser

# First Party
import alog

# Local
from .. import constants
from ..deploy_manager import DeployManagerBase
from ..exceptions import assert_cluster
from ..structured_object import StructuredObject
from .sync_state import SyncState

log = alog.use_channel("AGGR")

DEFAULT_TIMESTAMP_KEY = "lastTransitionTime"
COMPLETE_CONDITION_KEY = "Complete"
FAILED_CONDITION_KEY = "Failed"
PROGRESSING_CONDITION_KEY = "Progressing"
PROGRESS_DEADLINE_EXCEEDED_REASON = "ProgressDeadlineExceeded"

# Signature of a per-kind readiness predicate. It is handed the live object and
# returns READY, NOT_READY or ERROR.
READINESS_PREDICATE = Callable[[StructuredObject], SyncState]


## Predicates ##################################################################


def daemon_set_readiness(obj: StructuredObject) -> SyncState:
    """A DaemonSet is ready once its controller has observed the current
    generation and every scheduled pod is ready
    """
    obj_status = obj.get("status") or {}
    if not obj_status:
        log.debug2("DaemonSet %s has no status yet", obj)
        return SyncState.NOT_READY

    generation = obj.get_nested("metadata.generation")
    observed = obj_status.get("observedGeneration")
    if generation is not None and (observed is None or observed < generation):
        log.debug2("DaemonSet %s generation %s not observed", obj, generation)
        return SyncState.NOT_READY

    desired = obj_status.get("desiredNumberScheduled", 0)
    ready = obj_status.get("numberReady", 0)
    unavailable = obj_status.get("numberUnavailable", 0)
    log.debug3(
        "DaemonSet %s desired=%s ready=%s unavailable=%s",
        obj,
        desired,
        ready,
        unavailable,
    )
    if desired == ready and not unavailable:
        return SyncState.READY
    return SyncState.NOT_READY


def deployment_readiness(obj: StructuredObject) -> SyncState:
    """A Deployment is ready when all desired replicas are ready. Exceeding
    the progress deadline is terminal.
    """
    if _has_condition(
        obj,
        PROGRESSING_CONDITION_KEY,
        False,
        expected_reason=PROGRESS_DEADLINE_EXCEEDED_REASON,
    ):
        return SyncState.ERROR
    desired = obj.get_nested("spec.replicas", 1)
    ready = obj.get_nested("status.readyReplicas", 0)
    return SyncState.READY if ready == desired else SyncState.NOT_READY


def network_attachment_definition_readiness(obj: StructuredObject) -> SyncState:
    """A NetworkAttachmentDefinition has no status; it is ready once the
    cluster has stored it
    """
    return SyncState.READY if obj.uid else SyncState.NOT_READY


def job_readiness(obj: StructuredObject) -> SyncState:
    """A Job is ready when complete and in error when failed"""
    if _has_condition(obj, FAILED_CONDITION_KEY, True):
        return SyncState.ERROR
    if _has_condition(obj, COMPLETE_CONDITION_KEY, True):
        return SyncState.READY
    return SyncState.NOT_READY


DEFAULT_READINESS_PREDICATES = MappingProxyType(
    {
        constants.DAEMON_SET_KIND: daemon_set_readiness,
        "Deployment": deployment_readiness,
        constants.NET_ATTACH_DEF_KIND: network_attachment_definition_readiness,
        "Job": job_readiness,
    }
)


## Aggregator ##################################################################


class StatusAggregator:
    """Reduces the live state of a set of objects to one verdict: ERROR if any
    object is in error, else READY if all are ready, else NOT_READY
    """

    def __init__(
        self,
        deploy_manager: DeployManagerBase,
        predicates: Optional[Mapping[str, READINESS_PREDICATE]] = None,
        log_channel=None,
    ):
        self.deploy_manager = deploy_manager
        self.predicates = MappingProxyType(
            dict(DEFAULT_READINESS_PREDICATES if predicates is None else predicates)
        )
        self.log = log_channel or log

    def aggregate(self, objects: Iterable[StructuredObject]) -> SyncState:
        """Compute the verdict for the given rendered objects

        Raises:
            ClusterError if the live state of an object cannot be read
        """
        states = [self.object_state(obj) for obj in objects]
        if SyncState.ERROR in states:
            return SyncState.ERROR
        if all(state == SyncState.READY for state in states):
            return SyncState.READY
        return SyncState.NOT_READY

    def object_state(self, obj: StructuredObject) -> SyncState:
        """Read one object back from the cluster and run its kind's predicate"""
        success, content = self.deploy_manager.get_object_current_state(
            kind=obj.kind,
            name=obj.name,
            namespace=obj.namespace,
            api_version=obj.api_version,
        )
        assert_cluster(success, f"Failed to fetch state of {obj}")
        if content is None:
            self.log.debug("Could not find %s. Not Ready.", obj)
            return SyncState.NOT_READY

        predicate = self.predicates.get(obj.kind)
        if predicate is None:
            # TODO: make unknown kinds a configuration error once every
            #   rendered kind has a predicate
            self.log.debug2("No readiness predicate for %s, treating as ready", obj)
            return SyncState.READY

        state = predicate(StructuredObject(content))
        self.log.debug("%s is %s", obj, state.value)
        return state


## Helpers #####################################################################


def _has_condition(
    obj: StructuredObject,
    type_val: str,
    expected_status: bool,
    timestamp_key: str = DEFAULT_TIMESTAMP_KEY,
    expected_reason: Optional[str] = None,
) -> bool:
    """Check whether the latest condition of the given type has the expected
    status and reason
    """
    conditions = [
        cond
        for cond in obj.get_nested("status.conditions") or []
        if cond.get("type") == type_val
    ]
    if not conditions:
        return False

    latest = sorted(
        conditions,
        key=lambda cond: _parse_condition_timestamp(cond, timestamp_key),
        reverse=True,
    )[0]
    log.debug3("Latest '%s' condition: %s", type_val, latest)

    cond_status = latest.get("status")
    if isinstance(cond_status, str):
        status_matches = cond_status.lower() == str(expected_status).lower()
    else:
        status_matches = bool(cond_status) == expected_status
    return status_matches and (
        expected_reason is None or latest.get("reason") == expected_reason
    )


def _parse_condition_timestamp(condition: dict, timestamp_key: str) -> datetime:
    timestamp = condition.get(timestamp_key)
    if isinstance(timestamp, str):
        timestamp = dateutil.parser.parse(timestamp)
    if isinstance(timestamp, datetime):
        # Naive and aware timestamps cannot be compared
        if timestamp.tzinfo is None:
            return timestamp.replace(tzinfo=timezone.utc)
        return timestamp
    log.warning("Found condition with no valid timestamp. Using epoch")
    return datetime.fromtimestamp(0, tz=timezone.utc)
