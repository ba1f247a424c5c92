"""
The StateManager runs every registered state for a custom resource and
reduces their verdicts into one
"""

# Standard
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple
import os

# First Party
import aconfig
import alog

# Local
from .. import constants
from ..deploy_manager import DeployManagerBase
from ..exceptions import ConfigError
from ..info_catalog import InfoCatalog
from . import state_host_device_network, state_sriov_dp
from .state import State, WatchSource
from .state_host_device_network import new_state_host_device_network
from .state_sriov_dp import new_state_sriov_dp
from .sync_state import SyncState

log = alog.use_channel("STMGR")

# The state factories registered for each custom resource kind along with the
# name of the template directory of each state
STATE_FACTORIES: Dict[str, List[Tuple[Callable[..., State], str]]] = {
    constants.HOST_DEVICE_NETWORK_KIND: [
        (new_state_host_device_network, state_host_device_network.STATE_NAME),
    ],
    constants.NIC_CLUSTER_POLICY_KIND: [
        (new_state_sriov_dp, state_sriov_dp.MANIFEST_SUBDIR),
    ],
}


@dataclass
class StateResult:
    """The outcome of one state's sync"""

    state_name: str
    status: SyncState
    error: Optional[Exception] = None


@dataclass
class Results:
    """The outcome of syncing all states for one custom resource"""

    status: SyncState
    states: List[StateResult] = field(default_factory=list)


class StateManager:
    """Holds the states for one kind of custom resource"""

    def __init__(self, states: Iterable[State], log_channel=None):
        self.states = list(states)
        self.log = log_channel or log
        names = [state.name for state in self.states]
        if len(names) != len(set(names)):
            raise ConfigError(f"Duplicate state names in {names}")

    def sync_states(
        self,
        custom_resource: aconfig.Config,
        info_catalog: InfoCatalog,
    ) -> Results:
        """Sync every state registered for the kind of the given CR. A failing
        state never stops the others from syncing.

        The overall status is ERROR if any state errored, else NOT_READY if any
        state is not ready, else READY. Ignored states do not count against
        readiness.
        """
        results = Results(status=SyncState.READY)
        for state in self.states:
            if state.cr_kind != custom_resource.get("kind"):
                continue
            status, err = state.sync(custom_resource, info_catalog)
            results.states.append(StateResult(state.name, status, err))

        statuses = {result.status for result in results.states}
        if SyncState.ERROR in statuses:
            results.status = SyncState.ERROR
        elif SyncState.NOT_READY in statuses:
            results.status = SyncState.NOT_READY
        self.log.info(
            "Synced %d states for %s/%s: %s",
            len(results.states),
            custom_resource.get("kind"),
            custom_resource.get("metadata", {}).get("name"),
            results.status.value,
            extra={"resource": custom_resource},
        )
        return results

    def get_watch_sources(self) -> Mapping[str, WatchSource]:
        """Union of the watch sources of all states"""
        sources = {}
        for state in self.states:
            sources.update(state.get_watch_sources())
        return sources


def new_state_manager(
    cr_kind: str,
    deploy_manager: DeployManagerBase,
    manifest_base_dir: Optional[str] = None,
) -> StateManager:
    """Create a manager with the states registered for the given CR kind

    Args:
        cr_kind:  str
            The kind of custom resource to manage
        deploy_manager:  DeployManagerBase
            Cluster access shared by all states
        manifest_base_dir:  Optional[str]
            Base directory holding one template directory per state. If not
            given, the configured or packaged manifests are used.

    Raises:
        ConfigError if no states are registered for the kind
    """
    factories = STATE_FACTORIES.get(cr_kind)
    if not factories:
        raise ConfigError(f"No states registered for kind {cr_kind}")
    states = []
    for factory, manifest_subdir in factories:
        manifest_dir = None
        if manifest_base_dir:
            manifest_dir = os.path.join(manifest_base_dir, manifest_subdir)
        states.append(factory(deploy_manager, manifest_dir=manifest_dir))
    log.debug2("Created states %s for %s", [str(s) for s in states], cr_kind)
    return StateManager(states)
