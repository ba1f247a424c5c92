"""
States are the units of synchronization. Each one renders, applies and checks
the objects that make up one feature of a custom resource.
"""

# Local
from .aggregator import DEFAULT_READINESS_PREDICATES, StatusAggregator
from .applier import ObjectApplier
from .manager import Results, StateManager, StateResult, new_state_manager
from .state import RuntimeSpec, State, WatchSource
from .state_host_device_network import new_state_host_device_network
from .state_sriov_dp import new_state_sriov_dp
from .sync_state import SyncState
