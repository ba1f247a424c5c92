"""
Package exports
"""

# Local
from . import config, constants
from .deploy_manager import (
    DeployManagerBase,
    DryRunDeployManager,
    OpenshiftDeployManager,
)
from .exceptions import assert_cluster, assert_config
from .info_catalog import InfoCatalog, InfoType
from .nodeinfo import NodeInfoProvider, NodeLabelFilterBuilder
from .render import Renderer, TemplatingData
from .state import (
    Results,
    State,
    StateManager,
    SyncState,
    new_state_host_device_network,
    new_state_manager,
    new_state_sriov_dp,
)
from .structured_object import StructuredObject
