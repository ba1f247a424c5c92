"""
State that deploys the SR-IOV network device plugin requested by a
NicClusterPolicy CR
"""

# Standard
from dataclasses import dataclass
from typing import Optional

# First Party
import aconfig
import alog

# Local
from .. import config, constants
from ..deploy_manager import DeployManagerBase
from ..exceptions import assert_config
from ..info_catalog import InfoCatalog
from ..nodeinfo import AttributeType, NodeLabelFilterBuilder
from ..render import renderer_from_directory, state_manifest_dir
from .state import RuntimeSpec, State, WatchSource, copy_spec

log = alog.use_channel("SRVDP")

STATE_NAME = "state-SRIOV-device-plugin"
STATE_DESCRIPTION = "SR-IOV device plugin deployed in the cluster"

# Templates live under a lower-case directory name
MANIFEST_SUBDIR = "state-sriov-device-plugin"

WATCH_SOURCES = {
    constants.DAEMON_SET_KIND: WatchSource(
        api_version="apps/v1", kind=constants.DAEMON_SET_KIND
    ),
}


@dataclass(frozen=True)
class SriovDpRuntimeSpec(RuntimeSpec):
    os_name: Optional[str] = None


@dataclass(frozen=True)
class SriovDpManifestRenderData:
    cr_spec: dict
    node_affinity: Optional[dict]
    deploy_init_container: bool
    runtime_spec: SriovDpRuntimeSpec


def is_applicable(custom_resource: aconfig.Config) -> bool:
    """The device plugin is only deployed when the policy requests it"""
    return (custom_resource.get("spec") or {}).get("sriovDevicePlugin") is not None


def build_render_data(
    custom_resource: aconfig.Config,
    info_catalog: InfoCatalog,
) -> Optional[SriovDpManifestRenderData]:
    """Build the render data for the device plugin, or None when no node in
    the cluster carries an NVIDIA NIC
    """
    node_info = info_catalog.get_node_info_provider()
    assert_config(
        node_info is not None,
        "unexpected state, catalog does not provide node information",
    )

    attrs = node_info.get_nodes_attributes(
        NodeLabelFilterBuilder().with_label(constants.NODE_LABEL_MLNX_NIC, "true").build()
    )
    if not attrs:
        log.info("No nodes with NVIDIA NICs were found in the cluster.")
        return None

    spec = custom_resource.get("spec") or {}
    assert_config(
        isinstance(spec["sriovDevicePlugin"], dict),
        "sriovDevicePlugin must be an object",
    )
    return SriovDpManifestRenderData(
        cr_spec=copy_spec(spec["sriovDevicePlugin"]),
        node_affinity=copy_spec(spec.get("nodeAffinity")),
        deploy_init_container=spec.get("ofedDriver") is not None,
        runtime_spec=SriovDpRuntimeSpec(
            namespace=config.resource_namespace,
            os_name=attrs[0].attributes.get(AttributeType.OS_NAME),
        ),
    )


def new_state_sriov_dp(
    deploy_manager: DeployManagerBase,
    manifest_dir: Optional[str] = None,
) -> State:
    """Create the state for the SR-IOV device plugin of a NicClusterPolicy"""
    return State(
        name=STATE_NAME,
        description=STATE_DESCRIPTION,
        deploy_manager=deploy_manager,
        renderer=renderer_from_directory(
            state_manifest_dir(MANIFEST_SUBDIR, manifest_dir)
        ),
        cr_kind=constants.NIC_CLUSTER_POLICY_KIND,
        build_render_data=build_render_data,
        watch_sources=WATCH_SOURCES,
        is_applicable=is_applicable,
        log_channel=log,
    )
