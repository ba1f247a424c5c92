"""
State that deploys the NetworkAttachmentDefinition for a HostDeviceNetwork CR
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
from ..render import renderer_from_directory, state_manifest_dir
from .state import RuntimeSpec, State, WatchSource, copy_spec
from .sync_state import SyncState

log = alog.use_channel("HDNET")

STATE_NAME = "state-host-device-network"
STATE_DESCRIPTION = "Host Device net-attach-def CR deployed in cluster"

WATCH_SOURCES = {
    constants.HOST_DEVICE_NETWORK_KIND: WatchSource(
        api_version=constants.CR_API_VERSION,
        kind=constants.HOST_DEVICE_NETWORK_KIND,
    ),
    constants.NET_ATTACH_DEF_KIND: WatchSource(
        api_version=constants.NET_ATTACH_DEF_API_VERSION,
        kind=constants.NET_ATTACH_DEF_KIND,
    ),
}


@dataclass(frozen=True)
class HostDeviceManifestRenderData:
    host_device_network_name: str
    cr_spec: dict
    runtime_spec: RuntimeSpec
    resource_name: str


def normalize_resource_name(resource_name: str) -> str:
    """Prefix the resource name with the vendor domain unless it already
    carries it. Applying this more than once has no further effect.
    """
    assert_config(
        isinstance(resource_name, str) and resource_name != "",
        f"resourceName must be a non-empty string, got {resource_name!r}",
    )
    if not resource_name.startswith(constants.RESOURCE_NAME_PREFIX):
        resource_name = constants.RESOURCE_NAME_PREFIX + resource_name
    return resource_name


def build_render_data(
    custom_resource: aconfig.Config,
    _: Optional[InfoCatalog] = None,
) -> HostDeviceManifestRenderData:
    """Build the render data for a HostDeviceNetwork CR"""
    spec = custom_resource.get("spec") or {}
    return HostDeviceManifestRenderData(
        host_device_network_name=custom_resource["metadata"]["name"],
        cr_spec=copy_spec(spec),
        runtime_spec=RuntimeSpec(namespace=config.resource_namespace),
        resource_name=normalize_resource_name(spec.get("resourceName")),
    )


def new_state_host_device_network(
    deploy_manager: DeployManagerBase,
    manifest_dir: Optional[str] = None,
) -> State:
    """Create the state for HostDeviceNetwork CRs

    Args:
        deploy_manager:  DeployManagerBase
            Cluster access for the state
        manifest_dir:  Optional[str]
            Directory holding this state's templates

    Returns:
        state:  State
            The configured state
    """
    return State(
        name=STATE_NAME,
        description=STATE_DESCRIPTION,
        deploy_manager=deploy_manager,
        renderer=renderer_from_directory(state_manifest_dir(STATE_NAME, manifest_dir)),
        cr_kind=constants.HOST_DEVICE_NETWORK_KIND,
        build_render_data=build_render_data,
        watch_sources=WATCH_SOURCES,
        primary_kind=constants.NET_ATTACH_DEF_KIND,
        empty_render_state=SyncState.ERROR,
        log_channel=log,
    )
