"""
Tests for the SR-IOV device plugin state
"""

# Third Party
import pytest

# Local
from netop import config, constants
from netop.exceptions import ApplyError, ClusterError, ConfigError
from netop.info_catalog import InfoCatalog
from netop.state.state_sriov_dp import (
    STATE_NAME,
    build_render_data,
    is_applicable,
    new_state_sriov_dp,
)
from netop.state.sync_state import SyncState
from netop.test_helpers.helpers import (
    SRIOV_DP_SPEC,
    MockDeployManager,
    make_info_catalog,
    make_nic_node,
    make_node,
    setup_cr,
    setup_nic_cluster_policy_cr,
)

## Helpers #####################################################################

DS_NAME = "kube-sriov-device-plugin"

NODE_AFFINITY = {
    "requiredDuringSchedulingIgnoredDuringExecution": {
        "nodeSelectorTerms": [
            {
                "matchExpressions": [
                    {"key": "node-role", "operator": "In", "values": ["worker"]}
                ]
            }
        ]
    }
}


def get_daemon_set(dm):
    return dm.get_obj(
        constants.DAEMON_SET_KIND, DS_NAME, config.resource_namespace, "apps/v1"
    )


def nic_catalog():
    return make_info_catalog(
        [make_nic_node("worker-b", arch="arm64"), make_nic_node("worker-a")]
    )


## Expected No-Ops #############################################################


def test_unset_sub_spec_is_ignored():
    """A policy without the device plugin is ignored without cluster calls"""
    dm = MockDeployManager()
    result = new_state_sriov_dp(dm).sync(setup_nic_cluster_policy_cr(), nic_catalog())
    assert result == (SyncState.IGNORE, None)
    assert dm.api_calls() == 0


def test_no_nic_nodes_not_ready():
    """With no NVIDIA NIC in the cluster there is nothing to deploy yet"""
    dm = MockDeployManager()
    result = new_state_sriov_dp(dm).sync(
        setup_nic_cluster_policy_cr(SRIOV_DP_SPEC),
        make_info_catalog([make_node("plain")]),
    )
    assert result == (SyncState.NOT_READY, None)
    assert dm.api_calls() == 0


## Sync ########################################################################


def test_sync_deploys_device_plugin():
    """The device plugin objects are created and readiness follows the
    DaemonSet status
    """
    dm = MockDeployManager()
    state = new_state_sriov_dp(dm)
    assert state.name == STATE_NAME
    cr = setup_nic_cluster_policy_cr(SRIOV_DP_SPEC)

    assert state.sync(cr, nic_catalog()) == (SyncState.NOT_READY, None)
    namespace = config.resource_namespace
    assert dm.has_obj("ConfigMap", "sriovdp-config", namespace)
    assert dm.has_obj("ServiceAccount", "sriov-device-plugin", namespace)

    daemon_set = get_daemon_set(dm)
    pod_spec = daemon_set["spec"]["template"]["spec"]
    assert pod_spec["containers"][0]["image"] == (
        "nvcr.io/nvidia/cloud-native/sriov-device-plugin:v3.5.1"
    )
    assert pod_spec["nodeSelector"] == {constants.NODE_LABEL_MLNX_NIC: "true"}
    assert "initContainers" not in pod_spec
    assert "affinity" not in pod_spec
    owner_ref = daemon_set["metadata"]["ownerReferences"][0]
    assert owner_ref["kind"] == constants.NIC_CLUSTER_POLICY_KIND

    dm.set_status(
        constants.DAEMON_SET_KIND,
        DS_NAME,
        namespace,
        {"desiredNumberScheduled": 2, "numberReady": 2, "observedGeneration": 1},
    )
    assert state.sync(cr, nic_catalog()) == (SyncState.READY, None)
    assert dm.create_object.call_count == 3
    assert dm.update_object.call_count == 0


def test_config_map_holds_plugin_config():
    dm = MockDeployManager()
    new_state_sriov_dp(dm).sync(
        setup_nic_cluster_policy_cr(SRIOV_DP_SPEC), nic_catalog()
    )
    config_map = dm.get_obj("ConfigMap", "sriovdp-config", config.resource_namespace)
    assert config_map["data"]["config.json"] == SRIOV_DP_SPEC["config"]


def test_ofed_driver_adds_init_container():
    dm = MockDeployManager()
    cr = setup_nic_cluster_policy_cr(SRIOV_DP_SPEC, ofedDriver={"version": "5.0"})
    new_state_sriov_dp(dm).sync(cr, nic_catalog())
    pod_spec = get_daemon_set(dm)["spec"]["template"]["spec"]
    assert [c["name"] for c in pod_spec["initContainers"]] == [
        "ofed-driver-validation"
    ]
    assert "run-mlnx-ofed" in [vol["name"] for vol in pod_spec["volumes"]]


def test_node_affinity_and_pull_secrets():
    dm = MockDeployManager()
    cr = setup_nic_cluster_policy_cr(
        {**SRIOV_DP_SPEC, "imagePullSecrets": ["regcred"]},
        nodeAffinity=NODE_AFFINITY,
    )
    new_state_sriov_dp(dm).sync(cr, nic_catalog())
    pod_spec = get_daemon_set(dm)["spec"]["template"]["spec"]
    assert pod_spec["affinity"] == {"nodeAffinity": NODE_AFFINITY}
    assert pod_spec["imagePullSecrets"] == [{"name": "regcred"}]


def test_mixed_arch_nic_nodes_all_selected():
    """NIC nodes of every architecture are scheduled by the device plugin"""
    dm = MockDeployManager()
    new_state_sriov_dp(dm).sync(
        setup_nic_cluster_policy_cr(SRIOV_DP_SPEC),
        make_info_catalog(
            [make_nic_node("a-node", arch="arm64"), make_nic_node("b-node")]
        ),
    )
    node_selector = get_daemon_set(dm)["spec"]["template"]["spec"]["nodeSelector"]
    assert node_selector == {constants.NODE_LABEL_MLNX_NIC: "true"}
    assert constants.NODE_LABEL_CPU_ARCH not in node_selector


## Errors ######################################################################


def test_missing_node_info_provider_is_error():
    dm = MockDeployManager()
    sync_state, err = new_state_sriov_dp(dm).sync(
        setup_nic_cluster_policy_cr(SRIOV_DP_SPEC), InfoCatalog()
    )
    assert sync_state == SyncState.ERROR
    assert isinstance(err, ConfigError)
    assert dm.api_calls() == 0


def test_malformed_sub_spec_is_error():
    sync_state, err = new_state_sriov_dp(MockDeployManager()).sync(
        setup_nic_cluster_policy_cr("yes please"), nic_catalog()
    )
    assert sync_state == SyncState.ERROR
    assert isinstance(err, ConfigError)


def test_apply_failure_not_ready():
    dm = MockDeployManager(create_fail=ClusterError)
    sync_state, err = new_state_sriov_dp(dm).sync(
        setup_nic_cluster_policy_cr(SRIOV_DP_SPEC), nic_catalog()
    )
    assert sync_state == SyncState.NOT_READY
    assert isinstance(err, ApplyError)


def test_wrong_cr_kind_is_error():
    sync_state, err = new_state_sriov_dp(MockDeployManager()).sync(
        setup_cr(
            kind=constants.HOST_DEVICE_NETWORK_KIND,
            spec={"sriovDevicePlugin": SRIOV_DP_SPEC},
        ),
        nic_catalog(),
    )
    assert sync_state == SyncState.ERROR
    assert isinstance(err, ConfigError)


## Render Data #################################################################


def test_is_applicable():
    assert is_applicable(setup_nic_cluster_policy_cr(SRIOV_DP_SPEC))
    assert not is_applicable(setup_nic_cluster_policy_cr())


def test_build_render_data():
    cr = setup_nic_cluster_policy_cr(
        SRIOV_DP_SPEC, nodeAffinity=NODE_AFFINITY, ofedDriver={}
    )
    data = build_render_data(cr, nic_catalog())
    assert data.cr_spec == SRIOV_DP_SPEC
    assert data.node_affinity == NODE_AFFINITY
    assert data.deploy_init_container
    assert data.runtime_spec.namespace == config.resource_namespace
    assert data.runtime_spec.os_name == "ubuntu"


def test_build_render_data_is_detached():
    """Render data never aliases the CR"""
    cr = setup_nic_cluster_policy_cr(SRIOV_DP_SPEC)
    data = build_render_data(cr, nic_catalog())
    data.cr_spec["image"] = "changed"
    assert cr["spec"]["sriovDevicePlugin"]["image"] == SRIOV_DP_SPEC["image"]


def test_watch_sources():
    sources = new_state_sriov_dp(MockDeployManager()).get_watch_sources()
    assert [source.kind for source in sources.values()] == [
        constants.DAEMON_SET_KIND
    ]


@pytest.mark.parametrize("nodes", [[], [make_node("plain")]])
def test_build_render_data_no_nodes(nodes):
    cr = setup_nic_cluster_policy_cr(SRIOV_DP_SPEC)
    assert build_render_data(cr, make_info_catalog(nodes)) is None
