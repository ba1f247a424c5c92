"""
This module holds common helper functions for making testing easy
"""

# Standard
from contextlib import contextmanager
from typing import Dict, List, Optional
from unittest import mock
import copy
import inspect
import os

# First Party
import aconfig
import alog

# Local
from netop import constants
from netop.config import library_config as config_detail_dict
from netop.deploy_manager.dry_run_deploy_manager import DryRunDeployManager
from netop.info_catalog import InfoCatalog, InfoType
from netop.nodeinfo import NodeInfoProvider

log = alog.use_channel("TEST")


def configure_logging():
    alog.configure(
        os.environ.get("LOG_LEVEL", "off"),
        os.environ.get("LOG_FILTERS", ""),
        formatter="json"
        if os.environ.get("LOG_JSON", "").lower() == "true"
        else "pretty",
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_INSTANCE_NAME = "test-instance"
TEST_INSTANCE_UID = "12345678-1234-1234-1234-123456789012"
TEST_NAMESPACE = "test"
SOME_OTHER_NAMESPACE = "somewhere"

SRIOV_DP_SPEC = {
    "image": "sriov-device-plugin",
    "repository": "nvcr.io/nvidia/cloud-native",
    "version": "v3.5.1",
    "config": '{"resourceList": []}',
}


def setup_cr(
    kind=constants.HOST_DEVICE_NETWORK_KIND,
    api_version=constants.CR_API_VERSION,
    spec=None,
    name=TEST_INSTANCE_NAME,
    namespace=None,
    uid=TEST_INSTANCE_UID,
    **kwargs,
):
    """Make a CR manifest. The CRs handled by the states are cluster-scoped,
    so no namespace is set unless one is given.
    """
    cr_dict = kwargs or {}
    cr_dict.setdefault("kind", kind)
    cr_dict.setdefault("apiVersion", api_version)
    cr_dict.setdefault("metadata", {}).setdefault("name", name)
    if namespace is not None:
        cr_dict["metadata"].setdefault("namespace", namespace)
    if uid is not None:
        cr_dict["metadata"].setdefault("uid", uid)
    cr_dict.setdefault("spec", {}).update(copy.deepcopy(spec or {}))
    return aconfig.Config(cr_dict, override_env_vars=False)


def setup_host_device_network_cr(resource_name="ib0", **spec_overrides):
    spec = {"resourceName": resource_name, **spec_overrides}
    return setup_cr(kind=constants.HOST_DEVICE_NETWORK_KIND, spec=spec)


def setup_nic_cluster_policy_cr(sriov_dp=None, **spec_overrides):
    spec = dict(spec_overrides)
    if sriov_dp is not None:
        spec["sriovDevicePlugin"] = sriov_dp
    return setup_cr(kind=constants.NIC_CLUSTER_POLICY_KIND, spec=spec)


@contextmanager
def library_config(**config_overrides):
    """This context manager sets library config values temporarily and reverts
    them on completion
    """
    old_vals = {}
    for key, val in config_overrides.items():
        if key in config_detail_dict:
            old_vals[key] = config_detail_dict[key]
        config_detail_dict[key] = val

    try:
        yield
    finally:
        for key in config_overrides:
            if key in old_vals:
                config_detail_dict[key] = old_vals[key]
            else:
                del config_detail_dict[key]


## Nodes #######################################################################


def make_node(name: str, labels: Optional[Dict[str, str]] = None) -> dict:
    return {
        "kind": "Node",
        "apiVersion": "v1",
        "metadata": {"name": name, "labels": dict(labels or {})},
    }


def make_nic_node(name: str, arch="amd64", os_name="ubuntu", **labels) -> dict:
    """Make a node that carries an NVIDIA NIC"""
    return make_node(
        name,
        {
            constants.NODE_LABEL_MLNX_NIC: "true",
            constants.NODE_LABEL_CPU_ARCH: arch,
            constants.NODE_LABEL_OS_NAME: os_name,
            constants.NODE_LABEL_HOSTNAME: name,
            **labels,
        },
    )


def make_info_catalog(nodes: Optional[List[dict]] = None) -> InfoCatalog:
    return InfoCatalog({InfoType.NODE_INFO: NodeInfoProvider(nodes or [])})


## Manifests ###################################################################


def write_manifests(directory, manifests: Dict[str, str]) -> str:
    """Write template files into a directory and return its path"""
    directory = str(directory)
    os.makedirs(directory, exist_ok=True)
    for fname, content in manifests.items():
        with open(os.path.join(directory, fname), "w", encoding="utf-8") as handle:
            handle.write(content)
    return directory


## Deploy Manager ##############################################################


def get_failable_method(fail_flag, method, failure_return=False):
    log.debug4(
        "Setting up failable mock of [%s] with fail flag: %s", str(method), fail_flag
    )

    def failable_method(*args, **kwargs):
        log.debug4(
            "Running failable mock of [%s] with fail flag: %s", str(method), fail_flag
        )
        if isinstance(fail_flag, Exception) or (
            inspect.isclass(fail_flag) and issubclass(fail_flag, Exception)
        ):
            log.debug4("Raising in failable mock")
            raise fail_flag
        if callable(fail_flag):
            log.debug4("Calling callable fail flag")
            res = fail_flag()
            if res is not None:
                return res
        elif fail_flag == "assert":
            raise AssertionError(f"You told me to fail {method}!")
        elif fail_flag:
            log.debug4("Returning %s", failure_return)
            return failure_return
        res = method(*args, **kwargs)
        log.debug4("Passthrough res: %s", res)
        return res

    return failable_method


class FailOnce:
    """Helper callable that will fail once on the N'th call"""

    def __init__(self, fail_val, fail_number=1):
        self.call_count = 0
        self.fail_number = fail_number
        self.fail_val = fail_val

    def __call__(self, *_, **__):
        self.call_count += 1
        if self.call_count == self.fail_number:
            log.debug("Failing on call %d with %s", self.call_count, self.fail_val)
            if isinstance(self.fail_val, type) and issubclass(self.fail_val, Exception):
                raise self.fail_val("Raising!")
            return self.fail_val
        log.debug("Not failing on call %d", self.call_count)
        return None


class MockDeployManager(DryRunDeployManager):
    """The MockDeployManager wraps a standard DryRunDeployManager and adds
    configuration options to simulate failures in each of its operations.
    Failing reads return (False, ...); failing writes raise the given error.
    """

    def __init__(
        self,
        get_state_fail=False,
        filter_fail=False,
        create_fail=False,
        update_fail=False,
        auto_enable=True,
        resources=None,
    ):
        super().__init__(resources)
        self.get_state_fail = get_state_fail
        self.filter_fail = filter_fail
        self.create_fail = create_fail
        self.update_fail = update_fail
        if auto_enable:
            self.enable_mocks()

    #######################
    ## Helpers for Tests ##
    #######################

    def enable_mocks(self):
        """Turn the mocks on"""
        self.get_object_current_state = mock.Mock(
            side_effect=get_failable_method(
                self.get_state_fail, super().get_object_current_state, (False, None)
            )
        )
        self.filter_objects_current_state = mock.Mock(
            side_effect=get_failable_method(
                self.filter_fail, super().filter_objects_current_state, (False, [])
            )
        )
        self.create_object = mock.Mock(
            side_effect=get_failable_method(self.create_fail, super().create_object)
        )
        self.update_object = mock.Mock(
            side_effect=get_failable_method(self.update_fail, super().update_object)
        )

    def api_calls(self) -> int:
        """Total number of calls made against the cluster"""
        return sum(
            method.call_count
            for method in [
                self.get_object_current_state,
                self.filter_objects_current_state,
                self.create_object,
                self.update_object,
            ]
        )

    def get_obj(self, kind, name, namespace=None, api_version=None):
        return self.get_object_current_state(kind, name, namespace, api_version)[1]

    def has_obj(self, *args, **kwargs):
        return self.get_obj(*args, **kwargs) is not None
