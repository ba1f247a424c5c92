"""
Tests for the controller reference stamping
"""

# Standard
import copy

# Third Party
import pytest

# Local
from netop.deploy_manager.owner_references import (
    make_controller_reference,
    set_controller_reference,
)
from netop.exceptions import ClusterError, OwnershipError
from netop.test_helpers.helpers import (
    SOME_OTHER_NAMESPACE,
    TEST_NAMESPACE,
    MockDeployManager,
)

## Helpers #####################################################################

SAMPLE_OWNER = {
    "kind": "Owner",
    "apiVersion": "foo.bar.com/v1",
    "metadata": {
        "name": "owner",
        "namespace": TEST_NAMESPACE,
        "uid": "12345",
    },
}

CLUSTER_OWNER = {
    "kind": "HostDeviceNetwork",
    "apiVersion": "mellanox.com/v1alpha1",
    "metadata": {"name": "hdn", "uid": "67890"},
}


def sample_object(namespace=TEST_NAMESPACE, owner_refs=None):
    obj = {
        "kind": "Child",
        "apiVersion": "foo.bar.com/v1",
        "metadata": {"name": "child"},
    }
    if namespace is not None:
        obj["metadata"]["namespace"] = namespace
    if owner_refs is not None:
        obj["metadata"]["ownerReferences"] = owner_refs
    return obj


def other_ref(controller=False, name="other"):
    return {
        "apiVersion": "other.com/v1",
        "kind": "Other",
        "name": name,
        "uid": f"uid-{name}",
        "controller": controller,
    }


## Happy Path ##################################################################


def test_make_controller_reference():
    assert make_controller_reference(SAMPLE_OWNER) == {
        "apiVersion": "foo.bar.com/v1",
        "kind": "Owner",
        "name": "owner",
        "uid": "12345",
        "controller": True,
        "blockOwnerDeletion": True,
    }


def test_add_new_controller_ref():
    """Test that adding a ref to an object with none present adds as expected"""
    dm = MockDeployManager()
    obj = sample_object()
    set_controller_reference(dm, SAMPLE_OWNER, obj)
    assert obj["metadata"]["ownerReferences"] == [
        make_controller_reference(SAMPLE_OWNER)
    ]


def test_cluster_scoped_owner_any_child():
    """A cluster-scoped owner may own namespaced and cluster-scoped children"""
    dm = MockDeployManager()
    for namespace in [TEST_NAMESPACE, SOME_OTHER_NAMESPACE, None]:
        obj = sample_object(namespace=namespace)
        set_controller_reference(dm, CLUSTER_OWNER, obj)
        assert obj["metadata"]["ownerReferences"] == [
            make_controller_reference(CLUSTER_OWNER)
        ]


def test_no_duplicate():
    """Test that an object with an existing ref for the owner does not
    duplicate the existing ref
    """
    dm = MockDeployManager()
    obj = sample_object(owner_refs=[make_controller_reference(SAMPLE_OWNER)])
    set_controller_reference(dm, SAMPLE_OWNER, obj)
    assert obj["metadata"]["ownerReferences"] == [
        make_controller_reference(SAMPLE_OWNER)
    ]


def test_existing_ref_to_same_owner_is_replaced():
    """A stale ref to the same owner (e.g. recreated with a new uid) is
    replaced rather than reported as a conflict
    """
    stale = copy.deepcopy(make_controller_reference(SAMPLE_OWNER))
    stale["uid"] = "old-uid"
    dm = MockDeployManager()
    obj = sample_object(owner_refs=[stale])
    set_controller_reference(dm, SAMPLE_OWNER, obj)
    assert obj["metadata"]["ownerReferences"] == [
        make_controller_reference(SAMPLE_OWNER)
    ]


def test_live_refs_are_kept():
    """References present on the live object survive the update"""
    live = sample_object(owner_refs=[other_ref()])
    dm = MockDeployManager(resources=[live])
    obj = sample_object()
    set_controller_reference(dm, SAMPLE_OWNER, obj)
    assert obj["metadata"]["ownerReferences"] == [
        other_ref(),
        make_controller_reference(SAMPLE_OWNER),
    ]


## Error Cases #################################################################


def test_cross_namespace_refused():
    dm = MockDeployManager()
    with pytest.raises(OwnershipError):
        set_controller_reference(
            dm, SAMPLE_OWNER, sample_object(namespace=SOME_OTHER_NAMESPACE)
        )


def test_cluster_scoped_child_of_namespaced_owner_refused():
    dm = MockDeployManager()
    with pytest.raises(OwnershipError):
        set_controller_reference(dm, SAMPLE_OWNER, sample_object(namespace=None))


def test_other_controller_refused():
    """A child controlled by another owner cannot be taken over"""
    dm = MockDeployManager(
        resources=[sample_object(owner_refs=[other_ref(controller=True)])]
    )
    obj = sample_object()
    with pytest.raises(OwnershipError):
        set_controller_reference(dm, SAMPLE_OWNER, obj)


def test_owner_without_uid_refused():
    owner = copy.deepcopy(SAMPLE_OWNER)
    del owner["metadata"]["uid"]
    with pytest.raises(OwnershipError):
        set_controller_reference(MockDeployManager(), owner, sample_object())


def test_child_without_name_refused():
    obj = sample_object()
    del obj["metadata"]["name"]
    with pytest.raises(OwnershipError):
        set_controller_reference(MockDeployManager(), SAMPLE_OWNER, obj)


def test_lookup_failure():
    """A failed read of the live child is a ClusterError"""
    dm = MockDeployManager(get_state_fail=True)
    with pytest.raises(ClusterError):
        set_controller_reference(dm, SAMPLE_OWNER, sample_object())
