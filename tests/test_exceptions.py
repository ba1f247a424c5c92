"""
Test the custom assert functions and the error taxonomy
"""

# Third Party
import pytest

# Local
from netop import exceptions


def test_assert_config_fail():
    """Make sure the right exception is thrown by assert_config when it
    fails
    """
    exception_msg = "error message"
    with pytest.raises(exceptions.ConfigError, match=exception_msg):
        exceptions.assert_config(False, exception_msg)


def test_assert_cluster_fail():
    """Make sure the right exception is thrown by assert_cluster when it
    fails
    """
    exceptions.assert_cluster(True)
    with pytest.raises(exceptions.ClusterError, match="lost"):
        exceptions.assert_cluster(False, "lost")


@pytest.mark.parametrize(
    "error_type",
    [
        exceptions.ConfigError,
        exceptions.RenderError,
        exceptions.ClusterError,
        exceptions.OwnershipError,
    ],
)
def test_fatal_errors(error_type):
    """Make sure input, render and observation errors are fatal"""
    err = error_type("boom")
    assert isinstance(err, exceptions.NetopFatalError)
    assert isinstance(err, exceptions.NetopError)
    assert err.is_fatal_error
    assert str(err) == "boom"


@pytest.mark.parametrize(
    "error_type",
    [
        exceptions.ApplyError,
        exceptions.AlreadyExistsError,
        exceptions.ConflictError,
    ],
)
def test_expected_errors(error_type):
    """Make sure the expected errors are not setting the fatal error flag"""
    err = error_type()
    assert isinstance(err, exceptions.NetopExpectedError)
    assert not isinstance(err, exceptions.NetopFatalError)
    assert not err.is_fatal_error
