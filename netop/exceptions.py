"""
This module implements custom exceptions
"""

## Base Error ##################################################################


class NetopError(Exception):
    """Base class for all netop exceptions"""

    def __init__(self, message: str, is_fatal_error: bool):
        """Construct with a flag indicating whether this is a fatal error. This
        will be a static property of all children.
        """
        super().__init__(message)
        self._is_fatal_error = is_fatal_error

    @property
    def is_fatal_error(self):
        """Property indicating whether or not this error should signal an
        Error verdict rather than a NotReady one
        """
        return self._is_fatal_error


## Fatal Errors ################################################################


class NetopFatalError(NetopError):
    """A NetopFatalError is one that indicates an unexpected, and likely
    unrecoverable, failure during a sync.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=True)


class ConfigError(NetopFatalError):
    """Exception caused by a malformed custom resource or a missing required
    capability
    """


class RenderError(NetopFatalError):
    """Exception caused when manifest templates fail to render into valid
    objects
    """


class ClusterError(NetopFatalError):
    """Exception caused when a cluster read fails in an unexpected way or the
    cluster state is inconsistent with what was applied
    """


class OwnershipError(NetopFatalError):
    """Exception caused when a controller reference cannot be placed on an
    object
    """


## Expected Errors #############################################################


class NetopExpectedError(NetopError):
    """A NetopExpectedError is one that indicates an expected failure condition
    that should end the current sync, but is expected to resolve in a
    subsequent one.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=False)


class ApplyError(NetopExpectedError):
    """Exception caused when a rendered set could not be created or updated in
    the cluster
    """


class AlreadyExistsError(NetopExpectedError):
    """Raised by a deploy manager when creating an object that already exists"""


class ConflictError(NetopExpectedError):
    """Raised by a deploy manager when an update is made against a stale
    resourceVersion
    """


## Assertions ##################################################################


def assert_config(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ConfigError. This should be
    used when the custom resource or the info catalog does not hold what a
    state requires.
    """
    if not condition:
        raise ConfigError(message)


def assert_cluster(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ClusterError. This should
    be used when an operation in the cluster (such as fetching an applied
    object) fails.
    """
    if not condition:
        raise ClusterError(message)
