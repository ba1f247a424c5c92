"""
The State is the unit of synchronization: one State renders, applies and
checks the set of objects that make up one feature of a custom resource.

A single generic State class carries the sync pipeline. Concrete states differ
only in the pieces they inject:

    * is_applicable: decides from the CR alone whether there is anything to do
    * build_render_data: builds the typed render data (or None when there is
      nothing to render yet)
    * readiness_predicates: per-kind health checks used by the aggregator
    * watch_sources: the kinds whose changes should re-trigger a sync
"""

# Standard
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional, Tuple

# First Party
import aconfig
import alog

# Local
from ..deploy_manager import DeployManagerBase, set_controller_reference
from ..exceptions import (
    ClusterError,
    ConfigError,
    NetopError,
    RenderError,
    assert_cluster,
)
from ..info_catalog import InfoCatalog
from ..render import Renderer, TemplatingData, to_plain
from ..structured_object import StructuredObject
from .aggregator import READINESS_PREDICATE, StatusAggregator
from .applier import ObjectApplier
from .sync_state import SyncState

# Signature of the render data builders. Returning None means that there is
# nothing to render yet (e.g. no eligible nodes).
RENDER_DATA_BUILDER = Callable[[aconfig.Config, InfoCatalog], Optional[Any]]


@dataclass(frozen=True)
class RuntimeSpec:
    """Environment facts shared by all render data"""

    namespace: str


@dataclass(frozen=True)
class WatchSource:
    """An object kind whose changes should re-trigger a sync"""

    api_version: str
    kind: str


class State:
    """Generic state. See the module docstring for the injected pieces."""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        name: str,
        description: str,
        deploy_manager: DeployManagerBase,
        renderer: Renderer,
        cr_kind: str,
        build_render_data: RENDER_DATA_BUILDER,
        watch_sources: Mapping[str, WatchSource],
        *,
        is_applicable: Optional[Callable[[aconfig.Config], bool]] = None,
        readiness_predicates: Optional[Mapping[str, READINESS_PREDICATE]] = None,
        primary_kind: Optional[str] = None,
        empty_render_state: SyncState = SyncState.NOT_READY,
        log_channel=None,
    ):
        """
        Args:
            name:  str
                Unique name of the state
            description:  str
                Human readable description
            deploy_manager:  DeployManagerBase
                Cluster access shared by the applier and the aggregator
            renderer:  Renderer
                Renderer preloaded with this state's templates
            cr_kind:  str
                The kind of custom resource this state syncs
            build_render_data:  RENDER_DATA_BUILDER
                Pure builder for the render data
            watch_sources:  Mapping[str, WatchSource]
                The kinds to watch keyed by a readable name

        Kwargs:
            is_applicable:  Optional[Callable[[aconfig.Config], bool]]
                If given and False for a CR, the sync is IGNORE
            readiness_predicates:  Optional[Mapping[str, READINESS_PREDICATE]]
                Overrides for the default per-kind predicates
            primary_kind:  Optional[str]
                If set, the first rendered object must be of this kind and it
                must still exist after the status check
            empty_render_state:  SyncState
                Verdict when rendering produces no objects
            log_channel:  alog channel
                Channel used for all logging of this state
        """
        self.name = name
        self.description = description
        self.deploy_manager = deploy_manager
        self.renderer = renderer
        self.cr_kind = cr_kind
        self.primary_kind = primary_kind
        self.empty_render_state = empty_render_state
        self.log = log_channel or alog.use_channel("STATE")

        self._build_render_data = build_render_data
        self._is_applicable = is_applicable or (lambda _: True)
        self._watch_sources = MappingProxyType(dict(watch_sources))
        self._applier = ObjectApplier(deploy_manager, log_channel=self.log)
        self._aggregator = StatusAggregator(
            deploy_manager, predicates=readiness_predicates, log_channel=self.log
        )

    ## Public ##################################################################

    def sync(
        self,
        custom_resource: aconfig.Config,
        info_catalog: InfoCatalog,
    ) -> Tuple[SyncState, Optional[Exception]]:
        """Attempt to get the cluster to match the desired state this State
        represents. A sync is short and never waits for convergence; progress
        is observed on a later sync.

        Args:
            custom_resource:  aconfig.Config
                The CR being synced. It is not modified.
            info_catalog:  InfoCatalog
                Providers of cluster facts

        Returns:
            sync_state:  SyncState
                The verdict for this sync
            error:  Optional[Exception]
                The cause for an ERROR or failed NOT_READY verdict, chained to
                the underlying failure
        """
        metadata = custom_resource.get("metadata", {})
        log_extra = {"state": self.name, "resource": custom_resource}
        self.log.info(
            "Sync Custom resource State: %s Name: %s Namespace: %s",
            self.name,
            metadata.get("name"),
            metadata.get("namespace"),
            extra=log_extra,
        )
        try:
            sync_state = self._sync(custom_resource, info_catalog)
        except NetopError as err:
            sync_state = (
                SyncState.ERROR if err.is_fatal_error else SyncState.NOT_READY
            )
            self.log.warning(
                "State [%s] sync finished %s: %s",
                self.name,
                sync_state.value,
                err,
                extra=log_extra,
            )
            return sync_state, err
        except Exception as err:  # pylint: disable=broad-except
            self.log.warning(
                "State [%s] failed unexpectedly: %s",
                self.name,
                err,
                exc_info=True,
                extra=log_extra,
            )
            return SyncState.ERROR, err

        self.log.debug(
            "State [%s] sync finished %s",
            self.name,
            sync_state.value,
            extra=log_extra,
        )
        return sync_state, None

    def get_watch_sources(self) -> Mapping[str, WatchSource]:
        """Get a map of source kinds that should be watched for the state keyed
        by the source kind name
        """
        return self._watch_sources

    def __str__(self):
        return self.name

    ## Implementation ##########################################################

    def _sync(
        self, custom_resource: aconfig.Config, info_catalog: InfoCatalog
    ) -> SyncState:
        if custom_resource.get("kind") != self.cr_kind:
            raise ConfigError(
                f"State {self.name} syncs {self.cr_kind}, "
                f"got {custom_resource.get('kind')}"
            )

        if not self._is_applicable(custom_resource):
            # Either this state was not requested or an update removed it and
            # the resources it created need to be removed
            self.log.info("State [%s] not requested, no action required", self.name)
            return SyncState.IGNORE

        objs = self._get_manifest_objects(custom_resource, info_catalog)
        if objs is None:
            return SyncState.NOT_READY
        if not objs:
            if self.empty_render_state == SyncState.ERROR:
                raise RenderError(f"no rendered objects found for {self.name}")
            return self.empty_render_state

        primary = objs[0]
        if self.primary_kind is not None and primary.kind != self.primary_kind:
            raise RenderError(
                f"no {self.primary_kind} object found, first rendered object "
                f"is {primary}"
            )

        # Create objects if they dont exist, update objects if they do exist
        with alog.ContextTimer(self.log.debug2, "Apply duration for %s: ", self.name):
            self._applier.apply_all(
                lambda obj: set_controller_reference(
                    self.deploy_manager, custom_resource, obj.definition
                ),
                objs,
            )

        # Check objects status
        try:
            with alog.ContextTimer(
                self.log.debug2, "Aggregate duration for %s: ", self.name
            ):
                sync_state = self._aggregator.aggregate(objs)
        except ClusterError as err:
            raise ClusterError(f"failed to get sync state: {err}") from err

        # Re-read the primary object to make sure the apply is visible
        if self.primary_kind is not None:
            success, content = self.deploy_manager.get_object_current_state(
                kind=primary.kind,
                name=primary.name,
                namespace=primary.namespace,
                api_version=primary.api_version,
            )
            assert_cluster(
                success and content is not None,
                f"failed to get {self.primary_kind} {primary.name}",
            )
        return sync_state

    def _get_manifest_objects(
        self, custom_resource: aconfig.Config, info_catalog: InfoCatalog
    ) -> Optional[List[StructuredObject]]:
        """Build the render data and render it. None means the builder found
        nothing to render.
        """
        try:
            render_data = self._build_render_data(custom_resource, info_catalog)
        except NetopError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as err:
            raise ConfigError(
                f"malformed {self.cr_kind} spec for {self.name}: {err}"
            ) from err
        if render_data is None:
            self.log.info("State [%s] has nothing to render yet", self.name)
            return None

        self.log.debug2("Rendering objects data: %s", render_data)
        try:
            with alog.ContextTimer(
                self.log.debug2, "Render duration for %s: ", self.name
            ):
                objs = self.renderer.render_objects(TemplatingData(data=render_data))
        except RenderError as err:
            raise RenderError(f"failed to render objects: {err}") from err
        self.log.debug2("Rendered objects: %s", objs)
        return objs


def copy_spec(value) -> Optional[dict]:
    """Detach a CR spec fragment into plain dicts so render data never aliases
    the custom resource
    """
    return to_plain(value) if value is not None else None
