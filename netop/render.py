"""
The Renderer turns a set of manifest template files plus render data into an
ordered list of StructuredObjects.

Templates are jinja2 documents that produce one or more yaml documents. The
render data is available as `data`; extra helper functions are exposed as
template globals through TemplatingData.funcs. Files are rendered in the order
given, and documents in the order they appear, so the first object of the
first file is stable across renders.
"""

# Standard
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Callable, Dict, List, Optional
import enum
import os

# Third Party
import jinja2
import yaml

# First Party
import alog

# Local
from . import config, constants
from .exceptions import ConfigError, RenderError
from .structured_object import StructuredObject
from .utils import get_files_with_suffix

log = alog.use_channel("RNDR")


@dataclass
class TemplatingData:
    """Wrapper passed to the renderer holding the render data and any extra
    functions available to the templates
    """

    data: Any
    funcs: Dict[str, Callable] = field(default_factory=dict)


def to_plain(value: Any) -> Any:
    """Convert render data (dataclasses, Config mappings, enums) into plain
    python types that can be serialized
    """
    if is_dataclass(value) and not isinstance(value, type):
        return to_plain(asdict(value))
    if isinstance(value, Mapping):
        return {str(key): to_plain(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(val) for val in value]
    if isinstance(value, enum.Enum):
        return value.value
    return value


def to_yaml(value: Any) -> str:
    """Filter rendering a value as a block of yaml"""
    if value is None:
        return ""
    return yaml.safe_dump(to_plain(value), default_flow_style=False).rstrip("\n")


class Renderer:
    """Renders a fixed list of template files"""

    def __init__(self, files: List[str]):
        self.files = list(files)
        self._env = jinja2.Environment(
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )
        self._env.filters["to_yaml"] = to_yaml

    def render_objects(self, templating_data: TemplatingData) -> List[StructuredObject]:
        """Render all files into structured objects

        Args:
            templating_data:  TemplatingData
                The render data and extra template functions

        Returns:
            objects:  List[StructuredObject]
                The rendered objects, possibly empty

        Raises:
            RenderError if any template fails to render or produces a document
            that is not a kubernetes object
        """
        objs = []
        for fname in self.files:
            objs.extend(self._render_file(fname, templating_data))
        log.debug2("Rendered %d objects from %d files", len(objs), len(self.files))
        return objs

    def _render_file(
        self, fname: str, templating_data: TemplatingData
    ) -> List[StructuredObject]:
        log.debug3("Rendering %s", fname)
        try:
            with open(fname, encoding="utf-8") as handle:
                template = self._env.from_string(
                    handle.read(), globals=templating_data.funcs
                )
            rendered = template.render(data=templating_data.data)
        except OSError as err:
            raise RenderError(f"failed to read template {fname}") from err
        except jinja2.TemplateError as err:
            raise RenderError(f"failed to render template {fname}: {err}") from err

        try:
            documents = list(yaml.safe_load_all(rendered))
        except yaml.YAMLError as err:
            raise RenderError(f"failed to decode rendered {fname}: {err}") from err

        objs = []
        for doc in documents:
            if doc is None:
                continue
            if not isinstance(doc, dict) or not doc.get("kind") or not doc.get(
                "apiVersion"
            ):
                raise RenderError(
                    f"rendered document in {fname} is not a kubernetes object"
                )
            if not isinstance(doc.get("metadata"), dict) or not doc["metadata"].get(
                "name"
            ):
                raise RenderError(f"rendered {doc['kind']} in {fname} has no name")
            objs.append(StructuredObject(doc))
        return objs


## Construction ################################################################

# Manifests shipped with the package, one sub-directory per state
PACKAGE_MANIFEST_DIR = os.path.join(os.path.dirname(__file__), "manifests")


def state_manifest_dir(state_dir: str, manifest_dir: Optional[str] = None) -> str:
    """Resolve the template directory of one state. An explicit manifest_dir
    is used as is; otherwise the state's sub-directory of the configured base
    directory (or of the packaged manifests) is used.
    """
    if manifest_dir:
        return manifest_dir
    return os.path.join(config.manifest_dir or PACKAGE_MANIFEST_DIR, state_dir)


def renderer_from_directory(manifest_dir: str) -> Renderer:
    """Create a Renderer for all manifest files in a directory

    Raises:
        ConfigError if the directory cannot be read
    """
    try:
        files = get_files_with_suffix(manifest_dir, constants.MANIFEST_FILE_SUFFIXES)
    except OSError as err:
        raise ConfigError("failed to get files from manifest dir") from err
    return Renderer(files)
