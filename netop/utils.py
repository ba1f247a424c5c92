"""
Common utilities shared across the library
"""

# Standard
from typing import Any, Iterable, List
import os

# First Party
import alog

# Local
from . import constants

log = alog.use_channel("NOUTL")

# Sentinel for missing dict values
__MISSING__ = "__MISSING__"

## Dicts #######################################################################


def merge_configs(base, overrides) -> dict:
    """Helper to perform a deep merge of the overrides into the base. The merge
    is done in place, but the resulting dict is also returned for convenience.

    If both the base and overrides have a key and the value for both is a
    dict, recursively merge, otherwise set the base value to the override value.

    Args:
        base:  dict
            The base dict that will be updated with the overrides
        overrides:  dict
            The override dict

    Returns:
        merged:  dict
            The merged results of overrides merged onto base
    """
    for key, value in overrides.items():
        if (
            key not in base
            or not isinstance(base[key], dict)
            or not isinstance(value, dict)
        ):
            base[key] = value
        else:
            base[key] = merge_configs(base[key], value)

    return base


def nested_get(dct: dict, key: str, dflt=None) -> Any:
    """Helper to get values from a dict using 'foo.bar' key notation

    Args:
        dct:  dict
            The dict to read from
        key:  str
            Key that may contain '.' notation indicating dict nesting

    Returns:
        val:  Any
            Whatever is found at the given key or dflt if the key is not found.
            This includes missing intermediate dicts.
    """
    parts = key.split(constants.NESTED_DICT_DELIM)
    for i, part in enumerate(parts[:-1]):
        dct = dct.get(part, __MISSING__)
        if dct is __MISSING__ or dct is None:
            return dflt
        if not isinstance(dct, dict):
            raise TypeError(
                f"Intermediate key {constants.NESTED_DICT_DELIM.join(parts[:i + 1])} is not a dict"
            )
    return dct.get(parts[-1], dflt)


## Files #######################################################################


def get_files_with_suffix(directory: str, suffixes: Iterable[str]) -> List[str]:
    """Collect the files directly under a directory whose names end with one of
    the given suffixes. The result is sorted by file name so that callers
    relying on file order get a stable sequence.

    Args:
        directory:  str
            The directory to scan
        suffixes:  Iterable[str]
            The accepted file suffixes (e.g. ".yaml")

    Returns:
        files:  List[str]
            Full paths of the matching files
    """
    suffixes = tuple(suffixes)
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"Manifest directory not found: {directory}")
    files = [
        os.path.join(directory, fname)
        for fname in sorted(os.listdir(directory))
        if fname.endswith(suffixes)
        and os.path.isfile(os.path.join(directory, fname))
    ]
    log.debug2("Found %d files in %s", len(files), directory)
    return files
