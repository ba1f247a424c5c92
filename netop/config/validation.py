"""
Module to validate values in a loaded config against a parallel validation
config.

Each leaf of the validation config is a dict with a "type" key (one of
"number", "int", "float", "str", "bool", "enum") and optional constraints:

    * number/int/float: min, max (inclusive)
    * str: min_len, max_len (inclusive)
    * enum: values
    * all: optional (None is accepted)
"""

# Standard
from typing import Any, Dict, List, Optional

# First Party
import aconfig
import alog

# Local
from .. import constants
from ..utils import nested_get

log = alog.use_channel("CONFG")


## Public ######################################################################


def get_invalid_params(
    config: aconfig.Config,
    validation_config: aconfig.Config,
) -> List[str]:
    """Get a list of any params that are invalid

    Args:
        config:  aconfig.Config
            The parsed config with any override values
        validation_config:  aconfig.Config
            The parallel config holding validation setup

    Returns:
        invalid_params:  List[str]
            A list of all string keys for parameters that fail validation
    """
    invalid_params = []
    for val_key, rule in _parse_validation_config(validation_config).items():
        if not _validate(nested_get(config, val_key), rule):
            log.warning("Found invalid config key [%s]", val_key)
            invalid_params.append(val_key)
    return invalid_params


## Implementation ##############################################################


def _in_bounds(value, low, high) -> bool:
    return (low is None or value >= low) and (high is None or value <= high)


def _check_number(value, rule) -> bool:
    return _in_bounds(value, rule.get("min"), rule.get("max"))


def _check_str(value, rule) -> bool:
    return _in_bounds(len(value), rule.get("min_len"), rule.get("max_len"))


def _check_enum(value, rule) -> bool:
    return value in rule.get("values", [])


# Map from type key to (valid python types, value check)
_VALIDATORS = {
    "number": ((int, float), _check_number),
    "int": ((int,), _check_number),
    "float": ((float,), _check_number),
    "str": ((str,), _check_str),
    "bool": ((bool,), lambda *_: True),
    "enum": ((str, int, type(None)), _check_enum),
}


def _validate(value: Any, rule: dict) -> bool:
    """Run the type and value checks for a single parameter"""
    if rule.get("optional") and value is None:
        return True

    valid_types, check = _VALIDATORS[rule["type"]]
    if not isinstance(value, valid_types):
        log.warning("Invalid type <%s>", type(value))
        return False
    if not check(value, rule):
        log.warning("Invalid value [%s]", value)
        return False
    return True


def _parse_validation_config(
    validation_config: aconfig.Config,
    prefix_parts: Optional[List[str]] = None,
) -> Dict[str, dict]:
    """Recursively flatten the validation config into a dict of nested keys
    pointing to the rule dicts
    """
    output_dict = {}
    prefix_parts = prefix_parts or []
    for key, val in validation_config.items():
        if not isinstance(val, dict):
            continue
        key_parts = prefix_parts + [key]
        nested_key = constants.NESTED_DICT_DELIM.join(key_parts)
        if val.get("type") in _VALIDATORS:
            log.debug3("Found parameter at %s", nested_key)
            output_dict[nested_key] = val
        else:
            output_dict.update(_parse_validation_config(val, key_parts))
    return output_dict
