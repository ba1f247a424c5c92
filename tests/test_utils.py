"""
Tests for the common utils
"""

# Third Party
import pytest

# Local
from netop import utils
from netop.test_helpers.helpers import write_manifests

##################
## merge_configs ##
##################


def test_merge_configs_deep():
    """Nested dicts are merged and non-dict values are overridden"""
    base = {"a": {"b": 1, "c": 2}, "d": [1]}
    result = utils.merge_configs(base, {"a": {"c": 3, "e": 4}, "d": [2]})
    assert result is base
    assert result == {"a": {"b": 1, "c": 3, "e": 4}, "d": [2]}


def test_merge_configs_replace_non_dict():
    """A dict override replaces a scalar base value"""
    assert utils.merge_configs({"a": 1}, {"a": {"b": 2}}) == {"a": {"b": 2}}


################
## nested_get ##
################


def test_nested_get():
    dct = {"status": {"numberReady": 3, "conditions": None}}
    assert utils.nested_get(dct, "status.numberReady") == 3
    assert utils.nested_get(dct, "status.missing", "dflt") == "dflt"
    assert utils.nested_get(dct, "spec.replicas", 1) == 1
    assert utils.nested_get(dct, "status.conditions.type", "x") == "x"


def test_nested_get_non_dict_intermediate():
    """A scalar on the path is a TypeError"""
    with pytest.raises(TypeError):
        utils.nested_get({"a": 1}, "a.b")


###########################
## get_files_with_suffix ##
###########################


def test_get_files_with_suffix_sorted(tmp_path):
    """Only files with the given suffixes are returned, sorted by name"""
    write_manifests(
        tmp_path,
        {
            "0020-b.yml": "",
            "0010-a.yaml": "",
            "0030-c.json": "",
            "README.md": "",
        },
    )
    (tmp_path / "0005-dir.yaml").mkdir()
    files = utils.get_files_with_suffix(str(tmp_path), (".yaml", ".yml", ".json"))
    assert [fname.rsplit("/", 1)[-1] for fname in files] == [
        "0010-a.yaml",
        "0020-b.yml",
        "0030-c.json",
    ]


def test_get_files_with_suffix_missing_dir(tmp_path):
    with pytest.raises(FileNotFoundError):
        utils.get_files_with_suffix(str(tmp_path / "nope"), (".yaml",))
