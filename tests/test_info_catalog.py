"""
Tests for the InfoCatalog
"""

# Local
from netop.info_catalog import InfoCatalog, InfoType
from netop.nodeinfo import NodeInfoProvider


def test_get_node_info_provider():
    provider = NodeInfoProvider([])
    catalog = InfoCatalog({InfoType.NODE_INFO: provider})
    assert catalog.get_node_info_provider() is provider
    assert catalog.get(InfoType.NODE_INFO) is provider


def test_missing_provider():
    """A catalog without the provider reports None"""
    assert InfoCatalog().get_node_info_provider() is None


def test_catalog_is_not_changed_by_source():
    """Changing the mapping used to build the catalog does not affect it"""
    providers = {}
    catalog = InfoCatalog(providers)
    providers[InfoType.NODE_INFO] = NodeInfoProvider([])
    assert catalog.get_node_info_provider() is None
