"""
Library config module. The values here drive logging setup and the defaults
used when constructing states.
"""

# Local
from .config import library_config


# Attribute lookups on the module read through to the loaded config
def __getattr__(name):
    if name in library_config or hasattr({}, name):
        return getattr(library_config, name)
    raise AttributeError(f"No such config attribute {name}")


__all__ = list(library_config.keys())
