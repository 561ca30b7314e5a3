"""
scriptfs - filesystem primitives for an embedded scripting language
"""

from scriptfs.version import __version__

__all__ = ["__version__"]
