"""
Internal utilities - not part of public API.
"""

from . import parsers, validators, visualization

__all__ = [
    "parsers",
    "validators",
    "visualization",
]
