"""
Utils Module
Logging and version parsing helpers.
"""

from .logger import Logger
from . import semver

__all__ = ["Logger", "semver"]
