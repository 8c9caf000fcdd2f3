"""
Registry Module
Version discovery, archive building and the registry protocol operations.
"""

from .errors import NotFound, InternalError, StoreAccessError
from .router import ProtocolRouter, Download

__all__ = ["NotFound", "InternalError", "StoreAccessError", "ProtocolRouter", "Download"]
