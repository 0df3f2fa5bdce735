"""Safe transaction service providers."""

from ..providers.base import BaseProvider, SafeInfo
from ..providers.http import HTTPProvider

__all__ = [
    "BaseProvider",
    "SafeInfo",
    "HTTPProvider",
]
